"""Error taxonomy for a replay run.

Every failure is fatal to the whole run. The classes only distinguish
where the failure happened so the entrypoint can report it.
"""

from __future__ import annotations


class ReplayError(RuntimeError):
    """Base class for all replay failures."""


class ConfigError(ReplayError, ValueError):
    """Invalid configuration, detected before any work begins."""


class InputError(ReplayError):
    """An input file could not be read or decoded."""


class TransmissionError(ReplayError):
    """A batch could not be delivered to the remote write endpoint."""


class SerializationError(TransmissionError):
    """A batch could not be encoded into its wire representation."""


class DeadlineExceededError(TransmissionError):
    """A request did not complete within the write timeout."""


class RemoteWriteHTTPError(TransmissionError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str, body_line: str) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body_line = body_line
        super().__init__(
            f"server returned HTTP status {status_code} {reason}: {body_line}"
        )

    @property
    def recoverable(self) -> bool:
        # Informational only: 5xx is reported as recoverable but still aborts.
        return self.status_code // 100 == 5


class ReplayAborted(ReplayError):
    """Raised to the producer once a worker has failed."""

    def __init__(self, cause: BaseException | None = None) -> None:
        self.cause = cause
        message = "replay aborted"
        if cause is not None:
            message = f"replay aborted: {cause}"
        super().__init__(message)
