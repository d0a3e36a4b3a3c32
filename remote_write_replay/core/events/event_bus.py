"""
Thread-safe synchronous event bus.

Events are emitted from the producer and from every transmission worker,
so dispatch is serialized with a lock; sinks never see concurrent calls.
"""
from __future__ import annotations

import threading
from typing import Any, Iterable, Protocol


class EventSink(Protocol):
    """Consumer of replay events. Sinks may also expose close()."""

    def on_event(self, event: Any) -> None: ...


class EventBus:
    """Dispatches events to registered sinks."""

    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = list(sinks) if sinks is not None else []
        self._lock = threading.Lock()
        self._closed = False

    def register(self, sink: EventSink) -> None:
        """Register a new sink."""
        with self._lock:
            self._sinks.append(sink)

    def emit(self, event: Any) -> None:
        """Emit an event to all sinks."""
        with self._lock:
            for sink in self._sinks:
                sink.on_event(event)

    def close(self) -> None:
        """
        Finalize all sinks that expose a close() method.
        """
        with self._lock:
            if self._closed:
                return

            for sink in self._sinks:
                close_fn = getattr(sink, "close", None)
                if callable(close_fn):
                    close_fn()

            self._closed = True
