"""Label normalization for series tag sets."""

from __future__ import annotations

from typing import Iterable, Mapping

from remote_write_replay.core.domain.types import Label


def normalize_labels(tags: Mapping[str, str]) -> tuple[Label, ...]:
    """Return the tag set as labels sorted by name.

    Python orders ``str`` by code point, which matches the byte order of
    the UTF-8 encoding the endpoint compares on.
    """
    return tuple(
        Label(name=name, value=value)
        for name, value in sorted(tags.items(), key=lambda item: item[0])
    )


def format_labels(labels: Iterable[Label]) -> str:
    return ", ".join(f"{label.name}={label.value}" for label in labels)
