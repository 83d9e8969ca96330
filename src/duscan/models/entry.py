"""Scanned entry dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class Entry:
    """Single file or directory reported by a scan.

    Equality and hashing only look at ``path`` and ``size``: a directory
    whose size is still converging is seen as a changed row, not a new one.
    """

    name: str = field(compare=False)
    size: int
    path: str
    is_directory: bool = field(default=False, compare=False)

    @property
    def id(self) -> str:
        """Stable identity of the entry (its absolute path)."""
        return self.path

    def with_size(self, size: int) -> Entry:
        """Return a copy of this entry carrying a new size."""
        return replace(self, size=size)

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "size": self.size,
            "is_directory": self.is_directory,
        }
