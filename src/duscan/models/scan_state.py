"""Observable scan state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from duscan.models.entry import Entry

log = logging.getLogger(__name__)

StateCallback = Callable[["ScanState"], None]

_PUBLISHABLE = ("is_scanning", "current_root_path")


def sort_entries(entries: list[Entry]) -> list[Entry]:
    """Return *entries* sorted by size, largest first.

    ``sorted`` is stable even with ``reverse=True``, so equal sizes keep
    their discovery order.
    """
    return sorted(entries, key=lambda e: e.size, reverse=True)


@dataclass
class ScanState:
    """State published by a :class:`~duscan.core.scanner.Scanner`.

    The scanner is the only writer. Observers register with
    :meth:`subscribe` and are called on the scanner's foreground context
    after every change; they should treat the fields as read-only.
    """

    entries: list[Entry] = field(default_factory=list)
    total_size: int = 0
    is_scanning: bool = False
    current_root_path: str = ""
    _observers: list[StateCallback] = field(default_factory=list, repr=False, compare=False)

    @property
    def file_count(self) -> int:
        """Number of non-directory entries currently shown."""
        return sum(1 for e in self.entries if not e.is_directory)

    @property
    def folder_count(self) -> int:
        """Number of directory entries currently shown."""
        return sum(1 for e in self.entries if e.is_directory)

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """Register *callback* for change notifications.

        Returns a function that removes the registration again.
        """
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def publish(self, entries: list[Entry] | None = None, **fields: Any) -> None:
        """Apply a change and notify observers.

        When *entries* is given the list is re-sorted and ``total_size`` is
        recomputed from it, so both invariants hold after every call.
        """
        for name in fields:
            if name not in _PUBLISHABLE:
                raise AttributeError(f"ScanState has no publishable field '{name}'")
        if entries is not None:
            self.entries = sort_entries(entries)
            self.total_size = sum(e.size for e in self.entries)
        for name, value in fields.items():
            setattr(self, name, value)
        self._notify()

    def as_dict(self) -> dict[str, Any]:
        """Serializable snapshot of the state."""
        return {
            "current_root_path": self.current_root_path,
            "is_scanning": self.is_scanning,
            "total_size": self.total_size,
            "file_count": self.file_count,
            "folder_count": self.folder_count,
            "entries": [e.as_dict() for e in self.entries],
        }

    def _notify(self) -> None:
        for callback in list(self._observers):
            try:
                callback(self)
            except Exception:
                log.exception("State observer %r failed", callback)
