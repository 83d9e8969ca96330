"""Errors raised while scanning and deleting."""

from __future__ import annotations


class ScanError(Exception):
    """Base class for filesystem errors met by the scanner."""

    action = "access"

    def __init__(self, path: str, cause: OSError) -> None:
        super().__init__(path, cause)
        self.path = path
        self.cause = cause

    def __str__(self) -> str:
        reason = self.cause.strerror or str(self.cause)
        return f"Could not {self.action} {self.path}: {reason}"


class DirectoryReadError(ScanError):
    """The scan root itself cannot be listed."""

    action = "read directory"


class ChildReadError(ScanError):
    """An immediate child's attributes cannot be read."""

    action = "read"


class DescendantReadError(ScanError):
    """A descendant cannot be read during a recursive walk."""

    action = "read"


class DeleteError(ScanError):
    """Removing a file or directory tree failed."""

    action = "delete"
