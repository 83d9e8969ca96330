"""Filesystem primitives used by the scanner.

Everything here runs on a worker thread and blocks on I/O. Symlinks are
never followed: a link is reported as a non-directory node carrying its own
``lstat`` size.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

from duscan.core.errors import (
    ChildReadError,
    DeleteError,
    DescendantReadError,
    DirectoryReadError,
    ScanError,
)

log = logging.getLogger(__name__)

CancelCheck = Callable[[], bool]


@dataclass(frozen=True, slots=True)
class Node:
    """Attributes of one filesystem node, read once."""

    name: str
    path: str
    is_directory: bool
    size: int


def is_hidden(name: str) -> bool:
    """Dotfile convention: names starting with ``.`` are hidden."""
    return name.startswith(".")


def list_directory(path: str | Path) -> list[os.DirEntry]:
    """List the non-hidden immediate children of *path* in listing order.

    Raises:
        DirectoryReadError: if *path* cannot be listed.
    """
    try:
        with os.scandir(path) as it:
            return [entry for entry in it if not is_hidden(entry.name)]
    except OSError as e:
        raise DirectoryReadError(str(path), e) from e


def read_child(entry: os.DirEntry, error: type[ScanError] = ChildReadError) -> Node:
    """Read kind and size of a listed entry with a single ``lstat``.

    Directories get size 0; their weight comes from :func:`directory_size`.
    A node that vanished after listing raises *error*.
    """
    try:
        st = entry.stat(follow_symlinks=False)
    except OSError as e:
        raise error(entry.path, e) from e
    is_dir = stat.S_ISDIR(st.st_mode)
    return Node(name=entry.name, path=entry.path, is_directory=is_dir, size=0 if is_dir else st.st_size)


def walk(path: str | Path, is_cancelled: CancelCheck | None = None) -> Iterator[Node]:
    """Yield every non-hidden descendant of *path*, depth first.

    Unreadable descendants are skipped. *is_cancelled* is polled before each
    descendant; once it returns true the walk stops.

    Raises:
        DirectoryReadError: if *path* itself cannot be listed.
    """
    children = list_directory(path)
    stack: list[str] = []
    while True:
        subdirs: list[str] = []
        for entry in children:
            if is_cancelled is not None and is_cancelled():
                return
            try:
                node = read_child(entry, DescendantReadError)
            except DescendantReadError as e:
                log.debug("%s", e)
                continue
            yield node
            if node.is_directory:
                subdirs.append(node.path)
        # Reversed so the first listed subdirectory is walked first
        stack.extend(reversed(subdirs))
        if not stack:
            return
        current = stack.pop()
        try:
            children = list_directory(current)
        except DirectoryReadError as e:
            log.debug("%s", DescendantReadError(current, e.cause))
            children = []


def directory_size(path: str | Path, is_cancelled: CancelCheck | None = None) -> int:
    """Sum the sizes of all non-directory descendants of *path*.

    Returns the partial sum if *is_cancelled* fires mid-walk, and 0 if
    *path* cannot be listed.
    """
    try:
        return sum(node.size for node in walk(path, is_cancelled) if not node.is_directory)
    except DirectoryReadError as e:
        log.debug("%s", DescendantReadError(e.path, e.cause))
        return 0


def subtree_sizes(nodes: Iterable[Node], root: str | Path) -> dict[str, int]:
    """Accumulate file sizes into every ancestor directory below *root*.

    Produces the same totals as calling :func:`directory_size` on each
    directory, in a single pass over an already walked tree.
    """
    root_str = os.path.normpath(str(root))
    totals: dict[str, int] = {}
    for node in nodes:
        if node.is_directory:
            totals.setdefault(node.path, 0)
            continue
        parent = os.path.dirname(node.path)
        while parent != root_str and len(parent) > len(root_str):
            totals[parent] = totals.get(parent, 0) + node.size
            parent = os.path.dirname(parent)
    return totals


def remove_path(path: str | Path) -> None:
    """Delete a file, symlink or whole directory tree.

    Raises:
        DeleteError: if removal fails.
    """
    target = Path(path)
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
    except OSError as e:
        raise DeleteError(str(path), e) from e
