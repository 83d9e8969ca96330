"""Directory size scanning engine."""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable

from duscan.core.dispatch import Dispatcher, run_inline
from duscan.core.errors import ChildReadError, DeleteError, DirectoryReadError
from duscan.core.walker import (
    directory_size,
    list_directory,
    read_child,
    remove_path,
    subtree_sizes,
    walk,
)
from duscan.models.entry import Entry
from duscan.models.scan_state import ScanState, sort_entries
from duscan.utils import bytes_to_human, format_elapsed

log = logging.getLogger(__name__)

CompleteCallback = Callable[[list[Entry]], None]
ErrorCallback = Callable[[DirectoryReadError], None]

DEEP_STRATEGIES = ("rewalk", "bottom_up")


class Scanner:
    """Scans directories on a worker thread and publishes sizes to a ScanState.

    Only one scan owns the state at a time. Every request bumps a generation
    counter synchronously; a worker whose generation is no longer current
    stops at its next checkpoint, and any update it already queued is
    dropped when the dispatcher gets to run it.

    Args:
        dispatch: Runs state mutations on the foreground context.
            Defaults to running them inline on the worker thread.
        deep_strategy: ``"rewalk"`` sizes every directory of a deep scan
            with its own walk; ``"bottom_up"`` sums them in one pass.
    """

    def __init__(self, dispatch: Dispatcher = run_inline, deep_strategy: str = "rewalk") -> None:
        if deep_strategy not in DEEP_STRATEGIES:
            raise ValueError(f"Unknown deep scan strategy: {deep_strategy!r}")
        self.state = ScanState()
        self._dispatch = dispatch
        self._deep_strategy = deep_strategy
        self._lock = threading.RLock()
        self._generation = 0
        self._worker: threading.Thread | None = None

    format_bytes = staticmethod(bytes_to_human)

    # ── Public API ──────────────────────────────────────────────

    def scan_directory(self, root_path: str | Path) -> None:
        """Start a shallow scan of *root_path*, superseding any active scan.

        The state is reset before this returns; sizes arrive as the
        worker processes each child in listing order.
        """
        root = os.path.abspath(os.fspath(root_path))
        with self._lock:
            generation = self._next_generation()
            self.state.publish(entries=[], is_scanning=True, current_root_path=root)
        log.info("Starting scan of %s", root)
        self._start_worker(generation, self._run_shallow, root, generation)

    def scan_directory_recursively(
        self,
        root_path: str | Path,
        on_complete: CompleteCallback,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Start a deep scan of *root_path*, superseding any active scan.

        Every descendant becomes an entry. The sorted list is passed to
        *on_complete* once, on the foreground context; a superseded deep
        scan never calls it. The shallow listing in the state is left alone.

        If *root_path* cannot be listed, *on_error* receives the
        :class:`DirectoryReadError` instead. Without *on_error* the failure
        is delivered as an empty list.
        """
        root = os.path.abspath(os.fspath(root_path))
        with self._lock:
            generation = self._next_generation()
            self.state.publish(is_scanning=True)
        log.info("Starting recursive scan of %s (%s)", root, self._deep_strategy)
        self._start_worker(generation, self._run_deep, root, generation, on_complete, on_error)

    def delete_item(self, path: str | Path) -> str | None:
        """Delete *path* and re-scan the current root.

        Returns:
            None on success, otherwise a description of the failure. A failed
            deletion leaves the state untouched.
        """
        try:
            remove_path(path)
        except DeleteError as e:
            log.warning("%s", e)
            return str(e)

        log.info("Deleted %s", path)
        root = self.state.current_root_path
        if root:
            self.scan_directory(root)
        return None

    def cancel(self) -> None:
        """Stop the active scan, keeping whatever it already published."""
        with self._lock:
            self._next_generation()
            if self.state.is_scanning:
                self.state.publish(is_scanning=False)
                log.info("Scan cancelled")

    @property
    def can_go_up(self) -> bool:
        """Whether the current root has a parent directory to scan."""
        root = self.state.current_root_path
        return bool(root) and os.path.dirname(root) != root

    def go_up(self) -> bool:
        """Scan the parent of the current root. Returns False at the top."""
        if not self.can_go_up:
            return False
        self.scan_directory(os.path.dirname(self.state.current_root_path))
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the latest worker thread exits.

        With a deferred dispatcher the worker may finish before its last
        updates have been applied on the foreground context.

        Returns:
            False if the worker is still running after *timeout* seconds.
        """
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    # ── Ownership ───────────────────────────────────────────────

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _post(self, generation: int, entries: list[Entry] | None = None, **fields) -> None:
        """Queue a state mutation that only lands if *generation* still owns the state."""

        def apply() -> None:
            with self._lock:
                if not self._is_current(generation):
                    return
                self.state.publish(entries, **fields)

        self._dispatch(apply)

    def _start_worker(self, generation: int, target: Callable[..., None], *args) -> None:
        def run() -> None:
            try:
                target(*args)
            except Exception:
                log.exception("Scan worker failed")
                self._post(generation, is_scanning=False)

        worker = threading.Thread(target=run, name=f"duscan-scan-{generation}", daemon=True)
        self._worker = worker
        worker.start()

    # ── Workers ─────────────────────────────────────────────────

    def _run_shallow(self, root: str, generation: int) -> None:
        def cancelled() -> bool:
            return not self._is_current(generation)

        started = time.monotonic()
        try:
            children = list_directory(root)
        except DirectoryReadError as e:
            log.warning("Scan failed: %s", e)
            self._post(generation, entries=[], is_scanning=False, current_root_path="")
            return

        log.debug("Found %d items to process in %s", len(children), root)
        scanned: list[Entry] = []

        for child in children:
            if cancelled():
                log.debug("Scan of %s superseded", root)
                return
            try:
                node = read_child(child)
            except ChildReadError as e:
                log.debug("Skipping child: %s", e)
                continue

            entry = Entry(name=node.name, size=node.size, path=node.path, is_directory=node.is_directory)
            scanned.append(entry)
            self._post(generation, entries=list(scanned))
            if not node.is_directory:
                log.debug("File: %s - %s", node.name, bytes_to_human(node.size))
                continue

            log.debug("Folder found: %s - calculating size...", node.name)
            folder_started = time.monotonic()
            size = directory_size(node.path, cancelled)
            if cancelled():
                log.debug("Scan of %s superseded", root)
                return
            scanned[-1] = entry.with_size(size)
            self._post(generation, entries=list(scanned))
            log.debug(
                "Folder: %s - %s (took %s)",
                node.name,
                bytes_to_human(size),
                format_elapsed(time.monotonic() - folder_started),
            )

        self._post(generation, entries=list(scanned), is_scanning=False)
        log.info(
            "Scan of %s completed: %s in %d items (%s)",
            root,
            bytes_to_human(sum(e.size for e in scanned)),
            len(scanned),
            format_elapsed(time.monotonic() - started),
        )

    def _run_deep(
        self,
        root: str,
        generation: int,
        on_complete: CompleteCallback,
        on_error: ErrorCallback | None,
    ) -> None:
        def cancelled() -> bool:
            return not self._is_current(generation)

        started = time.monotonic()
        entries: list[Entry] = []
        error: DirectoryReadError | None = None
        try:
            nodes = list(walk(root, cancelled))
        except DirectoryReadError as e:
            log.warning("Recursive scan failed: %s", e)
            error = e
        else:
            if cancelled():
                return
            sizes = subtree_sizes(nodes, root) if self._deep_strategy == "bottom_up" else None
            for node in nodes:
                if cancelled():
                    return
                size = node.size
                if node.is_directory:
                    size = sizes.get(node.path, 0) if sizes is not None else directory_size(node.path, cancelled)
                entries.append(Entry(name=node.name, size=size, path=node.path, is_directory=node.is_directory))
            if cancelled():
                return
            entries = sort_entries(entries)

        def deliver() -> None:
            with self._lock:
                if not self._is_current(generation):
                    return
                try:
                    if error is not None and on_error is not None:
                        on_error(error)
                    else:
                        on_complete(entries)
                finally:
                    self.state.publish(is_scanning=False)

        self._dispatch(deliver)
        if error is None:
            log.info(
                "Recursive scan of %s completed: %d entries (%s)",
                root,
                len(entries),
                format_elapsed(time.monotonic() - started),
            )
