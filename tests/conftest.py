"""Shared test fixtures."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import pytest

from duscan.models.entry import Entry
from duscan.models.scan_state import ScanState
from duscan.settings import Settings


@dataclass
class Snapshot:
    entries: list[Entry]
    total_size: int
    is_scanning: bool
    current_root_path: str


class StateRecorder:
    """Records a copy of the state on every change notification."""

    def __init__(self, state: ScanState) -> None:
        self.snapshots: list[Snapshot] = []
        state.subscribe(self)

    def __call__(self, state: ScanState) -> None:
        self.snapshots.append(
            Snapshot(list(state.entries), state.total_size, state.is_scanning, state.current_root_path)
        )


class QueueDispatcher:
    """Collects state mutations until the test drains them, like an idle loop."""

    def __init__(self) -> None:
        self.pending: list[Callable[[], None]] = []

    def __call__(self, fn: Callable[[], None]) -> None:
        self.pending.append(fn)

    def drain(self) -> None:
        while self.pending:
            self.pending.pop(0)()


@pytest.fixture
def tree(tmp_path) -> Path:
    """Create a small directory tree.

    root/
      big.bin      300
      small.txt     10
      .hidden     1000  (hidden)
      sub/
        a.dat       50
        .secret    999  (hidden)
        nested/
          b.dat     25
      empty/
    """
    root = tmp_path / "root"
    root.mkdir()
    (root / "big.bin").write_bytes(b"b" * 300)
    (root / "small.txt").write_bytes(b"s" * 10)
    (root / ".hidden").write_bytes(b"h" * 1000)
    sub = root / "sub"
    sub.mkdir()
    (sub / "a.dat").write_bytes(b"a" * 50)
    (sub / ".secret").write_bytes(b"x" * 999)
    nested = sub / "nested"
    nested.mkdir()
    (nested / "b.dat").write_bytes(b"n" * 25)
    (root / "empty").mkdir()
    return root


@pytest.fixture
def recorder_factory() -> Callable[[ScanState], StateRecorder]:
    return StateRecorder


@pytest.fixture
def queue_dispatcher() -> QueueDispatcher:
    return QueueDispatcher()


@pytest.fixture
def isolate_settings(tmp_path, monkeypatch):
    """Point settings at a temp XDG_CONFIG_HOME and drop the cached singleton."""
    config_home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setattr(Settings, "_instance", None)
    return config_home / "duscan" / "settings.json"
