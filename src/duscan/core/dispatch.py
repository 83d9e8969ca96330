"""Foreground execution contexts for state updates.

A dispatcher takes a zero-argument callable and arranges for it to run on
the context that owns the UI (or service) state. Worker threads never touch
:class:`~duscan.models.ScanState` directly; they hand each mutation to the
scanner's dispatcher.

A GTK host can pass ``GLib.idle_add`` itself.
"""

from __future__ import annotations

import asyncio
from typing import Callable

Dispatcher = Callable[[Callable[[], None]], None]


def run_inline(fn: Callable[[], None]) -> None:
    """Run *fn* immediately on the calling thread."""
    fn()


class LoopDispatcher:
    """Schedule callables on an asyncio event loop from any thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def __call__(self, fn: Callable[[], None]) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(fn)
