"""D-Bus service exposing the scanner to GUI front ends.

D-Bus methods use PascalCase per D-Bus convention, and type signatures
like "s" and "b" are D-Bus protocol types, not Python syntax.
"""

from __future__ import annotations

import asyncio
import json
import logging

from dbus_next import BusType
from dbus_next.aio import MessageBus
from dbus_next.service import ServiceInterface, method, signal

from duscan.core.dispatch import LoopDispatcher
from duscan.core.scanner import Scanner
from duscan.models.entry import Entry
from duscan.models.scan_state import ScanState
from duscan.settings import Settings
from duscan.utils import bytes_to_human

log = logging.getLogger(__name__)

_BUS_NAME = "io.github.duscan"
_OBJECT_PATH = "/io/github/duscan"
_INTERFACE = "io.github.duscan.Scanner"


def _entries_json(entries: list[Entry]) -> str:
    return json.dumps([e.as_dict() for e in entries])


# noinspection PyPep8Naming
class DuscanDBusService(ServiceInterface):
    """D-Bus service interface for duscan.

    Worker threads hand their state updates to the service's event loop,
    so ``StateChanged`` is always emitted from the loop thread.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(_INTERFACE)
        self._scanner = Scanner(
            dispatch=LoopDispatcher(loop),
            deep_strategy=Settings.instance().deep_strategy(),
        )
        self._scanner.state.subscribe(self._on_state_changed)

    def _on_state_changed(self, state: ScanState) -> None:
        self.StateChanged(json.dumps(state.as_dict()))

    @method()
    def ScanDirectory(self, path: "s"):  # type: ignore[override]
        """Start a shallow scan; progress arrives through StateChanged."""
        self._scanner.scan_directory(path)

    @method()
    def ScanDirectoryRecursively(self, path: "s"):  # type: ignore[override]
        """Start a deep scan; the entries arrive through RecursiveScanCompleted.

        A root that cannot be listed is reported through RecursiveScanFailed.
        """
        self._scanner.scan_directory_recursively(
            path,
            lambda entries: self.RecursiveScanCompleted(path, _entries_json(entries)),
            lambda error: self.RecursiveScanFailed(path, str(error)),
        )

    @method()
    def Cancel(self):  # type: ignore[override]
        """Stop the active scan."""
        self._scanner.cancel()

    @method()
    def GoUp(self) -> "b":  # type: ignore[override]
        """Scan the parent of the current directory."""
        return self._scanner.go_up()

    @method()
    def DeleteItem(self, path: "s") -> "s":  # type: ignore[override]
        """Delete a path; returns an empty string on success or the error message."""
        return self._scanner.delete_item(path) or ""

    @method()
    def GetState(self) -> "s":  # type: ignore[override]
        """Get the current scan state as JSON."""
        return json.dumps(self._scanner.state.as_dict())

    @method()
    def FormatBytes(self, size: "t") -> "s":  # type: ignore[override]
        """Format a byte count for display."""
        return bytes_to_human(size)

    @signal()
    def StateChanged(self, state_json: str) -> "s":  # type: ignore[override]
        return state_json

    @signal()
    def RecursiveScanCompleted(self, path: str, entries_json: str) -> "(ss)":  # type: ignore[override]
        return [path, entries_json]

    @signal()
    def RecursiveScanFailed(self, path: str, message: str) -> "(ss)":  # type: ignore[override]
        return [path, message]


async def run_service() -> None:
    """Start the D-Bus service."""
    bus = await MessageBus(bus_type=BusType.SESSION).connect()
    service = DuscanDBusService(asyncio.get_running_loop())
    bus.export(_OBJECT_PATH, service)
    await bus.request_name(_BUS_NAME)
    log.info("D-Bus service started on %s", _BUS_NAME)
    await bus.wait_for_disconnect()


def start_service() -> None:
    """Entry point to start the D-Bus service."""
    asyncio.run(run_service())
