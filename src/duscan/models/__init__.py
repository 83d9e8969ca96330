"""duscan data models."""

from duscan.models.entry import Entry
from duscan.models.scan_state import ScanState

__all__ = [
    "Entry",
    "ScanState",
]
