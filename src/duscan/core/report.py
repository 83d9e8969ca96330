"""Storage report over a list of scanned entries."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

from duscan.models.entry import Entry
from duscan.models.scan_state import sort_entries

NO_EXTENSION = "No Extension"
FOLDERS = "Folders"


class ItemFilter(str, Enum):
    """Which kinds of entries a report covers."""

    ALL = "all"
    FILES = "files"
    FOLDERS = "folders"

    def matches(self, entry: Entry) -> bool:
        if self is ItemFilter.FILES:
            return not entry.is_directory
        if self is ItemFilter.FOLDERS:
            return entry.is_directory
        return True


@dataclass(slots=True)
class Report:
    """Summary of a set of entries."""

    item_filter: ItemFilter
    file_count: int = 0
    folder_count: int = 0
    total_size: int = 0
    largest: list[Entry] = field(default_factory=list)
    type_breakdown: list[tuple[str, int]] = field(default_factory=list)

    @property
    def average_file_size(self) -> int | None:
        """Total size divided by the number of files, or None without files."""
        if not self.file_count:
            return None
        return self.total_size // self.file_count

    @property
    def top_type_percentage(self) -> int | None:
        """Share of the total held by the largest type bucket, in whole percent."""
        if not self.type_breakdown or self.total_size <= 0:
            return None
        return int(self.type_breakdown[0][1] / self.total_size * 100)


def file_type(name: str) -> str:
    """Display label for a file's type, derived from its extension."""
    ext = os.path.splitext(name)[1].lstrip(".")
    return ext.upper() if ext else NO_EXTENSION


def build_report(
    entries: list[Entry],
    item_filter: ItemFilter = ItemFilter.ALL,
    limit: int = 10,
) -> Report:
    """Build a storage report for *entries*.

    Args:
        entries: Entries from a shallow or deep scan.
        item_filter: Restrict the report to files or folders.
        limit: Maximum length of the ``largest`` and ``type_breakdown`` lists.
    """
    selected = sort_entries([e for e in entries if item_filter.matches(e)])

    by_type: dict[str, int] = {}
    folder_size = 0
    file_count = 0
    for entry in selected:
        if entry.is_directory:
            folder_size += entry.size
            continue
        file_count += 1
        label = file_type(entry.name)
        by_type[label] = by_type.get(label, 0) + entry.size
    if folder_size > 0:
        by_type[FOLDERS] = folder_size

    breakdown = sorted(by_type.items(), key=lambda item: item[1], reverse=True)

    return Report(
        item_filter=item_filter,
        file_count=file_count,
        folder_count=len(selected) - file_count,
        total_size=sum(e.size for e in selected),
        largest=selected[:limit],
        type_breakdown=breakdown[:limit],
    )
