"""Name-and-size duplicate candidates.

This is a heuristic: two files with the same name and the same size
(to two decimals of a megabyte) are reported together, but their contents
are never compared.
"""

from __future__ import annotations

from typing import Iterable

from ferry.models.scan_result import DuplicateGroup, FileEntry


def duplicate_key(entry: FileEntry) -> tuple[str, float]:
    return entry.name, round(entry.size_mb, 2)


def find_duplicates(entries: Iterable[FileEntry]) -> list[DuplicateGroup]:
    """Group *entries* by (name, rounded size) and return groups of two or more."""
    groups: dict[tuple[str, float], list[FileEntry]] = {}
    for entry in entries:
        groups.setdefault(duplicate_key(entry), []).append(entry)

    return [
        DuplicateGroup(name=name, size_mb=size_mb, entries=members)
        for (name, size_mb), members in groups.items()
        if len(members) >= 2
    ]
