"""Scan result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from ferry.utils import bytes_to_mb


@dataclass(frozen=True, slots=True)
class FileEntry:
    """Single file discovered under a scan root."""

    path: Path
    name: str
    size_bytes: int
    modified: datetime
    created: datetime
    relative_path: str

    @property
    def extension(self) -> str:
        """Lowercase extension without the leading dot ('' if none)."""
        return Path(self.name).suffix.lower().lstrip(".")

    @property
    def stem(self) -> str:
        return Path(self.name).stem

    @property
    def size_mb(self) -> float:
        return bytes_to_mb(self.size_bytes)

    @property
    def relative_parent(self) -> str:
        """Parent folder of the entry relative to the scan root, ``/``-separated."""
        parent = self.relative_path.replace("\\", "/").rpartition("/")[0]
        return parent


class VerdictKind(Enum):
    """Classification outcome categories."""

    ELIGIBLE = "Eligible"
    OBSOLETE = "Obsolete"
    INVALID_NAME = "InvalidName"
    PATH_TOO_LONG = "PathTooLong"
    TOO_LARGE = "TooLarge"


@dataclass(frozen=True, slots=True)
class ClassificationVerdict:
    """Verdict for one entry.

    ``reason`` is a short human-readable explanation and ``value`` carries the
    measured quantity: days since modification for OBSOLETE, the offending
    extension for a blocked extension, the virtual path length for
    PATH_TOO_LONG and the size in MB for TOO_LARGE.
    """

    kind: VerdictKind
    reason: str = ""
    value: int | float | str | None = None

    @property
    def is_eligible(self) -> bool:
        return self.kind is VerdictKind.ELIGIBLE

    @property
    def is_blocked(self) -> bool:
        return self.kind is VerdictKind.INVALID_NAME and self.reason == "blocked extension"

    def __str__(self) -> str:
        if self.reason:
            return f"{self.kind.value}({self.reason})"
        return self.kind.value


ELIGIBLE = ClassificationVerdict(VerdictKind.ELIGIBLE)


@dataclass(frozen=True, slots=True)
class ClassifiedEntry:
    """A file entry paired with its verdict."""

    entry: FileEntry
    verdict: ClassificationVerdict


@dataclass(frozen=True, slots=True)
class ScanWarning:
    """Soft, per-entry problem recorded while scanning."""

    path: Path
    reason: str
    timestamp: datetime


@dataclass(slots=True)
class DuplicateGroup:
    """Entries sharing a name and a size (to two decimals of a megabyte)."""

    name: str
    size_mb: float
    entries: list[FileEntry] = field(default_factory=list)


@dataclass(slots=True)
class ScanResult:
    """Result of scanning one source tree."""

    root: Path
    scanned_at: datetime
    total_files: int = 0
    total_folders: int = 0
    total_bytes: int = 0
    by_verdict: dict[VerdictKind, list[ClassifiedEntry]] = field(
        default_factory=lambda: {kind: [] for kind in VerdictKind}
    )
    duplicates: list[DuplicateGroup] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)

    def add(self, item: ClassifiedEntry) -> None:
        self.by_verdict[item.verdict.kind].append(item)
        self.total_files += 1
        self.total_bytes += item.entry.size_bytes

    def counts(self) -> dict[VerdictKind, int]:
        return {kind: len(items) for kind, items in self.by_verdict.items()}

    def bytes_by_verdict(self) -> dict[VerdictKind, int]:
        return {
            kind: sum(item.entry.size_bytes for item in items)
            for kind, items in self.by_verdict.items()
        }

    @property
    def eligible(self) -> list[ClassifiedEntry]:
        return self.by_verdict[VerdictKind.ELIGIBLE]

    @property
    def ineligible(self) -> list[ClassifiedEntry]:
        return [
            item
            for kind, items in self.by_verdict.items()
            if kind is not VerdictKind.ELIGIBLE
            for item in items
        ]

    def all_entries(self) -> list[ClassifiedEntry]:
        return [item for items in self.by_verdict.values() for item in items]
