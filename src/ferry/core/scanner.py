"""Source tree inventory and classification."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable

from ferry.core.classifier import classify
from ferry.core.duplicates import find_duplicates
from ferry.models.rules import RuleSet
from ferry.models.scan_result import ClassifiedEntry, FileEntry, ScanResult, ScanWarning
from ferry.models.stats import MigrationStats

log = logging.getLogger(__name__)

ScanProgressCallback = Callable[[int, int], None]  # (files_classified, total_files)


class ScanError(Exception):
    """Raised when the scan root cannot be used at all."""


def _is_link(entry: os.DirEntry) -> bool:
    if entry.is_symlink():
        return True
    is_junction = getattr(entry, "is_junction", None)
    return bool(is_junction and is_junction())


def _created_time(st: os.stat_result) -> datetime:
    birth = getattr(st, "st_birthtime", None)
    return datetime.fromtimestamp(birth if birth is not None else st.st_ctime)


class InventoryScanner:
    """Walks a source tree and classifies every file it finds.

    Symbolic links and junctions are never followed.  Files or folders
    that cannot be read are skipped and recorded as warnings on the
    result instead of aborting the scan.
    """

    def __init__(
        self,
        rules: RuleSet,
        destination_prefix: str = "",
        now: datetime | None = None,
        on_progress: ScanProgressCallback | None = None,
        stats: MigrationStats | None = None,
    ) -> None:
        self.rules = rules
        self.destination_prefix = destination_prefix
        self._now = now
        self._on_progress = on_progress
        self._stats = stats

    def scan(self, root: Path | str) -> ScanResult:
        """Scan *root* recursively.

        Raises:
            ScanError: If *root* does not exist, is not a directory or
                cannot be listed.
        """
        root = Path(root)
        now = self._now or datetime.now()

        if not root.exists():
            raise ScanError(f"Source path does not exist: {root}")
        if not root.is_dir():
            raise ScanError(f"Source path is not a directory: {root}")
        try:
            with os.scandir(root):
                pass
        except OSError as e:
            raise ScanError(f"Source path is not readable: {root}: {e}") from e

        result = ScanResult(root=root, scanned_at=now)
        entries = self._collect(root, result)
        log.info("Found %d files in %d folders under %s", len(entries), result.total_folders, root)

        total = len(entries)
        for index, entry in enumerate(entries, 1):
            verdict = classify(entry, self.rules, root, self.destination_prefix, now)
            result.add(ClassifiedEntry(entry, verdict))
            if self._stats is not None:
                self._stats.record_verdict(verdict, entry.size_bytes)
            if not verdict.is_eligible:
                log.debug("%s: %s", entry.relative_path, verdict)
            if self._on_progress:
                self._on_progress(index, total)

        result.duplicates = find_duplicates(entries)
        if result.warnings:
            log.warning("Scan of %s finished with %d warning(s)", root, len(result.warnings))
        return result

    def _collect(self, root: Path, result: ScanResult) -> list[FileEntry]:
        """Enumerate files below *root* without following links."""
        entries: list[FileEntry] = []
        stack: list[Path] = [root]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    children = sorted(it, key=lambda e: e.name)
            except OSError as e:
                self._warn(result, current, f"cannot list folder: {e}")
                continue

            subdirs: list[Path] = []
            for child in children:
                path = Path(child.path)
                try:
                    if _is_link(child):
                        self._warn(result, path, "link not followed")
                    elif child.is_dir(follow_symlinks=False):
                        result.total_folders += 1
                        subdirs.append(path)
                    elif child.is_file(follow_symlinks=False):
                        entries.append(self._build_entry(root, path, child.stat(follow_symlinks=False)))
                except OSError as e:
                    self._warn(result, path, f"cannot read entry: {e}")

            # Reverse so folders are visited in name order.
            stack.extend(reversed(subdirs))
        return entries

    @staticmethod
    def _build_entry(root: Path, path: Path, st: os.stat_result) -> FileEntry:
        return FileEntry(
            path=path,
            name=path.name,
            size_bytes=st.st_size,
            modified=datetime.fromtimestamp(st.st_mtime),
            created=_created_time(st),
            relative_path=path.relative_to(root).as_posix(),
        )

    @staticmethod
    def _warn(result: ScanResult, path: Path, reason: str) -> None:
        log.warning("Skipping %s: %s", path, reason)
        result.warnings.append(ScanWarning(path=path, reason=reason, timestamp=datetime.now()))
