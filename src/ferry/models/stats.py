"""Run-wide migration statistics."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Any

from ferry.models.scan_result import ClassificationVerdict, VerdictKind
from ferry.models.upload_result import UploadOutcome
from ferry.utils import bytes_to_mb

SKIP_UP_TO_DATE = "up_to_date"

_SKIP_REASONS = {
    VerdictKind.OBSOLETE: "obsolete",
    VerdictKind.INVALID_NAME: "invalid_name",
    VerdictKind.PATH_TOO_LONG: "path_too_long",
    VerdictKind.TOO_LARGE: "too_large",
}


def skip_reason(verdict: ClassificationVerdict) -> str:
    """Map an ineligible verdict to its skip-reason key."""
    return _SKIP_REASONS[verdict.kind]


class MigrationStats:
    """Thread-safe accumulator for one migration run.

    Every mutation goes through a lock so upload workers can record outcomes
    concurrently.  ``finish()`` freezes the object; later mutations raise
    ``RuntimeError``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frozen = False
        self.started_at: datetime | None = None
        self.finished_at: datetime | None = None
        self.files_analyzed = 0
        self.files_eligible = 0
        self.files_migrated = 0
        self.files_failed = 0
        self.files_pending = 0
        self.bytes_analyzed = 0
        self.bytes_migrated = 0
        self.bytes_failed = 0
        self.skipped_files: dict[str, int] = {}
        self.skipped_bytes: dict[str, int] = {}
        self.cancelled = False

    # ── mutation ────────────────────────────────────────────────────────

    def start(self, now: datetime | None = None) -> None:
        with self._lock:
            self._check_mutable()
            self.started_at = now or datetime.now()

    def record_verdict(self, verdict: ClassificationVerdict, size_bytes: int) -> None:
        """Count one classified file; ineligible files are counted as skipped."""
        with self._lock:
            self._check_mutable()
            self.files_analyzed += 1
            self.bytes_analyzed += size_bytes
            if verdict.is_eligible:
                self.files_eligible += 1
            else:
                self._skip(skip_reason(verdict), size_bytes)

    def record_skip(self, reason: str, size_bytes: int) -> None:
        with self._lock:
            self._check_mutable()
            self._skip(reason, size_bytes)

    def record_outcome(self, outcome: UploadOutcome) -> None:
        with self._lock:
            self._check_mutable()
            if outcome.cancelled:
                self.files_pending += 1
            elif outcome.success:
                self.files_migrated += 1
                self.bytes_migrated += outcome.bytes_transferred
            else:
                self.files_failed += 1
                self.bytes_failed += outcome.entry.size_bytes

    def add_pending(self, count: int) -> None:
        with self._lock:
            self._check_mutable()
            self.files_pending += count

    def finish(self, now: datetime | None = None, cancelled: bool = False) -> None:
        """Stamp the end time and freeze the statistics."""
        with self._lock:
            self._check_mutable()
            self.finished_at = now or datetime.now()
            self.cancelled = cancelled
            self._frozen = True

    def _skip(self, reason: str, size_bytes: int) -> None:
        self.skipped_files[reason] = self.skipped_files.get(reason, 0) + 1
        self.skipped_bytes[reason] = self.skipped_bytes.get(reason, 0) + size_bytes

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("MigrationStats is frozen after finish()")

    # ── derived figures ─────────────────────────────────────────────────

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def files_skipped(self) -> int:
        return sum(self.skipped_files.values())

    @property
    def bytes_skipped(self) -> int:
        return sum(self.skipped_bytes.values())

    @property
    def success_rate(self) -> float:
        """Percentage of attempted uploads that succeeded (100.0 when none were attempted)."""
        attempted = self.files_migrated + self.files_failed
        if attempted == 0:
            return 100.0
        return self.files_migrated / attempted * 100

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.finished_at or datetime.now()
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "started_at": self.started_at.isoformat() if self.started_at else None,
                "finished_at": self.finished_at.isoformat() if self.finished_at else None,
                "duration_seconds": round(self.duration_seconds, 3),
                "cancelled": self.cancelled,
                "files_analyzed": self.files_analyzed,
                "files_eligible": self.files_eligible,
                "files_migrated": self.files_migrated,
                "files_failed": self.files_failed,
                "files_pending": self.files_pending,
                "files_skipped": self.files_skipped,
                "skipped_files": dict(self.skipped_files),
                "total_size_mb": round(bytes_to_mb(self.bytes_analyzed), 2),
                "migrated_size_mb": round(bytes_to_mb(self.bytes_migrated), 2),
                "skipped_size_mb": round(bytes_to_mb(self.bytes_skipped), 2),
                "skipped_size_mb_by_reason": {
                    reason: round(bytes_to_mb(size), 2) for reason, size in self.skipped_bytes.items()
                },
                "success_rate": round(self.success_rate, 2),
            }
