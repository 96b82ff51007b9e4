"""Scan-then-upload orchestration for one migration run."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

from ferry.core.scanner import InventoryScanner, ScanError
from ferry.core.uploader import DEFAULT_BACKOFF_SECONDS, DEFAULT_RETRY_COUNT, UploadExecutor, Waiter
from ferry.models.rules import RuleSet
from ferry.models.scan_result import FileEntry, ScanResult
from ferry.models.stats import SKIP_UP_TO_DATE, MigrationStats
from ferry.models.transport import DestinationUnreachable, Transport, TransportError
from ferry.models.upload_result import UploadOutcome
from ferry.utils import join_virtual_path

log = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_BATCH_PAUSE = 2.0

ProgressCallback = Callable[[str, int, int], None]  # (phase, done, total)
OutcomeCallback = Callable[[UploadOutcome], None]


class RunState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DRY_RUN_COMPLETE = "dry_run_complete"
    UPLOADING = "uploading"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS = {
    RunState.IDLE: {RunState.SCANNING},
    RunState.SCANNING: {RunState.DRY_RUN_COMPLETE, RunState.UPLOADING, RunState.FAILED},
    RunState.DRY_RUN_COMPLETE: {RunState.REPORTING},
    RunState.UPLOADING: {RunState.REPORTING, RunState.FAILED},
    RunState.REPORTING: {RunState.DONE},
    RunState.DONE: set(),
    RunState.FAILED: set(),
}


@dataclass(slots=True)
class MigrationReport:
    """Everything a finished (or failed) run produced."""

    source: Path
    destination: str
    dry_run: bool
    state: RunState
    stats: MigrationStats
    scan: ScanResult | None = None
    outcomes: list[UploadOutcome] = field(default_factory=list)
    up_to_date: list[FileEntry] = field(default_factory=list)
    cancelled: bool = False
    error: str = ""

    @property
    def failures(self) -> list[UploadOutcome]:
        return [o for o in self.outcomes if not o.success and not o.cancelled]


class MigrationOrchestrator:
    """Runs one migration: full scan, then batched uploads of eligible files.

    Nothing is uploaded before the whole tree has been classified.  With
    ``dry_run`` the run stops after scanning.  Per-file failures never fail
    the run; only an unusable source root or destination does, and those
    raise ``ScanError`` and ``DestinationUnreachable`` respectively.

    ``cancel()`` may be called from any thread (or by a Ctrl+C during the
    upload phase).  No new uploads start after it, in-flight uploads are
    allowed to finish, and the report counts everything left as pending.
    """

    def __init__(
        self,
        transport: Transport,
        destination: str,
        rules: RuleSet | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_pause: float = DEFAULT_BATCH_PAUSE,
        retry_count: int = DEFAULT_RETRY_COUNT,
        backoff: float = DEFAULT_BACKOFF_SECONDS,
        dry_run: bool = False,
        incremental: bool = False,
        workers: int = 1,
        destination_prefix: str | None = None,
        now: datetime | None = None,
        on_progress: ProgressCallback | None = None,
        on_outcome: OutcomeCallback | None = None,
        wait: Waiter | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        if retry_count < 1:
            raise ValueError(f"retry_count must be at least 1, got {retry_count}")
        if batch_pause < 0:
            raise ValueError(f"batch_pause must not be negative, got {batch_pause}")
        self.transport = transport
        self.destination = destination
        self.rules = rules or RuleSet()
        self.batch_size = batch_size
        self.batch_pause = batch_pause
        self.retry_count = retry_count
        self.backoff = backoff
        self.dry_run = dry_run
        self.incremental = incremental
        self.workers = workers
        self.destination_prefix = destination if destination_prefix is None else destination_prefix
        self._now = now
        self._on_progress = on_progress
        self._on_outcome = on_outcome
        self._cancel = threading.Event()
        self._wait = wait or self._cancel.wait
        self._lock = threading.Lock()
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Stop issuing new uploads; safe to call from any thread."""
        if not self._cancel.is_set():
            log.warning("Cancellation requested, finishing in-flight uploads")
        self._cancel.set()

    def run(self, source: Path | str) -> MigrationReport:
        """Execute the run and return its report.

        A Ctrl+C during the scan ends the run in the FAILED state with
        ``cancelled`` set; during uploads it cancels the run as ``cancel()`` does.

        Raises:
            ScanError: If the source root is unusable.
            DestinationUnreachable: If the destination cannot be used.
            RuntimeError: If the orchestrator has already been run.
        """
        source = Path(source)
        stats = MigrationStats()
        stats.start()
        report = MigrationReport(
            source=source,
            destination=self.destination,
            dry_run=self.dry_run,
            state=self._state,
            stats=stats,
        )

        self._transition(RunState.SCANNING)
        scanner = InventoryScanner(
            self.rules,
            destination_prefix=self.destination_prefix,
            now=self._now,
            on_progress=self._scan_progress,
            stats=stats,
        )
        try:
            report.scan = scanner.scan(source)
        except ScanError as e:
            self._fail(report, str(e))
            raise
        except KeyboardInterrupt:
            self.cancel()
            self._fail(report, "cancelled during scan", cancelled=True)
            report.cancelled = True
            return report

        eligible = [item.entry for item in report.scan.eligible]
        log.info(
            "Classified %d files: %d eligible, %d skipped",
            report.scan.total_files, len(eligible), len(report.scan.ineligible),
        )

        if self.dry_run:
            self._transition(RunState.DRY_RUN_COMPLETE)
            log.info("Dry run: %d files would be uploaded to %s", len(eligible), self.destination)
        else:
            self._transition(RunState.UPLOADING)
            try:
                self.transport.check_destination(self.destination)
            except DestinationUnreachable as e:
                self._fail(report, str(e))
                raise

            executor = UploadExecutor(
                self.transport,
                rules=self.rules,
                stats=stats,
                retry_count=self.retry_count,
                backoff=self.backoff,
                cancel_event=self._cancel,
                wait=self._wait,
            )
            try:
                self._upload_all(eligible, executor, report)
            except KeyboardInterrupt:
                self.cancel()

            unprocessed = len(eligible) - len(report.outcomes) - len(report.up_to_date)
            if unprocessed:
                stats.add_pending(unprocessed)

        self._transition(RunState.REPORTING)
        report.cancelled = self.cancelled
        stats.finish(cancelled=report.cancelled)
        self._transition(RunState.DONE)
        report.state = self._state
        return report

    # ── upload phase ────────────────────────────────────────────────────

    def _upload_all(self, entries: list[FileEntry], executor: UploadExecutor, report: MigrationReport) -> None:
        total = len(entries)
        batches = [entries[i:i + self.batch_size] for i in range(0, total, self.batch_size)]
        for index, batch in enumerate(batches, 1):
            if self.cancelled:
                break
            if index > 1 and self.batch_pause > 0:
                log.info("Pausing %.1fs before batch %d/%d", self.batch_pause, index, len(batches))
                if self._wait(self.batch_pause):
                    break

            log.info("Uploading batch %d/%d (%d files)", index, len(batches), len(batch))
            if self.workers > 1 and len(batch) > 1:
                self._upload_parallel(batch, executor, report, total)
            else:
                for entry in batch:
                    if self.cancelled:
                        break
                    self._process(entry, executor, report, total)

    def _upload_parallel(
        self,
        batch: list[FileEntry],
        executor: UploadExecutor,
        report: MigrationReport,
        total: int,
    ) -> None:
        """Upload one batch on a small thread pool.

        Retry delays happen inside each worker, so a file waiting to retry
        does not hold up the others.
        """

        def _task(entry: FileEntry) -> None:
            if self.cancelled:
                return
            try:
                self._process(entry, executor, report, total)
            except KeyboardInterrupt:
                self.cancel()
                raise

        with ThreadPoolExecutor(max_workers=min(self.workers, len(batch))) as pool:
            futures = [pool.submit(_task, entry) for entry in batch]
            try:
                for future in as_completed(futures):
                    future.result()
            except KeyboardInterrupt:
                # Queued uploads must not start once the run is interrupted.
                self.cancel()
                pool.shutdown(wait=False, cancel_futures=True)
                raise

    def _process(self, entry: FileEntry, executor: UploadExecutor, report: MigrationReport, total: int) -> None:
        folder = self._destination_folder(entry)

        if self.incremental and self._is_up_to_date(entry, folder):
            log.debug("Up to date at destination, skipping: %s", entry.relative_path)
            report.stats.record_skip(SKIP_UP_TO_DATE, entry.size_bytes)
            with self._lock:
                report.up_to_date.append(entry)
                done = len(report.outcomes) + len(report.up_to_date)
            self._upload_progress(done, total)
            return

        outcome = executor.upload(entry, folder)
        with self._lock:
            report.outcomes.append(outcome)
            done = len(report.outcomes) + len(report.up_to_date)
        if self._on_outcome:
            self._on_outcome(outcome)
        self._upload_progress(done, total)

    def _destination_folder(self, entry: FileEntry) -> str:
        parent = entry.relative_parent
        return join_virtual_path(self.destination, parent) if parent else self.destination

    def _is_up_to_date(self, entry: FileEntry, folder: str) -> bool:
        try:
            remote = self.transport.stat_remote(folder, entry.name)
        except (TransportError, OSError) as e:
            log.warning("Could not check destination copy of %s: %s", entry.relative_path, e)
            return False
        if remote is None:
            return False
        return remote.size_bytes == entry.size_bytes and remote.modified >= entry.modified

    # ── helpers ─────────────────────────────────────────────────────────

    def _transition(self, state: RunState) -> None:
        if state not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Invalid run state transition: {self._state.value} -> {state.value}")
        log.debug("Run state: %s -> %s", self._state.value, state.value)
        self._state = state

    def _fail(self, report: MigrationReport, error: str, cancelled: bool = False) -> None:
        log.error("Migration failed: %s", error)
        self._transition(RunState.FAILED)
        report.state = self._state
        report.error = error
        report.stats.finish(cancelled=cancelled)

    def _scan_progress(self, done: int, total: int) -> None:
        if self._on_progress:
            self._on_progress("scan", done, total)

    def _upload_progress(self, done: int, total: int) -> None:
        if self._on_progress:
            self._on_progress("upload", done, total)
