"""Single-file upload with bounded retries."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from ferry.models.rules import RuleSet
from ferry.models.scan_result import FileEntry
from ferry.models.stats import MigrationStats
from ferry.models.transport import SizeExceeded, Transport, TransportError, ValidationError
from ferry.models.upload_result import UploadOutcome
from ferry.utils import join_virtual_path

log = logging.getLogger(__name__)

DEFAULT_RETRY_COUNT = 3
DEFAULT_BACKOFF_SECONDS = 2.0

# Waits up to the given number of seconds; returns True if the run was cancelled meanwhile.
Waiter = Callable[[float], bool]


class UploadExecutor:
    """Uploads eligible entries through a transport.

    A failed transfer is retried until ``retry_count`` attempts have been
    made in total, waiting ``backoff * attempt`` seconds after each failed
    attempt.  Validation failures are never retried.  When a cancel event is
    given, a pending retry is abandoned as soon as the event is set and the
    outcome is marked as cancelled.
    """

    def __init__(
        self,
        transport: Transport,
        rules: RuleSet | None = None,
        stats: MigrationStats | None = None,
        retry_count: int = DEFAULT_RETRY_COUNT,
        backoff: float = DEFAULT_BACKOFF_SECONDS,
        cancel_event: threading.Event | None = None,
        wait: Waiter | None = None,
    ) -> None:
        if retry_count < 1:
            raise ValueError(f"retry_count must be at least 1, got {retry_count}")
        self.transport = transport
        self.rules = rules or RuleSet()
        self.stats = stats
        self.retry_count = retry_count
        self.backoff = backoff
        self._cancel = cancel_event or threading.Event()
        self._wait = wait or self._cancel.wait

    def upload(self, entry: FileEntry, destination_folder: str) -> UploadOutcome:
        """Upload one entry and record the outcome in the shared statistics."""
        outcome = self._upload(entry, destination_folder)
        if self.stats is not None:
            self.stats.record_outcome(outcome)
        return outcome

    def _upload(self, entry: FileEntry, destination_folder: str) -> UploadOutcome:
        target = join_virtual_path(destination_folder, entry.name)
        if self.rules.exceeds_size_limit(entry.size_bytes):
            error = SizeExceeded(
                f"{entry.name} is {entry.size_mb:.2f} MB, limit is {self.rules.max_file_size_mb} MB"
            )
            log.error("Refusing to upload %s: %s", entry.path, error)
            return self._failure(entry, target, 0, f"SizeExceeded: {error}")

        last_error = ""
        for attempt in range(1, self.retry_count + 1):
            try:
                location = self.transport.upload(entry.path, destination_folder, entry.name)
            except ValidationError as e:
                log.error("Destination rejected %s: %s", entry.path, e)
                return self._failure(entry, target, attempt, f"{type(e).__name__}: {e}")
            except (TransportError, OSError) as e:
                last_error = f"{type(e).__name__}: {e}"
                log.warning(
                    "Upload of %s failed (attempt %d/%d): %s",
                    entry.relative_path, attempt, self.retry_count, last_error,
                )
                if attempt < self.retry_count:
                    delay = self.backoff * attempt
                    if self._wait(delay):
                        log.info("Retry of %s abandoned after cancellation", entry.relative_path)
                        return self._failure(entry, target, attempt, last_error, cancelled=True)
                continue

            log.info("Uploaded %s -> %s", entry.relative_path, location)
            return UploadOutcome(
                entry=entry,
                success=True,
                attempts=attempt,
                timestamp=datetime.now(),
                destination=location,
                bytes_transferred=entry.size_bytes,
            )

        log.error("Giving up on %s after %d attempts: %s", entry.relative_path, self.retry_count, last_error)
        return self._failure(entry, target, self.retry_count, last_error)

    @staticmethod
    def _failure(
        entry: FileEntry, target: str, attempts: int, error: str, cancelled: bool = False
    ) -> UploadOutcome:
        return UploadOutcome(
            entry=entry,
            success=False,
            attempts=attempts,
            timestamp=datetime.now(),
            destination=target,
            error=error,
            cancelled=cancelled,
        )
