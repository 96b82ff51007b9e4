"""Tracks migration runs across sessions."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from ferry.core.orchestrator import MigrationReport
from ferry.utils import xdg_data_home

log = logging.getLogger(__name__)

HISTORY_FILE = xdg_data_home() / "ferry" / "history.json"


class Tracker:
    """Persists a short summary of every completed migration run.

    The history is a JSON object with a ``runs`` list; an unreadable or
    malformed file is treated as empty and replaced on the next save.
    """

    def __init__(self, history_file: Path | None = None) -> None:
        self._path = history_file or HISTORY_FILE

    def record(self, report: MigrationReport) -> bool:
        """Append *report* to the history; dry runs and failed runs are not recorded.

        Returns:
            True if the run was saved.
        """
        if report.dry_run or report.error:
            return False

        runs = self._read_runs()
        entry = self._build_run_entry(report)
        runs.append(entry)
        self._write_runs(runs)
        log.info(
            "Saved run: %d migrated, %d failed, %d pending",
            entry["files_migrated"], entry["files_failed"], entry["files_pending"],
        )
        return True

    def get_stats(self, period: str = "all") -> dict[str, Any]:
        """Get aggregated statistics for a time period.

        Args:
            period: One of 'today', 'week', 'month', 'all'.
        """
        all_runs = self._read_runs()

        match period:
            case "today":
                cutoff = _start_of_today()
            case "week":
                cutoff = _start_of_today() - timedelta(days=7)
            case "month":
                cutoff = _start_of_today() - timedelta(days=30)
            case _:
                cutoff = None

        if cutoff is not None:
            runs = [r for r in all_runs if datetime.fromisoformat(r["timestamp"]) >= cutoff]
        else:
            runs = all_runs

        return {
            "period": period,
            "run_count": len(runs),
            "files_migrated": sum(r.get("files_migrated", 0) for r in runs),
            "files_failed": sum(r.get("files_failed", 0) for r in runs),
            "bytes_migrated": sum(r.get("bytes_migrated", 0) for r in runs),
            "lifetime_bytes_migrated": sum(r.get("bytes_migrated", 0) for r in all_runs),
            "per_destination": self._aggregate_destinations(runs),
        }

    def _read_runs(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            log.exception("Failed to load run history: %s", self._path)
            return []
        runs = data.get("runs") if isinstance(data, dict) else None
        if not isinstance(runs, list):
            log.warning("Ignoring malformed run history: %s", self._path)
            return []
        return runs

    def _write_runs(self, runs: list[dict[str, Any]]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps({"runs": runs}, indent=2) + "\n", encoding="utf-8")
        except OSError:
            log.exception("Failed to save run history: %s", self._path)

    @staticmethod
    def _build_run_entry(report: MigrationReport) -> dict[str, Any]:
        stats = report.stats
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": str(report.source),
            "destination": report.destination,
            "cancelled": report.cancelled,
            "files_analyzed": stats.files_analyzed,
            "files_migrated": stats.files_migrated,
            "files_failed": stats.files_failed,
            "files_pending": stats.files_pending,
            "files_skipped": stats.files_skipped,
            "bytes_migrated": stats.bytes_migrated,
            "duration_seconds": round(stats.duration_seconds, 3),
        }

    @staticmethod
    def _aggregate_destinations(runs: list[dict[str, Any]]) -> dict[str, dict[str, int]]:
        totals: dict[str, dict[str, int]] = {}
        for run in runs:
            dest = run.get("destination", "")
            if dest not in totals:
                totals[dest] = {"runs": 0, "files_migrated": 0, "bytes_migrated": 0}
            totals[dest]["runs"] += 1
            totals[dest]["files_migrated"] += run.get("files_migrated", 0)
            totals[dest]["bytes_migrated"] += run.get("bytes_migrated", 0)
        return totals


def _start_of_today() -> datetime:
    """Return the start of the current UTC day."""
    now = datetime.now(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)
