"""Report records for inventories, migration outcomes and run summaries."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from ferry.core.orchestrator import MigrationReport
from ferry.models.scan_result import ClassifiedEntry, DuplicateGroup, ScanResult, ScanWarning, VerdictKind
from ferry.models.upload_result import UploadOutcome
from ferry.utils import bytes_to_mb

log = logging.getLogger(__name__)


def inventory_record(item: ClassifiedEntry, now: datetime) -> dict[str, Any]:
    entry, verdict = item.entry, item.verdict
    return {
        "fileName": entry.name,
        "fullPath": str(entry.path),
        "relativePath": entry.relative_path,
        "sizeMB": round(entry.size_mb, 2),
        "created": entry.created.isoformat(),
        "modified": entry.modified.isoformat(),
        "daysSinceModified": (now - entry.modified).days,
        "classification": verdict.kind.value,
        "reason": verdict.reason,
        "extension": entry.extension,
        "isValidName": verdict.kind is not VerdictKind.INVALID_NAME,
        "isTooLarge": verdict.kind is VerdictKind.TOO_LARGE,
        "isObsolete": verdict.kind is VerdictKind.OBSOLETE,
    }


def outcome_record(outcome: UploadOutcome) -> dict[str, Any]:
    entry = outcome.entry
    return {
        "sourcePath": str(entry.path),
        "destination": outcome.destination,
        "fileName": entry.name,
        "sizeMB": round(entry.size_mb, 2),
        "created": entry.created.isoformat(),
        "modified": entry.modified.isoformat(),
        "migrationTimestamp": outcome.timestamp.isoformat(),
        "status": "Cancelled" if outcome.cancelled else outcome.status,
        "chunked": outcome.chunked,
        "attempts": outcome.attempts,
        "error": outcome.error,
    }


def duplicate_record(group: DuplicateGroup) -> dict[str, Any]:
    return {
        "fileName": group.name,
        "sizeMB": group.size_mb,
        "count": len(group.entries),
        "paths": [e.relative_path for e in group.entries],
    }


def warning_record(warning: ScanWarning) -> dict[str, Any]:
    return {
        "path": str(warning.path),
        "reason": warning.reason,
        "timestamp": warning.timestamp.isoformat(),
    }


def scan_summary(scan: ScanResult) -> dict[str, Any]:
    """Per-category counts and sizes for one scan."""
    counts = scan.counts()
    sizes = scan.bytes_by_verdict()
    return {
        "root": str(scan.root),
        "totalFiles": scan.total_files,
        "totalFolders": scan.total_folders,
        "totalSizeMB": round(bytes_to_mb(scan.total_bytes), 2),
        "counts": {kind.value: counts[kind] for kind in VerdictKind},
        "sizeMB": {kind.value: round(bytes_to_mb(sizes[kind]), 2) for kind in VerdictKind},
        "duplicateGroups": len(scan.duplicates),
        "warnings": len(scan.warnings),
    }


def build_scan_report(scan: ScanResult) -> dict[str, Any]:
    """Full inventory report for an audit-only scan."""
    return {
        "summary": scan_summary(scan),
        "inventory": [inventory_record(item, scan.scanned_at) for item in scan.all_entries()],
        "duplicates": [duplicate_record(g) for g in scan.duplicates],
        "warnings": [warning_record(w) for w in scan.warnings],
    }


def build_migration_report(report: MigrationReport) -> dict[str, Any]:
    """Full report for a migration run, including a dry run."""
    data: dict[str, Any] = {
        "source": str(report.source),
        "destination": report.destination,
        "dryRun": report.dry_run,
        "state": report.state.value,
        "cancelled": report.cancelled,
        "error": report.error,
        "stats": report.stats.to_dict(),
    }
    if report.scan is not None:
        data.update(build_scan_report(report.scan))
    data["outcomes"] = [outcome_record(o) for o in report.outcomes]
    data["upToDate"] = [e.relative_path for e in report.up_to_date]
    return data


def write_report(data: dict[str, Any], path: Path) -> None:
    """Write a report dict as JSON, creating parent folders as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    log.info("Report written to %s", path)
