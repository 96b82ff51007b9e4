"""CLI interface for Ferry."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable

import click

from ferry.core.orchestrator import (
    DEFAULT_BATCH_PAUSE,
    DEFAULT_BATCH_SIZE,
    MigrationOrchestrator,
    MigrationReport,
)
from ferry.core.registry import TransportRegistry
from ferry.core.report import build_migration_report, build_scan_report, write_report
from ferry.core.scanner import InventoryScanner, ScanError
from ferry.core.tracker import Tracker
from ferry.core.transport_loader import load_transports
from ferry.core.uploader import DEFAULT_RETRY_COUNT
from ferry.models.rules import RuleSet
from ferry.models.scan_result import ScanResult, VerdictKind
from ferry.models.transport import DestinationUnreachable
from ferry.models.upload_result import UploadOutcome
from ferry.settings import Settings
from ferry.utils import bytes_to_human, format_elapsed

_VERDICT_COLORS = {
    VerdictKind.ELIGIBLE: "green",
    VerdictKind.OBSOLETE: "bright_black",
    VerdictKind.INVALID_NAME: "red",
    VerdictKind.PATH_TOO_LONG: "yellow",
    VerdictKind.TOO_LARGE: "yellow",
}


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _build_registry(settings: Settings) -> TransportRegistry:
    registry = TransportRegistry()
    load_transports(registry, settings)
    return registry


_RULE_OPTIONS = (
    click.option("--max-file-size-mb", type=click.IntRange(min=1), default=None, help="Largest allowed file (MB)"),
    click.option("--max-path-length", type=click.IntRange(min=1), default=None, help="Longest allowed destination path"),
    click.option("--max-name-length", type=click.IntRange(min=1), default=None, help="Longest allowed file name"),
    click.option("--stale-days", type=click.IntRange(min=1), default=None, help="Files older than this are obsolete"),
)


def _load_rules(settings: Settings, **overrides: Any) -> RuleSet:
    """Build the rule set or exit with an error if the configuration is invalid."""
    try:
        return RuleSet.from_settings(settings, **overrides)
    except (TypeError, ValueError) as e:
        click.echo(f"Error: invalid rules in {settings.path}: {e}", err=True)
        sys.exit(1)


_MIGRATION_DEFAULTS = {
    "batch_size": DEFAULT_BATCH_SIZE,
    "batch_pause": DEFAULT_BATCH_PAUSE,
    "retry_count": DEFAULT_RETRY_COUNT,
    "workers": 1,
}


def _load_migration_options(settings: Settings, **overrides: Any) -> dict[str, Any]:
    """Resolve batch and retry options (CLI over settings file over defaults).

    Exits with an error if the settings file holds an unusable value.
    """
    table = settings.section("migration")
    options: dict[str, Any] = {}
    for key, default in _MIGRATION_DEFAULTS.items():
        if overrides.get(key) is not None:
            options[key] = overrides[key]
        else:
            options[key] = table.get(key, default)

    for key, value in options.items():
        numeric = isinstance(value, (int, float)) and not isinstance(value, bool)
        if key == "batch_pause":
            valid = numeric and value >= 0
        else:
            valid = numeric and isinstance(value, int) and value >= 1
        if not valid:
            click.echo(f"Error: invalid migration setting in {settings.path}: {key} = {value!r}", err=True)
            sys.exit(1)
    return options


def _rule_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Threshold overrides shared by ``scan`` and ``migrate``."""
    for option in reversed(_RULE_OPTIONS):
        func = option(func)
    return func


def _progress_printer(enabled: bool) -> Callable[[str, int, int], None]:
    """Return a progress callback that rewrites one console line per phase."""
    last: dict[str, int] = {}
    labels = {"scan": "Classifying", "upload": "Uploading"}

    def on_progress(phase: str, done: int, total: int) -> None:
        if not enabled or total == 0:
            return
        percent = done * 100 // total
        if last.get(phase) == percent:
            return
        last[phase] = percent
        click.echo(f"\r  {labels.get(phase, phase)}... {percent:3d}% ({done:,}/{total:,})", nl=False)
        if done == total:
            click.echo()

    return on_progress


def _print_scan_summary(scan: ScanResult) -> None:
    counts = scan.counts()
    sizes = scan.bytes_by_verdict()
    click.echo(
        f"\n  {scan.total_files:,} files in {scan.total_folders:,} folders, "
        f"{click.style(bytes_to_human(scan.total_bytes), bold=True)}\n"
    )
    for kind in VerdictKind:
        label = click.style(f"{kind.value:14s}", fg=_VERDICT_COLORS[kind], bold=kind is VerdictKind.ELIGIBLE)
        click.echo(f"  {label} {counts[kind]:>8,}  {bytes_to_human(sizes[kind]):>10s}")

    if scan.duplicates:
        click.echo(f"\n  {click.style('Possible duplicates', fg='blue', bold=True)} (same name and size)")
        for group in scan.duplicates[:10]:
            click.echo(f"    {group.name} ({group.size_mb:.2f} MB) x{len(group.entries)}")
        if len(scan.duplicates) > 10:
            click.echo(f"    ... and {len(scan.duplicates) - 10} more groups")

    if scan.warnings:
        click.echo(f"\n  {click.style('!', fg='yellow')} {len(scan.warnings)} entries could not be read (see -v output)")


def _print_migration_summary(report: MigrationReport) -> None:
    stats = report.stats
    click.echo()
    if report.dry_run:
        click.echo(
            f"  {click.style('(dry run)', fg='bright_black')} "
            f"{stats.files_eligible:,} files would be uploaded to {report.destination}"
        )
    else:
        click.echo(f"  Migrated:  {click.style(f'{stats.files_migrated:,}', fg='green', bold=True)} "
                   f"({bytes_to_human(stats.bytes_migrated)})")
        click.echo(f"  Failed:    {click.style(f'{stats.files_failed:,}', fg='red' if stats.files_failed else None)}")
        if stats.files_pending:
            click.echo(f"  Pending:   {click.style(f'{stats.files_pending:,}', fg='yellow')}")
        click.echo(f"  Success:   {stats.success_rate:.1f}%")

    click.echo(f"  Skipped:   {stats.files_skipped:,} ({bytes_to_human(stats.bytes_skipped)})")
    for reason, count in sorted(stats.skipped_files.items()):
        click.echo(f"    {reason:15s} {count:>8,}  {bytes_to_human(stats.skipped_bytes[reason]):>10s}")
    click.echo(f"  Duration:  {format_elapsed(stats.duration_seconds)}")

    if report.cancelled:
        click.echo(f"\n  {click.style('Run cancelled', fg='yellow', bold=True)} before all files were processed.")

    failures = report.failures
    if failures:
        click.echo(f"\n  {click.style('Failed uploads', fg='red', bold=True)}")
        for outcome in failures[:20]:
            click.echo(f"    {outcome.entry.relative_path}: {outcome.error}")
        if len(failures) > 20:
            click.echo(f"    ... and {len(failures) - 20} more")
    click.echo()


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
def main(verbose: int) -> None:
    """Ferry: audit a file share and migrate it to a cloud document library."""
    _setup_logging(verbose)


# ── scan ─────────────────────────────────────────────────────────────────

@main.command()
@click.argument("source", type=click.Path(path_type=Path))
@click.option("--destination-prefix", default="", help="Destination URL or path used for path-length checks")
@_rule_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--report", "report_path", type=click.Path(path_type=Path), default=None, help="Write a JSON report")
def scan(
    source: Path,
    destination_prefix: str,
    max_file_size_mb: int | None,
    max_path_length: int | None,
    max_name_length: int | None,
    stale_days: int | None,
    as_json: bool,
    report_path: Path | None,
) -> None:
    """Audit SOURCE and classify every file (never uploads)."""
    rules = _load_rules(
        Settings(),
        max_file_size_mb=max_file_size_mb,
        max_path_length=max_path_length,
        max_name_length=max_name_length,
        stale_days=stale_days,
    )

    if not as_json:
        click.echo(f"\n{click.style('🔍', bold=True)} Scanning {source}...\n")

    progress = _progress_printer(not as_json)
    scanner = InventoryScanner(
        rules,
        destination_prefix=destination_prefix,
        on_progress=lambda done, total: progress("scan", done, total),
    )
    try:
        result = scanner.scan(source)
    except ScanError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nScan cancelled, no inventory was produced.", err=True)
        sys.exit(1)

    data = build_scan_report(result)
    if report_path is not None:
        write_report(data, report_path)

    if as_json:
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    _print_scan_summary(result)
    if report_path is not None:
        click.echo(f"\n  Report written to {report_path}")
    click.echo()


# ── migrate ──────────────────────────────────────────────────────────────

@main.command()
@click.argument("source", type=click.Path(path_type=Path))
@click.argument("destination")
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help=f"Files per batch (default {DEFAULT_BATCH_SIZE})")
@click.option("--batch-pause", type=click.FloatRange(min=0), default=None, help="Seconds to pause between batches")
@click.option("--retry-count", type=click.IntRange(min=1), default=None, help=f"Upload attempts per file (default {DEFAULT_RETRY_COUNT})")
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Parallel uploads within a batch")
@_rule_options
@click.option("--dry-run", is_flag=True, help="Classify and report without uploading")
@click.option("--incremental", is_flag=True, help="Skip files already up to date at the destination")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--report", "report_path", type=click.Path(path_type=Path), default=None, help="Write a JSON report")
def migrate(
    source: Path,
    destination: str,
    batch_size: int | None,
    batch_pause: float | None,
    retry_count: int | None,
    workers: int | None,
    max_file_size_mb: int | None,
    max_path_length: int | None,
    max_name_length: int | None,
    stale_days: int | None,
    dry_run: bool,
    incremental: bool,
    as_json: bool,
    report_path: Path | None,
) -> None:
    """Scan SOURCE and upload eligible files to DESTINATION."""
    settings = Settings()
    rules = _load_rules(
        settings,
        max_file_size_mb=max_file_size_mb,
        max_path_length=max_path_length,
        max_name_length=max_name_length,
        stale_days=stale_days,
    )
    options = _load_migration_options(
        settings,
        batch_size=batch_size,
        batch_pause=batch_pause,
        retry_count=retry_count,
        workers=workers,
    )

    registry = _build_registry(settings)
    transport = registry.for_destination(destination)
    if transport is None:
        click.echo(f"Error: no transport available for destination '{destination}'", err=True)
        sys.exit(1)

    if not as_json:
        mode = " (dry run)" if dry_run else ""
        click.echo(f"\n{click.style('📦', bold=True)} Migrating {source} -> {destination}{mode}\n")

    def on_outcome(outcome: UploadOutcome) -> None:
        if as_json or outcome.success or outcome.cancelled:
            return
        click.echo(f"\n  {click.style('✗', fg='red')} {outcome.entry.relative_path}: {outcome.error}")

    orchestrator = MigrationOrchestrator(
        transport,
        destination,
        rules,
        **options,
        dry_run=dry_run,
        incremental=incremental,
        on_progress=_progress_printer(not as_json),
        on_outcome=on_outcome,
    )

    try:
        report = orchestrator.run(source)
    except (ScanError, DestinationUnreachable) as e:
        click.echo(f"\nError: {e}", err=True)
        sys.exit(1)

    Tracker().record(report)

    data = build_migration_report(report)
    if report_path is not None:
        write_report(data, report_path)

    if as_json:
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        if report.scan is not None:
            _print_scan_summary(report.scan)
        _print_migration_summary(report)
        if report_path is not None:
            click.echo(f"  Report written to {report_path}\n")

    # Interrupted during the scan: nothing was uploaded.
    if report.error:
        sys.exit(1)


# ── history ──────────────────────────────────────────────────────────────

@main.command()
@click.option("--period", "-p", default="all", type=click.Choice(["today", "week", "month", "all"]))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def history(period: str, as_json: bool) -> None:
    """Show statistics of past migration runs."""
    data = Tracker().get_stats(period)

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"\n{click.style('📊', bold=True)} Migration history ({period})\n")
    click.echo(f"  Runs:           {data['run_count']}")
    click.echo(f"  Files migrated: {data['files_migrated']:,}")
    click.echo(f"  Files failed:   {data['files_failed']:,}")
    click.echo(f"  Data migrated:  {click.style(bytes_to_human(data['bytes_migrated']), fg='green', bold=True)}")
    click.echo(f"  Lifetime total: {click.style(bytes_to_human(data['lifetime_bytes_migrated']), fg='cyan', bold=True)}")

    if data["per_destination"]:
        click.echo("\n  Per-destination breakdown:")
        for dest, totals in sorted(data["per_destination"].items(), key=lambda x: x[1]["bytes_migrated"], reverse=True):
            click.echo(
                f"    {dest:40s} {bytes_to_human(totals['bytes_migrated']):>10s}  "
                f"({totals['files_migrated']:,} files, {totals['runs']} runs)"
            )
    click.echo()


# ── transports ───────────────────────────────────────────────────────────

@main.group()
def transports() -> None:
    """Transport management commands."""


@transports.command("list")
def transports_list() -> None:
    """List installed transports with status."""
    registry = _build_registry(Settings())
    for transport in registry:
        available = transport.is_available()
        status = click.style("available", fg="green") if available else click.style("not available", fg="bright_black")
        schemes = ", ".join(transport.schemes) or "-"
        click.echo(f"  {transport.id:20s} {schemes:15s} {status}  {transport.description}")


# ── config ───────────────────────────────────────────────────────────────

@main.group()
def config() -> None:
    """Settings file commands."""


@config.command("show")
def config_show() -> None:
    """Print the effective rules and the settings file location."""
    settings = Settings()
    rules = _load_rules(settings)
    click.echo(f"\n  {click.style('Settings file:', bold=True)} {settings.path}\n")
    click.echo(f"  max_name_length   {rules.max_name_length}")
    click.echo(f"  max_path_length   {rules.max_path_length}")
    click.echo(f"  max_file_size_mb  {rules.max_file_size_mb}")
    click.echo(f"  stale_days        {rules.stale_days}")
    click.echo(f"  forbidden_chars   {' '.join(sorted(rules.forbidden_chars))}")
    click.echo(f"  reserved_names    {', '.join(sorted(rules.reserved_names))}")
    click.echo(f"  blocked_ext       {', '.join(sorted(rules.blocked_extensions))}")
    click.echo()


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Store VALUE under a dot-notation KEY (VALUE is parsed as JSON when possible)."""
    try:
        parsed: Any = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    settings = Settings()
    settings.set(key, parsed)
    click.echo(f"{key} = {json.dumps(parsed)}")
