"""File eligibility classification.

Checks run in a fixed order and the first failing check decides the
verdict, so a file that breaks several rules reports only the earliest one:

1. staleness
2. name validity (length, reserved name, forbidden character, blocked
   extension, trailing dot or space)
3. virtual path length at the destination
4. size
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, NamedTuple

from ferry.models.rules import RuleSet
from ferry.models.scan_result import ELIGIBLE, ClassificationVerdict, FileEntry, VerdictKind
from ferry.utils import join_virtual_path


class _Context(NamedTuple):
    entry: FileEntry
    rules: RuleSet
    scan_root: Path
    destination_prefix: str
    now: datetime


Check = Callable[[_Context], "ClassificationVerdict | None"]


def _check_stale(ctx: _Context) -> ClassificationVerdict | None:
    if ctx.rules.is_stale(ctx.entry.modified, ctx.now):
        days = (ctx.now - ctx.entry.modified).days
        return ClassificationVerdict(VerdictKind.OBSOLETE, f"not modified for {days} days", days)
    return None


def _check_name_length(ctx: _Context) -> ClassificationVerdict | None:
    if ctx.rules.exceeds_name_length(ctx.entry.name):
        return ClassificationVerdict(VerdictKind.INVALID_NAME, "name too long", len(ctx.entry.name))
    return None


def _check_reserved_name(ctx: _Context) -> ClassificationVerdict | None:
    if ctx.rules.is_reserved_name(ctx.entry.stem):
        return ClassificationVerdict(VerdictKind.INVALID_NAME, "reserved name", ctx.entry.stem)
    return None


def _check_forbidden_char(ctx: _Context) -> ClassificationVerdict | None:
    char = ctx.rules.has_forbidden_char(ctx.entry.name)
    if char is not None:
        return ClassificationVerdict(VerdictKind.INVALID_NAME, f"forbidden character: {char}", char)
    return None


def _check_blocked_extension(ctx: _Context) -> ClassificationVerdict | None:
    ext = ctx.entry.extension
    if ctx.rules.is_blocked_extension(ext):
        return ClassificationVerdict(VerdictKind.INVALID_NAME, "blocked extension", ext)
    return None


def _check_trailing_char(ctx: _Context) -> ClassificationVerdict | None:
    if ctx.entry.name.endswith((".", " ")):
        return ClassificationVerdict(VerdictKind.INVALID_NAME, "trailing dot or space")
    return None


def _check_path_length(ctx: _Context) -> ClassificationVerdict | None:
    virtual = virtual_path(ctx.entry, ctx.destination_prefix)
    if ctx.rules.exceeds_path_length(virtual):
        return ClassificationVerdict(
            VerdictKind.PATH_TOO_LONG, f"destination path is {len(virtual)} characters", len(virtual)
        )
    return None


def _check_size(ctx: _Context) -> ClassificationVerdict | None:
    if ctx.rules.exceeds_size_limit(ctx.entry.size_bytes):
        size_mb = round(ctx.entry.size_mb, 2)
        return ClassificationVerdict(VerdictKind.TOO_LARGE, f"{size_mb} MB", size_mb)
    return None


# Precedence table: the first check returning a verdict wins.
CHECKS: tuple[Check, ...] = (
    _check_stale,
    _check_name_length,
    _check_reserved_name,
    _check_forbidden_char,
    _check_blocked_extension,
    _check_trailing_char,
    _check_path_length,
    _check_size,
)


def virtual_path(entry: FileEntry, destination_prefix: str) -> str:
    """Full path the entry would have at the destination."""
    return join_virtual_path(destination_prefix, entry.relative_path)


def classify(
    entry: FileEntry,
    rules: RuleSet,
    scan_root: Path,
    destination_prefix: str,
    now: datetime,
) -> ClassificationVerdict:
    """Classify one entry against *rules*.

    Pure function: the same inputs always yield the same verdict.
    """
    ctx = _Context(entry, rules, Path(scan_root), destination_prefix, now)
    for check in CHECKS:
        verdict = check(ctx)
        if verdict is not None:
            return verdict
    return ELIGIBLE
