"""Destination platform constraints."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ferry.utils import BYTES_PER_MB

if TYPE_CHECKING:
    from ferry.settings import Settings

log = logging.getLogger(__name__)

DEFAULT_BLOCKED_EXTENSIONS = frozenset({
    "ade", "adp", "app", "bas", "bat", "chm", "cmd", "com", "cpl", "crt",
    "dll", "exe", "hlp", "hta", "inf", "ins", "isp", "jse", "lnk", "mdb",
    "mde", "msc", "msi", "msp", "mst", "pcd", "pif", "pst", "reg", "scr",
    "sct", "shb", "shs", "url", "vb", "vbe", "vbs", "ws", "wsc", "wsf", "wsh",
})

DEFAULT_RESERVED_NAMES = frozenset(
    {"con", "prn", "aux", "nul", ".lock", "_vti_"}
    | {f"com{i}" for i in range(10)}
    | {f"lpt{i}" for i in range(10)}
)

DEFAULT_FORBIDDEN_CHARS = frozenset('"*:<>?/\\|')

DEFAULT_MAX_NAME_LENGTH = 128
DEFAULT_MAX_PATH_LENGTH = 400
DEFAULT_MAX_FILE_SIZE_MB = 250
DEFAULT_STALE_DAYS = 730

# Settings keys under "rules" that map onto RuleSet fields.
_SETTINGS_FIELDS = (
    "blocked_extensions",
    "reserved_names",
    "forbidden_chars",
    "max_name_length",
    "max_path_length",
    "max_file_size_mb",
    "stale_days",
)


@dataclass(frozen=True)
class RuleSet:
    """Immutable set of constraints a file must satisfy to be migrated.

    Extension and reserved-name sets are normalized to lowercase so every
    lookup is case-insensitive.  Extensions are stored without a leading dot.
    """

    blocked_extensions: frozenset[str] = DEFAULT_BLOCKED_EXTENSIONS
    reserved_names: frozenset[str] = DEFAULT_RESERVED_NAMES
    forbidden_chars: frozenset[str] = DEFAULT_FORBIDDEN_CHARS
    max_name_length: int = DEFAULT_MAX_NAME_LENGTH
    max_path_length: int = DEFAULT_MAX_PATH_LENGTH
    max_file_size_mb: int = DEFAULT_MAX_FILE_SIZE_MB
    stale_days: int = DEFAULT_STALE_DAYS

    def __post_init__(self) -> None:
        for name in ("max_name_length", "max_path_length", "max_file_size_mb", "stale_days"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

        object.__setattr__(
            self,
            "blocked_extensions",
            frozenset(ext.lower().lstrip(".") for ext in self.blocked_extensions),
        )
        object.__setattr__(self, "reserved_names", frozenset(n.lower() for n in self.reserved_names))
        object.__setattr__(self, "forbidden_chars", frozenset(self.forbidden_chars))

    @property
    def max_file_bytes(self) -> int:
        return self.max_file_size_mb * BYTES_PER_MB

    # ── predicates ──────────────────────────────────────────────────────

    def is_blocked_extension(self, ext: str) -> bool:
        return bool(ext) and ext.lower().lstrip(".") in self.blocked_extensions

    def is_reserved_name(self, name: str) -> bool:
        return name.lower() in self.reserved_names

    def has_forbidden_char(self, name: str) -> str | None:
        """Return the first forbidden character in *name*, or None."""
        for char in name:
            if char in self.forbidden_chars:
                return char
        return None

    def exceeds_name_length(self, name: str) -> bool:
        return len(name) > self.max_name_length

    def exceeds_path_length(self, path: str) -> bool:
        return len(path) > self.max_path_length

    def is_stale(self, last_modified: datetime, now: datetime) -> bool:
        return (now - last_modified).days > self.stale_days

    def exceeds_size_limit(self, size_bytes: int) -> bool:
        return size_bytes > self.max_file_bytes

    # ── construction ────────────────────────────────────────────────────

    def with_overrides(self, **overrides: Any) -> RuleSet:
        """Return a copy with the given fields replaced; ``None`` values are ignored."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> RuleSet:
        """Build a rule set from the ``rules`` table of the settings file.

        Keyword overrides (typically CLI options) win over the file.
        """
        table = settings.section("rules")
        values: dict[str, Any] = {}
        for key in _SETTINGS_FIELDS:
            if key not in table:
                continue
            value = table[key]
            if key in ("blocked_extensions", "reserved_names", "forbidden_chars"):
                value = frozenset(value)
            values[key] = value

        unknown = set(table) - set(_SETTINGS_FIELDS)
        if unknown:
            log.warning("Ignoring unknown rule settings: %s", ", ".join(sorted(unknown)))

        return cls(**values).with_overrides(**overrides)
