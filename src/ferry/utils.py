"""Shared utility functions."""

from __future__ import annotations

import os
from pathlib import Path

BYTES_PER_MB = 1024 * 1024


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def xdg_data_home() -> Path:
    """Return XDG_DATA_HOME, defaulting to ~/.local/share."""
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def bytes_to_mb(size_bytes: int) -> float:
    """Convert a byte count to megabytes (1 MB = 1024 * 1024 bytes)."""
    return size_bytes / BYTES_PER_MB


def join_virtual_path(prefix: str, relative: str) -> str:
    """Join a destination prefix and a relative path with ``/`` separators."""
    relative = relative.replace("\\", "/").lstrip("/")
    prefix = prefix.replace("\\", "/").rstrip("/")
    return f"{prefix}/{relative}"


def bytes_to_human(size_bytes: int) -> str:
    """Convert byte count to a human-readable string."""
    if size_bytes < 0:
        return f"-{bytes_to_human(-size_bytes)}"
    if size_bytes == 0:
        return "0 B"

    units = ("B", "KB", "MB", "GB", "TB")
    value = float(size_bytes)
    for unit in units[:-1]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} {units[-1]}"


def format_elapsed(seconds: float) -> str:
    """Format an elapsed time as a human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds) // 60
    secs = seconds - minutes * 60
    return f"{minutes}m {secs:.0f}s"
