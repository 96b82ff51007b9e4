"""Upload outcome dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ferry.models.scan_result import FileEntry

# Files above this size are reported as chunked transfers.
CHUNKED_THRESHOLD_MB = 10


@dataclass(slots=True)
class UploadOutcome:
    """Result of uploading one eligible entry."""

    entry: FileEntry
    success: bool
    attempts: int
    timestamp: datetime
    destination: str = ""
    error: str = ""
    bytes_transferred: int = 0
    cancelled: bool = False

    @property
    def status(self) -> str:
        return "Success" if self.success else "Failed"

    @property
    def chunked(self) -> bool:
        return self.entry.size_mb > CHUNKED_THRESHOLD_MB
