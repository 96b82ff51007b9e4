"""Ferry data models."""

from ferry.models.rules import RuleSet
from ferry.models.scan_result import (
    ClassificationVerdict,
    ClassifiedEntry,
    DuplicateGroup,
    FileEntry,
    ScanResult,
    ScanWarning,
    VerdictKind,
)
from ferry.models.stats import MigrationStats
from ferry.models.transport import (
    DestinationUnreachable,
    RemoteFile,
    SizeExceeded,
    Transport,
    TransportError,
    ValidationError,
)
from ferry.models.upload_result import UploadOutcome

__all__ = [
    "ClassificationVerdict",
    "ClassifiedEntry",
    "DestinationUnreachable",
    "DuplicateGroup",
    "FileEntry",
    "MigrationStats",
    "RemoteFile",
    "RuleSet",
    "ScanResult",
    "ScanWarning",
    "SizeExceeded",
    "Transport",
    "TransportError",
    "UploadOutcome",
    "ValidationError",
    "VerdictKind",
]
