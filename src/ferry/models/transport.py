"""Base transport interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


class TransportError(Exception):
    """Raised when a transfer fails in a way that may succeed on retry."""


class ValidationError(Exception):
    """Raised when a file is rejected before any transfer is attempted.

    Validation failures are never retried.
    """


class SizeExceeded(ValidationError):
    """Raised when a file is larger than the destination accepts."""


class DestinationUnreachable(Exception):
    """Raised when the destination cannot be used at all (fatal for a run)."""


@dataclass(frozen=True, slots=True)
class RemoteFile:
    """What a transport knows about a file already at the destination."""

    size_bytes: int
    modified: datetime


class Transport(ABC):
    """Base class for all upload transports.

    A transport moves one local file into a destination folder.  It owns
    whatever chunking or session handling the destination needs; callers
    only see success or an exception.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique identifier, e.g. 'local_folder'."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name."""

    @property
    @abstractmethod
    def description(self) -> str:
        """What kind of destination this transport writes to."""

    @property
    def schemes(self) -> tuple[str, ...]:
        """Destination URL schemes handled by this transport."""
        return ()

    @abstractmethod
    def check_destination(self, destination: str) -> None:
        """Verify the destination container exists and is writable.

        Raises:
            DestinationUnreachable: If the destination cannot be used.
        """

    @abstractmethod
    def upload(self, local_path: Path, destination_folder: str, file_name: str) -> str:
        """Transfer *local_path* into *destination_folder* as *file_name*.

        Returns:
            The location of the uploaded file at the destination.

        Raises:
            TransportError: On a transfer failure worth retrying.
            ValidationError: If the destination rejects the file outright.
        """

    def stat_remote(self, destination_folder: str, file_name: str) -> RemoteFile | None:
        """Describe the destination copy of a file, or None if there is none."""
        return None

    @property
    def unavailable_reason(self) -> str | None:
        """Why this transport cannot work on this system, or None if supported."""
        return None

    def is_available(self) -> bool:
        return self.unavailable_reason is None
