"""Shared test fixtures."""

from __future__ import annotations

import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

import pytest

import ferry.core.tracker as tracker
from ferry.models.scan_result import FileEntry
from ferry.models.transport import DestinationUnreachable, RemoteFile, Transport, TransportError
from ferry.utils import join_virtual_path


class FakeTransport(Transport):
    """Transport that records calls instead of touching a destination.

    ``failures`` makes the first N attempts for every file raise ``error``;
    ``fail_names`` makes every attempt for those file names fail.
    ``on_upload`` is called with the file name before each attempt.
    """

    id = "fake"
    name = "Fake Transport"
    description = "Records uploads for tests"
    schemes = ("fake",)

    def __init__(
        self,
        failures: int = 0,
        error: Exception | None = None,
        fail_names: set[str] | None = None,
        reachable: bool = True,
        on_upload: Callable[[str], None] | None = None,
    ) -> None:
        self.failures = failures
        self.error = error or TransportError("connection reset")
        self.fail_names = fail_names or set()
        self.reachable = reachable
        self.on_upload = on_upload
        self.attempts: dict[str, int] = {}
        self.uploaded: list[tuple[str, str]] = []
        self.checked: list[str] = []
        self.remote: dict[str, RemoteFile] = {}

    def check_destination(self, destination: str) -> None:
        self.checked.append(destination)
        if not self.reachable:
            raise DestinationUnreachable(f"cannot reach {destination}")

    def upload(self, local_path: Path, destination_folder: str, file_name: str) -> str:
        if self.on_upload:
            self.on_upload(file_name)
        count = self.attempts.get(file_name, 0) + 1
        self.attempts[file_name] = count
        if file_name in self.fail_names or count <= self.failures:
            raise self.error
        self.uploaded.append((destination_folder, file_name))
        return join_virtual_path(destination_folder, file_name)

    def stat_remote(self, destination_folder: str, file_name: str) -> RemoteFile | None:
        return self.remote.get(join_virtual_path(destination_folder, file_name))


@pytest.fixture
def fake_transport_cls():
    return FakeTransport


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def now():
    return datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def make_entry(now):
    """Build a FileEntry without touching the filesystem."""

    def _make(
        name: str = "report.docx",
        size_bytes: int = 1024,
        age_days: float = 1,
        relative_path: str | None = None,
    ) -> FileEntry:
        modified = now - timedelta(days=age_days)
        rel = relative_path if relative_path is not None else name
        return FileEntry(
            path=Path("/share") / rel,
            name=name,
            size_bytes=size_bytes,
            modified=modified,
            created=modified,
            relative_path=rel,
        )

    return _make


@pytest.fixture
def make_file(tmp_path):
    """Create a file under ``tmp_path / 'source'`` with a given size and age.

    Large sizes are created sparse, so they cost no disk space.
    """
    root = tmp_path / "source"
    root.mkdir()

    def _make(relative: str, size_bytes: int = 16, age_days: float = 1) -> Path:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.truncate(size_bytes)
        mtime = (datetime.now() - timedelta(days=age_days)).timestamp()
        os.utime(path, (mtime, mtime))
        return path

    _make.root = root
    return _make


@pytest.fixture
def isolate_storage(tmp_path, monkeypatch):
    """Redirect run history to a temp directory."""
    history_file = tmp_path / "ferry_data" / "history.json"
    history_file.parent.mkdir()
    monkeypatch.setattr(tracker, "HISTORY_FILE", history_file)
    return history_file


@pytest.fixture
def isolate_config(tmp_path, monkeypatch):
    """Point the settings file at an empty temp config directory."""
    config_home = tmp_path / "config"
    config_home.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home / "ferry" / "settings.json"
