"""Transport that copies files into a local or mounted folder.

Covers destinations reachable through the file system: a synced
document-library folder, a mapped drive or a mounted share.
"""

from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from urllib.parse import urlsplit
from urllib.request import url2pathname

from ferry.models.transport import (
    DestinationUnreachable,
    RemoteFile,
    Transport,
    TransportError,
    ValidationError,
)

log = logging.getLogger(__name__)

_TMP_SUFFIX = ".ferry-tmp"


def to_local_path(destination: str) -> Path:
    """Turn a plain path or a ``file://`` URL into a Path."""
    parts = urlsplit(destination)
    if parts.scheme.lower() == "file":
        return Path(url2pathname(parts.path))
    return Path(destination)


class LocalFolderTransport(Transport):
    """Copies each file through a temporary name, then renames it into place."""

    id = "local_folder"
    name = "Local Folder"
    description = "Copies files into a local, synced or mounted destination folder"
    schemes = ("file",)

    def check_destination(self, destination: str) -> None:
        path = to_local_path(destination)
        if not path.exists():
            raise DestinationUnreachable(f"Destination does not exist: {path}")
        if not path.is_dir():
            raise DestinationUnreachable(f"Destination is not a folder: {path}")
        if not os.access(path, os.W_OK):
            raise DestinationUnreachable(f"Destination is not writable: {path}")

    def upload(self, local_path: Path, destination_folder: str, file_name: str) -> str:
        if not local_path.is_file():
            raise ValidationError(f"Source file no longer exists: {local_path}")

        folder = to_local_path(destination_folder)
        target = folder / file_name
        tmp = folder / f".{file_name}{_TMP_SUFFIX}"
        try:
            folder.mkdir(parents=True, exist_ok=True)
            shutil.copy2(local_path, tmp)
            os.replace(tmp, target)
        except OSError as e:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                log.debug("Could not remove temporary file %s", tmp)
            raise TransportError(f"Copy to {target} failed: {e}") from e
        return str(target)

    def stat_remote(self, destination_folder: str, file_name: str) -> RemoteFile | None:
        target = to_local_path(destination_folder) / file_name
        try:
            st = target.stat()
        except OSError:
            return None
        return RemoteFile(size_bytes=st.st_size, modified=datetime.fromtimestamp(st.st_mtime))
