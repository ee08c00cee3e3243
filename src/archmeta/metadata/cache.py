# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""On-disk cache of catalog metadata with crash-safe publication."""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import CacheInitError
from ..versioning import Version

LOGGER = logging.getLogger(__name__)

SNAPSHOT_FILE: Final[str] = "last-update.json"
TEMP_SUFFIX: Final[str] = ".tmp"


class MetadataSnapshot(BaseModel):
    """Freshness marker recorded after each successful refresh.

    Attributes:
        last_update_time: Timezone-aware time of the refresh.
        latest_version: Latest published version text resolved by the refresh.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    last_update_time: datetime = Field(alias="lastUpdateTime")
    latest_version: str = Field(alias="latestVersion", min_length=1)


def atomic_write(path: Path, payload: bytes) -> None:
    """Write ``payload`` to ``path`` so readers never observe a partial file.

    The payload is written to a hidden temporary file in the destination
    directory, flushed to disk and published with :func:`os.replace`.

    Args:
        path: Destination file.
        payload: Bytes to publish.

    Raises:
        OSError: If the temporary file cannot be written or renamed.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=TEMP_SUFFIX,
        delete=False,
    )
    temp_path = Path(handle.name)
    try:
        with handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


class MetadataCache:
    """Manage the cache directory layout shared by every CLI process.

    ``<root>/last-update.json`` holds the :class:`MetadataSnapshot`; each
    version owns ``<root>/<canonical version>/`` containing its payload files.
    """

    def __init__(self, root: Path) -> None:
        """Open or initialise the cache rooted at ``root``.

        Args:
            root: Cache directory, created when missing.

        Raises:
            CacheInitError: If the directory cannot be created, read or written.
        """

        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheInitError(f"Cannot create metadata cache at {root}: {exc}") from exc
        if not root.is_dir():
            raise CacheInitError(f"Metadata cache location {root} is not a directory")
        if not os.access(root, os.R_OK | os.W_OK | os.X_OK):
            raise CacheInitError(f"Metadata cache at {root} is not readable and writable")
        self._root = root

    @property
    def root(self) -> Path:
        """Return the cache directory."""

        return self._root

    def version_dir(self, version: Version) -> Path:
        """Return the directory holding payloads for ``version``."""

        return self._root / version.canonical

    def read_snapshot(self) -> MetadataSnapshot | None:
        """Return the recorded snapshot, or ``None`` when absent or unreadable."""

        path = self._root / SNAPSHOT_FILE
        try:
            payload = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            LOGGER.warning("Ignoring unreadable metadata snapshot %s: %s", path, exc)
            return None
        try:
            return MetadataSnapshot.model_validate_json(payload)
        except ValidationError:
            LOGGER.warning("Ignoring corrupt metadata snapshot %s", path)
            return None

    def write_snapshot(self, snapshot: MetadataSnapshot) -> None:
        """Persist ``snapshot`` atomically."""

        atomic_write(self._root / SNAPSHOT_FILE, snapshot.model_dump_json(by_alias=True, indent=2).encode("utf-8"))

    def read(self, version: Version, filename: str) -> bytes | None:
        """Return the cached payload ``filename`` for ``version`` when present.

        Args:
            version: Version owning the payload.
            filename: Payload file name inside the version directory.

        Returns:
            bytes | None: Payload bytes, or ``None`` when not cached or unreadable.
        """

        path = self.version_dir(version) / filename
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            LOGGER.warning("Treating unreadable cache entry %s as missing: %s", path, exc)
            return None

    def write(self, version: Version, filename: str, payload: bytes) -> None:
        """Atomically publish ``payload`` as ``filename`` for ``version``."""

        atomic_write(self.version_dir(version) / filename, payload)

    def discard(self, version: Version, filename: str) -> None:
        """Remove the cached payload ``filename`` for ``version`` when it exists."""

        path = self.version_dir(version) / filename
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.warning("Could not discard cache entry %s: %s", path, exc)


__all__ = ["MetadataCache", "MetadataSnapshot", "SNAPSHOT_FILE", "TEMP_SUFFIX", "atomic_write"]
