# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Remote metadata sources exposing a single ``fetch(path)`` capability."""

from __future__ import annotations

import http.client
import logging
import urllib.error
import urllib.request
from abc import abstractmethod
from pathlib import Path, PurePosixPath
from typing import Final, Protocol, runtime_checkable
from urllib.parse import urljoin, urlparse

from .. import __version__
from ..errors import RemoteMalformed, RemoteNotFound, RemoteUnreachable

LOGGER = logging.getLogger(__name__)

VERSIONS_PATH: Final[str] = "versions"
PROPERTIES_FILE: Final[str] = "metadata.properties"
CATALOG_FILE: Final[str] = "archetype-catalog.json"

_SUPPORTED_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https", "file"})
_NOT_FOUND_STATUSES: Final[frozenset[int]] = frozenset({404, 410})
_PARENT_COMPONENT: Final[str] = ".."


@runtime_checkable
class RemoteSource(Protocol):
    """Define the contract satisfied by remote metadata transports."""

    @abstractmethod
    def fetch(self, path: str) -> bytes:
        """Return the payload published at ``path``.

        Args:
            path: Slash-separated path relative to the source root.

        Returns:
            bytes: Raw payload.

        Raises:
            RemoteUnreachable: If the source cannot be contacted or times out.
            RemoteNotFound: If nothing is published at ``path``.
            RemoteMalformed: If the source answers with an unusable payload.
        """
        raise NotImplementedError


def properties_path(version: str) -> str:
    """Return the remote path of the properties payload for ``version``."""

    return f"{version}/{PROPERTIES_FILE}"


def catalog_path(version: str) -> str:
    """Return the remote path of the catalog payload for ``version``."""

    return f"{version}/{CATALOG_FILE}"


def _validated_relative(path: str) -> PurePosixPath:
    relative = PurePosixPath(path)
    if relative.is_absolute() or _PARENT_COMPONENT in relative.parts or not relative.parts:
        raise RemoteNotFound(path, "path must be relative to the source root")
    return relative


class UrlRemoteSource(RemoteSource):
    """Fetch metadata over ``http``, ``https`` or ``file`` URLs."""

    def __init__(self, base_url: str, *, timeout: float = 10.0) -> None:
        """Initialise the source rooted at ``base_url``.

        Args:
            base_url: Root URL under which metadata paths are published.
            timeout: Per-request timeout in seconds.

        Raises:
            ValueError: If the URL scheme is not supported or ``timeout`` is not positive.
        """

        scheme = urlparse(base_url).scheme.lower()
        if scheme not in _SUPPORTED_SCHEMES:
            raise ValueError(f"Unsupported metadata URL scheme '{scheme}' in {base_url!r}")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._timeout = timeout
        self._opener = urllib.request.build_opener()

    @property
    def base_url(self) -> str:
        """Return the normalised root URL."""

        return self._base_url

    def fetch(self, path: str) -> bytes:
        url = urljoin(self._base_url, str(_validated_relative(path)))
        request = urllib.request.Request(url, headers={"User-Agent": f"archmeta/{__version__}"})
        LOGGER.debug("Fetching %s", url)
        try:
            with self._opener.open(request, timeout=self._timeout) as response:
                return response.read()
        except urllib.error.HTTPError as exc:
            if exc.code in _NOT_FOUND_STATUSES:
                raise RemoteNotFound(path, f"HTTP {exc.code}") from exc
            raise RemoteUnreachable(path, f"HTTP {exc.code}") from exc
        except urllib.error.URLError as exc:
            if isinstance(exc.reason, FileNotFoundError):
                raise RemoteNotFound(path, str(exc.reason)) from exc
            raise RemoteUnreachable(path, str(exc.reason)) from exc
        except (TimeoutError, OSError) as exc:
            raise RemoteUnreachable(path, str(exc) or type(exc).__name__) from exc
        except http.client.HTTPException as exc:
            raise RemoteMalformed(path, f"invalid HTTP response: {exc!r}") from exc


class DirectoryRemoteSource(RemoteSource):
    """Serve metadata from a local mirror directory."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        """Return the mirror directory."""

        return self._root

    def fetch(self, path: str) -> bytes:
        target = self._root.joinpath(*_validated_relative(path).parts)
        try:
            return target.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise RemoteNotFound(path, str(exc)) from exc
        except OSError as exc:
            raise RemoteUnreachable(path, str(exc)) from exc


class OfflineRemoteSource(RemoteSource):
    """Stand-in used when no remote location is configured; every fetch is unreachable."""

    def fetch(self, path: str) -> bytes:
        raise RemoteUnreachable(path, "no remote metadata source is configured")


def remote_source_for(location: str, *, timeout: float = 10.0) -> RemoteSource:
    """Return a remote source for a URL or a local mirror directory path.

    Args:
        location: URL with a supported scheme, or a filesystem path.
        timeout: Request timeout applied to URL sources.

    Returns:
        RemoteSource: Transport matching ``location``.
    """

    if urlparse(location).scheme.lower() in _SUPPORTED_SCHEMES:
        return UrlRemoteSource(location, timeout=timeout)
    return DirectoryRemoteSource(Path(location).expanduser())


__all__ = [
    "CATALOG_FILE",
    "DirectoryRemoteSource",
    "OfflineRemoteSource",
    "PROPERTIES_FILE",
    "RemoteSource",
    "UrlRemoteSource",
    "VERSIONS_PATH",
    "catalog_path",
    "properties_path",
    "remote_source_for",
]
