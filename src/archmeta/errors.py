# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Custom exceptions raised by archmeta operations."""

from __future__ import annotations


class ArchmetaError(RuntimeError):
    """Base class for every error raised by archmeta."""


class ConfigError(ArchmetaError):
    """Raised when configuration input is invalid."""


class VersionError(ArchmetaError):
    """Base class for version parsing and selection failures."""


class InvalidVersionFormat(VersionError, ValueError):
    """Raised when a version identifier cannot be parsed."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Invalid version identifier: {text!r}")
        self.text = text


class EmptyCandidateSet(VersionError, ValueError):
    """Raised when the latest version is requested from an empty candidate set."""

    def __init__(self) -> None:
        super().__init__("Cannot select the latest version from an empty candidate set")


class MetadataError(ArchmetaError):
    """Base class for metadata store failures."""


class CacheInitError(MetadataError):
    """Raised when the local cache location cannot be read or written."""


class MetadataUnavailable(MetadataError):
    """Raised when neither the cache nor the remote source can serve a request."""


class UnknownVersion(MetadataError):
    """Raised when the remote source reports that a version does not exist."""

    def __init__(self, version: str) -> None:
        super().__init__(f"Version {version} is not published by the remote source")
        self.version = version


class CorruptMetadata(MetadataError):
    """Raised when a metadata payload is malformed after a re-fetch."""


class CorruptCatalog(CorruptMetadata):
    """Raised when a catalog payload cannot be parsed into entries."""


class CorruptProperties(CorruptMetadata):
    """Raised when a properties payload cannot be parsed as ``key=value`` lines."""


class RemoteSourceError(ArchmetaError):
    """Base class for failures reported by a remote metadata source."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"{path}: {detail}")
        self.path = path
        self.detail = detail


class RemoteUnreachable(RemoteSourceError):
    """Raised when the remote source cannot be contacted or times out."""


class RemoteNotFound(RemoteSourceError):
    """Raised when the remote source has no payload at the requested path."""


class RemoteMalformed(RemoteSourceError):
    """Raised when the remote source answers with an unusable payload."""


class PluginError(ArchmetaError):
    """Base class for plugin bridge failures."""


class PluginNotFound(PluginError):
    """Raised when a plugin name cannot be resolved to an executable."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Plugin '{name}' was not found")
        self.name = name


__all__ = (
    "ArchmetaError",
    "CacheInitError",
    "ConfigError",
    "CorruptCatalog",
    "CorruptMetadata",
    "CorruptProperties",
    "EmptyCandidateSet",
    "InvalidVersionFormat",
    "MetadataError",
    "MetadataUnavailable",
    "PluginError",
    "PluginNotFound",
    "RemoteMalformed",
    "RemoteNotFound",
    "RemoteSourceError",
    "RemoteUnreachable",
    "UnknownVersion",
    "VersionError",
)
