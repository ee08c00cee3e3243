# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Resolve the latest catalog version and serve per-version metadata from cache."""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Final, Generic, TypeVar

from ..catalog import Catalog, dump_catalog, parse_catalog
from ..config import MetadataSettings
from ..errors import (
    CorruptCatalog,
    CorruptMetadata,
    CorruptProperties,
    MetadataUnavailable,
    RemoteMalformed,
    RemoteNotFound,
    RemoteSourceError,
    RemoteUnreachable,
    UnknownVersion,
    VersionError,
)
from ..versioning import Version, VersionLike, VersionResolver
from .cache import MetadataCache, MetadataSnapshot
from .properties import PropertySet
from .remote import CATALOG_FILE, PROPERTIES_FILE, VERSIONS_PATH, RemoteSource, catalog_path, properties_path
from .single_flight import SingleFlight

LOGGER = logging.getLogger(__name__)

NEVER: Final[datetime] = datetime.min.replace(tzinfo=timezone.utc)
_LATEST_KEY: Final[str] = "latest"
_COMMENT_PREFIX: Final[str] = "#"

PayloadT = TypeVar("PayloadT")


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""

    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class MetadataWarning:
    """Non-fatal report that stale metadata was served.

    Attributes:
        message: Human readable description of the degraded condition.
        cached_version: Version served from the cache.
        last_update_time: Time of the last successful refresh.
        cause: Failure that prevented the refresh.
    """

    message: str
    cached_version: Version
    last_update_time: datetime
    cause: Exception


WarningSink = Callable[[MetadataWarning], None]


@dataclass(frozen=True, slots=True)
class _PayloadKind(Generic[PayloadT]):
    """Describe how one per-version payload is located, decoded and encoded."""

    label: str
    filename: str
    remote_path: Callable[[str], str]
    decode: Callable[[bytes, Version], PayloadT]
    encode: Callable[[PayloadT], bytes]
    corrupt_error: type[CorruptMetadata]


_PROPERTIES: Final[_PayloadKind[PropertySet]] = _PayloadKind(
    label="properties",
    filename=PROPERTIES_FILE,
    remote_path=properties_path,
    decode=lambda payload, _version: PropertySet.parse(payload),
    encode=PropertySet.to_bytes,
    corrupt_error=CorruptProperties,
)

_CATALOG: Final[_PayloadKind[Catalog]] = _PayloadKind(
    label="catalog",
    filename=CATALOG_FILE,
    remote_path=catalog_path,
    decode=parse_catalog,
    encode=dump_catalog,
    corrupt_error=CorruptCatalog,
)


class MetadataStore:
    """Serve catalog metadata from the local cache, refreshing from a remote source.

    Instances are created once per command invocation through
    :meth:`new_instance` and discarded afterwards. All operations may block on
    the filesystem or the network.
    """

    def __init__(
        self,
        remote: RemoteSource,
        cache: MetadataCache,
        *,
        settings: MetadataSettings,
        clock: Callable[[], datetime] = utc_now,
        resolver: VersionResolver | None = None,
        on_warning: WarningSink | None = None,
    ) -> None:
        self._remote = remote
        self._cache = cache
        self._settings = settings
        self._clock = clock
        self._resolver = resolver or VersionResolver()
        self._on_warning = on_warning
        self._flights: SingleFlight[object] = SingleFlight()
        self._warnings: list[MetadataWarning] = []
        self._snapshot: MetadataSnapshot | None = None
        self._snapshot_loaded = False

    @classmethod
    def new_instance(
        cls,
        remote: RemoteSource,
        cache_root: Path,
        *,
        settings: MetadataSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
        resolver: VersionResolver | None = None,
        on_warning: WarningSink | None = None,
    ) -> MetadataStore:
        """Open or initialise the cache at ``cache_root`` without touching the network.

        Args:
            remote: Source consulted when the cache cannot serve a request.
            cache_root: Local cache directory.
            settings: Freshness policy; defaults apply when omitted.
            clock: Callable returning the current UTC time.
            resolver: Version resolver used to pick the latest version.
            on_warning: Callback receiving each :class:`MetadataWarning`.

        Returns:
            MetadataStore: Store bound to ``cache_root``.

        Raises:
            CacheInitError: If ``cache_root`` cannot be read or written.
        """

        resolved = settings or MetadataSettings(cache_dir=cache_root)
        return cls(
            remote,
            MetadataCache(cache_root),
            settings=resolved,
            clock=clock,
            resolver=resolver,
            on_warning=on_warning,
        )

    @property
    def cache_root(self) -> Path:
        """Return the cache directory backing this store."""

        return self._cache.root

    @property
    def warnings(self) -> tuple[MetadataWarning, ...]:
        """Return warnings recorded by this store in emission order."""

        return tuple(self._warnings)

    def snapshot(self) -> MetadataSnapshot | None:
        """Return the freshness marker recorded by the last successful refresh."""

        if not self._snapshot_loaded:
            self._snapshot = self._load_snapshot()
            self._snapshot_loaded = True
        return self._snapshot

    def last_update_time(self) -> datetime:
        """Return the time of the last successful refresh, or :data:`NEVER`."""

        snapshot = self.snapshot()
        return snapshot.last_update_time if snapshot is not None else NEVER

    def is_stale(self) -> bool:
        """Return ``True`` when the cached latest version needs a refresh.

        A missing snapshot, an age at or beyond the threshold, or a refresh
        time in the future all count as stale.
        """

        snapshot = self.snapshot()
        if snapshot is None:
            return True
        age = self._clock() - snapshot.last_update_time
        return age < timedelta(0) or age >= self._settings.staleness

    def latest_version(self) -> Version:
        """Return the latest published version.

        The cached value is returned while fresh. Otherwise one refresh is
        attempted; when it fails the stale cached value is returned and a
        :class:`MetadataWarning` is recorded.

        Returns:
            Version: Latest version.

        Raises:
            MetadataUnavailable: If nothing is cached and the refresh fails.
        """

        snapshot = self.snapshot()
        if snapshot is not None and not self.is_stale():
            LOGGER.debug("Latest version %s served from cache", snapshot.latest_version)
            return Version(snapshot.latest_version)
        try:
            return self._flights.do(_LATEST_KEY, self._refresh_latest)  # type: ignore[return-value]
        except RemoteSourceError as exc:
            if snapshot is None:
                raise MetadataUnavailable(f"Cannot determine the latest version: {exc}") from exc
            cached = Version(snapshot.latest_version)
            self._warn(
                MetadataWarning(
                    message=f"Metadata refresh failed, using cached latest version {cached}: {exc}",
                    cached_version=cached,
                    last_update_time=snapshot.last_update_time,
                    cause=exc,
                ),
            )
            return cached

    def refresh(self) -> Version:
        """Refresh the latest version from the remote source regardless of staleness.

        Returns:
            Version: Newly resolved latest version.

        Raises:
            MetadataUnavailable: If the refresh fails.
        """

        try:
            return self._flights.do(_LATEST_KEY, self._refresh_latest)  # type: ignore[return-value]
        except RemoteSourceError as exc:
            raise MetadataUnavailable(f"Metadata refresh failed: {exc}") from exc

    def properties_of(self, version: VersionLike) -> PropertySet:
        """Return the property set published for ``version``.

        Args:
            version: Version or identifier text.

        Returns:
            PropertySet: Cached or freshly fetched properties.

        Raises:
            UnknownVersion: If the remote source does not publish ``version``.
            MetadataUnavailable: If neither cache nor remote can serve it.
            CorruptProperties: If the fetched payload is malformed.
        """

        return self._load(self._resolver.parse(version), _PROPERTIES)

    def catalog_of(self, version: VersionLike) -> Catalog:
        """Return the archetype catalog published for ``version``.

        Args:
            version: Version or identifier text.

        Returns:
            Catalog: Cached or freshly fetched catalog.

        Raises:
            UnknownVersion: If the remote source does not publish ``version``.
            MetadataUnavailable: If neither cache nor remote can serve it.
            CorruptCatalog: If the fetched payload is malformed.
        """

        return self._load(self._resolver.parse(version), _CATALOG)

    def _load_snapshot(self) -> MetadataSnapshot | None:
        snapshot = self._cache.read_snapshot()
        if snapshot is None:
            return None
        try:
            Version(snapshot.latest_version)
        except VersionError:
            LOGGER.warning("Ignoring cached latest version %r", snapshot.latest_version)
            return None
        if snapshot.last_update_time.tzinfo is None:
            aware = snapshot.last_update_time.replace(tzinfo=timezone.utc)
            return snapshot.model_copy(update={"last_update_time": aware})
        return snapshot

    def _refresh_latest(self) -> Version:
        """Fetch the published version list, pick the latest and persist the snapshot.

        Raises:
            RemoteSourceError: If the list cannot be fetched or holds no valid version.
        """

        payload = self._remote.fetch(VERSIONS_PATH)
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RemoteMalformed(VERSIONS_PATH, "version list is not valid UTF-8") from exc
        candidates: list[Version] = []
        for line in text.splitlines():
            entry = line.strip()
            if not entry or entry.startswith(_COMMENT_PREFIX):
                continue
            try:
                candidates.append(self._resolver.parse(entry))
            except VersionError:
                LOGGER.warning("Skipping unparseable entry %r in published version list", entry)
        try:
            latest = self._resolver.latest(candidates)
        except VersionError as exc:
            raise RemoteMalformed(VERSIONS_PATH, "no valid version is published") from exc

        snapshot = MetadataSnapshot(last_update_time=self._clock(), latest_version=str(latest))
        try:
            self._cache.write_snapshot(snapshot)
        except OSError as exc:
            LOGGER.warning("Could not persist metadata snapshot: %s", exc)
        self._snapshot = snapshot
        self._snapshot_loaded = True
        LOGGER.debug("Refreshed latest version: %s", latest)
        return latest

    def _load(self, version: Version, kind: _PayloadKind[PayloadT]) -> PayloadT:
        cached, discarded = self._read_cached(version, kind)
        if cached is not None:
            return cached
        key: Hashable = (kind.filename, version.canonical)
        # A discarded cache entry already used up the single re-fetch.
        return self._flights.do(key, lambda: self._fetch(version, kind, retry=not discarded))  # type: ignore[return-value]

    def _read_cached(self, version: Version, kind: _PayloadKind[PayloadT]) -> tuple[PayloadT | None, bool]:
        """Return the cached payload and whether a corrupt entry was discarded."""

        payload = self._cache.read(version, kind.filename)
        if payload is None:
            return None, False
        try:
            value = kind.decode(payload, version)
        except CorruptMetadata as exc:
            LOGGER.warning("Discarding corrupt cached %s for %s: %s", kind.label, version, exc)
            self._cache.discard(version, kind.filename)
            return None, True
        LOGGER.debug("Cached %s for %s served from %s", kind.label, version, self._cache.version_dir(version))
        return value, False

    def _fetch(self, version: Version, kind: _PayloadKind[PayloadT], *, retry: bool) -> PayloadT:
        # Another caller may have published the entry since the cache was checked.
        cached, discarded = self._read_cached(version, kind)
        if cached is not None:
            return cached
        retry = retry and not discarded
        path = kind.remote_path(str(version))
        try:
            value = kind.decode(self._download(path, version, kind), version)
        except CorruptMetadata as exc:
            if not retry:
                raise
            LOGGER.warning("Discarding malformed remote %s for %s, fetching again: %s", kind.label, version, exc)
            value = kind.decode(self._download(path, version, kind), version)

        try:
            self._cache.write(version, kind.filename, kind.encode(value))
        except OSError as exc:
            LOGGER.warning("Could not cache %s for %s: %s", kind.label, version, exc)
        LOGGER.debug("Fetched %s for %s from %s", kind.label, version, path)
        return value

    def _download(self, path: str, version: Version, kind: _PayloadKind[PayloadT]) -> bytes:
        try:
            return self._remote.fetch(path)
        except RemoteNotFound as exc:
            raise UnknownVersion(str(version)) from exc
        except RemoteUnreachable as exc:
            raise MetadataUnavailable(f"No cached {kind.label} for {version} and remote is unavailable: {exc}") from exc
        except RemoteMalformed as exc:
            raise kind.corrupt_error(f"Remote {kind.label} for {version} is malformed: {exc}") from exc

    def _warn(self, warning: MetadataWarning) -> None:
        # Callers present warnings to the user.
        LOGGER.debug("%s", warning.message)
        self._warnings.append(warning)
        if self._on_warning is not None:
            self._on_warning(warning)


__all__ = ["MetadataStore", "MetadataWarning", "NEVER", "WarningSink", "utc_now"]
