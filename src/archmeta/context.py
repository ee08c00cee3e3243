# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Per-invocation command context wiring the metadata store and plugin bridge."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from types import TracebackType

from .config import Settings
from .metadata import MetadataStore, MetadataWarning, OfflineRemoteSource, RemoteSource, remote_source_for
from .metadata.store import utc_now
from .plugins import PluginBridge, PluginResolver, ProcessSpawner

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CommandContext:
    """Collaborators shared by one command invocation.

    The context is created when a command starts, used for the duration of the
    command and discarded afterwards. The metadata store is opened lazily so
    commands that never touch metadata never touch the cache directory.
    """

    settings: Settings
    remote: RemoteSource
    bridge: PluginBridge
    clock: Callable[[], datetime] = utc_now
    warnings: list[MetadataWarning] = field(default_factory=list)
    _store: MetadataStore | None = field(default=None, init=False, repr=False)
    _discarded: bool = field(default=False, init=False, repr=False)

    def metadata_store(self) -> MetadataStore:
        """Return the metadata store for this invocation, opening it on first use.

        Returns:
            MetadataStore: Store bound to the configured cache directory.

        Raises:
            RuntimeError: If the context was already discarded.
            CacheInitError: If the cache directory is unusable.
        """

        if self._discarded:
            raise RuntimeError("command context has been discarded")
        if self._store is None:
            self._store = MetadataStore.new_instance(
                self.remote,
                self.settings.metadata.cache_dir,
                settings=self.settings.metadata,
                clock=self.clock,
                on_warning=self.warnings.append,
            )
        return self._store

    @property
    def discarded(self) -> bool:
        """Return ``True`` once :meth:`discard` has run."""

        return self._discarded

    def discard(self) -> None:
        """Release the store; the context cannot be reused afterwards."""

        if self._store is not None:
            LOGGER.debug("Discarding metadata store at %s", self._store.cache_root)
        self._store = None
        self._discarded = True

    def __enter__(self) -> CommandContext:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.discard()


def build_command_context(
    settings: Settings,
    *,
    remote: RemoteSource | None = None,
    spawner: ProcessSpawner | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> CommandContext:
    """Construct a :class:`CommandContext` from validated settings.

    Args:
        settings: Settings for the invocation.
        remote: Explicit remote source; derived from ``settings`` when omitted.
        spawner: Process spawner used by the plugin bridge.
        clock: Callable returning the current UTC time.

    Returns:
        CommandContext: Context ready for use.
    """

    if remote is None:
        remote_url = settings.metadata.remote_url
        if remote_url:
            remote = remote_source_for(remote_url, timeout=settings.metadata.fetch_timeout)
        else:
            LOGGER.debug("No remote metadata source configured; running from cache only")
            remote = OfflineRemoteSource()
    bridge = PluginBridge(
        resolver=PluginResolver(settings.plugins.search_path),
        spawner=spawner,
    )
    return CommandContext(settings=settings, remote=remote, bridge=bridge, clock=clock)


__all__ = ["CommandContext", "build_command_context"]
