# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the per-invocation command context."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from archmeta.config import MetadataSettings, PluginSettings, Settings
from archmeta.context import build_command_context
from archmeta.metadata import DirectoryRemoteSource, OfflineRemoteSource, UrlRemoteSource


def _settings(tmp_path: Path, remote_url: str | None = None) -> Settings:
    return Settings(
        metadata=MetadataSettings(cache_dir=tmp_path / "cache", remote_url=remote_url),
        plugins=PluginSettings(search_path=[tmp_path / "plugins"]),
    )


def test_remote_is_derived_from_settings(tmp_path: Path) -> None:
    assert isinstance(build_command_context(_settings(tmp_path)).remote, OfflineRemoteSource)
    assert isinstance(build_command_context(_settings(tmp_path, "https://example.invalid/")).remote, UrlRemoteSource)
    assert isinstance(build_command_context(_settings(tmp_path, str(tmp_path))).remote, DirectoryRemoteSource)


def test_store_is_opened_lazily_and_reused(tmp_path: Path, remote, clock) -> None:
    context = build_command_context(_settings(tmp_path), remote=remote, clock=clock)

    assert not (tmp_path / "cache").exists()
    store = context.metadata_store()

    assert context.metadata_store() is store
    assert store.cache_root == tmp_path / "cache"
    assert (tmp_path / "cache").is_dir()


def test_store_warnings_are_collected_on_the_context(tmp_path: Path, remote, clock) -> None:
    build_command_context(_settings(tmp_path), remote=remote, clock=clock).metadata_store().latest_version()
    clock.advance(timedelta(days=3))
    remote.unreachable = True

    with build_command_context(_settings(tmp_path), remote=remote, clock=clock) as context:
        context.metadata_store().latest_version()
        assert len(context.warnings) == 1

    assert context.discarded


def test_discarded_context_cannot_be_reused(tmp_path: Path, remote) -> None:
    context = build_command_context(_settings(tmp_path), remote=remote)
    context.discard()

    with pytest.raises(RuntimeError):
        context.metadata_store()


def test_bridge_uses_configured_search_path(tmp_path: Path, make_plugin) -> None:
    make_plugin("archmeta-plugin-info", 'print("from search path")\n', directory=tmp_path / "plugins")
    lines: list[str] = []

    context = build_command_context(_settings(tmp_path))
    outcome = context.bridge.execute("archmeta-plugin-info", [], 5, lines.append)

    assert outcome.ok
    assert lines == ["from search path"]
