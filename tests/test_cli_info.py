# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the ``info`` CLI command."""

from __future__ import annotations

from datetime import timedelta, timezone
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from archmeta import __version__
from archmeta.cli import app
from archmeta.cli.info import MIN_KEY_WIDTH, collect_metadata, format_update_time, max_key_width, run_info
from archmeta.config import MetadataSettings, PluginSettings, Settings
from archmeta.context import build_command_context
from archmeta.metadata.store import NEVER

ARGS_PLUGIN = 'import sys\nprint("plugin args: " + " ".join(sys.argv[1:]))\n'
FAILING_PLUGIN = 'import sys\nprint("partial output")\nsys.exit(2)\n'


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for variable in (
        "ARCHMETA_CACHE_DIR",
        "ARCHMETA_REMOTE_URL",
        "ARCHMETA_STALENESS_SECONDS",
        "ARCHMETA_FETCH_TIMEOUT",
        "ARCHMETA_PLUGIN_TIMEOUT",
        "ARCHMETA_PLUGIN_PATH",
    ):
        monkeypatch.delenv(variable, raising=False)


@pytest.fixture
def mirror(tmp_path: Path, payloads: dict[str, bytes]) -> Path:
    root = tmp_path / "mirror"
    for relative, payload in payloads.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload)
    return root


def _invoke(tmp_path: Path, *args: str, env: dict[str, str] | None = None):
    runner = CliRunner()
    base = ["info", "--root", str(tmp_path), "--cache-dir", str(tmp_path / "cache"), "--no-color", "--no-emoji"]
    return runner.invoke(app, [*base, *args], env=env)


def test_verbose_info_prints_metadata_and_plugin_output(tmp_path: Path, mirror: Path, make_plugin) -> None:
    plugin = make_plugin("info-plugin", ARGS_PLUGIN)

    result = _invoke(tmp_path, "--verbose", "--remote", str(mirror), "--plugin", str(plugin))

    assert result.exit_code == 0, result.output
    output = result.output
    assert "--- Metadata ---" in output
    assert "latest.version" in output
    assert "build.tool" in output
    assert "maven" in output
    assert "archetype.1.artifactId" in output
    assert "quickstart-se" in output
    assert "archetype.2.title" in output
    assert "Minimal MP service" in output
    assert "se,rest" in output
    assert "--- Plugin Build ---" in output
    assert f"plugin args: --maxWidth {MIN_KEY_WIDTH}" in output
    assert output.index("--- Metadata ---") < output.index("--- Plugin Build ---")


def test_plain_info_skips_metadata(tmp_path: Path, make_plugin) -> None:
    plugin = make_plugin("info-plugin", ARGS_PLUGIN)

    result = _invoke(tmp_path, "--plugin", str(plugin))

    assert result.exit_code == 0, result.output
    assert "--- Metadata ---" not in result.output
    assert f"plugin args: --maxWidth {MIN_KEY_WIDTH}" in result.output
    assert not (tmp_path / "cache").exists()


def test_unavailable_metadata_exits_with_error(tmp_path: Path, make_plugin) -> None:
    plugin = make_plugin("info-plugin", ARGS_PLUGIN)

    result = _invoke(tmp_path, "--verbose", "--plugin", str(plugin))

    assert result.exit_code == 1
    assert "Metadata unavailable" in result.output
    assert "plugin args" not in result.output


def test_missing_plugin_is_reported_and_skipped(tmp_path: Path) -> None:
    result = _invoke(tmp_path, "--plugin", "archmeta-no-such-plugin-xyz")

    assert result.exit_code == 0, result.output
    assert "archmeta-no-such-plugin-xyz' was not found" in result.output


def test_failing_plugin_is_a_warning(tmp_path: Path, make_plugin) -> None:
    plugin = make_plugin("failing-plugin", FAILING_PLUGIN)

    result = _invoke(tmp_path, "--plugin", str(plugin))

    assert result.exit_code == 0, result.output
    assert "partial output" in result.output
    assert "failed (exit 2)" in result.output


def test_invalid_configuration_exits_with_usage_code(tmp_path: Path) -> None:
    result = _invoke(tmp_path, env={"ARCHMETA_STALENESS_SECONDS": "soon"})

    assert result.exit_code == 2
    assert "Invalid archmeta configuration" in result.output


def test_version_option() -> None:
    result = CliRunner().invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_run_info_reports_stale_metadata_warning(tmp_path: Path, remote, clock, make_plugin) -> None:
    plugin = make_plugin("info-plugin", ARGS_PLUGIN)
    settings = Settings(
        metadata=MetadataSettings(cache_dir=tmp_path / "cache"),
        plugins=PluginSettings(info_plugin=str(plugin)),
    )
    build_command_context(settings, remote=remote, clock=clock).metadata_store().latest_version()
    clock.advance(timedelta(days=2))
    remote.unreachable = True
    buffer = StringIO()
    console = Console(file=buffer, force_terminal=False, color_system=None, emoji=False, width=200)

    with build_command_context(settings, remote=remote, clock=clock) as context:
        exit_code = run_info(context, verbose=True, console=console, tz=timezone.utc)

    output = buffer.getvalue()
    assert exit_code == 0
    assert "03-14-2025 09:30:00 UTC" in output
    assert "Metadata refresh failed, using cached latest version 2.0.0" in output
    assert "plugin args: --maxWidth" in output


def test_collect_metadata_orders_keys(tmp_path: Path, remote, clock) -> None:
    settings = Settings(metadata=MetadataSettings(cache_dir=tmp_path / "cache"))
    store = build_command_context(settings, remote=remote, clock=clock).metadata_store()

    summary = collect_metadata(store, timezone.utc)

    assert list(summary)[:4] == ["last.update.time", "latest.version", "build.tool", "cli.latest.version"]
    assert summary["archetype.1.tags"] == "se,rest"
    assert summary["archetype.2.name"] == "bare-mp"
    assert max_key_width(summary) == len("archetype.1.artifactId")


def test_format_update_time_handles_never() -> None:
    assert format_update_time(NEVER) == "never"
    assert max_key_width([]) == MIN_KEY_WIDTH
