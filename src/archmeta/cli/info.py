# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""The ``info`` command: metadata summary followed by the info plugin output."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Annotated, Any, Final

import typer
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..config import load_settings
from ..context import CommandContext, build_command_context
from ..errors import ConfigError, MetadataError, PluginNotFound
from ..logging import configure_logging, detect_tty, fail, resolve_console, section, warn
from ..metadata import NEVER, MetadataStore
from ..metadata.store import MetadataWarning

MIN_KEY_WIDTH: Final[int] = len("plugin.build.revision")
MAX_WIDTH_ARG: Final[str] = "--maxWidth"
TIME_FORMAT: Final[str] = "%m-%d-%Y %H:%M:%S %Z"
NEVER_LABEL: Final[str] = "never"
CONFIG_EXIT_CODE: Final[int] = 2

VERBOSE_OPTION = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Include the metadata section and debug diagnostics."),
]
ROOT_OPTION = Annotated[
    Path | None,
    typer.Option("--root", "-r", help="Directory searched for archmeta.toml or pyproject.toml.", show_default=False),
]
CACHE_DIR_OPTION = Annotated[
    Path | None,
    typer.Option("--cache-dir", help="Metadata cache directory.", show_default=False),
]
REMOTE_OPTION = Annotated[
    str | None,
    typer.Option("--remote", help="Metadata source URL or mirror directory.", show_default=False),
]
PLUGIN_OPTION = Annotated[
    str | None,
    typer.Option("--plugin", help="Name or path of the info plugin.", show_default=False),
]
PLUGIN_TIMEOUT_OPTION = Annotated[
    int | None,
    typer.Option("--plugin-timeout", min=1, help="Plugin timeout in seconds.", show_default=False),
]
COLOR_OPTION = Annotated[
    bool,
    typer.Option("--color/--no-color", help="Toggle ANSI colour output."),
]
EMOJI_OPTION = Annotated[
    bool,
    typer.Option("--emoji/--no-emoji", help="Toggle emoji output."),
]


def format_update_time(moment: datetime, tz: tzinfo | None = None) -> str:
    """Render ``moment`` as ``MM-dd-yyyy HH:mm:ss TZ`` in ``tz`` (local time by default)."""

    if moment == NEVER:
        return NEVER_LABEL
    return moment.astimezone(tz).strftime(TIME_FORMAT)


def max_key_width(keys: Iterable[str]) -> int:
    """Return the longest key length, never below :data:`MIN_KEY_WIDTH`."""

    return max(max((len(key) for key in keys), default=0), MIN_KEY_WIDTH)


def collect_metadata(store: MetadataStore, tz: tzinfo | None = None) -> dict[str, str]:
    """Return the ordered metadata summary for the latest version.

    Args:
        store: Store serving the metadata.
        tz: Timezone used to render the last update time.

    Returns:
        dict[str, str]: Update time, latest version, its properties sorted by
        key, then one group of keys per catalog entry.

    Raises:
        MetadataError: If the latest version or its payloads cannot be served.
    """

    latest = store.latest_version()
    summary: dict[str, str] = {
        "last.update.time": format_update_time(store.last_update_time(), tz),
        "latest.version": str(latest),
    }
    properties = store.properties_of(latest)
    for key in sorted(properties):
        summary[key] = properties[key]
    for index, entry in enumerate(store.catalog_of(latest), start=1):
        prefix = f"archetype.{index}"
        summary[f"{prefix}.artifactId"] = entry.artifact_id
        summary[f"{prefix}.version"] = entry.version
        summary[f"{prefix}.title"] = entry.summary
        summary[f"{prefix}.name"] = entry.name
        summary[f"{prefix}.tags"] = ",".join(entry.tags)
    return summary


def _render_table(console: Console, values: Mapping[str, str], width: int) -> None:
    table = Table(box=box.SIMPLE, show_header=False, expand=False)
    table.add_column("Key", style="bold", min_width=width, no_wrap=True)
    table.add_column("Value", overflow="fold")
    for key, value in values.items():
        table.add_row(key, Text(value))
    console.print(table)


def _report_warnings(
    console: Console,
    warnings: Iterable[MetadataWarning],
    *,
    use_color: bool,
    use_emoji: bool,
) -> None:
    for warning in warnings:
        warn(warning.message, use_emoji=use_emoji, use_color=use_color, console=console)


def run_info(
    context: CommandContext,
    *,
    verbose: bool,
    console: Console,
    use_color: bool = False,
    use_emoji: bool = False,
    tz: tzinfo | None = None,
) -> int:
    """Print the metadata summary and run the info plugin.

    Args:
        context: Context for this invocation.
        verbose: ``True`` to include the metadata section.
        console: Console receiving the output.
        use_color: Flag indicating whether colour output is desired.
        use_emoji: Flag indicating whether emoji output is desired.
        tz: Timezone used to render the last update time.

    Returns:
        int: ``1`` when metadata is unavailable, ``0`` otherwise. Plugin
        failures and timeouts are reported as warnings only.
    """

    metadata: dict[str, str] = {}
    if verbose:
        try:
            metadata = collect_metadata(context.metadata_store(), tz)
        except MetadataError as exc:
            _report_warnings(console, context.warnings, use_color=use_color, use_emoji=use_emoji)
            fail(f"Metadata unavailable: {exc}", use_emoji=use_emoji, use_color=use_color, console=console)
            return 1
    if metadata:
        section("Metadata", use_color=use_color, console=console)
        _render_table(console, metadata, max_key_width(metadata))
    _report_warnings(console, context.warnings, use_color=use_color, use_emoji=use_emoji)

    section("Plugin Build", use_color=use_color, console=console)
    plugins = context.settings.plugins
    try:
        outcome = context.bridge.execute(
            plugins.info_plugin,
            # Metadata keys never widen the plugin's key column.
            [MAX_WIDTH_ARG, str(MIN_KEY_WIDTH)],
            plugins.timeout_seconds,
            lambda line: console.print(Text(line)),
        )
    except PluginNotFound as exc:
        warn(f"{exc}; skipping plugin output", use_emoji=use_emoji, use_color=use_color, console=console)
        return 0
    except OSError as exc:
        message = f"Plugin '{plugins.info_plugin}' could not be started: {exc}"
        warn(message, use_emoji=use_emoji, use_color=use_color, console=console)
        return 0
    if not outcome.ok:
        detail = outcome.status.value
        if outcome.exit_code is not None:
            detail = f"{detail} (exit {outcome.exit_code})"
        warn(f"Plugin '{plugins.info_plugin}' {detail}", use_emoji=use_emoji, use_color=use_color, console=console)
    return 0


def _overrides(
    *,
    cache_dir: Path | None,
    remote: str | None,
    plugin: str | None,
    plugin_timeout: int | None,
) -> dict[str, Any]:
    overrides: dict[str, dict[str, Any]] = {}
    if cache_dir is not None:
        overrides.setdefault("metadata", {})["cache_dir"] = cache_dir
    if remote is not None:
        overrides.setdefault("metadata", {})["remote_url"] = remote
    if plugin is not None:
        overrides.setdefault("plugins", {})["info_plugin"] = plugin
    if plugin_timeout is not None:
        overrides.setdefault("plugins", {})["timeout_seconds"] = plugin_timeout
    return overrides


def info_command(
    verbose: VERBOSE_OPTION = False,
    root: ROOT_OPTION = None,
    cache_dir: CACHE_DIR_OPTION = None,
    remote: REMOTE_OPTION = None,
    plugin: PLUGIN_OPTION = None,
    plugin_timeout: PLUGIN_TIMEOUT_OPTION = None,
    color: COLOR_OPTION = True,
    emoji: EMOJI_OPTION = True,
) -> None:
    """Show catalog metadata and plugin build information."""

    configure_logging(verbose=verbose)
    use_color = color and detect_tty()
    console = resolve_console(None, use_color=use_color, use_emoji=emoji)
    overrides = _overrides(cache_dir=cache_dir, remote=remote, plugin=plugin, plugin_timeout=plugin_timeout)
    try:
        settings = load_settings(root or Path.cwd(), overrides=overrides)
    except ConfigError as exc:
        fail(str(exc), use_emoji=emoji, use_color=use_color, console=console)
        raise typer.Exit(code=CONFIG_EXIT_CODE) from exc

    with build_command_context(settings) as context:
        exit_code = run_info(context, verbose=verbose, console=console, use_color=use_color, use_emoji=emoji)
    raise typer.Exit(code=exit_code)


__all__ = [
    "MIN_KEY_WIDTH",
    "collect_metadata",
    "format_update_time",
    "info_command",
    "max_key_width",
    "run_info",
]
