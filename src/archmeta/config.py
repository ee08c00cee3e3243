# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models and layered loading for archmeta."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from datetime import timedelta
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

CONFIG_FILE: Final[str] = "archmeta.toml"
PYPROJECT_FILE: Final[str] = "pyproject.toml"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "archmeta"
METADATA_SECTION: Final[str] = "metadata"
PLUGINS_SECTION: Final[str] = "plugins"

DEFAULT_STALENESS_SECONDS: Final[int] = 24 * 60 * 60
DEFAULT_FETCH_TIMEOUT: Final[float] = 10.0
DEFAULT_PLUGIN_TIMEOUT: Final[int] = 5
DEFAULT_INFO_PLUGIN: Final[str] = "archmeta-plugin-info"


def default_cache_dir() -> Path:
    """Return ``$XDG_CACHE_HOME/archmeta`` or ``~/.cache/archmeta``."""

    base = os.environ.get("XDG_CACHE_HOME")
    root = Path(base) if base else Path.home() / ".cache"
    return root / "archmeta"


class MetadataSettings(BaseModel):
    """Metadata cache location, remote source and freshness policy."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    cache_dir: Path = Field(default_factory=default_cache_dir)
    remote_url: str | None = None
    staleness_seconds: int = Field(default=DEFAULT_STALENESS_SECONDS, gt=0)
    fetch_timeout: float = Field(default=DEFAULT_FETCH_TIMEOUT, gt=0)

    @property
    def staleness(self) -> timedelta:
        """Return the staleness threshold as a :class:`~datetime.timedelta`."""

        return timedelta(seconds=self.staleness_seconds)


class PluginSettings(BaseModel):
    """Plugin lookup path and execution bounds."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    timeout_seconds: int = Field(default=DEFAULT_PLUGIN_TIMEOUT, gt=0)
    search_path: list[Path] = Field(default_factory=list)
    info_plugin: str = Field(default=DEFAULT_INFO_PLUGIN, min_length=1)


class Settings(BaseModel):
    """Top-level settings for a single CLI run."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    metadata: MetadataSettings = Field(default_factory=MetadataSettings)
    plugins: PluginSettings = Field(default_factory=PluginSettings)


def _split_path_list(value: str) -> list[str]:
    return [item for item in value.split(os.pathsep) if item]


_ENV_BINDINGS: Final[dict[str, tuple[str, str, Callable[[str], Any]]]] = {
    "ARCHMETA_CACHE_DIR": (METADATA_SECTION, "cache_dir", str),
    "ARCHMETA_REMOTE_URL": (METADATA_SECTION, "remote_url", str),
    "ARCHMETA_STALENESS_SECONDS": (METADATA_SECTION, "staleness_seconds", str),
    "ARCHMETA_FETCH_TIMEOUT": (METADATA_SECTION, "fetch_timeout", str),
    "ARCHMETA_PLUGIN_TIMEOUT": (PLUGINS_SECTION, "timeout_seconds", str),
    "ARCHMETA_PLUGIN_PATH": (PLUGINS_SECTION, "search_path", _split_path_list),
}


def _deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        existing = merged.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc


def _file_fragment(root: Path) -> dict[str, Any]:
    """Return settings declared in ``archmeta.toml`` or ``[tool.archmeta]``.

    Args:
        root: Directory searched for configuration files.

    Returns:
        dict[str, Any]: Raw settings fragment; empty when no file declares one.

    Raises:
        ConfigError: If a configuration file is unreadable or not a table.
    """

    standalone = root / CONFIG_FILE
    if standalone.is_file():
        return _read_toml(standalone)
    pyproject = root / PYPROJECT_FILE
    if not pyproject.is_file():
        return {}
    tool_section = _read_toml(pyproject).get(PYPROJECT_TOOL_KEY)
    if not isinstance(tool_section, Mapping):
        return {}
    section = tool_section.get(PYPROJECT_SECTION_KEY, {})
    if not isinstance(section, Mapping):
        raise ConfigError(f"[tool.{PYPROJECT_SECTION_KEY}] in {pyproject} must be a table")
    return dict(section)


def _env_fragment(env: Mapping[str, str]) -> dict[str, Any]:
    fragment: dict[str, Any] = {}
    for variable, (section, field, convert) in _ENV_BINDINGS.items():
        raw = env.get(variable)
        if raw is None or raw == "":
            continue
        fragment.setdefault(section, {})[field] = convert(raw)
    return fragment


def load_settings(
    root: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load settings with layered precedence.

    Precedence from lowest to highest: built-in defaults, ``archmeta.toml``
    (or ``[tool.archmeta]`` in ``pyproject.toml``) under ``root``, ``ARCHMETA_*``
    environment variables, then ``overrides``.

    Args:
        root: Directory searched for configuration files; skipped when ``None``.
        env: Environment mapping used instead of :data:`os.environ`.
        overrides: Nested mapping of explicit values, typically CLI options.

    Returns:
        Settings: Validated settings.

    Raises:
        ConfigError: If any layer is unreadable or the merged values are invalid.
    """

    merged: dict[str, Any] = {}
    if root is not None:
        merged = _deep_merge(merged, _file_fragment(root))
    merged = _deep_merge(merged, _env_fragment(os.environ if env is None else env))
    if overrides:
        merged = _deep_merge(merged, overrides)
    try:
        settings = Settings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid archmeta configuration: {exc}") from exc
    settings.metadata.cache_dir = settings.metadata.cache_dir.expanduser()
    return settings


__all__ = [
    "CONFIG_FILE",
    "DEFAULT_FETCH_TIMEOUT",
    "DEFAULT_INFO_PLUGIN",
    "DEFAULT_PLUGIN_TIMEOUT",
    "DEFAULT_STALENESS_SECONDS",
    "MetadataSettings",
    "PluginSettings",
    "Settings",
    "default_cache_dir",
    "load_settings",
]
