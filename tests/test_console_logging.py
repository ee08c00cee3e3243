# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for console provisioning and user-facing output helpers."""

from __future__ import annotations

import logging
import sys
from io import StringIO

import pytest
from rich.console import Console

from archmeta.logging import configure_logging, detect_tty, emoji, fail, resolve_console, section, warn


def _console() -> tuple[Console, StringIO]:
    buffer = StringIO()
    return Console(file=buffer, force_terminal=False, color_system=None, emoji=False, width=120), buffer


def test_detect_tty_handles_streams_without_isatty(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "stdout", object())

    assert detect_tty() is False


def test_resolve_console_disables_colour_off_terminal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "stdout", StringIO())

    console = resolve_console(None, use_color=True, use_emoji=False)

    assert console.no_color
    assert console.color_system is None
    assert not console.is_terminal


def test_resolve_console_prefers_explicit_console() -> None:
    console, _ = _console()

    assert resolve_console(console, use_color=True, use_emoji=True) is console


def test_plain_section_and_messages() -> None:
    console, buffer = _console()

    section("Metadata", use_color=False, console=console)
    warn("stale cache", use_emoji=False, use_color=False, console=console)
    fail("no metadata", use_emoji=True, use_color=False, console=console)

    lines = buffer.getvalue().splitlines()
    assert lines == ["", "--- Metadata ---", "stale cache", "❌ no metadata"]


def test_emoji_toggle() -> None:
    assert emoji("✅", True) == "✅"
    assert emoji("✅", False) == ""


def test_configure_logging_routes_package_records(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(verbose=False)
    configure_logging(verbose=True)
    logger = logging.getLogger("archmeta")

    logging.getLogger("archmeta.metadata.store").debug("debug detail")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert "debug detail" in capsys.readouterr().err
