# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing output helpers with optional colour and emoji support."""

from __future__ import annotations

import logging
import sys
from typing import Final, Literal

from rich.console import Console
from rich.rule import Rule
from rich.text import Text


_PACKAGE_LOGGER: Final[str] = "archmeta"
_HANDLER_ATTR: Final[str] = "_archmeta_handler"


def configure_logging(*, verbose: bool) -> None:
    """Route ``archmeta`` diagnostics to stderr.

    Warnings are always shown; debug records only when ``verbose`` is set.

    Args:
        verbose: ``True`` to emit debug records.
    """

    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    previous = getattr(logger, _HANDLER_ATTR, None)
    if previous is not None:
        # stderr may have been swapped since the last run.
        logger.removeHandler(previous)
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    setattr(logger, _HANDLER_ATTR, handler)


def detect_tty() -> bool:
    """Return ``True`` when stdout appears to be backed by a terminal."""

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


def emoji(symbol: str, enable: bool) -> str:
    """Return ``symbol`` when emoji output is enabled, otherwise an empty string."""

    return symbol if enable else ""


def resolve_console(console: Console | None, *, use_color: bool | None, use_emoji: bool) -> Console:
    """Return ``console`` or a stdout console honouring the presentation flags.

    Colour is only enabled when stdout is a terminal, whatever ``use_color`` says.
    """

    if console is not None:
        return console
    tty = detect_tty()
    color_enabled = tty if use_color is None else use_color and tty
    color_system: Literal["auto"] | None = "auto" if color_enabled else None
    return Console(
        color_system=color_system,
        force_terminal=tty,
        no_color=not color_enabled,
        emoji=use_emoji,
        soft_wrap=True,
    )


def _print_line(
    msg: str,
    *,
    style: str | None,
    use_emoji: bool,
    use_color: bool | None = None,
    console: Console | None = None,
) -> None:
    """Render ``msg`` to the console using shared styling helpers.

    Args:
        msg: Message text to print.
        style: Rich style applied when colour output is active.
        use_emoji: Flag indicating whether emoji output is desired.
        use_color: Optional explicit colour flag overriding TTY detection.
        console: Explicit console; the managed console is used when omitted.
    """

    color_enabled = detect_tty() if use_color is None else use_color
    target = resolve_console(console, use_color=color_enabled, use_emoji=use_emoji)
    text = Text(msg)
    if style and color_enabled:
        text.stylize(style)
    target.print(text)


def section(title: str, *, use_color: bool, console: Console | None = None) -> None:
    """Render a section header to delineate console output blocks."""

    target = resolve_console(console, use_color=use_color, use_emoji=True)
    if use_color:
        target.print()
        target.print(Rule(title))
    else:
        target.print(f"\n--- {title} ---")


def warn(msg: str, *, use_emoji: bool, use_color: bool | None = None, console: Console | None = None) -> None:
    """Emit a warning message."""

    prefix = emoji("⚠️ ", use_emoji)
    _print_line(f"{prefix}{msg}", style="yellow", use_emoji=use_emoji, use_color=use_color, console=console)


def fail(msg: str, *, use_emoji: bool, use_color: bool | None = None, console: Console | None = None) -> None:
    """Emit an error message."""

    prefix = emoji("❌ ", use_emoji)
    _print_line(f"{prefix}{msg}", style="red", use_emoji=use_emoji, use_color=use_color, console=console)


__all__ = [
    "configure_logging",
    "detect_tty",
    "emoji",
    "fail",
    "resolve_console",
    "section",
    "warn",
]
