# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring commands."""

from __future__ import annotations

from typing import Annotated

import typer

from .. import __version__
from .info import info_command

app = typer.Typer(
    name="archmeta",
    help="Archetype catalog metadata and plugin diagnostics.",
    add_completion=False,
    no_args_is_help=True,
)
app.command(name="info")(info_command)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"archmeta {__version__}")
        raise typer.Exit()


@app.callback()
def root(
    version: Annotated[
        bool,
        typer.Option("--version", callback=_print_version, is_eager=True, help="Show the version and exit."),
    ] = False,
) -> None:
    """Archetype catalog metadata and plugin diagnostics."""


def main() -> None:
    """Run the CLI application."""

    app()


__all__ = ["app", "main"]
