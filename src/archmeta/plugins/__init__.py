# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Bounded execution of auxiliary plugin executables."""

from __future__ import annotations

from .bridge import OutputSink, PluginBridge, PluginOutcome, PluginResolver, PluginStatus
from .process import ProcessHandle, ProcessSpawner, SubprocessSpawner

__all__ = [
    "OutputSink",
    "PluginBridge",
    "PluginOutcome",
    "PluginResolver",
    "PluginStatus",
    "ProcessHandle",
    "ProcessSpawner",
    "SubprocessSpawner",
]
