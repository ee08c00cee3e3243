# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Run auxiliary plugin executables under a hard wall-clock timeout."""

from __future__ import annotations

import logging
import os
import shutil
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from ..errors import PluginNotFound
from .process import ProcessHandle, ProcessSpawner, SubprocessSpawner

LOGGER = logging.getLogger(__name__)

OutputSink = Callable[[str], None]


class PluginStatus(StrEnum):
    """Terminal state of a plugin invocation."""

    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed out"


@dataclass(frozen=True, slots=True)
class PluginOutcome:
    """Structured result of :meth:`PluginBridge.execute`.

    Attributes:
        status: Terminal state of the invocation.
        exit_code: Exit status for completed processes, ``None`` on timeout.
        elapsed: Wall-clock seconds between launch and completion.
    """

    status: PluginStatus
    exit_code: int | None
    elapsed: float = 0.0

    @classmethod
    def from_exit_code(cls, exit_code: int, elapsed: float = 0.0) -> PluginOutcome:
        """Return ``SUCCESS`` for exit code 0 and ``FAILED`` otherwise."""

        status = PluginStatus.SUCCESS if exit_code == 0 else PluginStatus.FAILED
        return cls(status=status, exit_code=exit_code, elapsed=elapsed)

    @classmethod
    def timed_out(cls, elapsed: float = 0.0) -> PluginOutcome:
        """Return a ``TIMED_OUT`` outcome."""

        return cls(status=PluginStatus.TIMED_OUT, exit_code=None, elapsed=elapsed)

    @property
    def ok(self) -> bool:
        """Return ``True`` when the plugin exited successfully."""

        return self.status is PluginStatus.SUCCESS


class PluginResolver:
    """Resolve plugin names to executables.

    Names containing a path separator are used as paths. Bare names are looked
    up in the configured plugin directories first, then on ``PATH``.
    """

    def __init__(self, search_path: Sequence[Path] = ()) -> None:
        self._search_path = tuple(search_path)

    @property
    def search_path(self) -> tuple[Path, ...]:
        """Return the plugin directories consulted before ``PATH``."""

        return self._search_path

    def resolve(self, name: str) -> Path:
        """Return the executable for ``name``.

        Args:
            name: Plugin name or path.

        Returns:
            Path: Executable path.

        Raises:
            PluginNotFound: If no executable matches ``name``.
        """

        if not name:
            raise PluginNotFound(name)
        candidate = Path(name)
        if candidate.is_absolute() or len(candidate.parts) > 1:
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return candidate
            raise PluginNotFound(name)
        for directory in self._search_path:
            found = shutil.which(name, path=str(directory))
            if found is not None:
                return Path(found)
        found = shutil.which(name)
        if found is None:
            raise PluginNotFound(name)
        return Path(found)


class PluginBridge:
    """Execute plugins, streaming their output and enforcing a timeout."""

    def __init__(
        self,
        *,
        resolver: PluginResolver | None = None,
        spawner: ProcessSpawner | None = None,
    ) -> None:
        self._resolver = resolver or PluginResolver()
        self._spawner = spawner or SubprocessSpawner()

    def execute(
        self,
        name: str,
        arguments: Sequence[str],
        timeout_seconds: int,
        output_sink: OutputSink,
    ) -> PluginOutcome:
        """Run plugin ``name`` and stream each output line to ``output_sink``.

        Lines are delivered on the calling thread in the order the process
        produced them. When the process outlives ``timeout_seconds`` its
        process group is killed and a ``TIMED_OUT`` outcome is returned; lines
        already delivered stay delivered. A non-zero exit code is reported as
        ``FAILED`` rather than raised.

        Args:
            name: Plugin name or executable path.
            arguments: Arguments passed to the plugin verbatim.
            timeout_seconds: Positive wall-clock limit measured from launch.
            output_sink: Callable receiving each output line.

        Returns:
            PluginOutcome: Terminal state of the invocation.

        Raises:
            ValueError: If ``timeout_seconds`` is not a positive integer.
            PluginNotFound: If ``name`` cannot be resolved; no process is started.
            OSError: If the resolved executable cannot be started.
        """

        if isinstance(timeout_seconds, bool) or not isinstance(timeout_seconds, int) or timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be a positive integer, got {timeout_seconds!r}")
        executable = self._resolver.resolve(name)
        command = [str(executable), *arguments]

        started = time.monotonic()
        handle = self._spawner.spawn(command)
        deadline = _Deadline(handle)
        timer = threading.Timer(timeout_seconds, deadline.expire)
        timer.daemon = True
        timer.start()
        try:
            for line in handle.lines():
                output_sink(line)
            exit_code = handle.wait()
            timed_out = deadline.finish()
        except BaseException:
            deadline.finish()
            handle.kill()
            handle.wait()
            raise
        finally:
            timer.cancel()
            handle.close()
        elapsed = time.monotonic() - started

        if timed_out:
            LOGGER.warning("Plugin %s exceeded %ss and was terminated", name, timeout_seconds)
            return PluginOutcome.timed_out(elapsed)
        outcome = PluginOutcome.from_exit_code(exit_code, elapsed)
        LOGGER.debug("Plugin %s finished with %s (exit %s) in %.2fs", name, outcome.status, exit_code, elapsed)
        return outcome


class _Deadline:
    """Kill a plugin process group unless the invocation finished first."""

    def __init__(self, handle: ProcessHandle) -> None:
        self._handle = handle
        self._lock = threading.Lock()
        self._finished = False
        self._expired = False

    def expire(self) -> None:
        with self._lock:
            if self._finished:
                return
            self._expired = True
        self._handle.kill()

    def finish(self) -> bool:
        """Mark the invocation finished and return whether the deadline fired first."""

        with self._lock:
            self._finished = True
            return self._expired


__all__ = ["OutputSink", "PluginBridge", "PluginOutcome", "PluginResolver", "PluginStatus"]
