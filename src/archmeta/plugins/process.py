# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Process spawning capability used by the plugin bridge."""

from __future__ import annotations

import logging
import os
import signal

# Bandit: subprocess usage is intentional; the bridge passes argument lists
# directly and never enables ``shell=True``.
import subprocess  # nosec B404
from abc import abstractmethod
from collections.abc import Iterator, Sequence
from typing import Final, Protocol, runtime_checkable

LOGGER = logging.getLogger(__name__)

_POSIX: Final[bool] = os.name == "posix"
_OUTPUT_ENCODING: Final[str] = "utf-8"


@runtime_checkable
class ProcessHandle(Protocol):
    """Define the operations the bridge needs on a running process."""

    @property
    @abstractmethod
    def pid(self) -> int:
        """Return the operating system process identifier."""
        raise NotImplementedError

    @abstractmethod
    def lines(self) -> Iterator[str]:
        """Yield combined stdout/stderr lines without trailing newlines until EOF."""
        raise NotImplementedError

    @abstractmethod
    def wait(self) -> int:
        """Block until the process terminates and return its exit code."""
        raise NotImplementedError

    @abstractmethod
    def kill(self) -> None:
        """Forcibly terminate the process and every member of its process group."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release pipes held for the process."""
        raise NotImplementedError


@runtime_checkable
class ProcessSpawner(Protocol):
    """Define the capability that starts plugin processes."""

    @abstractmethod
    def spawn(self, command: Sequence[str]) -> ProcessHandle:
        """Start ``command`` with combined output piped back to the caller.

        Args:
            command: Executable path followed by its arguments.

        Returns:
            ProcessHandle: Handle on the running process.

        Raises:
            OSError: If the process cannot be started.
        """
        raise NotImplementedError


class SubprocessHandle(ProcessHandle):
    """Process handle backed by :class:`subprocess.Popen`."""

    def __init__(self, process: subprocess.Popen[str]) -> None:
        self._process = process

    @property
    def pid(self) -> int:
        return self._process.pid

    def lines(self) -> Iterator[str]:
        stream = self._process.stdout
        if stream is None:
            return
        for line in stream:
            yield line.removesuffix("\n").removesuffix("\r")

    def wait(self) -> int:
        return self._process.wait()

    def kill(self) -> None:
        if _POSIX:
            try:
                os.killpg(self._process.pid, signal.SIGKILL)
            except (ProcessLookupError, PermissionError):
                # Group already gone; fall back to the direct child.
                pass
            else:
                return
        try:
            self._process.kill()
        except ProcessLookupError:
            return

    def close(self) -> None:
        if self._process.stdout is not None:
            self._process.stdout.close()


class SubprocessSpawner(ProcessSpawner):
    """Start plugins in their own session so the whole process group can be killed."""

    def spawn(self, command: Sequence[str]) -> ProcessHandle:
        if not command:
            raise ValueError("plugin command requires at least one argument")
        LOGGER.debug("Spawning plugin process: %s", list(command))
        # Bandit: the executable was resolved by the bridge and arguments are
        # passed as a list without shell expansion.
        process = subprocess.Popen(  # nosec B603
            list(command),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding=_OUTPUT_ENCODING,
            errors="replace",
            bufsize=1,
            start_new_session=_POSIX,
        )
        return SubprocessHandle(process)


__all__ = ["ProcessHandle", "ProcessSpawner", "SubprocessHandle", "SubprocessSpawner"]
