# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""At-most-one concurrent execution per key within a process."""

from __future__ import annotations

from collections.abc import Callable, Hashable
from concurrent.futures import Future
from threading import Lock
from typing import Generic, TypeVar

ResultT = TypeVar("ResultT")


class SingleFlight(Generic[ResultT]):
    """Collapse concurrent calls sharing a key onto a single execution.

    The first caller for a key becomes the leader and runs the supplied
    callable. Callers arriving while it runs wait on the same write-once
    :class:`~concurrent.futures.Future` and observe its result or exception.
    The slot is released once the result is published, so later calls start
    a fresh execution.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._calls: dict[Hashable, Future[ResultT]] = {}

    def do(self, key: Hashable, func: Callable[[], ResultT]) -> ResultT:
        """Return the result of ``func`` executed at most once per in-flight ``key``.

        Args:
            key: Identity of the operation being deduplicated.
            func: Callable run by the leading caller.

        Returns:
            ResultT: Value produced by the leader's execution.

        Raises:
            BaseException: Whatever the leader's execution raised.
        """

        with self._lock:
            slot = self._calls.get(key)
            leader = slot is None
            if slot is None:
                slot = Future()
                self._calls[key] = slot
        if not leader:
            return slot.result()

        try:
            result = func()
        except BaseException as exc:
            slot.set_exception(exc)
            raise
        else:
            slot.set_result(result)
            return result
        finally:
            with self._lock:
                self._calls.pop(key, None)

    def in_flight(self, key: Hashable) -> bool:
        """Return ``True`` while an execution for ``key`` is running."""

        with self._lock:
            return key in self._calls


__all__ = ["SingleFlight"]
