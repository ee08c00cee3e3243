# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import json
import logging
import os
import socketserver
import stat
import sys
import threading
from collections.abc import Callable, Iterator, Mapping
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from archmeta.errors import RemoteNotFound, RemoteUnreachable
from archmeta.metadata import RemoteSource

START: datetime = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

CATALOG_200 = [
    {
        "artifactId": "quickstart-se",
        "version": "2.0.0",
        "name": "bare-se",
        "summary": "Minimal SE service",
        "tags": "se,rest",
    },
    {
        "artifactId": "quickstart-mp",
        "version": "2.0.0",
        "name": "bare-mp",
        "summary": "Minimal MP service",
        "tags": "mp",
    },
]


def published_payloads() -> dict[str, bytes]:
    """Return a small remote layout publishing versions ``1.0.0`` and ``2.0.0``."""

    return {
        "versions": b"# published versions\n1.0.0\n\n2.0.0\n2.0.0-M1\n",
        "2.0.0/metadata.properties": b"cli.latest.version=2.0.0\nbuild.tool=maven\n",
        "2.0.0/archetype-catalog.json": json.dumps(CATALOG_200).encode("utf-8"),
        "1.0.0/metadata.properties": b"cli.latest.version=1.0.0\n",
        "1.0.0/archetype-catalog.json": b"[]",
    }


class RecordingRemote(RemoteSource):
    """In-memory remote source recording every fetch.

    Payloads listed in ``queued`` are served once each, in order, before
    falling back to ``payloads``.
    """

    def __init__(self, payloads: Mapping[str, bytes] | None = None) -> None:
        self.payloads = dict(payloads if payloads is not None else published_payloads())
        self.queued: dict[str, list[bytes]] = {}
        self.calls: list[str] = []
        self.unreachable = False
        self.gate: threading.Event | None = None
        self.entered = threading.Event()
        self._lock = threading.Lock()

    def fetch(self, path: str) -> bytes:
        with self._lock:
            self.calls.append(path)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.unreachable:
            raise RemoteUnreachable(path, "offline")
        with self._lock:
            pending = self.queued.get(path)
            if pending:
                return pending.pop(0)
        try:
            return self.payloads[path]
        except KeyError:
            raise RemoteNotFound(path, "not published") from None

    def count(self, path: str) -> int:
        with self._lock:
            return self.calls.count(path)


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def remote() -> RecordingRemote:
    return RecordingRemote()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def remote_factory() -> Callable[..., RecordingRemote]:
    """Return a factory building remotes over custom payload layouts."""

    return RecordingRemote


@pytest.fixture
def payloads() -> dict[str, bytes]:
    return published_payloads()


@pytest.fixture
def make_plugin(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory writing executable Python plugin scripts."""

    if os.name != "posix":
        pytest.skip("plugin scripts require a POSIX shebang")

    def _make(name: str, body: str, *, directory: Path | None = None) -> Path:
        target_dir = directory or tmp_path / "plugins"
        target_dir.mkdir(parents=True, exist_ok=True)
        script = target_dir / name
        script.write_text(f"#!{sys.executable}\n{body}", encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


@pytest.fixture(autouse=True)
def _reset_archmeta_logger() -> Iterator[None]:
    """Undo CLI logging configuration so ``caplog`` sees package records."""

    yield
    logger = logging.getLogger("archmeta")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    if hasattr(logger, "_archmeta_handler"):
        delattr(logger, "_archmeta_handler")


class _NotHttpHandler(socketserver.StreamRequestHandler):
    def handle(self) -> None:
        while self.rfile.readline().strip():
            pass
        self.wfile.write(b"garbage-not-http\r\n")


@pytest.fixture
def not_http_url() -> Iterator[str]:
    """Return the URL of a local server answering every request with a non-HTTP line."""

    server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), _NotHttpHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    try:
        yield f"http://{host}:{port}/"
    finally:
        server.shutdown()
        server.server_close()
