# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Ordered ``key=value`` property sets and their text codec."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from typing import Final

from ..errors import CorruptProperties

_COMMENT_PREFIXES: Final[tuple[str, ...]] = ("#", "!")
_ESCAPE_PATTERN: Final[re.Pattern[str]] = re.compile(r"\\(.)", re.DOTALL)
_UNESCAPES: Final[dict[str, str]] = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\"}
_ENCODING: Final[str] = "utf-8"


class PropertySet(Mapping[str, str]):
    """Immutable mapping of property names to values that keeps declaration order."""

    __slots__ = ("_items",)

    def __init__(self, items: Mapping[str, str] | Iterable[tuple[str, str]] = ()) -> None:
        pairs = items.items() if isinstance(items, Mapping) else items
        collected: dict[str, str] = {}
        for key, value in pairs:
            if not isinstance(key, str) or not isinstance(value, str):
                raise TypeError("PropertySet keys and values must be strings")
            if not key:
                raise ValueError("PropertySet keys must not be empty")
            collected[key] = value
        self._items = collected

    def __getitem__(self, key: str) -> str:
        return self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PropertySet):
            return list(self._items.items()) == list(other._items.items())
        if isinstance(other, Mapping):
            return dict(self._items) == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._items.items()))

    def __repr__(self) -> str:
        return f"PropertySet({self._items!r})"

    def property(self, key: str, default: str | None = None) -> str | None:
        """Return the value recorded for ``key`` or ``default``."""

        return self._items.get(key, default)

    @classmethod
    def parse(cls, payload: bytes | str) -> PropertySet:
        """Parse newline-delimited ``key=value`` text.

        Blank lines and lines starting with ``#`` or ``!`` are ignored. Keys are
        stripped of unescaped surrounding whitespace; values are kept verbatim
        apart from ``\\n``, ``\\r``, ``\\t`` and ``\\\\`` escapes.

        Args:
            payload: Raw UTF-8 bytes or decoded text.

        Returns:
            PropertySet: Parsed properties in declaration order.

        Raises:
            CorruptProperties: If the payload is not UTF-8 or a line lacks a
                ``=`` separator or a key.
        """

        if isinstance(payload, bytes):
            try:
                text = payload.decode(_ENCODING)
            except UnicodeDecodeError as exc:
                raise CorruptProperties(f"Properties payload is not valid UTF-8: {exc}") from exc
        else:
            text = payload
        pairs: list[tuple[str, str]] = []
        for number, raw_line in enumerate(text.split("\n"), start=1):
            line = raw_line.removesuffix("\r")
            stripped = line.strip()
            if not stripped or stripped.startswith(_COMMENT_PREFIXES):
                continue
            split = _split_pair(line)
            key = _strip_key(split[0]) if split is not None else ""
            if split is None or not key:
                raise CorruptProperties(f"Line {number} is not a key=value pair: {line!r}")
            pairs.append((_unescape(key), _unescape(split[1])))
        return cls(pairs)

    def dumps(self) -> str:
        """Return the properties encoded as ``key=value`` lines."""

        lines = [f"{_escape_key(key)}={_escape(value)}" for key, value in self._items.items()]
        return "".join(f"{line}\n" for line in lines)

    def to_bytes(self) -> bytes:
        """Return :meth:`dumps` encoded as UTF-8."""

        return self.dumps().encode(_ENCODING)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")


def _escape_key(key: str) -> str:
    core = key.strip()
    head = key[: len(key) - len(key.lstrip())]
    tail = key[len(head) + len(core) :]
    escaped = _escape(core).replace("=", "\\=")
    if not head and escaped.startswith(_COMMENT_PREFIXES):
        escaped = f"\\{escaped}"
    # Edge whitespace is escaped so parsing does not strip it.
    return "".join(map(_escape_edge, head)) + escaped + "".join(map(_escape_edge, tail))


def _escape_edge(char: str) -> str:
    escaped = _escape(char)
    return escaped if escaped != char else f"\\{char}"


def _strip_key(raw: str) -> str:
    key = raw.lstrip()
    end = len(key)
    while end and key[end - 1].isspace() and not _is_escaped(key, end - 1):
        end -= 1
    return key[:end]


def _is_escaped(text: str, index: int) -> bool:
    backslashes = len(text[:index]) - len(text[:index].rstrip("\\"))
    return backslashes % 2 == 1


def _split_pair(line: str) -> tuple[str, str] | None:
    escaped = False
    for index, char in enumerate(line):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "=":
            return line[:index], line[index + 1 :]
    return None


def _unescape(value: str) -> str:
    return _ESCAPE_PATTERN.sub(lambda match: _UNESCAPES.get(match.group(1), match.group(1)), value)


__all__ = ["PropertySet"]
