# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Helpers for parsing, ordering and selecting archetype catalog versions."""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import IntEnum
from typing import Final

from packaging.utils import canonicalize_version
from packaging.version import InvalidVersion
from packaging.version import Version as PEP440Version

from .errors import EmptyCandidateSet, InvalidVersionFormat

_QUALIFIED_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^v?(?P<release>\d+(?:\.\d+)*)(?:[-.]?(?P<qualifier>[A-Za-z]+)[-.]?(?P<number>\d+)?)?$",
)


class QualifierTier(IntEnum):
    """Rank of a version qualifier; lower tiers sort first within one release."""

    UNKNOWN = 0
    ALPHA = 1
    BETA = 2
    MILESTONE = 3
    RC = 4
    SNAPSHOT = 5
    RELEASE = 6
    SERVICE_PACK = 7


# Maven qualifiers plus their PEP 440 spellings. Any other qualifier is
# UNKNOWN and ordered by its lower-cased text below every known pre-release.
_QUALIFIER_TIERS: Final[dict[str, QualifierTier]] = {
    "alpha": QualifierTier.ALPHA,
    "a": QualifierTier.ALPHA,
    "beta": QualifierTier.BETA,
    "b": QualifierTier.BETA,
    "milestone": QualifierTier.MILESTONE,
    "m": QualifierTier.MILESTONE,
    "rc": QualifierTier.RC,
    "cr": QualifierTier.RC,
    "c": QualifierTier.RC,
    "snapshot": QualifierTier.SNAPSHOT,
    "dev": QualifierTier.SNAPSHOT,
    "final": QualifierTier.RELEASE,
    "ga": QualifierTier.RELEASE,
    "release": QualifierTier.RELEASE,
    "sp": QualifierTier.SERVICE_PACK,
    "post": QualifierTier.SERVICE_PACK,
}


class Ordering(IntEnum):
    """Result of comparing two versions."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


class Version:
    """Totally ordered version identifier that remembers its original text.

    A version is a dotted numeric release with an optional qualifier such as
    ``-M1`` or ``.Final``. Equality and hashing use the parsed value, so
    ``2.0``, ``2.00`` and ``2.0.0`` are the same version while
    :meth:`__str__` still returns the text the version was created from.
    """

    __slots__ = ("_canonical", "_key", "_text")

    def __init__(self, text: str) -> None:
        raw = text.strip() if isinstance(text, str) else ""
        match = _QUALIFIED_PATTERN.match(raw)
        if match is None:
            raise InvalidVersionFormat(str(text))
        try:
            release = PEP440Version(match.group("release"))
        except InvalidVersion as exc:
            raise InvalidVersionFormat(raw) from exc

        numbers = tuple(release.release)
        while len(numbers) > 1 and numbers[-1] == 0:
            numbers = numbers[:-1]
        qualifier = (match.group("qualifier") or "").lower()
        tier = _QUALIFIER_TIERS.get(qualifier, QualifierTier.UNKNOWN) if qualifier else QualifierTier.RELEASE
        label = qualifier if tier is QualifierTier.UNKNOWN else ""
        number = 0 if tier is QualifierTier.RELEASE else int(match.group("number") or 0)

        self._text = raw
        self._key: tuple[tuple[int, ...], int, str, int] = (numbers, int(tier), label, number)
        self._canonical = canonicalize_version(release) + _qualifier_suffix(tier, label, number)

    @property
    def canonical(self) -> str:
        """Return the normalised text shared by every spelling of this version.

        Trailing zero release components are dropped and qualifiers use one
        spelling per tier, so ``2.0`` and ``2.0.0`` both normalise to ``2``
        and ``2.0.0-M1`` normalises to ``2-milestone1``.
        """

        return self._canonical

    @property
    def is_prerelease(self) -> bool:
        """Return ``True`` for snapshot and pre-release versions."""

        return self._key[1] < QualifierTier.RELEASE

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Version({self._text!r})"

    def __hash__(self) -> int:
        return hash(self._key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key == other._key

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key < other._key

    def __le__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key <= other._key

    def __gt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key > other._key

    def __ge__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key >= other._key


def _qualifier_suffix(tier: QualifierTier, label: str, number: int) -> str:
    if tier is QualifierTier.RELEASE:
        return ""
    name = label if tier is QualifierTier.UNKNOWN else tier.name.lower().replace("_", "-")
    return f"-{name}{number}" if number else f"-{name}"


VersionLike = Version | str


class VersionResolver:
    """Parse, compare and select versions using standardized semantics."""

    def parse(self, value: VersionLike) -> Version:
        """Return ``value`` as a :class:`Version`.

        Args:
            value: Version instance or identifier text.

        Returns:
            Version: Parsed version.

        Raises:
            InvalidVersionFormat: If ``value`` cannot be parsed.
        """

        if isinstance(value, Version):
            return value
        return Version(value)

    def compare(self, left: VersionLike, right: VersionLike) -> Ordering:
        """Compare two versions.

        Args:
            left: First version or identifier.
            right: Second version or identifier.

        Returns:
            Ordering: ``LESS``, ``EQUAL`` or ``GREATER`` for ``left`` relative to ``right``.

        Raises:
            InvalidVersionFormat: If either argument cannot be parsed.
        """

        first = self.parse(left)
        second = self.parse(right)
        if first < second:
            return Ordering.LESS
        if first > second:
            return Ordering.GREATER
        return Ordering.EQUAL

    def latest(self, candidates: Iterable[VersionLike]) -> Version:
        """Return the greatest version in ``candidates``.

        Ties between semantically equal identifiers resolve to the candidate
        encountered first.

        Args:
            candidates: Versions or identifiers to choose from.

        Returns:
            Version: Maximum candidate.

        Raises:
            EmptyCandidateSet: If ``candidates`` yields nothing.
            InvalidVersionFormat: If any candidate cannot be parsed.
        """

        best: Version | None = None
        for candidate in candidates:
            version = self.parse(candidate)
            if best is None or self.compare(version, best) is Ordering.GREATER:
                best = version
        if best is None:
            raise EmptyCandidateSet
        return best


__all__ = ["Ordering", "QualifierTier", "Version", "VersionLike", "VersionResolver"]
