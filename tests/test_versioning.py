# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for version parsing, ordering and latest-version selection."""

from __future__ import annotations

import pytest

from archmeta.errors import EmptyCandidateSet, InvalidVersionFormat
from archmeta.versioning import Ordering, Version, VersionResolver


def test_semantically_equal_spellings_compare_equal() -> None:
    resolver = VersionResolver()

    assert resolver.compare("2.0", "2.0.0") is Ordering.EQUAL
    assert resolver.compare("2.00", "2.0") is Ordering.EQUAL
    assert Version("2.0") == Version("2.0.0")
    assert hash(Version("2.0")) == hash(Version("2.0.0"))
    assert Version("2.0").canonical == Version("2.00").canonical


def test_version_keeps_original_text() -> None:
    version = Version(" 2.0.0-SNAPSHOT ")

    assert str(version) == "2.0.0-SNAPSHOT"
    assert version.is_prerelease


def test_maven_qualifiers_sort_before_and_after_release() -> None:
    ordered = [
        "1.0.0-alpha2",
        "1.0.0-beta1",
        "1.0.0-M1",
        "1.0.0-RC1",
        "1.0.0-SNAPSHOT",
        "1.0.0",
        "1.0.0-sp1",
        "1.0.1",
        "1.10.0",
    ]

    parsed = [Version(text) for text in ordered]

    assert parsed == sorted(parsed)
    assert sorted(reversed(parsed)) == parsed


def test_final_and_ga_qualifiers_match_plain_release() -> None:
    assert Version("1.0.0.Final") == Version("1.0.0")
    assert Version("1.0.0-GA") == Version("1.0.0")


def test_compare_is_antisymmetric() -> None:
    resolver = VersionResolver()

    assert resolver.compare("1.2", "1.10") is Ordering.LESS
    assert resolver.compare("1.10", "1.2") is Ordering.GREATER
    assert resolver.compare(Version("3.0"), "2.9.9") is Ordering.GREATER


def test_compare_rejects_unparseable_input() -> None:
    resolver = VersionResolver()

    with pytest.raises(InvalidVersionFormat):
        resolver.compare("1.0", "not a version")


@pytest.mark.parametrize("text", ["", "   ", "latest", "1.0-bogus-qualifier-x"])
def test_invalid_versions_raise(text: str) -> None:
    with pytest.raises(InvalidVersionFormat) as excinfo:
        Version(text)

    assert isinstance(excinfo.value, ValueError)


def test_latest_returns_maximum() -> None:
    latest = VersionResolver().latest(["1.0.0", "2.0.0-M1", "2.0.0", "1.9.9"])

    assert str(latest) == "2.0.0"


def test_latest_resolves_ties_to_first_candidate() -> None:
    latest = VersionResolver().latest(["1.0", "2.0", "2.0.0", "2.00"])

    assert str(latest) == "2.0"


def test_latest_of_empty_candidates_raises() -> None:
    with pytest.raises(EmptyCandidateSet):
        VersionResolver().latest([])


def test_latest_propagates_invalid_candidate() -> None:
    with pytest.raises(InvalidVersionFormat):
        VersionResolver().latest(["1.0", "garbage"])


def test_milestone_is_distinct_from_beta() -> None:
    assert Version("2.0.0-M1") != Version("2.0.0-beta1")
    assert Version("2.0.0-beta1") < Version("2.0.0-M1") < Version("2.0.0-RC1")
    assert Version("2.0.0-m1") == Version("2.0.0-milestone1")
    assert Version("2.0.0-M1").canonical == "2-milestone1"


def test_unknown_qualifiers_are_ordered_pre_releases() -> None:
    resolver = VersionResolver()

    assert resolver.compare("2.0.0-foo", "2.0.0-alpha1") is Ordering.LESS
    assert resolver.compare("2.0.0-bar", "2.0.0-FOO") is Ordering.LESS
    assert resolver.compare("2.0.0-Foo", "2.0.0-foo") is Ordering.EQUAL
    assert resolver.compare("2.0.0-foo", "1.9.9") is Ordering.GREATER
    assert Version("2.0.0-foo").is_prerelease
    assert str(resolver.latest(["1.0.0", "2.0.0-foo"])) == "2.0.0-foo"
    assert str(resolver.latest(["2.0.0-foo", "2.0.0"])) == "2.0.0"


def test_leading_zeros_do_not_change_identity() -> None:
    assert Version("01.002.0") == Version("1.2")
    assert Version("1.02-RC01") == Version("1.2-rc1")
