# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Immutable models describing archetype catalog entries."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_serializer, field_validator

from ..errors import CorruptCatalog
from ..versioning import Version

TAG_SEPARATOR: Final[str] = ","


class CatalogEntry(BaseModel):
    """Describe one project template published in the catalog.

    Attributes:
        artifact_id: Artifact identifier of the template.
        version: Template version text as published.
        name: Display name.
        summary: One-line description.
        tags: Tags in declaration order.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    artifact_id: str = Field(alias="artifactId", min_length=1)
    version: str = Field(min_length=1)
    name: str
    summary: str = ""
    tags: tuple[str, ...] = ()

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: object) -> object:
        """Accept tags either as a comma-joined string or as a sequence."""

        if isinstance(value, str):
            return tuple(tag.strip() for tag in value.split(TAG_SEPARATOR) if tag.strip())
        return value

    @field_validator("tags")
    @classmethod
    def _normalise_tags(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Strip tags, drop blanks and reject tags containing the separator."""

        for tag in value:
            if TAG_SEPARATOR in tag:
                raise ValueError(f"tag {tag!r} must not contain {TAG_SEPARATOR!r}")
        return tuple(tag.strip() for tag in value if tag.strip())

    @field_serializer("tags")
    def _join_tags(self, value: tuple[str, ...]) -> str:
        return TAG_SEPARATOR.join(value)


_ENTRIES_ADAPTER: Final[TypeAdapter[list[CatalogEntry]]] = TypeAdapter(list[CatalogEntry])


@dataclass(frozen=True, slots=True)
class Catalog:
    """Ordered catalog entries associated with exactly one version."""

    version: Version
    entries: tuple[CatalogEntry, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def by_artifact(self, artifact_id: str) -> tuple[CatalogEntry, ...]:
        """Return every entry published for ``artifact_id`` in catalog order."""

        return tuple(entry for entry in self.entries if entry.artifact_id == artifact_id)


def parse_catalog(payload: bytes | str, version: Version) -> Catalog:
    """Parse a JSON catalog payload.

    Args:
        payload: JSON document holding a list of entry objects.
        version: Version the catalog belongs to.

    Returns:
        Catalog: Parsed catalog with entries in payload order.

    Raises:
        CorruptCatalog: If the payload is not a JSON list of valid entries.
    """

    try:
        entries = _ENTRIES_ADAPTER.validate_json(payload)
    except ValidationError as exc:
        raise CorruptCatalog(f"Catalog for {version} is malformed: {exc.error_count()} error(s)") from exc
    return Catalog(version=version, entries=tuple(entries))


def dump_catalog(entries: Catalog | Sequence[CatalogEntry]) -> bytes:
    """Return ``entries`` encoded as the JSON catalog payload."""

    items = list(entries.entries if isinstance(entries, Catalog) else entries)
    return _ENTRIES_ADAPTER.dump_json(items, by_alias=True, indent=2)


__all__ = ["Catalog", "CatalogEntry", "TAG_SEPARATOR", "dump_catalog", "parse_catalog"]
