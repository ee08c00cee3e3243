# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Catalog metadata cache, remote sources and the metadata store."""

from __future__ import annotations

from .cache import MetadataCache, MetadataSnapshot
from .properties import PropertySet
from .remote import (
    DirectoryRemoteSource,
    OfflineRemoteSource,
    RemoteSource,
    UrlRemoteSource,
    remote_source_for,
)
from .single_flight import SingleFlight
from .store import NEVER, MetadataStore, MetadataWarning

__all__ = [
    "DirectoryRemoteSource",
    "MetadataCache",
    "MetadataSnapshot",
    "MetadataStore",
    "MetadataWarning",
    "NEVER",
    "OfflineRemoteSource",
    "PropertySet",
    "RemoteSource",
    "SingleFlight",
    "UrlRemoteSource",
    "remote_source_for",
]
