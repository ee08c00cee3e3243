# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Archetype catalog models and payload codec."""

from __future__ import annotations

from .models import TAG_SEPARATOR, Catalog, CatalogEntry, dump_catalog, parse_catalog

__all__ = ["Catalog", "CatalogEntry", "TAG_SEPARATOR", "dump_catalog", "parse_catalog"]
