# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk roster parsing, validation and templates."""

from src.domains.roster.ingestor import (
    HEADER_SYNONYMS,
    RosterIngestor,
    RosterRow,
    ValidatedRosterRow,
    build_template,
    map_headers,
    parse_roster,
)

__all__ = [
    "HEADER_SYNONYMS",
    "RosterIngestor",
    "RosterRow",
    "ValidatedRosterRow",
    "build_template",
    "map_headers",
    "parse_roster",
]
