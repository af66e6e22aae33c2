# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""File storage for uploaded roster spreadsheets."""

from src.infrastructure.storage.local import (
    LocalRosterFileStorage,
    RosterFileStorage,
    StorageError,
)

__all__ = [
    "LocalRosterFileStorage",
    "RosterFileStorage",
    "StorageError",
]
