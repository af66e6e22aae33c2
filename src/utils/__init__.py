# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Logging setup and UTC date helpers used across the service."""

from src.utils.datetime import compact_date, ensure_utc, format_period, utc_now
from src.utils.logging import bind_context, clear_context, setup_logging

__all__ = [
    "bind_context",
    "clear_context",
    "compact_date",
    "ensure_utc",
    "format_period",
    "setup_logging",
    "utc_now",
]
