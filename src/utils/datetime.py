# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""UTC time helpers and the date formats used in application records.

Every timestamp the service writes is aware and in UTC. SQLite returns
naive values on read, which ``ensure_utc`` reattaches to UTC.
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize ``dt`` to aware UTC, treating naive values as UTC already."""
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)


def compact_date(dt: datetime | date) -> str:
    """``YYYYMMDD``, as used in application numbers (``APP-20250914-0001``)."""
    return dt.strftime("%Y%m%d")


def format_period(start: datetime | date | None, end: datetime | date | None) -> str | None:
    """Schedule period for display, e.g. ``2025.09.14~2025.10.14``.

    Returns None unless both ends are known.
    """
    if start is None or end is None:
        return None
    return f"{start:%Y.%m.%d}~{end:%Y.%m.%d}"
