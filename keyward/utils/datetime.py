"""Datetime helpers.

Provides UTC timestamp helpers without using deprecated ``datetime.utcnow()``.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return current UTC time as a timezone-aware datetime.

    All timestamp columns are ``DateTime(timezone=True)`` and receive
    aware UTC values.
    """
    return datetime.now(UTC)
