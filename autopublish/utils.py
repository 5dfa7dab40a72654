"""
Shared utility functions used throughout the auto-publish codebase.

Provides:
    - utc_now(): Timezone-aware UTC datetime (for Supabase TIMESTAMPTZ columns)
    - ensure_utc(dt): Convert any datetime to timezone-aware UTC
    - parse_timestamp(value): Lenient timestamp parsing, ``None`` on failure
    - to_iso_z(dt): ISO-8601 UTC string with millisecond precision and ``Z``
    - elapsed_ms(start): Milliseconds elapsed since a ``time.monotonic()`` mark
"""

import math
import time
from datetime import datetime, timezone
from typing import Any, Optional


# ===========================================================================
# TIMEZONE UTILITIES
# All timestamps stored in Supabase must be timezone-aware (TIMESTAMPTZ)
# ===========================================================================


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    ALWAYS use this instead of ``datetime.now()`` or ``datetime.utcnow()``
    for Supabase compatibility (TIMESTAMPTZ columns).

    Returns:
        Timezone-aware datetime in UTC.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure a datetime is timezone-aware in UTC.

    Args:
        dt: Datetime to convert (naive or aware).

    Returns:
        Timezone-aware datetime in UTC.
    """
    if dt.tzinfo is None:
        # Assume naive datetime is UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# ===========================================================================
# TIMESTAMP PARSING
# Article date columns arrive as ISO strings, datetimes or epoch numbers
# depending on which client last wrote the row.
# ===========================================================================


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp into a timezone-aware UTC datetime.

    Accepted inputs:
    - ``datetime``: normalised with :func:`ensure_utc`.
    - ``str``: ISO-8601, a trailing ``Z`` is accepted. Blank strings
      are unresolved.
    - ``int`` / ``float``: epoch **milliseconds**.

    Never raises. Anything unparseable (including ``bool``, NaN and
    out-of-range values) yields ``None``.

    Args:
        value: Raw column value.

    Returns:
        UTC datetime, or ``None`` if the value cannot be resolved.
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, datetime):
            return ensure_utc(value)

        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                return None
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)

        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            return ensure_utc(datetime.fromisoformat(text))
    except (ValueError, TypeError, OverflowError, OSError):
        return None

    return None


def to_iso_z(dt: datetime) -> str:
    """
    Format a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC.

    This is the format Airtable date fields round-trip without
    reformatting.

    Args:
        dt: Datetime to format (naive values are treated as UTC).

    Returns:
        ISO-8601 string with millisecond precision and a ``Z`` suffix.
    """
    return ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def elapsed_ms(start: float) -> int:
    """Return whole milliseconds elapsed since a ``time.monotonic()`` value."""
    return int((time.monotonic() - start) * 1000)
