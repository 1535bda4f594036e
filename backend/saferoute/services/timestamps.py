from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from dateutil import parser as date_parser

from saferoute import settings

SENTINEL = "—"

# Below this a bare number is taken as UNIX seconds, at or above as milliseconds.
MILLIS_THRESHOLD = 10**12

# Missing date parts in free-form strings ("March 2024") fill from here, not from today.
_PARSE_DEFAULT = datetime(1970, 1, 1)

# Browser Date.toString(): "Fri Mar 15 2024 08:30:00 GMT+0800 (Philippine Standard Time)"
_ZONE_NAME_SUFFIX = re.compile(r"\s*\([^)]*\)\s*$")
_GMT_OFFSET = re.compile(r"\b(?:GMT|UTC)(?=[+-]\d)")


def _from_number(value: Any) -> int:
    n = float(value)
    if n != n or n in (float("inf"), float("-inf")):
        return 0
    return int(n * 1000) if n < MILLIS_THRESHOLD else int(n)


def _seconds_parts(value: Any) -> Optional[tuple[Any, Any]]:
    """Pull (seconds, nanoseconds) out of a store-native timestamp, dict or object shaped."""
    if isinstance(value, Mapping):
        if "seconds" not in value:
            return None
        return value.get("seconds"), value.get("nanoseconds") or 0
    seconds = getattr(value, "seconds", None)
    if seconds is None:
        return None
    return seconds, getattr(value, "nanoseconds", 0) or 0


def _parse_ts(value: str) -> Optional[datetime]:
    """
    ISO8601 first (with/without 'Z'); anything else goes through dateutil.
    Returns an aware datetime or None if the string is not a date.

    Naive ISO dates are UTC midnight; other naive strings are wall-clock time in
    the configured zone.
    """
    s = value.strip()
    if not s:
        return None
    iso = s[:-1] if s.endswith("Z") else s
    try:
        dt = datetime.fromisoformat(iso)
    except ValueError:
        dt = _parse_free_form(s)
        if dt is None:
            return None
    else:
        if dt.tzinfo is None and len(iso) <= 10:
            return dt.replace(tzinfo=timezone.utc)
    return dt if dt.tzinfo else dt.replace(tzinfo=settings.local_zone())


def _parse_free_form(s: str) -> Optional[datetime]:
    s = _ZONE_NAME_SUFFIX.sub("", s)
    # dateutil reads "GMT+0800" POSIX-style (inverted); a bare offset means what it says
    s = _GMT_OFFSET.sub("", s)
    try:
        return date_parser.parse(s, default=_PARSE_DEFAULT)
    except (ValueError, OverflowError):
        return None


def to_epoch_millis(value: Any) -> int:
    """
    Normalize any stored datetime encoding to epoch milliseconds.

    Numbers (int/float/Decimal) below 1e12 are seconds, otherwise millis;
    {seconds, nanoseconds} shapes are converted exactly; naive datetimes are UTC;
    strings go through _parse_ts. Anything unknown or unparseable is 0, which
    sorts as the oldest possible report.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float, Decimal)):
        return _from_number(value)
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)
    if isinstance(value, str):
        dt = _parse_ts(value)
        return int(dt.timestamp() * 1000) if dt else 0

    parts = _seconds_parts(value)
    if parts is None:
        return 0
    seconds, nanos = parts
    try:
        return int(seconds) * 1000 + int(nanos) // 1_000_000
    except (TypeError, ValueError):
        return 0


def _local(ms: int) -> datetime:
    zone = settings.local_zone()
    try:
        return datetime.fromtimestamp(ms / 1000.0, tz=zone)
    except (OverflowError, OSError, ValueError):
        return datetime.fromtimestamp(0, tz=zone)


def month_key(value: Any) -> str:
    """'YYYY-MM' in the configured zone; unknown timestamps project from the epoch."""
    dt = _local(to_epoch_millis(value))
    return f"{dt.year}-{dt.month:02d}"


def date_only(value: Any) -> str:
    ms = to_epoch_millis(value)
    if not ms:
        return SENTINEL
    dt = _local(ms)
    return f"{dt.month}/{dt.day:02d}/{dt.year}"


def time_only(value: Any) -> str:
    ms = to_epoch_millis(value)
    if not ms:
        return ""
    return _local(ms).strftime("%I:%M %p")
