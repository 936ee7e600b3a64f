"""
UTC-normalised millisecond-precision datetime helpers + SQLAlchemy type.

• DB format:  YYYY-MM-DD HH:MM:SS.fff   (23 characters)
• All values stored naive/UTC; all values returned aware/UTC.
• Fixed-width strings compare lexicographically in chronological order,
  so range filters work directly on the stored column.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy.types import String, TypeDecorator

logger = logging.getLogger(__name__)

DB_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
_DB_STR_LEN = 23  # 'YYYY-MM-DD HH:MM:SS.fff'


# ─────────────────────────────────────────────────────────────────────────────
# Public helpers
# ─────────────────────────────────────────────────────────────────────────────
def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime at millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def format_db_datetime(dt: datetime) -> str:
    """
    Convert *dt* to a UTC, millisecond-precision string suitable for DB storage.
    Sub-millisecond digits are truncated (not rounded).
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.strftime(DB_DATETIME_FORMAT)[:_DB_STR_LEN]


def parse_db_datetime(text: str) -> datetime:
    """
    Parse a DB datetime string **or** any ISO-8601 string and return an
    *aware* UTC datetime truncated to milliseconds.
    """
    text = text.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def parse_deadline(value: Any, default_tz: str = "UTC") -> datetime | None:
    """Coerce a deadline from the request boundary into an aware UTC datetime.

    Accepts ``datetime``, ``date`` and ISO-8601 strings (date or date-time,
    with optional ``Z``/offset). Naive values are interpreted in
    *default_tz*; a bare date means midnight at the start of that day.

    Anything else (legacy free-text such as ``"7 days"``, blanks) yields
    ``None``, i.e. "no deadline".
    """
    if value is None:
        return None

    tz = ZoneInfo(default_tz)
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            logger.warning("Ignoring unparseable deadline %r", value)
            return None
    else:
        logger.warning("Ignoring deadline of unsupported type %s", type(value).__name__)
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


# ─────────────────────────────────────────────────────────────────────────────
# SQLAlchemy integration
# ─────────────────────────────────────────────────────────────────────────────
class FormattedDateTime(TypeDecorator):
    """
    SQLAlchemy column type that stores millisecond-precision UTC strings and
    returns *aware* UTC `datetime` objects.
    """

    impl = String(_DB_STR_LEN)
    cache_ok = True

    # ────────────── outbound (Python → DB) ────────────────────────────────
    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return None
        if isinstance(value, datetime):
            return format_db_datetime(value)
        if isinstance(value, date):
            return format_db_datetime(datetime.combine(value, time.min, tzinfo=timezone.utc))
        if isinstance(value, str):
            return format_db_datetime(parse_db_datetime(value))
        raise TypeError(f"Unsupported type for FormattedDateTime: {type(value)}")

    # ────────────── inbound (DB → Python) ─────────────────────────────────
    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return None
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)
        if isinstance(value, str):
            try:
                return parse_db_datetime(value)
            except ValueError:
                # Legacy free-text values such as "7 days" read as no date.
                logger.warning("Ignoring unparseable stored datetime %r", value)
                return None
        raise TypeError(f"Unexpected DB value type: {type(value)}")


__all__ = [
    "DB_DATETIME_FORMAT",
    "FormattedDateTime",
    "format_db_datetime",
    "parse_db_datetime",
    "parse_deadline",
    "utcnow",
]
