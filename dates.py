"""Date helpers shared by the models, the access layer and the API.

All timestamps are stored as naive UTC datetimes.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 date or date-time string, raising ValueError when it isn't one."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return _to_naive_utc(datetime.fromisoformat(text))


def coerce_due_date(value: Any) -> Optional[datetime]:
    """
    Lenient due-date conversion.

    Accepts datetimes, dates, ISO-8601 strings and epoch milliseconds.
    Anything that can't be turned into a valid date-time becomes ``None``
    ("no due date") instead of an error.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return _to_naive_utc(value)

    if isinstance(value, date):
        return datetime.combine(value, time.min)

    # bool is an int subclass but never a timestamp
    if isinstance(value, bool):
        logger.debug("Ignoring boolean due date %r", value)
        return None

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            logger.debug("Ignoring out-of-range due date timestamp %r", value)
            return None

    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return parse_iso_datetime(value)
        except ValueError:
            logger.debug("Ignoring malformed due date %r", value)
            return None

    logger.debug("Ignoring due date of unsupported type %s", type(value).__name__)
    return None


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """First and last instant of ``day``, both inclusive."""
    return datetime.combine(day, time.min), datetime.combine(day, time.max)
