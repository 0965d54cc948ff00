from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
import re

MONTHS = {
    'jan': 1,
    'feb': 2,
    'mar': 3,
    'apr': 4,
    'may': 5,
    'jun': 6,
    'jul': 7,
    'aug': 8,
    'sep': 9,
    'oct': 10,
    'nov': 11,
    'dec': 12,
}

ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
ISO_DATETIME = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")
MONTH_DAY = re.compile(r"^(\w{3,})\.?\s+(\d{1,2})$")
DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})\s+(\w{3,})\.?\s+(\d{4})$")
UNITS_AGO = re.compile(r"^(\d+)\+?\s*(hour|day|week|month)s?\s*ago$", re.I)
AGE_SHORT = re.compile(r"^(\d+)([dhw])$", re.I)


def to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _midnight(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def parse_posted_date(text: str | None, *, now: datetime | None = None) -> datetime | None:
    """Parse the date formats job boards and feeds hand us into naive UTC.

    Handles ISO dates/datetimes, RFC-822 feed dates (``pubDate``),
    ``"Sep 17"``, ``"17 Sep 2025"``, ``"3 days ago"``, ``"1d"``/``"12h"``/``"2w"``
    and ``today``/``yesterday``. Anything else gives ``None``.
    """
    now = to_naive_utc(now or datetime.now(timezone.utc))

    if not text:
        return None
    raw = text.strip()
    if not raw:
        return None
    lowered = raw.lower()

    if lowered in ("today", "just posted", "new"):
        return _midnight(now)
    if lowered == "yesterday":
        return _midnight(now - timedelta(days=1))

    m = ISO_DATE.match(raw)
    if m:
        year, month, day = map(int, m.groups())
        try:
            return datetime(year, month, day)
        except ValueError:
            return None

    if ISO_DATETIME.match(raw):
        try:
            return to_naive_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        except ValueError:
            pass

    # RFC-822, as used by RSS pubDate
    if "," in raw or re.search(r"\d{2}:\d{2}:\d{2}", raw):
        try:
            return to_naive_utc(parsedate_to_datetime(raw))
        except (TypeError, ValueError, IndexError):
            pass

    m = DAY_MONTH_YEAR.match(raw)
    if m:
        month = MONTHS.get(m.group(2).lower()[:3])
        if month is None:
            return None
        try:
            return datetime(int(m.group(3)), month, int(m.group(1)))
        except ValueError:
            return None

    m = MONTH_DAY.match(raw)
    if m:
        month = MONTHS.get(m.group(1).lower()[:3])
        day = int(m.group(2))
        if month is None:
            return None
        try:
            candidate = datetime(now.year, month, day)
        except ValueError:
            return None
        if candidate - now > timedelta(days=30):
            try:
                candidate = datetime(now.year - 1, month, day)
            except ValueError:
                return None
        return candidate

    m = UNITS_AGO.match(raw)
    if m:
        value = int(m.group(1))
        unit = m.group(2).lower()
        if unit == 'hour':
            return _midnight(now)
        if unit == 'day':
            return _midnight(now - timedelta(days=value))
        if unit == 'week':
            return _midnight(now - timedelta(weeks=value))
        return _midnight(now - timedelta(days=30 * value))

    m = AGE_SHORT.match(raw)
    if m:
        value = int(m.group(1))
        unit = m.group(2).lower()
        if unit == 'd':
            return _midnight(now - timedelta(days=value))
        if unit == 'w':
            return _midnight(now - timedelta(weeks=value))
        if unit == 'h':
            return _midnight(now)

    return None
