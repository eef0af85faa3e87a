from __future__ import annotations

from datetime import date, datetime, timezone
import re

DATE_ONLY = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


def utcnow() -> datetime:
    """Naive UTC now; every timestamp in the store is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_timestamp(value) -> datetime | None:
    """Parse sitemap ``lastmod`` / payload timestamps.

    Accepts datetimes, ISO-8601 strings (with ``Z`` or an offset) and bare
    ``YYYY-MM-DD`` dates. Anything unparseable yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raw = str(value).strip()
    if not raw:
        return None

    m = DATE_ONLY.match(raw)
    if m:
        year, month, day = map(int, m.groups())
        try:
            return datetime(year, month, day)
        except ValueError:
            return None

    try:
        return to_naive_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        return None


def parse_date(value) -> date | None:
    """Deadline fields arrive either as dates or full timestamps."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    dt = parse_timestamp(value)
    return dt.date() if dt else None
