from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple

_OFFSET_RE = re.compile(r"^(?:UTC|GMT)\s*(?:([+-])(\d{1,2})(?::?(\d{2}))?)?$", re.IGNORECASE)
_COMPACT_TZ_RE = re.compile(r"([+-]\d{2})(\d{2})$")


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local(tz: Optional[timezone] = None) -> datetime:
    """Current time, in `tz` when given.

    Note: Wrapped so tests can patch/mocked easier.
    """
    if tz is None:
        return datetime.now()
    return datetime.now(tz)


def format_date(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def format_hhmm(dt: datetime) -> str:
    return dt.strftime("%H:%M")


def days_ago(today: date, days: int) -> date:
    return today - timedelta(days=days)


def week_bounds(today: date) -> Tuple[date, date]:
    """Monday..Sunday of the week containing `today`."""
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)


def resolve_date_range(preset: str, today: date) -> Tuple[date, date]:
    """Translate a dashboard range preset into an inclusive (start, end)."""
    if preset == "this-week":
        start, _ = week_bounds(today)
        return start, today
    if preset == "last-week":
        start, _ = week_bounds(today)
        start = start - timedelta(days=7)
        return start, start + timedelta(days=6)
    if preset == "this-month":
        return today.replace(day=1), today
    return today - timedelta(days=7), today


def previous_period(start: date, end: date) -> Tuple[date, date]:
    """The period of equal length ending the day before `start`."""
    length = (end - start).days + 1
    prev_end = start - timedelta(days=1)
    return prev_end - timedelta(days=length - 1), prev_end


def parse_utc_offset(value: str) -> Optional[timezone]:
    """Parse labels like 'UTC+3', 'UTC-05:30' or 'UTC' into a fixed timezone.

    Returns None when the label is not an offset (e.g. 'Europe/Kyiv').
    """
    m = _OFFSET_RE.match((value or "").strip())
    if not m:
        return None
    sign, hours, minutes = m.groups()
    if not sign:
        return timezone.utc
    delta = timedelta(hours=int(hours), minutes=int(minutes or 0))
    if delta >= timedelta(hours=24):
        return None
    return timezone(-delta if sign == "-" else delta)


def parse_jira_datetime(value: str) -> datetime:
    """Parse Jira timestamps such as '2024-01-15T10:00:00.000+0000'."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    value = _COMPACT_TZ_RE.sub(r"\1:\2", value)
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def utc_date_of(value: str) -> date:
    return parse_jira_datetime(value).astimezone(timezone.utc).date()
