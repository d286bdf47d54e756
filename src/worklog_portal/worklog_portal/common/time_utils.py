"""Hour/second formatting used by worklog views."""
from __future__ import annotations

import re

_HOURS_RE = re.compile(r"(\d+)h")
_MINUTES_RE = re.compile(r"(\d+)m")


def format_hours(hours: float) -> str:
    """11.87 -> '11h52m', 2.0 -> '2h'."""
    if hours == 0:
        return "0h"
    whole = int(hours)
    minutes = round((hours - whole) * 60)
    if minutes == 60:
        whole, minutes = whole + 1, 0
    if minutes == 0:
        return f"{whole}h"
    return f"{whole}h{minutes:02d}m"


def round_hours(hours: float) -> int:
    # half-up, like the dashboard cards expect (2.5 -> 3)
    return int(hours + 0.5) if hours >= 0 else -int(-hours + 0.5)


def format_hours_for_stats(hours: float) -> str:
    if hours == 0:
        return "0"
    if float(hours).is_integer():
        return str(int(hours))
    return f"{hours:.1f}"


def parse_time_spent(time_spent: str) -> float:
    """Jira 'timeSpent' strings ('1h 30m', '45m') to decimal hours."""
    if not time_spent:
        return 0.0
    total = 0.0
    h = _HOURS_RE.search(time_spent)
    m = _MINUTES_RE.search(time_spent)
    if h:
        total += int(h.group(1))
    if m:
        total += int(m.group(1)) / 60
    return total


def seconds_to_hours(seconds: float) -> float:
    return seconds / 3600


def hours_to_seconds(hours: float) -> float:
    return hours * 3600


def format_time_from_seconds(seconds: int) -> str:
    if seconds == 0:
        return "0m"
    hours = int(seconds // 3600)
    minutes = round((seconds % 3600) / 60)
    if minutes == 60:
        hours, minutes = hours + 1, 0
    if hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h{minutes:02d}m"
