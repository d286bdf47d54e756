"""Attendance statistics over small in-memory record lists."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Callable, Iterable, Optional, Sequence

from ..common.datetime_utils import week_bounds
from ..common.validators import hhmm_to_minutes
from ..core.constants import PRESENCE_CHART_DAYS
from ..core.enums import CheckInType, PresenceStatus
from ..organizations.model import CheckInWindow
from .model import OnlineStatusRecord


def classify_check_in(hhmm: str, window: CheckInWindow) -> CheckInType:
    minutes = hhmm_to_minutes(hhmm)
    if minutes < hhmm_to_minutes(window.start_time):
        return CheckInType.EARLY
    if minutes > hhmm_to_minutes(window.end_time):
        return CheckInType.LATE
    return CheckInType.ON_TIME


def newest_first(records: Iterable[OnlineStatusRecord]) -> list[OnlineStatusRecord]:
    return sorted(records, key=lambda r: (r.check_in_date, r.check_in_time), reverse=True)


def present_count(records: Iterable[OnlineStatusRecord]) -> int:
    return sum(1 for r in records if r.status == PresenceStatus.PRESENT)


def attendance_rate(present: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(present / total * 100 + 0.5)


def current_streak(records: Iterable[OnlineStatusRecord]) -> int:
    """Consecutive present records counted from the newest one."""
    streak = 0
    for r in newest_first(records):
        if r.status != PresenceStatus.PRESENT:
            break
        streak += 1
    return streak


def longest_streak(records: Iterable[OnlineStatusRecord]) -> int:
    best = run = 0
    for r in newest_first(records):
        if r.status == PresenceStatus.PRESENT:
            run += 1
            best = max(best, run)
        else:
            run = 0
    return best


def punctuality(records: Sequence[OnlineStatusRecord]) -> dict:
    counts = {t: 0 for t in CheckInType}
    for r in records:
        counts[r.check_in_type] += 1
    return {
        "early": counts[CheckInType.EARLY],
        "onTime": counts[CheckInType.ON_TIME],
        "late": counts[CheckInType.LATE],
        "total": len(records),
    }


def streak_stats(records: Sequence[OnlineStatusRecord], *, days_tracked: Optional[int] = None) -> dict:
    present = present_count(records)
    tracked = len(records) if days_tracked is None else days_tracked
    return {
        "currentStreak": current_streak(records),
        "longestStreak": longest_streak(records),
        "totalDaysPresent": present,
        "totalDaysTracked": tracked,
        "attendanceRate": attendance_rate(present, tracked),
    }


def weekly_records(
    records: Iterable[OnlineStatusRecord],
    today: date,
    *,
    render: Callable[[OnlineStatusRecord], dict] = OnlineStatusRecord.to_dict,
) -> list[dict]:
    """Monday..Sunday buckets of the current week; today first, the rest by date."""
    monday, _ = week_bounds(today)
    days: dict[date, dict] = {}
    for i in range(7):
        d = monday + timedelta(days=i)
        days[d] = {
            "date": d.isoformat(),
            "dayName": d.strftime("%A"),
            "isToday": d == today,
            "records": [],
        }
    for r in records:
        bucket = days.get(r.check_in_date)
        if bucket is not None:
            bucket["records"].append(render(r))
    return sorted(days.values(), key=lambda b: (not b["isToday"], b["date"]))


def _average_hhmm(times: Sequence[str]) -> Optional[str]:
    if not times:
        return None
    avg = round(sum(hhmm_to_minutes(t) for t in times) / len(times))
    return f"{avg // 60:02d}:{avg % 60:02d}"


def _average_hours(records: Sequence[OnlineStatusRecord], total_developers: int) -> float:
    """Check-in clock hours of the day's records, averaged over all developers."""
    if total_developers <= 0:
        return 0.0
    total = sum(hhmm_to_minutes(r.check_in_time) for r in records) / 60
    return round(total / total_developers, 2)


def daily_presence(records: Iterable[OnlineStatusRecord], total_developers: int, today: date) -> list[dict]:
    """Present count per day for the last seven days, oldest first."""
    by_day: dict[date, list[OnlineStatusRecord]] = {}
    for r in records:
        by_day.setdefault(r.check_in_date, []).append(r)

    out = []
    for i in range(PRESENCE_CHART_DAYS - 1, -1, -1):
        d = today - timedelta(days=i)
        present = [r for r in by_day.get(d, []) if r.status == PresenceStatus.PRESENT]
        out.append(
            {
                "date": d.isoformat(),
                "onlineCount": len(present),
                "totalCount": total_developers,
                "averageHours": _average_hours(by_day.get(d, []), total_developers),
                "averageCheckInTime": _average_hhmm([r.check_in_time for r in present]),
            }
        )
    return out
