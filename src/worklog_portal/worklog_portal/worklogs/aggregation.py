"""Reshape flattened Jira worklogs into dashboard numbers.

All inputs are the rows produced by `jira.worklogs.extract_worklogs`; dates
are compared on the UTC day of `started`.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import parse_jira_datetime, utc_date_of
from ..common.time_utils import round_hours, seconds_to_hours
from ..core.constants import RECENT_ACTIVITY_LIMIT, WEEKLY_TARGET_HOURS

SKILL_KEYWORDS = {
    "react": ("react", "jsx", "component"),
    "typescript": ("typescript", "ts"),
    "node": ("node", "nodejs", "express"),
    "css": ("css", "scss", "sass", "styling"),
    "git": ("git", "commit", "merge", "branch"),
}


def worklog_hours(worklog: dict) -> float:
    return seconds_to_hours(float(worklog.get("timeSpentSeconds") or 0))


def _text(worklog: dict) -> str:
    comment = worklog.get("comment") if isinstance(worklog.get("comment"), str) else ""
    summary = worklog.get("summary") if isinstance(worklog.get("summary"), str) else ""
    return f"{comment} {summary}".lower()


def author_key(worklog: dict) -> str:
    author = worklog.get("author") or {}
    return author.get("accountId") or author.get("displayName") or "unknown"


def initials(name: str) -> str:
    return "".join(part[:1] for part in (name or "").split()).upper()[:2]


def format_relative(value: Optional[str], now: datetime) -> str:
    """'Just now', '3 hours ago', '2 days ago', else the date."""
    if not value:
        return "Never"
    ts = parse_jira_datetime(value)
    hours = int((now - ts).total_seconds() // 3600)
    if hours < 1:
        return "Just now"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = hours // 24
    if days < 7:
        return f"{days} day{'s' if days > 1 else ''} ago"
    return ts.date().isoformat()


def productivity(hours: float, target: float = WEEKLY_TARGET_HOURS) -> float:
    """Share of the weekly target, capped to 0..100 and rounded to 2 dp."""
    if target <= 0:
        return 0.0
    return round(min(100.0, max(0.0, hours / target * 100)), 2)


def group_by_developer(worklogs: Iterable[dict]) -> list[dict]:
    """Per-author hours and distinct tasks, most hours first."""
    devs: dict[str, dict] = {}
    for w in worklogs:
        author = w.get("author") or {}
        key = author_key(w)
        dev = devs.get(key)
        if dev is None:
            dev = devs[key] = {
                "id": author.get("accountId") or key,
                "name": author.get("displayName") or "Unknown Developer",
                "email": author.get("emailAddress"),
                "hours": 0.0,
                "tasks": set(),
                "lastActive": None,
                "worklogs": [],
            }
        dev["hours"] += worklog_hours(w)
        if w.get("issueKey"):
            dev["tasks"].add(w["issueKey"])
        dev["worklogs"].append(w)
        started = w.get("started")
        if started and (dev["lastActive"] is None or parse_jira_datetime(started) > parse_jira_datetime(dev["lastActive"])):
            dev["lastActive"] = started

    out = []
    for dev in devs.values():
        out.append({**dev, "hours": round(dev["hours"], 2), "tasks": len(dev["tasks"])})
    out.sort(key=lambda d: d["hours"], reverse=True)
    return out


def team_summary(worklogs: Sequence[dict], now: datetime) -> dict:
    developers = []
    for dev in group_by_developer(worklogs):
        developers.append(
            {
                "id": dev["id"],
                "name": dev["name"],
                "email": dev["email"],
                "avatar": initials(dev["name"]),
                "hours": dev["hours"],
                "tasks": dev["tasks"],
                "completed": dev["tasks"],
                "productivity": productivity(dev["hours"]),
                "lastActive": format_relative(dev["lastActive"], now),
                "worklogCount": len(dev["worklogs"]),
            }
        )
    total = round(sum(worklog_hours(w) for w in worklogs), 2)
    return {
        "developers": developers,
        "totalHours": total,
        "totalWorklogs": len(worklogs),
        "totalDevelopers": len(developers),
    }


def daily_breakdown(worklogs: Iterable[dict], start: date, end: date) -> list[dict]:
    by_day: dict[date, list[dict]] = {}
    for w in worklogs:
        if w.get("started"):
            by_day.setdefault(utc_date_of(w["started"]), []).append(w)

    out = []
    d = start
    while d <= end:
        day_logs = by_day.get(d, [])
        out.append(
            {
                "day": d.strftime("%a"),
                "date": d.isoformat(),
                "hours": round_hours(sum(worklog_hours(w) for w in day_logs)),
                "tasks": len({w.get("issueKey") for w in day_logs}),
            }
        )
        d += timedelta(days=1)
    return out


def project_stats(issues: Iterable[dict], projects: Iterable[dict]) -> list[dict]:
    """Done / in-progress counts per known project for the given issues."""
    known = {p.get("key"): p for p in projects if p.get("key")}
    stats: dict[str, dict] = {}
    for issue in issues:
        fields = issue.get("fields") or {}
        key = (fields.get("project") or {}).get("key")
        if key not in known:
            continue
        row = stats.get(key)
        if row is None:
            project = known[key]
            row = stats[key] = {
                "id": project.get("id"),
                "name": project.get("name"),
                "key": key,
                "role": "Developer",
                "tasksCompleted": 0,
                "tasksInProgress": 0,
                "status": "Active",
            }
        if (fields.get("status") or {}).get("name") == "Done":
            row["tasksCompleted"] += 1
        else:
            row["tasksInProgress"] += 1
    return list(stats.values())


def recent_activity(worklogs: Sequence[dict], issues: Sequence[dict], now: datetime) -> list[dict]:
    """Latest logged work and started issues, newest first."""
    events: list[tuple[datetime, dict]] = []
    for w in worklogs[:RECENT_ACTIVITY_LIMIT]:
        if not w.get("started"):
            continue
        events.append(
            (
                parse_jira_datetime(w["started"]),
                {
                    "id": f"worklog-{w.get('id')}",
                    "type": "task_completed",
                    "project": (w.get("issueKey") or "").split("-")[0],
                    "title": w.get("summary") or "",
                    "timestamp": format_relative(w["started"], now),
                    "hours": round_hours(worklog_hours(w)),
                },
            )
        )
    for issue in issues[:5]:
        fields = issue.get("fields") or {}
        if not fields.get("created"):
            continue
        events.append(
            (
                parse_jira_datetime(fields["created"]),
                {
                    "id": f"issue-{issue.get('id')}",
                    "type": "task_started",
                    "project": (issue.get("key") or "").split("-")[0],
                    "title": fields.get("summary") or "Untitled",
                    "timestamp": format_relative(fields["created"], now),
                    "hours": 0,
                },
            )
        )
    events.sort(key=lambda e: e[0], reverse=True)
    return [e[1] for e in events[:RECENT_ACTIVITY_LIMIT]]


def skills(worklogs: Iterable[dict]) -> list[dict]:
    counts: dict[str, int] = {}
    for w in worklogs:
        text = _text(w)
        for skill, keywords in SKILL_KEYWORDS.items():
            if any(k in text for k in keywords):
                counts[skill] = counts.get(skill, 0) + 1
    return [
        {"name": name.capitalize(), "level": min(100, n * 10), "projects": min(5, n)}
        for name, n in counts.items()
    ]


def count_code_reviews(worklogs: Iterable[dict]) -> int:
    return sum(1 for w in worklogs if "review" in _text(w))


def distinct_tasks(worklogs: Iterable[dict]) -> int:
    return len({w.get("issueKey") for w in worklogs if w.get("issueKey")})


def change_percentage(current: float, previous: float) -> str:
    if previous == 0:
        return "+100%" if current > 0 else "0%"
    change = (current - previous) / previous * 100
    return f"+{change:.1f}%" if change > 0 else f"{change:.1f}%"


def worklog_streak(worklogs: Iterable[dict], today: date) -> int:
    """Consecutive days with logged work ending today."""
    days = {utc_date_of(w["started"]) for w in worklogs if w.get("started")}
    streak = 0
    d = today
    while d in days:
        streak += 1
        d -= timedelta(days=1)
    return streak
