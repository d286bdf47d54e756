"""JQL builders.

Unbounded searches are always limited to issues updated in the last
six months.
"""
from __future__ import annotations

import calendar
from datetime import date
from typing import Optional, Sequence

from ..common.datetime_utils import format_date
from ..core.constants import JIRA_LOOKBACK_MONTHS


def months_ago(today: date, months: int) -> date:
    month_index = today.year * 12 + (today.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(today.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _scope(project_keys: Optional[Sequence[str]], today: date) -> str:
    keys = [k.strip() for k in (project_keys or []) if k and k.strip()]
    if keys:
        return "(" + " OR ".join(f"project = {_quote(k)}" for k in keys) + ")"
    return f'updated >= "{format_date(months_ago(today, JIRA_LOOKBACK_MONTHS))}"'


def build_worklog_jql(project_keys: Optional[Sequence[str]], today: date) -> str:
    return f"{_scope(project_keys, today)} ORDER BY updated DESC"


def build_issues_jql(project_keys: Optional[Sequence[str]], today: date) -> str:
    return build_worklog_jql(project_keys, today)


def recent_issues_jql(today: date) -> str:
    return build_worklog_jql(None, today)


def worklog_author_jql(account_id: str, start: date, end: date) -> str:
    return (
        f"worklogAuthor = {_quote(account_id)} "
        f'AND worklogDate >= "{format_date(start)}" AND worklogDate <= "{format_date(end)}" '
        "ORDER BY updated DESC"
    )


def project_jql(project_key: str, *, done: bool = False) -> str:
    jql = f"project = {_quote(project_key)}"
    if done:
        jql += " AND statusCategory = Done"
    return jql
