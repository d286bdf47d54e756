from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Optional

from ..common.datetime_utils import parse_iso_date
from ..core.exceptions import JiraApiError, ValidationError
from .client import JiraClient
from .jql import build_issues_jql, build_worklog_jql, project_jql, recent_issues_jql
from .worklogs import extract_worklogs

logger = logging.getLogger(__name__)

DEFAULT_ISSUE_LIMIT = 50


def _date_param(params: dict, name: str) -> date:
    raw = params.get(name)
    if not raw:
        raise ValidationError(f"{name} is required")
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"Invalid {name}. Use YYYY-MM-DD")


def _project_key(params: dict) -> str:
    key = (params.get("projectKey") or "").strip()
    if not key:
        raise ValidationError("projectKey is required")
    return key


def _limit(params: dict) -> int:
    try:
        return int(params.get("maxResults") or DEFAULT_ISSUE_LIMIT)
    except (TypeError, ValueError):
        raise ValidationError("Invalid maxResults")


def _test_connection(client: JiraClient, params: dict, today: date) -> dict:
    return {"success": True, "user": client.myself()}


def _get_worklogs(client: JiraClient, params: dict, today: date) -> dict:
    start = _date_param(params, "startDate")
    end = _date_param(params, "endDate")
    if start > end:
        raise ValidationError("startDate must not be after endDate")
    jql = build_worklog_jql(params.get("projectKeys"), today)
    logger.debug("Worklog JQL: %s", jql)
    issues = client.search_with_worklogs(jql)
    return {"worklogs": extract_worklogs(issues, start, end)}


def _get_users(client: JiraClient, params: dict, today: date) -> dict:
    users = client.users_search()
    return {"users": [u for u in users if u.get("active") and u.get("accountType") == "atlassian"]}


def _get_issues(client: JiraClient, params: dict, today: date) -> dict:
    issues = client.search_jql(
        build_issues_jql(params.get("projectKeys"), today),
        fields=("summary", "status", "assignee", "created", "updated"),
        max_results=_limit(params),
    )
    return {"issues": issues}


def _get_recent_issues(client: JiraClient, params: dict, today: date) -> dict:
    issues = client.search_jql(
        recent_issues_jql(today),
        fields=("summary", "status", "assignee", "created", "updated", "project"),
        max_results=_limit(params),
    )
    return {"issues": issues}


def _count(client: JiraClient, jql: str) -> int:
    return len(client.search_jql(jql, fields=("key",)))


def _get_project_issue_count(client: JiraClient, params: dict, today: date) -> dict:
    return {"total": _count(client, project_jql(_project_key(params)))}


def _get_project_done_issues_count(client: JiraClient, params: dict, today: date) -> dict:
    return {"total": _count(client, project_jql(_project_key(params), done=True))}


def project_stats(client: JiraClient, project_key: str) -> dict:
    total = _count(client, project_jql(project_key))
    done = _count(client, project_jql(project_key, done=True))
    progress = int(done / total * 100 + 0.5) if total else 0
    return {"totalIssues": total, "doneIssues": done, "progressPercentage": progress}


def _get_project_stats(client: JiraClient, params: dict, today: date) -> dict:
    return project_stats(client, _project_key(params))


def _get_projects(client: JiraClient, params: dict, today: date) -> dict:
    return {"projects": client.projects()}


ACTIONS: dict[str, Callable[[JiraClient, dict, date], dict]] = {
    "test-connection": _test_connection,
    "get-worklogs": _get_worklogs,
    "get-users": _get_users,
    "get-issues": _get_issues,
    "get-recent-issues": _get_recent_issues,
    "get-project-issue-count": _get_project_issue_count,
    "get-project-done-issues-count": _get_project_done_issues_count,
    "get-project-stats": _get_project_stats,
    "get-projects": _get_projects,
}


def dispatch_action(client: JiraClient, action: str, params: Optional[dict], *, today: Optional[date] = None) -> dict:
    handler = ACTIONS.get(action or "")
    if handler is None:
        raise ValidationError("Invalid action")
    return handler(client, params or {}, today or date.today())


def map_jira_error(exc: JiraApiError) -> tuple[dict[str, Any], int]:
    """Translate an upstream failure into (body, status) for the API response."""
    if exc.status == 401:
        return {"error": "Invalid credentials"}, 401
    if exc.status == 400:
        return {
            "error": "Bad Request - JQL query syntax error or invalid parameters.",
            "details": exc.details,
        }, 400
    if exc.status == 410:
        return {
            "error": "JQL query not supported. This might be due to unsupported fields or syntax.",
            "details": exc.details,
        }, 410
    return {"error": str(exc)}, 500
