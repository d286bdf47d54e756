from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import previous_period, resolve_date_range, week_bounds
from ..common.time_utils import round_hours
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..jira.client import JiraClient
from ..jira.jql import build_worklog_jql, recent_issues_jql, worklog_author_jql
from ..jira.worklogs import extract_worklogs
from ..organizations.model import JiraCredentials
from ..organizations.service import OrganizationService
from ..users.model import User
from ..users.repository import UserRepository
from . import aggregation, export, rewards

logger = logging.getLogger(__name__)

JiraClientFactory = Callable[[JiraCredentials], JiraClient]


def _by_author(worklogs: Sequence[dict], account_id: str) -> list[dict]:
    return [w for w in worklogs if (w.get("author") or {}).get("accountId") == account_id]


class WorklogService:
    """Use cases: developer dashboard, rewards and team worklog reports from Jira."""

    def __init__(
        self,
        users: UserRepository,
        organizations: OrganizationService,
        jira_client_factory: JiraClientFactory,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._users = users
        self._organizations = organizations
        self._jira = jira_client_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def today(self) -> date:
        return self._clock().date()

    def _require_user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _client_for(self, user: User) -> JiraClient:
        return self._jira(self._organizations.credentials_for_user(user.user_id))

    def _organization_worklogs(
        self,
        client: JiraClient,
        start: date,
        end: date,
        project_keys: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        today = self._clock().date()
        issues = client.search_with_worklogs(build_worklog_jql(project_keys, today))
        return extract_worklogs(issues, start, end)

    def developer_dashboard(self, user_id: int, *, date_range: str = "this-week") -> dict:
        user = self._require_user(user_id)
        account_id = user.atlassian_account_id
        if not account_id:
            raise ValidationError("No Atlassian account linked. Please complete Atlassian OAuth setup")
        client = self._client_for(user)

        now = self._clock()
        today = now.date()
        start, end = resolve_date_range(date_range, today)
        prev_start, prev_end = previous_period(start, end)

        issues = client.search_with_worklogs(worklog_author_jql(account_id, prev_start, end))
        current = _by_author(extract_worklogs(issues, start, end), account_id)
        previous = _by_author(extract_worklogs(issues, prev_start, prev_end), account_id)
        current.sort(key=lambda w: w.get("started") or "", reverse=True)

        recent_issues = client.search_jql(
            recent_issues_jql(today),
            fields=("summary", "status", "assignee", "created", "updated", "project"),
            max_results=20,
        )
        assigned = [
            i for i in recent_issues
            if ((i.get("fields") or {}).get("assignee") or {}).get("accountId") == account_id
        ]
        projects = aggregation.project_stats(assigned, client.projects())

        hours_now = sum(aggregation.worklog_hours(w) for w in current)
        hours_prev = sum(aggregation.worklog_hours(w) for w in previous)
        tasks_now = aggregation.distinct_tasks(current)
        tasks_prev = aggregation.distinct_tasks(previous)
        reviews_now = aggregation.count_code_reviews(current)
        reviews_prev = aggregation.count_code_reviews(previous)

        name = user.atlassian.display_name if user.atlassian and user.atlassian.display_name else user.display_name
        return {
            "range": {"preset": date_range, "startDate": start.isoformat(), "endDate": end.isoformat()},
            "personal": {
                "name": name,
                "role": "Developer",
                "avatar": user.atlassian.avatar_url if user.atlassian and user.atlassian.avatar_url else aggregation.initials(name),
                "joinDate": (user.created_at.date() if user.created_at else today).isoformat(),
                "currentStreak": aggregation.worklog_streak(current, today),
                "totalContributions": len(current),
            },
            "stats": {
                "totalHoursThisWeek": round_hours(hours_now),
                "totalHoursLastWeek": round_hours(hours_prev),
                "hoursChange": aggregation.change_percentage(hours_now, hours_prev),
                "tasksCompletedThisWeek": tasks_now,
                "tasksCompletedLastWeek": tasks_prev,
                "tasksChange": aggregation.change_percentage(tasks_now, tasks_prev),
                "codeReviews": reviews_now,
                "codeReviewsLastWeek": reviews_prev,
                "reviewsChange": aggregation.change_percentage(reviews_now, reviews_prev),
                "projectsActive": len(projects),
            },
            "projects": projects,
            "recentActivity": aggregation.recent_activity(current, assigned, now),
            "weeklyBreakdown": aggregation.daily_breakdown(current, start, end),
            "skills": aggregation.skills(current),
        }

    def _weekly_rewards(self, user: User) -> dict:
        client = self._client_for(user)
        start, end = week_bounds(self._clock().date())
        worklogs = self._organization_worklogs(client, start, end)
        ranked = rewards.rank_developers(aggregation.group_by_developer(worklogs), user.atlassian_account_id)
        return {
            "week": {"startDate": start.isoformat(), "endDate": end.isoformat()},
            "rankedDevelopers": ranked,
            "weeklyStats": rewards.weekly_stats(ranked),
        }

    def developer_rewards(self, user_id: int) -> dict:
        return self._weekly_rewards(self._require_user(user_id))

    def manager_rewards(self, user_id: int) -> dict:
        user = self._require_user(user_id)
        if user.role not in (Role.MANAGER, Role.ADMIN):
            raise AuthorizationError("Forbidden")
        return self._weekly_rewards(user)

    def _manager_worklogs(
        self, user_id: int, start: date, end: date, project_keys: Optional[Sequence[str]]
    ) -> list[dict]:
        user = self._require_user(user_id)
        if user.role not in (Role.MANAGER, Role.ADMIN):
            raise AuthorizationError("Forbidden")
        if start > end:
            raise ValidationError("startDate must not be after endDate")
        return self._organization_worklogs(self._client_for(user), start, end, project_keys)

    def team_worklogs(
        self,
        user_id: int,
        *,
        start: date,
        end: date,
        project_keys: Optional[Sequence[str]] = None,
    ) -> dict:
        worklogs = self._manager_worklogs(user_id, start, end, project_keys)
        return {
            "range": {"startDate": start.isoformat(), "endDate": end.isoformat()},
            "summary": aggregation.team_summary(worklogs, self._clock()),
            "dailyBreakdown": aggregation.daily_breakdown(worklogs, start, end),
            "worklogs": worklogs,
        }

    def export_worklogs(
        self,
        user_id: int,
        *,
        start: date,
        end: date,
        project_keys: Optional[Sequence[str]] = None,
        fmt: str = "csv",
        include_individual_reports: bool = False,
    ) -> tuple[bytes, str, str]:
        """Return (content, mimetype, filename) for the team worklog export."""
        if fmt not in ("csv", "xlsx"):
            raise ValidationError("Invalid format. Use csv or xlsx")
        worklogs = self._manager_worklogs(user_id, start, end, project_keys)
        filename = f"worklogs_{start.isoformat()}_{end.isoformat()}.{fmt}"
        logger.info("Exporting %s worklogs as %s", len(worklogs), fmt)
        if fmt == "xlsx":
            content = export.to_xlsx_bytes(worklogs, include_individual_reports=include_individual_reports)
            return content, export.XLSX_MIMETYPE, filename
        return export.to_csv_bytes(export.export_rows(worklogs)), "text/csv", filename
