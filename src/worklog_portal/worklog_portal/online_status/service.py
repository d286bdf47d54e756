from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional

from ..common.datetime_utils import days_ago, format_hhmm, now_local, parse_utc_offset
from ..common.validators import require_max_length
from ..core.constants import (
    DESCRIPTION_MAX_LENGTH,
    EDIT_REASON_MAX_LENGTH,
    HISTORY_DAYS,
    PRESENCE_CHART_DAYS,
    RECENT_ACTIVITY_LIMIT,
)
from ..core.enums import Mood, PresenceStatus, Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..organizations.model import CheckInWindow, Organization
from ..organizations.repository import OrganizationRepository
from ..users.model import User
from ..users.repository import UserRepository
from . import stats
from .model import OnlineStatusRecord
from .repository import OnlineStatusRepository

logger = logging.getLogger(__name__)


def _parse_mood(value: Optional[str]) -> Mood:
    if not value:
        return Mood.PRESENT
    try:
        return Mood(value)
    except ValueError:
        raise ValidationError("Invalid mood")


def _parse_status(value: Optional[str]) -> PresenceStatus:
    try:
        return PresenceStatus(value)
    except ValueError:
        raise ValidationError("Invalid status")


def user_summary(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {
        "id": user.user_id,
        "name": user.display_name,
        "email": user.email,
        "atlassianAccountId": user.atlassian_account_id,
    }


class OnlineStatusService:
    """Use cases: daily check-in and attendance views for developers and managers."""

    def __init__(
        self,
        records: OnlineStatusRepository,
        users: UserRepository,
        organizations: OrganizationRepository,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._records = records
        self._users = users
        self._organizations = organizations
        self._clock = clock or now_local

    def _local_now(self, window: CheckInWindow, now: Optional[datetime] = None) -> datetime:
        now = now or self._clock()
        tz = parse_utc_offset(window.timezone)
        if tz is not None and now.tzinfo is not None:
            return now.astimezone(tz)
        if tz is not None:
            # naive clock values are server local time
            return now.astimezone().astimezone(tz)
        return now

    def _require_user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _org_for(self, user: User) -> Organization:
        if user.organization_id is None:
            raise ValidationError("User not assigned to an organization")
        org = self._organizations.get_by_id(user.organization_id)
        if not org:
            raise NotFoundError("Organization not found")
        return org

    def _require_manager(self, user_id: int) -> tuple[User, Organization]:
        user = self._require_user(user_id)
        if user.role not in (Role.MANAGER, Role.ADMIN):
            raise AuthorizationError("Forbidden")
        if user.organization_id is None:
            raise ValidationError("User is not associated with an organization")
        return user, self._org_for(user)

    def check_in(
        self,
        user_id: int,
        *,
        mood: Optional[str] = None,
        description: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OnlineStatusRecord:
        user = self._require_user(user_id)
        org = self._org_for(user)
        window = org.effective_check_in_window
        description = require_max_length((description or "").strip(), "Description", DESCRIPTION_MAX_LENGTH)
        mood_value = _parse_mood(mood)

        local = self._local_now(window, now)
        today = local.date()
        existing = self._records.get_for_user_and_date(user.user_id, today)
        if existing:
            raise ConflictError("Already checked in today", payload={"checkIn": existing.to_dict()})

        hhmm = format_hhmm(local)
        record = OnlineStatusRecord(
            record_id=0,
            user_id=user.user_id,
            organization_id=org.organization_id,
            atlassian_account_id=user.atlassian_account_id,
            status=PresenceStatus.PRESENT,
            mood=mood_value,
            description=description or "",
            check_in_date=today,
            check_in_time=hhmm,
            check_in_type=stats.classify_check_in(hhmm, window),
            window=window,
            created_at=local.replace(tzinfo=None),
        )
        try:
            record_id = self._records.create(record)
        except ConflictError:
            # a concurrent request inserted first
            existing = self._records.get_for_user_and_date(user.user_id, today)
            payload = {"checkIn": existing.to_dict()} if existing else {}
            raise ConflictError("Already checked in today", payload=payload)
        record = replace(record, record_id=record_id)
        logger.info("Check-in user_id=%s date=%s type=%s", user.user_id, today, record.check_in_type.value)
        return record

    def developer_overview(self, user_id: int, *, target_date: Optional[date] = None) -> dict:
        user = self._require_user(user_id)
        org = self._org_for(user)
        window = org.effective_check_in_window
        today = self._local_now(window).date()
        target = target_date or today

        todays = self._records.get_for_user_and_date(user.user_id, target)
        history = stats.newest_first(
            self._records.list_for_user(user.user_id, since=days_ago(today, HISTORY_DAYS), limit=HISTORY_DAYS)
        )

        return {
            "todayStatus": todays.to_dict() if todays else None,
            "stats": stats.streak_stats(history),
            "punctualityStats": stats.punctuality(history),
            "organizationCheckInWindow": window.to_dict(),
            "recentActivity": [r.to_dict() for r in history[:RECENT_ACTIVITY_LIMIT]],
        }

    def manager_overview(
        self,
        manager_id: int,
        *,
        target_date: Optional[date] = None,
        user_id: Optional[int] = None,
    ) -> dict:
        _, org = self._require_manager(manager_id)
        window = org.effective_check_in_window
        today = self._local_now(window).date()
        target = target_date or today

        developers = list(self._users.list_by_organization(org.organization_id, role=Role.DEVELOPER))
        members = {u.user_id: u for u in self._users.list_by_organization(org.organization_id)}

        def render(r: OnlineStatusRecord) -> dict:
            row = r.to_dict()
            row["user"] = user_summary(members.get(r.user_id))
            return row

        recent = stats.newest_first(
            self._records.list_for_organization(
                org.organization_id, since=days_ago(today, HISTORY_DAYS), user_id=user_id
            )
        )
        for_target = list(self._records.list_for_organization(org.organization_id, since=target, until=target))
        chart = self._records.list_for_organization(
            org.organization_id, since=days_ago(today, PRESENCE_CHART_DAYS - 1), until=today
        )

        total = len(developers)
        present = stats.present_count(for_target)
        return {
            "developers": [user_summary(d) for d in developers],
            "todayStatus": {
                "present": present,
                "absent": max(total - present, 0),
                "total": total,
                "attendanceRate": stats.attendance_rate(present, total),
            },
            "punctualityStats": stats.punctuality(for_target),
            "organizationCheckInWindow": window.to_dict(),
            "dailyPresenceData": stats.daily_presence(chart, total, today),
            "weeklyRecords": stats.weekly_records(recent, today, render=render),
            "onlineStatusRecords": [render(r) for r in recent],
        }

    def developer_detail(self, manager_id: int, developer_id: int, *, days: int = HISTORY_DAYS) -> dict:
        _, org = self._require_manager(manager_id)
        if days <= 0:
            raise ValidationError("days must be a positive number")
        developer = self._users.get_by_id(developer_id)
        if (
            not developer
            or developer.organization_id != org.organization_id
            or developer.role != Role.DEVELOPER
        ):
            raise NotFoundError("Developer not found")

        today = self._local_now(org.effective_check_in_window).date()
        records = stats.newest_first(
            r
            for r in self._records.list_for_user(developer.user_id, since=days_ago(today, days))
            if r.organization_id == org.organization_id
        )
        return {
            "developer": user_summary(developer),
            "stats": stats.streak_stats(records, days_tracked=days),
            "punctualityStats": stats.punctuality(records),
            "records": [r.to_dict() for r in records],
        }

    def _record_in_org(self, record_id: int, organization_id: int) -> OnlineStatusRecord:
        record = self._records.get_by_id(record_id)
        if not record or record.organization_id != organization_id:
            raise NotFoundError("Record not found")
        return record

    def edit_record(
        self,
        manager_id: int,
        record_id: int,
        *,
        status: Optional[str] = None,
        mood: Optional[str] = None,
        description: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> OnlineStatusRecord:
        manager, org = self._require_manager(manager_id)
        record = self._record_in_org(record_id, org.organization_id)
        require_max_length(description, "Description", DESCRIPTION_MAX_LENGTH)
        require_max_length(reason, "Edit reason", EDIT_REASON_MAX_LENGTH)

        first_edit = not record.is_edited
        updated = replace(
            record,
            status=_parse_status(status) if status else record.status,
            mood=_parse_mood(mood) if mood is not None else record.mood,
            description=description if description is not None else record.description,
            is_edited=True,
            edited_by=manager.user_id,
            edited_at=self._clock(),
            edit_reason=reason or "Updated by manager",
            original_status=record.status if first_edit else record.original_status,
            original_mood=record.mood.value if first_edit else record.original_mood,
            original_description=record.description if first_edit else record.original_description,
        )
        self._records.update(updated)
        logger.info("Record %s edited by user_id=%s", record_id, manager.user_id)
        return updated

    def delete_record(self, manager_id: int, record_id: int) -> None:
        manager, org = self._require_manager(manager_id)
        self._record_in_org(record_id, org.organization_id)
        self._records.delete_by_id(record_id)
        logger.info("Record %s deleted by user_id=%s", record_id, manager.user_id)
