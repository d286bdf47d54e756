from datetime import date, datetime, timedelta, timezone

import pytest

from src.worklog_portal.worklog_portal.core.enums import CheckInType, Mood, PresenceStatus
from src.worklog_portal.worklog_portal.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.worklog_portal.worklog_portal.online_status.service import OnlineStatusService

from tests.fakes import FixedClock, InMemoryOnlineStatus

# 09:30 in the organization's UTC+3 window
NOW = datetime(2024, 5, 15, 6, 30, tzinfo=timezone.utc)


@pytest.fixture()
def svc(records, users, organizations):
    return OnlineStatusService(records, users, organizations, clock=FixedClock(NOW))


def test_check_in_uses_window_timezone(svc, records):
    record = svc.check_in(3, mood="focused", description=" standup ")
    assert record.check_in_date == date(2024, 5, 15)
    assert record.check_in_time == "09:30"
    assert record.check_in_type == CheckInType.ON_TIME
    assert record.status == PresenceStatus.PRESENT
    assert record.mood == Mood.FOCUSED
    assert record.description == "standup"
    assert record.atlassian_account_id == "acc-dev"
    assert records.get_by_id(record.record_id) == record


def test_check_in_late_and_early(svc):
    late = svc.check_in(3, now=datetime(2024, 5, 15, 8, 0, tzinfo=timezone.utc))
    early = svc.check_in(4, now=datetime(2024, 5, 15, 4, 0, tzinfo=timezone.utc))
    assert (late.check_in_time, late.check_in_type) == ("11:00", CheckInType.LATE)
    assert (early.check_in_time, early.check_in_type) == ("07:00", CheckInType.EARLY)
    assert late.mood == Mood.PRESENT


def test_check_in_date_follows_local_day(svc):
    record = svc.check_in(3, now=datetime(2024, 5, 15, 22, 0, tzinfo=timezone.utc))
    assert record.check_in_date == date(2024, 5, 16)
    assert record.check_in_time == "01:00"


def test_second_check_in_same_day_conflicts(svc):
    first = svc.check_in(3)
    with pytest.raises(ConflictError) as exc:
        svc.check_in(3, now=NOW + timedelta(hours=1))
    assert exc.value.payload["checkIn"]["id"] == first.record_id


def test_check_in_validates_input(svc):
    with pytest.raises(ValidationError, match="Invalid mood"):
        svc.check_in(3, mood="grumpy")
    with pytest.raises(ValidationError, match="at most 500"):
        svc.check_in(3, description="x" * 501)


def test_check_in_requires_organization(svc):
    with pytest.raises(ValidationError, match="not assigned"):
        svc.check_in(1)


def test_developer_overview(svc):
    svc.check_in(3, now=NOW - timedelta(days=2))
    svc.check_in(3, now=NOW - timedelta(days=1))
    today = svc.check_in(3)

    data = svc.developer_overview(3)
    assert data["todayStatus"]["id"] == today.record_id
    assert data["stats"]["currentStreak"] == 3
    assert data["punctualityStats"]["onTime"] == 3
    assert data["organizationCheckInWindow"] == {"startTime": "08:00", "endTime": "10:00", "timezone": "UTC+3"}
    assert [r["date"] for r in data["recentActivity"]] == ["2024-05-15", "2024-05-14", "2024-05-13"]


def test_developer_overview_for_other_date(svc):
    svc.check_in(3)
    assert svc.developer_overview(3, target_date=date(2024, 5, 1))["todayStatus"] is None


def test_manager_overview(svc):
    svc.check_in(3)
    svc.check_in(4, now=NOW - timedelta(days=1))

    data = svc.manager_overview(2)
    assert {d["id"] for d in data["developers"]} == {3, 4}
    assert data["todayStatus"] == {"present": 1, "absent": 1, "total": 2, "attendanceRate": 50}
    assert data["dailyPresenceData"][-1]["onlineCount"] == 1
    assert data["onlineStatusRecords"][0]["user"]["id"] == 3
    today_bucket = data["weeklyRecords"][0]
    assert today_bucket["isToday"] and len(today_bucket["records"]) == 1


def test_manager_overview_filters_by_user(svc):
    svc.check_in(3)
    svc.check_in(4)
    data = svc.manager_overview(2, user_id=4)
    assert [r["userId"] for r in data["onlineStatusRecords"]] == [4]


def test_manager_views_are_forbidden_for_developers(svc):
    with pytest.raises(AuthorizationError):
        svc.manager_overview(3)


def test_developer_detail_scoped_to_organization(svc):
    svc.check_in(3)
    detail = svc.developer_detail(2, 3, days=10)
    assert detail["developer"]["email"] == "dev@acme.io"
    assert detail["stats"]["totalDaysTracked"] == 10
    assert detail["stats"]["attendanceRate"] == 10
    with pytest.raises(NotFoundError):
        svc.developer_detail(5, 3)
    with pytest.raises(ValidationError):
        svc.developer_detail(2, 3, days=0)


def test_edit_record_keeps_first_original(svc):
    record = svc.check_in(3, mood="happy", description="on site")
    edited = svc.edit_record(2, record.record_id, status="absent", reason="Left early")
    assert edited.status == PresenceStatus.ABSENT
    assert edited.is_edited and edited.edited_by == 2
    assert edited.edit_reason == "Left early"
    assert edited.original_status == PresenceStatus.PRESENT
    assert edited.original_mood == "happy"

    again = svc.edit_record(2, record.record_id, mood="sick", description="flu")
    assert again.original_status == PresenceStatus.PRESENT
    assert again.original_description == "on site"
    assert again.edit_reason == "Updated by manager"
    assert again.to_dict()["originalStatus"]["mood"] == "happy"


def test_edit_record_rejects_bad_status(svc):
    record = svc.check_in(3)
    with pytest.raises(ValidationError, match="Invalid status"):
        svc.edit_record(2, record.record_id, status="sleeping")


def test_records_of_other_organizations_are_hidden(svc):
    record = svc.check_in(3)
    with pytest.raises(NotFoundError):
        svc.edit_record(5, record.record_id, status="absent")
    with pytest.raises(NotFoundError):
        svc.delete_record(5, record.record_id)


def test_delete_record(svc, records):
    record = svc.check_in(3)
    svc.delete_record(2, record.record_id)
    assert records.get_by_id(record.record_id) is None


class StaleReadRecords(InMemoryOnlineStatus):
    """Another request checks the user in between the lookup and the insert."""

    def __init__(self, winner):
        super().__init__()
        self.winner = winner
        self.lookups = 0

    def get_for_user_and_date(self, user_id, check_in_date):
        self.lookups += 1
        if self.lookups == 1:
            self.add(self.winner)
            return None
        return super().get_for_user_and_date(user_id, check_in_date)


def test_concurrent_check_in_returns_existing_record(users, organizations, records):
    winner = OnlineStatusService(records, users, organizations, clock=FixedClock(NOW)).check_in(3, mood="happy")
    racing = StaleReadRecords(winner)
    svc = OnlineStatusService(racing, users, organizations, clock=FixedClock(NOW))

    with pytest.raises(ConflictError) as exc:
        svc.check_in(3, mood="tired")
    assert exc.value.payload["checkIn"]["mood"] == "happy"
    assert len(racing.by_id) == 1
