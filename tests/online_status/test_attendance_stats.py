from datetime import date, timedelta

from src.worklog_portal.worklog_portal.core.enums import CheckInType, Mood, PresenceStatus
from src.worklog_portal.worklog_portal.online_status import stats
from src.worklog_portal.worklog_portal.online_status.model import OnlineStatusRecord
from src.worklog_portal.worklog_portal.organizations.model import CheckInWindow

WINDOW = CheckInWindow("08:00", "10:00", "UTC+3")
TODAY = date(2024, 5, 15)


def rec(day_offset: int, *, present=True, time="09:00", user_id=3) -> OnlineStatusRecord:
    return OnlineStatusRecord(
        record_id=0,
        user_id=user_id,
        organization_id=1,
        status=PresenceStatus.PRESENT if present else PresenceStatus.ABSENT,
        mood=Mood.FOCUSED,
        check_in_date=TODAY - timedelta(days=day_offset),
        check_in_time=time,
        check_in_type=stats.classify_check_in(time, WINDOW),
        window=WINDOW,
    )


def test_classify_check_in_boundaries_are_on_time():
    assert stats.classify_check_in("07:59", WINDOW) == CheckInType.EARLY
    assert stats.classify_check_in("08:00", WINDOW) == CheckInType.ON_TIME
    assert stats.classify_check_in("10:00", WINDOW) == CheckInType.ON_TIME
    assert stats.classify_check_in("10:01", WINDOW) == CheckInType.LATE


def test_streaks_count_from_newest_record():
    records = [rec(0), rec(1), rec(2, present=False), rec(3), rec(4), rec(5)]
    assert stats.current_streak(records) == 2
    assert stats.longest_streak(records) == 3


def test_current_streak_zero_when_latest_absent():
    assert stats.current_streak([rec(0, present=False), rec(1)]) == 0


def test_streak_stats_uses_tracked_days():
    records = [rec(0), rec(1), rec(2, present=False)]
    result = stats.streak_stats(records)
    assert result["totalDaysPresent"] == 2
    assert result["totalDaysTracked"] == 3
    assert result["attendanceRate"] == 67
    assert stats.streak_stats(records, days_tracked=30)["attendanceRate"] == 7


def test_attendance_rate_handles_zero_total():
    assert stats.attendance_rate(0, 0) == 0
    assert stats.attendance_rate(1, 2) == 50


def test_punctuality_counts_types():
    records = [rec(0, time="07:30"), rec(1, time="09:00"), rec(2, time="11:00"), rec(3, time="10:30")]
    assert stats.punctuality(records) == {"early": 1, "onTime": 1, "late": 2, "total": 4}


def test_weekly_records_put_today_first():
    week = stats.weekly_records([rec(0), rec(2), rec(9)], TODAY, render=lambda r: r.check_in_date.isoformat())
    assert [b["date"] for b in week] == [
        "2024-05-15",
        "2024-05-13",
        "2024-05-14",
        "2024-05-16",
        "2024-05-17",
        "2024-05-18",
        "2024-05-19",
    ]
    assert week[0]["isToday"] is True
    assert week[0]["dayName"] == "Wednesday"
    assert week[0]["records"] == ["2024-05-15"]
    assert week[1]["records"] == ["2024-05-13"]


def test_daily_presence_covers_last_seven_days():
    records = [rec(0, time="09:00"), rec(0, time="09:31", user_id=4), rec(0, present=False, user_id=5), rec(6)]
    chart = stats.daily_presence(records, 3, TODAY)
    assert len(chart) == 7
    assert chart[0]["date"] == "2024-05-09"
    assert chart[0]["onlineCount"] == 1
    assert chart[-1] == {
        "date": "2024-05-15",
        "onlineCount": 2,
        "totalCount": 3,
        "averageHours": 9.17,
        "averageCheckInTime": "09:16",
    }
    assert chart[1]["averageCheckInTime"] is None
    assert chart[1]["averageHours"] == 0.0
    assert chart[0]["averageHours"] == 3.0
    assert stats.daily_presence(records, 0, TODAY)[-1]["averageHours"] == 0.0
