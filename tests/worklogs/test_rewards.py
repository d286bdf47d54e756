from src.worklog_portal.worklog_portal.worklogs.rewards import rank_developers, tier_for, weekly_stats


def dev(dev_id, hours, tasks=1):
    return {"id": dev_id, "name": dev_id.upper(), "email": None, "hours": hours, "tasks": tasks}


def test_podium_ignores_hours():
    assert tier_for(1, 2).reward == "🏆 Weekly Champion"
    assert tier_for(3, 0).reward == "🥉 Bronze Medal"


def test_hour_tiers_below_podium():
    assert tier_for(4, 36).reward == "⚡ High Performer"
    assert tier_for(4, 25).reward == "🎯 On Target"
    assert tier_for(5, 15).reward == "🌱 Growing"
    assert tier_for(6, 14.9).reward == "💪 Keep Going!"


def test_rank_developers_orders_by_hours_and_marks_current_user():
    ranked = rank_developers([dev("a", 10), dev("b", 42), dev("c", 30), dev("d", 26)], "c")
    assert [(d["id"], d["rank"]) for d in ranked] == [("b", 1), ("c", 2), ("a", 3), ("d", 4)]
    assert ranked[1]["isCurrentUser"] is True
    assert ranked[3]["reward"] == "🎯 On Target"
    assert ranked[3]["performance"] == "average"
    assert ranked[0]["achievements"] == ["First Place", "Over 40h this week", "Team Leader"]


def test_weekly_stats():
    ranked = rank_developers([dev("a", 10), dev("b", 20.5)], "a")
    stats = weekly_stats(ranked)
    assert stats["totalHours"] == 30.5
    assert stats["averageHours"] == 15.25
    assert stats["topPerformer"]["id"] == "b"
    assert stats["currentUserRank"] == 2
    assert stats["currentUserHours"] == 10


def test_weekly_stats_empty():
    assert weekly_stats([]) == {
        "totalHours": 0,
        "averageHours": 0,
        "topPerformer": None,
        "totalDevelopers": 0,
        "currentUserRank": 0,
        "currentUserHours": 0,
    }
