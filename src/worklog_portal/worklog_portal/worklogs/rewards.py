from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..core.enums import Performance


@dataclass(frozen=True)
class RewardTier:
    reward: str
    icon: str
    color: str
    badge: str
    badge_color: str
    performance: Performance
    achievements: tuple[str, ...]


PODIUM = {
    1: RewardTier(
        "🏆 Weekly Champion", "Crown", "text-yellow-500", "👑", "bg-yellow-100",
        Performance.EXCELLENT, ("First Place", "Over 40h this week", "Team Leader"),
    ),
    2: RewardTier(
        "🥈 Silver Star", "Star", "text-gray-400", "⭐", "bg-gray-100",
        Performance.EXCELLENT, ("Second Place", "Consistent Performer", "High Achiever"),
    ),
    3: RewardTier(
        "🥉 Bronze Medal", "Medal", "text-orange-500", "🏅", "bg-orange-100",
        Performance.GOOD, ("Third Place", "Solid Performance", "Reliable Worker"),
    ),
}

# (minimum hours, tier), checked top-down
HOUR_TIERS = (
    (35, RewardTier(
        "⚡ High Performer", "Zap", "text-blue-500", "⚡", "bg-blue-100",
        Performance.GOOD, ("Over 35h", "Dedicated Worker", "Team Player"),
    )),
    (25, RewardTier(
        "🎯 On Target", "Target", "text-green-500", "🎯", "bg-green-100",
        Performance.AVERAGE, ("On Target", "Steady Progress", "Contributor"),
    )),
    (15, RewardTier(
        "🌱 Growing", "TrendingUp", "text-purple-500", "🌱", "bg-purple-100",
        Performance.NEEDS_IMPROVEMENT, ("Getting Started", "Learning Phase", "Newcomer"),
    )),
)

KEEP_GOING = RewardTier(
    "💪 Keep Going!", "Heart", "text-pink-500", "💪", "bg-pink-100",
    Performance.NEEDS_IMPROVEMENT, ("Getting Started", "Room for Growth", "Early Days"),
)


def tier_for(rank: int, hours: float) -> RewardTier:
    if rank in PODIUM:
        return PODIUM[rank]
    for minimum, tier in HOUR_TIERS:
        if hours >= minimum:
            return tier
    return KEEP_GOING


def rank_developers(developers: Iterable[dict], current_account_id: Optional[str] = None) -> list[dict]:
    """Rank by hours (desc) and attach the reward tier for each position."""
    ranked = []
    for index, dev in enumerate(sorted(developers, key=lambda d: d["hours"], reverse=True)):
        rank = index + 1
        tier = tier_for(rank, dev["hours"])
        ranked.append(
            {
                "id": dev["id"],
                "name": dev["name"],
                "email": dev.get("email"),
                "hours": dev["hours"],
                "tasks": dev["tasks"],
                "rank": rank,
                "reward": tier.reward,
                "rewardIcon": tier.icon,
                "rewardColor": tier.color,
                "badge": tier.badge,
                "badgeColor": tier.badge_color,
                "performance": tier.performance.value,
                "achievements": list(tier.achievements),
                "isCurrentUser": bool(current_account_id) and dev["id"] == current_account_id,
            }
        )
    return ranked


def weekly_stats(ranked: list[dict]) -> dict:
    total = round(sum(d["hours"] for d in ranked), 2)
    current = next((d for d in ranked if d["isCurrentUser"]), None)
    return {
        "totalHours": total,
        "averageHours": round(total / len(ranked), 2) if ranked else 0,
        "topPerformer": ranked[0] if ranked else None,
        "totalDevelopers": len(ranked),
        "currentUserRank": current["rank"] if current else 0,
        "currentUserHours": current["hours"] if current else 0,
    }
