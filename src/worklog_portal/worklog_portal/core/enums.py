from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Portal roles used for authorization."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    DEVELOPER = "DEVELOPER"


class UserStatus(str, Enum):
    INVITED = "invited"
    ACTIVE = "active"


class PresenceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class Mood(str, Enum):
    HAPPY = "happy"
    EXCITED = "excited"
    FOCUSED = "focused"
    ENERGETIC = "energetic"
    MOTIVATED = "motivated"
    SICK = "sick"
    TIRED = "tired"
    PRESENT = "present"


class CheckInType(str, Enum):
    """Where a check-in falls relative to the organization window."""

    EARLY = "early"
    ON_TIME = "on-time"
    LATE = "late"


class Performance(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    NEEDS_IMPROVEMENT = "needs-improvement"
