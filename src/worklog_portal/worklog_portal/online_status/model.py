from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import CheckInType, Mood, PresenceStatus
from ..organizations.model import CheckInWindow


@dataclass(frozen=True)
class OnlineStatusRecord:
    """Domain entity: one developer check-in for one day."""

    record_id: int
    user_id: int
    organization_id: int
    status: PresenceStatus
    mood: Mood
    check_in_date: date
    check_in_time: str
    check_in_type: CheckInType
    window: CheckInWindow
    atlassian_account_id: Optional[str] = None
    description: str = ""
    is_edited: bool = False
    edited_by: Optional[int] = None
    edited_at: Optional[datetime] = None
    edit_reason: Optional[str] = None
    original_status: Optional[PresenceStatus] = None
    original_mood: Optional[str] = None
    original_description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        original = None
        if self.original_status is not None:
            original = {
                "status": self.original_status.value,
                "mood": self.original_mood,
                "description": self.original_description,
            }
        return {
            "id": self.record_id,
            "userId": self.user_id,
            "atlassianAccountId": self.atlassian_account_id,
            "status": self.status.value,
            "mood": self.mood.value,
            "description": self.description,
            "date": self.check_in_date.isoformat(),
            "time": self.check_in_time,
            "checkInType": self.check_in_type.value,
            "organizationCheckInWindow": self.window.to_dict(),
            "isEdited": self.is_edited,
            "editedBy": self.edited_by,
            "editedAt": self.edited_at.isoformat() if self.edited_at else None,
            "editReason": self.edit_reason,
            "originalStatus": original,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
