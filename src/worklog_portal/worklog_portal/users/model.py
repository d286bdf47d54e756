from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import Role, UserStatus

DEFAULT_NOTIFICATION_SETTINGS = {
    "emailNotifications": True,
    "worklogReminders": True,
    "projectUpdates": True,
    "weeklyReports": False,
}


@dataclass(frozen=True)
class AtlassianAccount:
    """Atlassian identity linked through OAuth."""

    account_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expires: Optional[datetime] = None


@dataclass(frozen=True)
class User:
    """Domain entity: portal user (admin, manager or developer).

    Note: Plain data object, no DB access here.
    """

    user_id: int
    email: str
    password_hash: Optional[str]
    first_name: str
    last_name: str
    role: Role
    status: UserStatus = UserStatus.ACTIVE
    is_active: bool = True
    is_email_verified: bool = False
    organization_id: Optional[int] = None
    atlassian: Optional[AtlassianAccount] = None
    auth_methods: tuple[str, ...] = ("password",)
    reset_password_token: Optional[str] = None
    reset_password_expires: Optional[datetime] = None
    invitation_token: Optional[str] = None
    invitation_expires: Optional[datetime] = None
    invited_at: Optional[datetime] = None
    notification_settings: dict = field(default_factory=lambda: dict(DEFAULT_NOTIFICATION_SETTINGS))
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def atlassian_account_id(self) -> Optional[str]:
        return self.atlassian.account_id if self.atlassian else None

    @property
    def display_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        if self.atlassian and self.atlassian.display_name:
            return self.atlassian.display_name
        if self.first_name:
            return self.first_name
        if self.last_name:
            return self.last_name
        return "Unknown Developer"

    def to_public_dict(self) -> dict:
        """JSON view without password hash, tokens or reset data."""
        return {
            "id": self.user_id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "name": self.display_name,
            "role": self.role.value,
            "status": self.status.value,
            "isActive": self.is_active,
            "isEmailVerified": self.is_email_verified,
            "organizationId": self.organization_id,
            "atlassianAccountId": self.atlassian_account_id,
            "atlassianEmail": self.atlassian.email if self.atlassian else None,
            "atlassianDisplayName": self.atlassian.display_name if self.atlassian else None,
            "atlassianAvatarUrl": self.atlassian.avatar_url if self.atlassian else None,
            "authMethods": list(self.auth_methods),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
