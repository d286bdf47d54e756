from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.constants import DEFAULT_CHECK_IN_END, DEFAULT_CHECK_IN_START, DEFAULT_CHECK_IN_TIMEZONE


@dataclass(frozen=True)
class JiraCredentials:
    """Site + basic-auth pair used to call the Jira REST API."""

    domain: str
    email: str
    api_token: str
    organization_name: Optional[str] = None

    def to_public_dict(self) -> dict:
        return {
            "organizationName": self.organization_name,
            "domain": self.domain,
            "email": self.email,
            "hasApiToken": bool(self.api_token),
        }


@dataclass(frozen=True)
class CheckInWindow:
    start_time: str = DEFAULT_CHECK_IN_START
    end_time: str = DEFAULT_CHECK_IN_END
    timezone: str = DEFAULT_CHECK_IN_TIMEZONE

    def to_dict(self) -> dict:
        return {"startTime": self.start_time, "endTime": self.end_time, "timezone": self.timezone}


DEFAULT_CHECK_IN_WINDOW = CheckInWindow()


@dataclass(frozen=True)
class Organization:
    organization_id: int
    name: str
    slug: str
    owner_id: int
    description: Optional[str] = None
    jira: Optional[JiraCredentials] = None
    check_in_window: Optional[CheckInWindow] = None
    subscription: dict = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def effective_check_in_window(self) -> CheckInWindow:
        return self.check_in_window or DEFAULT_CHECK_IN_WINDOW

    def to_public_dict(self) -> dict:
        return {
            "id": self.organization_id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "ownerId": self.owner_id,
            "jiraOrganization": self.jira.to_public_dict() if self.jira else None,
            "checkInWindow": self.effective_check_in_window.to_dict(),
            "subscription": self.subscription,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
