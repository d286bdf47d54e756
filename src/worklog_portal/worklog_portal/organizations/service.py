from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..common.validators import hhmm_to_minutes, require_email, require_hhmm, require_non_empty
from ..core.constants import FREE_PLAN_MAX_USERS, TRIAL_DAYS
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import User
from ..users.repository import UserRepository
from .model import DEFAULT_CHECK_IN_WINDOW, CheckInWindow, JiraCredentials, Organization
from .repository import OrganizationRepository

logger = logging.getLogger(__name__)

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    slug = _SLUG_STRIP_RE.sub("-", name.lower()).strip("-")
    return slug or "organization"


def normalize_jira_domain(domain: str) -> str:
    """'https://acme.atlassian.net/' -> 'acme.atlassian.net'."""
    domain = (domain or "").strip()
    domain = re.sub(r"^https?://", "", domain, flags=re.IGNORECASE)
    return domain.rstrip("/")


class OrganizationService:
    """Use cases: organization onboarding, check-in window and Jira integration."""

    def __init__(
        self,
        organizations: OrganizationRepository,
        users: UserRepository,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._organizations = organizations
        self._users = users
        self._clock = clock or datetime.now

    def _require_user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _org_of(self, user: User) -> Organization:
        if user.organization_id is None:
            raise NotFoundError("User does not belong to any organization")
        org = self._organizations.get_by_id(user.organization_id)
        if not org:
            raise NotFoundError("Organization not found")
        return org

    def _unique_slug(self, name: str) -> str:
        base = slugify(name)
        slug, n = base, 2
        while self._organizations.slug_exists(slug):
            slug = f"{base}-{n}"
            n += 1
        return slug

    def create(
        self,
        *,
        owner_id: int,
        name: str,
        description: Optional[str] = None,
        jira: Optional[dict] = None,
    ) -> Organization:
        owner = self._require_user(owner_id)
        name = (name or "").strip()
        if len(name) < 2:
            raise ValidationError("Organization name must be at least 2 characters")
        if owner.organization_id is not None:
            raise ValidationError("User already belongs to an organization")

        credentials = None
        if jira and jira.get("domain") and jira.get("email") and jira.get("apiToken"):
            credentials = JiraCredentials(
                domain=normalize_jira_domain(jira["domain"]),
                email=jira["email"].strip(),
                api_token=jira["apiToken"].strip(),
                organization_name=(jira.get("organizationName") or "").strip() or None,
            )

        now = self._clock()
        org = Organization(
            organization_id=0,
            name=name,
            slug=self._unique_slug(name),
            owner_id=owner.user_id,
            description=(description or "").strip() or None,
            jira=credentials,
            subscription={
                "plan": "free",
                "status": "trial",
                "trialEndsAt": (now + timedelta(days=TRIAL_DAYS)).isoformat(),
                "maxUsers": FREE_PLAN_MAX_USERS,
            },
            created_at=now,
        )
        org = replace(org, organization_id=self._organizations.create(org))
        self._users.update(replace(owner, organization_id=org.organization_id))
        logger.info("Organization %s created by user_id=%s", org.organization_id, owner.user_id)
        return org

    def get_for_user(self, user_id: int) -> Organization:
        return self._org_of(self._require_user(user_id))

    def get_check_in_window(self, user_id: int) -> CheckInWindow:
        user = self._require_user(user_id)
        if user.organization_id is None:
            raise ValidationError("User not assigned to an organization")
        return self._org_of(user).effective_check_in_window

    def window_for_organization(self, organization_id: Optional[int]) -> CheckInWindow:
        if organization_id is None:
            return DEFAULT_CHECK_IN_WINDOW
        org = self._organizations.get_by_id(organization_id)
        return org.effective_check_in_window if org else DEFAULT_CHECK_IN_WINDOW

    def update_check_in_window(self, user_id: int, *, start_time: str, end_time: str, timezone: str) -> CheckInWindow:
        user = self._require_user(user_id)
        if user.organization_id is None:
            raise ValidationError("User not assigned to an organization")
        if user.role not in (Role.MANAGER, Role.ADMIN):
            raise AuthorizationError("Insufficient permissions")
        if not start_time or not end_time or not timezone:
            raise ValidationError("Start time, end time, and timezone are required")

        start = require_hhmm(start_time)
        end = require_hhmm(end_time)
        if hhmm_to_minutes(start) >= hhmm_to_minutes(end):
            raise ValidationError("Start time must be before end time")

        org = self._org_of(user)
        window = CheckInWindow(start_time=start, end_time=end, timezone=timezone.strip())
        self._organizations.update(replace(org, check_in_window=window))
        return window

    def get_jira_settings(self, user_id: int) -> Optional[JiraCredentials]:
        user = self._require_user(user_id)
        if user.organization_id is None:
            return None
        return self._org_of(user).jira

    def update_jira_settings(
        self,
        user_id: int,
        *,
        domain: str,
        email: str,
        api_token: str,
        organization_name: Optional[str] = None,
    ) -> JiraCredentials:
        user = self._require_user(user_id)
        if user.role != Role.MANAGER:
            raise AuthorizationError("Only managers can update Jira settings")
        if not domain or not email or not api_token:
            raise ValidationError("Missing required fields: domain, email, apiToken")

        org = self._org_of(user)
        credentials = JiraCredentials(
            domain=normalize_jira_domain(domain),
            email=require_email(email),
            api_token=require_non_empty(api_token, "API token"),
            organization_name=(organization_name or "").strip() or (org.jira.organization_name if org.jira else None),
        )
        self._organizations.update(replace(org, jira=credentials))
        return credentials

    def credentials_for_user(self, user_id: int) -> JiraCredentials:
        user = self._require_user(user_id)
        if user.organization_id is None:
            raise ValidationError("You are not assigned to any organization")
        org = self._organizations.get_by_id(user.organization_id)
        if not org or not org.jira:
            raise ValidationError("Jira integration is not configured for your organization")
        return org.jira
