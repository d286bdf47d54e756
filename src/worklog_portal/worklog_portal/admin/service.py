from __future__ import annotations

import copy
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from ..common.validators import require_non_empty
from ..core.enums import Role
from ..core.exceptions import NotFoundError, ValidationError
from ..users.model import User
from ..users.repository import UserRepository
from .repository import SettingsRepository

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "platform": {
        "maintenanceMode": False,
        "registrationEnabled": True,
        "emailNotifications": True,
        "maxUsersPerOrganization": 100,
        "sessionTimeout": 24,
        "passwordMinLength": 8,
        "requireEmailVerification": True,
    },
    "security": {
        "twoFactorEnabled": False,
        "passwordExpiryDays": 90,
        "maxLoginAttempts": 5,
        "lockoutDuration": 30,
        "sessionSecurity": "standard",
    },
    "notifications": {
        "emailNotifications": True,
        "systemAlerts": True,
        "userActivityLogs": True,
        "errorReporting": True,
        "maintenanceNotifications": True,
    },
    "integrations": {
        "jiraIntegration": True,
        "slackIntegration": False,
        "emailService": "smtp",
        "analyticsEnabled": True,
        "backupEnabled": True,
    },
}

MANAGER_PERMISSIONS = ["team-management", "project-oversight", "reporting"]


def _same_type(default, value) -> bool:
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, int):
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, type(default))


class AdminService:
    """Use cases: platform statistics, user administration and platform settings."""

    def __init__(
        self,
        users: UserRepository,
        settings: SettingsRepository,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._users = users
        self._settings = settings
        self._clock = clock or datetime.now

    def stats(self) -> dict:
        total = self._users.count()
        inactive = self._users.count(is_active=False)
        unverified = self._users.count(is_email_verified=False)

        health = "healthy"
        if inactive > total * 0.1 or unverified > total * 0.2:
            health = "warning"

        return {
            "totalUsers": total,
            "totalManagers": self._users.count(role=Role.MANAGER),
            "totalDevelopers": self._users.count(role=Role.DEVELOPER),
            "activeUsers": self._users.count(is_active=True),
            "recentSignups": self._users.count(created_since=self._clock() - timedelta(days=7)),
            "systemHealth": health,
        }

    def list_users(self, role: Optional[Role] = None) -> Sequence[User]:
        return self._users.list_all(role=role)

    def list_managers(self) -> list[dict]:
        out = []
        for manager in self._users.list_all(role=Role.MANAGER):
            developers = 0
            if manager.organization_id is not None:
                developers = len(self._users.list_by_organization(manager.organization_id, role=Role.DEVELOPER))
            row = manager.to_public_dict()
            row["managedDevelopers"] = developers
            row["permissions"] = list(MANAGER_PERMISSIONS)
            out.append(row)
        return out

    def _require(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _is_last_admin(self, user: User) -> bool:
        """True when `user` is the only active administrator left."""
        if user.role != Role.ADMIN or not user.is_active:
            return False
        return self._users.count(role=Role.ADMIN, is_active=True) <= 1

    def update_user(
        self,
        admin_id: int,
        user_id: int,
        *,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        user = self._require(user_id)
        new_role = user.role
        if role is not None:
            try:
                new_role = Role(str(role).upper())
            except ValueError:
                raise ValidationError("Invalid role")
        if is_active is not None and not isinstance(is_active, bool):
            raise ValidationError("isActive must be true or false")

        demoting = user.role == Role.ADMIN and new_role != Role.ADMIN
        deactivating = is_active is False and user.is_active
        if user.user_id == admin_id and (demoting or deactivating):
            raise ValidationError("You cannot demote or deactivate your own account")
        if (demoting or deactivating) and self._is_last_admin(user):
            raise ValidationError("Cannot demote or deactivate the last administrator")

        updated = replace(
            user,
            role=new_role,
            is_active=user.is_active if is_active is None else is_active,
            first_name=require_non_empty(first_name, "First name") if first_name is not None else user.first_name,
            last_name=require_non_empty(last_name, "Last name") if last_name is not None else user.last_name,
        )
        self._users.update(updated)
        logger.info("User %s updated by admin %s", user_id, admin_id)
        return updated

    def delete_user(self, admin_id: int, user_id: int) -> None:
        user = self._require(user_id)
        if user.user_id == admin_id:
            raise ValidationError("You cannot delete your own account")
        if self._is_last_admin(user):
            raise ValidationError("Cannot delete the last administrator")
        self._users.delete_by_id(user_id)
        logger.info("User %s deleted by admin %s", user_id, admin_id)

    def settings(self) -> dict:
        merged = copy.deepcopy(DEFAULT_SETTINGS)
        for section, values in self._settings.get_all().items():
            if section in merged and isinstance(values, dict):
                merged[section].update({k: v for k, v in values.items() if k in merged[section]})
        return merged

    def update_settings(self, admin_id: int, section: str, values: dict) -> dict:
        if section not in DEFAULT_SETTINGS:
            raise ValidationError("Invalid settings section")
        if not isinstance(values, dict):
            raise ValidationError("Settings must be an object")

        current = self.settings()[section]
        defaults = DEFAULT_SETTINGS[section]
        for key, value in values.items():
            if key not in defaults:
                raise ValidationError(f"Unknown setting: {key}")
            if not _same_type(defaults[key], value):
                raise ValidationError(f"Invalid value for {key}")
            current[key] = value

        self._settings.upsert(section, current, updated_by=admin_id)
        logger.info("Settings section %s updated by admin %s", section, admin_id)
        return current
