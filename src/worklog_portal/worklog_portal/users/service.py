from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import (
    require_email,
    require_matching,
    require_min_length,
    require_non_empty,
)
from ..core.constants import INVITATION_HOURS, PASSWORD_MIN_LENGTH, RESET_TOKEN_HOURS
from ..core.enums import Role, UserStatus
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    GoneError,
    NotFoundError,
    ValidationError,
)
from ..mailer.mailer import Mailer, invitation_message, reset_password_message
from .model import DEFAULT_NOTIFICATION_SETTINGS, User
from .repository import UserRepository

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    full_name: str
    email: str
    role: Role
    organization_id: Optional[int]

    @classmethod
    def from_user(cls, user: User) -> "SessionUser":
        return cls(
            user_id=user.user_id,
            full_name=user.display_name,
            email=user.email,
            role=user.role,
            organization_id=user.organization_id,
        )


def _new_token() -> str:
    return secrets.token_hex(32)


def _password_ok(password_hash: Optional[str], password: str) -> bool:
    if not password_hash:
        return False
    try:
        return check_password_hash(password_hash, password)
    except ValueError:
        # unknown hash method, e.g. a placeholder value
        return False


def _validate_new_password(password: str, confirm: str) -> None:
    require_min_length(password, "Password", PASSWORD_MIN_LENGTH)
    require_matching(password, confirm)


class AuthService:
    """Use cases: login, signup and the password reset / invitation flows."""

    def __init__(
        self,
        users: UserRepository,
        mailer: Mailer,
        *,
        base_url: str,
        company_name: str,
        clock: Optional[Clock] = None,
    ):
        self._users = users
        self._mailer = mailer
        self._base_url = base_url.rstrip("/")
        self._company_name = company_name
        self._clock = clock or datetime.now

    def authenticate(self, email: str, password: str) -> SessionUser:
        user = self._users.get_by_email((email or "").strip().lower())
        if not user or not user.is_active or user.status != UserStatus.ACTIVE:
            raise AuthenticationError("Invalid email or password")
        if not _password_ok(user.password_hash, password or ""):
            raise AuthenticationError("Invalid email or password")
        return SessionUser.from_user(user)

    def get_session_user(self, user_id: int) -> SessionUser:
        user = self._users.get_by_id(user_id)
        if not user or not user.is_active:
            raise AuthenticationError("Unauthorized")
        return SessionUser.from_user(user)

    def signup(
        self,
        *,
        email: str,
        password: str,
        confirm_password: str,
        first_name: str,
        last_name: str,
    ) -> User:
        """Self-service signup always creates a manager account."""
        email = require_email(email)
        first_name = require_non_empty(first_name, "First name")
        last_name = require_non_empty(last_name, "Last name")
        _validate_new_password(password, confirm_password)

        if self._users.get_by_email(email):
            raise ConflictError("User with this email already exists")

        user = User(
            user_id=0,
            email=email,
            password_hash=generate_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=Role.MANAGER,
        )
        user_id = self._users.create(user)
        logger.info("New manager signed up: user_id=%s", user_id)
        return replace(user, user_id=user_id)

    def forgot_password(self, email: str) -> None:
        """Issue a reset token and mail it. Silent when the account is unknown."""
        email = require_email(email)
        user = self._users.get_by_email(email)
        if not user or not user.is_active:
            return

        token = _new_token()
        self._users.update(
            replace(
                user,
                reset_password_token=token,
                reset_password_expires=self._clock() + timedelta(hours=RESET_TOKEN_HOURS),
            )
        )
        subject, body = reset_password_message(
            first_name=user.first_name,
            company_name=self._company_name,
            link=f"{self._base_url}/auth/reset-password?token={token}",
        )
        if not self._mailer.send(user.email, subject, body):
            logger.warning("Password reset mail was not delivered for user_id=%s", user.user_id)

    def _user_for_reset_token(self, token: str) -> User:
        if not token:
            raise ValidationError("Token is required")
        user = self._users.get_by_reset_token(token)
        if (
            not user
            or not user.reset_password_expires
            or user.reset_password_expires < self._clock()
        ):
            raise ValidationError("Invalid or expired reset token")
        return user

    def validate_reset_token(self, token: str) -> User:
        return self._user_for_reset_token(token)

    def reset_password(self, token: str, password: str, confirm_password: str) -> None:
        user = self._user_for_reset_token(token)
        _validate_new_password(password, confirm_password)
        self._users.update(
            replace(
                user,
                password_hash=generate_password_hash(password),
                reset_password_token=None,
                reset_password_expires=None,
            )
        )

    def set_password(self, token: str, password: str, confirm_password: str) -> User:
        """Complete an invitation: set the first password and activate the account."""
        if not token:
            raise ValidationError("Token and password are required")
        _validate_new_password(password, confirm_password)

        user = self._users.get_by_invitation_token(token)
        if not user or not user.invitation_expires or user.invitation_expires < self._clock():
            raise ValidationError("Invalid or expired token")

        methods = tuple(dict.fromkeys(user.auth_methods + ("password",)))
        activated = replace(
            user,
            password_hash=generate_password_hash(password),
            status=UserStatus.ACTIVE,
            is_email_verified=True,
            auth_methods=methods,
            invitation_token=None,
            invitation_expires=None,
        )
        self._users.update(activated)
        return activated

    def change_password(self, user_id: int, current_password: str, new_password: str, confirm_password: str) -> None:
        if not current_password or not new_password:
            raise ValidationError("Current password and new password are required")
        _validate_new_password(new_password, confirm_password)

        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if not user.password_hash:
            raise ValidationError("No password set for this account. Please use Atlassian OAuth to sign in.")
        if not _password_ok(user.password_hash, current_password):
            raise ValidationError("Current password is incorrect")

        self._users.update(replace(user, password_hash=generate_password_hash(new_password)))


class UserService:
    """Use cases: invitations, profile and organization members."""

    def __init__(
        self,
        users: UserRepository,
        mailer: Mailer,
        *,
        base_url: str,
        company_name: str,
        clock: Optional[Clock] = None,
    ):
        self._users = users
        self._mailer = mailer
        self._base_url = base_url.rstrip("/")
        self._company_name = company_name
        self._clock = clock or datetime.now

    def _require(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _require_manager(self, user_id: int) -> User:
        user = self._require(user_id)
        if user.role != Role.MANAGER:
            raise AuthorizationError("Only managers can invite new users")
        return user

    def invite_developer(self, *, manager_id: int, first_name: str, last_name: str, email: str) -> tuple[User, bool]:
        manager = self._require_manager(manager_id)
        if not (first_name and last_name and email):
            raise ValidationError("Missing required fields: firstName, lastName, email")
        email = require_email(email)
        if manager.organization_id is None:
            raise ValidationError("Create an organization before inviting developers")
        if self._users.get_by_email(email):
            raise ConflictError("User with this email already exists")

        now = self._clock()
        token = _new_token()
        invited = User(
            user_id=0,
            email=email,
            password_hash=None,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            role=Role.DEVELOPER,
            status=UserStatus.INVITED,
            is_email_verified=False,
            organization_id=manager.organization_id,
            auth_methods=(),
            invitation_token=token,
            invitation_expires=now + timedelta(hours=INVITATION_HOURS),
            invited_at=now,
            created_at=now,
        )
        invited = replace(invited, user_id=self._users.create(invited))

        subject, body = invitation_message(
            first_name=invited.first_name,
            last_name=invited.last_name,
            company_name=self._company_name,
            link=f"{self._base_url}/auth/set-password?token={token}",
        )
        email_sent = self._mailer.send(invited.email, subject, body)
        if not email_sent:
            logger.warning("Failed to send invitation email for user_id=%s", invited.user_id)
        return invited, email_sent

    def validate_invitation(self, token: str) -> User:
        if not token:
            raise ValidationError("Invitation token is required")
        user = self._users.get_by_invitation_token(token)
        if not user or user.status != UserStatus.INVITED:
            raise NotFoundError("Invalid invitation")
        if not user.invitation_expires or user.invitation_expires < self._clock():
            raise GoneError("Invitation has expired")
        return user

    def get_profile(self, user_id: int) -> User:
        return self._require(user_id)

    def update_profile(self, user_id: int, *, first_name: str, last_name: str, email: str) -> User:
        user = self._require(user_id)
        first_name = require_non_empty(first_name, "First name")
        last_name = require_non_empty(last_name, "Last name")
        email = require_email(email)

        if email != user.email:
            other = self._users.get_by_email(email)
            if other and other.user_id != user.user_id:
                raise ConflictError("Email is already in use")

        updated = replace(user, first_name=first_name, last_name=last_name, email=email)
        self._users.update(updated)
        return updated

    def get_notification_settings(self, user_id: int) -> dict:
        user = self._require(user_id)
        merged = dict(DEFAULT_NOTIFICATION_SETTINGS)
        merged.update(user.notification_settings or {})
        return merged

    def update_notification_settings(self, user_id: int, values: dict) -> dict:
        user = self._require(user_id)
        merged = self.get_notification_settings(user_id)
        for key in DEFAULT_NOTIFICATION_SETTINGS:
            if key in values:
                if not isinstance(values[key], bool):
                    raise ValidationError(f"{key} must be true or false")
                merged[key] = values[key]
        self._users.update(replace(user, notification_settings=merged))
        return merged

    def list_organization_members(self, user_id: int, *, role: Optional[Role] = None) -> Sequence[User]:
        user = self._require(user_id)
        if user.role not in (Role.MANAGER, Role.ADMIN):
            raise AuthorizationError("Forbidden")
        if user.organization_id is None:
            return []
        return self._users.list_by_organization(user.organization_id, role=role)

    def search_members(self, user_id: int, query: str) -> Sequence[User]:
        user = self._require(user_id)
        query = (query or "").strip()
        if len(query) < 2 or user.organization_id is None:
            return []
        return self._users.search(user.organization_id, query)
