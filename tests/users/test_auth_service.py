from dataclasses import replace
from datetime import datetime, timedelta

import pytest
from werkzeug.security import check_password_hash

from src.worklog_portal.worklog_portal.core.enums import Role, UserStatus
from src.worklog_portal.worklog_portal.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.worklog_portal.worklog_portal.users.service import AuthService

from tests.fakes import FixedClock

NOW = datetime(2024, 5, 15, 12, 0)


@pytest.fixture()
def clock():
    return FixedClock(NOW)


@pytest.fixture()
def svc(users, mailer, clock):
    return AuthService(users, mailer, base_url="http://portal.test/", company_name="Acme", clock=clock)


def test_authenticate_returns_session_user(svc):
    s_user = svc.authenticate(" Dev@Acme.io ", "password123")
    assert s_user.user_id == 3
    assert s_user.role == Role.DEVELOPER
    assert s_user.organization_id == 1


def test_authenticate_rejects_wrong_password_and_inactive(svc, users):
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        svc.authenticate("dev@acme.io", "nope")
    users.update(replace(users.get_by_id(3), is_active=False))
    with pytest.raises(AuthenticationError):
        svc.authenticate("dev@acme.io", "password123")


def test_invited_user_cannot_log_in(svc, invited):
    with pytest.raises(AuthenticationError):
        svc.authenticate(invited.email, "")


def test_signup_creates_manager(svc, users):
    user = svc.signup(
        email="Boss@New.io",
        password="longenough",
        confirm_password="longenough",
        first_name="Bea",
        last_name="Boss",
    )
    stored = users.get_by_id(user.user_id)
    assert stored.email == "boss@new.io"
    assert stored.role == Role.MANAGER
    assert stored.organization_id is None
    assert check_password_hash(stored.password_hash, "longenough")


@pytest.mark.parametrize(
    "password, confirm, message",
    [("short", "short", "at least 8"), ("longenough", "different1", "don't match")],
)
def test_signup_password_rules(svc, password, confirm, message):
    with pytest.raises(ValidationError, match=message):
        svc.signup(email="x@y.io", password=password, confirm_password=confirm, first_name="X", last_name="Y")


def test_signup_duplicate_email(svc):
    with pytest.raises(ConflictError):
        svc.signup(
            email="dev@acme.io",
            password="longenough",
            confirm_password="longenough",
            first_name="X",
            last_name="Y",
        )


def test_forgot_password_mails_a_one_hour_link(svc, users, mailer):
    svc.forgot_password("dev@acme.io")
    user = users.get_by_id(3)
    assert user.reset_password_expires == NOW + timedelta(hours=1)
    to, subject, body = mailer.sent[0]
    assert to == "dev@acme.io"
    assert subject == "Acme - Reset Your Password"
    assert f"http://portal.test/auth/reset-password?token={user.reset_password_token}" in body


def test_forgot_password_is_silent_for_unknown_email(svc, mailer):
    svc.forgot_password("ghost@acme.io")
    assert mailer.sent == []


def test_reset_password_flow(svc, users, clock):
    svc.forgot_password("dev@acme.io")
    token = users.get_by_id(3).reset_password_token
    assert svc.validate_reset_token(token).user_id == 3

    svc.reset_password(token, "brandnew99", "brandnew99")
    user = users.get_by_id(3)
    assert user.reset_password_token is None
    assert check_password_hash(user.password_hash, "brandnew99")
    with pytest.raises(ValidationError, match="Invalid or expired reset token"):
        svc.validate_reset_token(token)


def test_reset_token_expires(svc, users, clock):
    svc.forgot_password("dev@acme.io")
    token = users.get_by_id(3).reset_password_token
    clock.now = NOW + timedelta(hours=1, seconds=1)
    with pytest.raises(ValidationError):
        svc.reset_password(token, "brandnew99", "brandnew99")


def test_set_password_activates_invitation(svc, users, invited):
    user = svc.set_password("invite-token", "welcome123", "welcome123")
    stored = users.get_by_id(invited.user_id)
    assert stored == user
    assert stored.status == UserStatus.ACTIVE
    assert stored.is_email_verified is True
    assert stored.auth_methods == ("password",)
    assert stored.invitation_token is None
    assert svc.authenticate("new@acme.io", "welcome123").user_id == invited.user_id


def test_set_password_rejects_unknown_token(svc):
    with pytest.raises(ValidationError, match="Invalid or expired token"):
        svc.set_password("nope", "welcome123", "welcome123")


def test_change_password(svc, users):
    with pytest.raises(ValidationError, match="Current password is incorrect"):
        svc.change_password(3, "wrong-one", "newpass123", "newpass123")
    svc.change_password(3, "password123", "newpass123", "newpass123")
    assert check_password_hash(users.get_by_id(3).password_hash, "newpass123")


def test_change_password_without_password_set(svc, users):
    users.update(replace(users.get_by_id(3), password_hash=None))
    with pytest.raises(ValidationError, match="Atlassian OAuth"):
        svc.change_password(3, "whatever1", "newpass123", "newpass123")
    with pytest.raises(NotFoundError):
        svc.change_password(99, "whatever1", "newpass123", "newpass123")
