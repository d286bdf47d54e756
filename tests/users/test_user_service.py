from datetime import datetime, timedelta

import pytest

from src.worklog_portal.worklog_portal.core.enums import Role, UserStatus
from src.worklog_portal.worklog_portal.core.exceptions import (
    AuthorizationError,
    ConflictError,
    GoneError,
    NotFoundError,
    ValidationError,
)
from src.worklog_portal.worklog_portal.users.service import UserService

from tests.fakes import FixedClock, RecordingMailer

NOW = datetime(2024, 5, 15, 12, 0)


@pytest.fixture()
def clock():
    return FixedClock(NOW)


@pytest.fixture()
def svc(users, mailer, clock):
    return UserService(users, mailer, base_url="http://portal.test", company_name="Acme", clock=clock)


def test_invite_developer(svc, users, mailer):
    invited, sent = svc.invite_developer(manager_id=2, first_name="Ivy", last_name="Ng", email="IVY@acme.io")
    assert sent is True
    stored = users.get_by_id(invited.user_id)
    assert stored.role == Role.DEVELOPER
    assert stored.status == UserStatus.INVITED
    assert stored.organization_id == 1
    assert stored.invitation_expires == NOW + timedelta(hours=24)
    to, subject, body = mailer.sent[0]
    assert to == "ivy@acme.io"
    assert subject == "Welcome to Acme - Complete Your Account Setup"
    assert f"http://portal.test/auth/set-password?token={stored.invitation_token}" in body


def test_invite_reports_mail_failure(users, clock):
    svc = UserService(users, RecordingMailer(ok=False), base_url="http://x", company_name="Acme", clock=clock)
    invited, sent = svc.invite_developer(manager_id=2, first_name="Ivy", last_name="Ng", email="ivy@acme.io")
    assert sent is False
    assert users.get_by_id(invited.user_id) is not None


def test_invite_rules(svc):
    with pytest.raises(AuthorizationError, match="Only managers"):
        svc.invite_developer(manager_id=3, first_name="A", last_name="B", email="a@b.io")
    with pytest.raises(ValidationError, match="Missing required fields"):
        svc.invite_developer(manager_id=2, first_name="", last_name="B", email="a@b.io")
    with pytest.raises(ConflictError):
        svc.invite_developer(manager_id=2, first_name="A", last_name="B", email="dev@acme.io")


def test_validate_invitation(svc, clock, invited):
    clock.now = datetime.now()
    assert svc.validate_invitation("invite-token").user_id == invited.user_id
    with pytest.raises(NotFoundError):
        svc.validate_invitation("unknown")
    clock.now = datetime.now() + timedelta(days=2)
    with pytest.raises(GoneError):
        svc.validate_invitation("invite-token")


def test_update_profile_checks_email_uniqueness(svc):
    updated = svc.update_profile(3, first_name="Dana", last_name="Dev", email="dana@acme.io")
    assert updated.email == "dana@acme.io"
    with pytest.raises(ConflictError):
        svc.update_profile(3, first_name="Dana", last_name="Dev", email="otto@acme.io")


def test_notification_settings_merge_and_validate(svc):
    assert svc.get_notification_settings(3)["weeklyReports"] is False
    merged = svc.update_notification_settings(3, {"weeklyReports": True, "unknown": True})
    assert merged["weeklyReports"] is True
    assert "unknown" not in merged
    with pytest.raises(ValidationError):
        svc.update_notification_settings(3, {"projectUpdates": "yes"})


def test_members_listing_and_search(svc):
    members = svc.list_organization_members(2, role=Role.DEVELOPER)
    assert {u.user_id for u in members} == {3, 4}
    with pytest.raises(AuthorizationError):
        svc.list_organization_members(3)
    assert [u.user_id for u in svc.search_members(2, "ott")] == [4]
    assert svc.search_members(2, "o") == []
