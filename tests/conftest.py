from __future__ import annotations

from datetime import datetime, timedelta
from functools import partial

import pytest

from src.worklog_portal.worklog_portal.container import wire_container
from src.worklog_portal.worklog_portal.core.enums import Role, UserStatus
from src.worklog_portal.worklog_portal.jira.client import JiraClient
from src.worklog_portal.worklog_portal.main import create_app
from src.worklog_portal.worklog_portal.oauth.service import OAuthSettings
from src.worklog_portal.worklog_portal.organizations.model import CheckInWindow, Organization
from src.worklog_portal.worklog_portal.users.model import User

from tests.fakes import (
    JIRA,
    FakeSession,
    InMemoryOnlineStatus,
    InMemoryOrganizations,
    InMemorySettings,
    InMemoryUsers,
    RecordingMailer,
    make_user,
)


@pytest.fixture()
def users():
    return InMemoryUsers(
        make_user(1, Role.ADMIN, email="admin@acme.io", org_id=None),
        make_user(2, Role.MANAGER, email="maria@acme.io"),
        make_user(3, Role.DEVELOPER, email="dev@acme.io", account_id="acc-dev", display_name="Dana Dev"),
        make_user(4, Role.DEVELOPER, email="otto@acme.io", account_id="acc-otto"),
        make_user(5, Role.MANAGER, email="other@beta.io", org_id=2),
    )


@pytest.fixture()
def organizations():
    return InMemoryOrganizations(
        Organization(
            organization_id=1,
            name="Acme",
            slug="acme",
            owner_id=2,
            jira=JIRA,
            check_in_window=CheckInWindow("08:00", "10:00", "UTC+3"),
        ),
        Organization(organization_id=2, name="Beta", slug="beta", owner_id=5),
    )


@pytest.fixture()
def records():
    return InMemoryOnlineStatus()


@pytest.fixture()
def settings_repo():
    return InMemorySettings()


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def http():
    return FakeSession()


@pytest.fixture()
def invited(users):
    """A developer with a pending invitation (token 'invite-token')."""
    return users.add(
        User(
            user_id=0,
            email="new@acme.io",
            password_hash=None,
            first_name="Nina",
            last_name="New",
            role=Role.DEVELOPER,
            status=UserStatus.INVITED,
            organization_id=1,
            auth_methods=(),
            invitation_token="invite-token",
            invitation_expires=datetime.now() + timedelta(hours=24),
        )
    )


@pytest.fixture()
def container(users, organizations, records, settings_repo, mailer, http):
    return wire_container(
        users_repo=users,
        organizations_repo=organizations,
        online_status_repo=records,
        settings_repo=settings_repo,
        mailer=mailer,
        jira_client_factory=partial(JiraClient, session=http),
        oauth_settings=OAuthSettings(
            client_id="client-id",
            client_secret="client-secret",
            redirect_uri="http://localhost:5000/api/auth/atlassian/callback",
            secret_key="test-secret",
        ),
        base_url="http://localhost:5000",
        company_name="Acme",
        http=http,
    )


@pytest.fixture()
def app(container, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def login(client, users):
    def _login(user_id: int):
        user = users.get_by_id(user_id)
        with client.session_transaction() as sess:
            sess["user_id"] = user.user_id
            sess["role"] = user.role.value
            sess["name"] = user.display_name
            sess["organization_id"] = user.organization_id
        return client

    return _login
