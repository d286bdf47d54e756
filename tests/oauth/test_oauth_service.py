from datetime import datetime, timedelta
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from src.worklog_portal.worklog_portal.core.enums import Role, UserStatus
from src.worklog_portal.worklog_portal.core.exceptions import ValidationError
from src.worklog_portal.worklog_portal.oauth.service import (
    PROFILE_URL,
    TOKEN_URL,
    AtlassianOAuthService,
    OAuthFlowError,
    OAuthSettings,
)

from tests.fakes import FakeSession, make_response

SETTINGS = OAuthSettings("cid", "csecret", "http://portal.test/api/auth/atlassian/callback", "s3cret")


@pytest.fixture()
def session():
    s = FakeSession()
    s.on("POST", TOKEN_URL, make_response(200, {"access_token": "at", "refresh_token": "rt", "expires_in": 3600}))
    return s


@pytest.fixture()
def svc(users, session):
    return AtlassianOAuthService(users, SETTINGS, session=session)


def _profile(session, **profile):
    session.on("GET", PROFILE_URL, make_response(200, profile))


def _state(url: str) -> str:
    return parse_qs(urlparse(url).query)["state"][0]


def test_begin_login_builds_authorize_url(svc):
    url, state, nonce = svc.begin_login()
    query = parse_qs(urlparse(url).query)
    assert url.startswith("https://auth.atlassian.com/authorize?")
    assert query["client_id"] == ["cid"]
    assert query["scope"] == ["read:me read:account"]
    assert query["response_type"] == ["code"]
    assert query["state"] == [state]
    assert nonce and nonce != state


def test_begin_login_rejects_unknown_invitation(svc):
    with pytest.raises(ValidationError):
        svc.begin_login("missing")


def test_callback_logs_in_existing_developer(svc, session, users):
    _profile(session, account_id="acc-dev", email="dev@acme.io", name="Dana Dev")
    url, state, nonce = svc.begin_login()
    s_user = svc.complete_login("code-1", state, nonce)
    assert s_user.user_id == 3
    stored = users.get_by_id(3)
    assert stored.atlassian.access_token == "at"
    assert "atlassian" in stored.auth_methods
    token_call = session.calls[0]
    assert token_call["json"]["code"] == "code-1"
    assert token_call["json"]["grant_type"] == "authorization_code"
    assert session.calls[1]["headers"]["Authorization"] == "Bearer at"


def test_callback_creates_developer_for_new_account(svc, session, users):
    _profile(session, account_id="acc-new", email="Fresh@Acme.io", name="Fresh Face Person")
    _, state, nonce = svc.begin_login()
    s_user = svc.complete_login("code", state, nonce)
    user = users.get_by_id(s_user.user_id)
    assert user.email == "fresh@acme.io"
    assert (user.first_name, user.last_name) == ("Fresh", "Face Person")
    assert user.role == Role.DEVELOPER
    assert user.auth_methods == ("atlassian",)
    assert user.organization_id is None


def test_callback_refuses_email_of_other_role(svc, session):
    _profile(session, account_id="acc-x", email="maria@acme.io", name="Maria")
    _, state, nonce = svc.begin_login()
    with pytest.raises(OAuthFlowError) as exc:
        svc.complete_login("code", state, nonce)
    assert exc.value.code == "invalid_user_status"


def test_callback_accepts_invitation(svc, session, users, invited):
    _profile(session, account_id="acc-nina", email="nina@gmail.com", name="Nina New")
    _, state, nonce = svc.begin_login("invite-token")
    s_user = svc.complete_login("code", state, nonce)
    assert s_user.user_id == invited.user_id
    user = users.get_by_id(invited.user_id)
    assert user.status == UserStatus.ACTIVE
    assert user.atlassian_account_id == "acc-nina"
    assert user.invitation_token is None
    assert user.is_email_verified is True


def test_callback_expired_invitation(users, session, invited):
    svc = AtlassianOAuthService(
        users, SETTINGS, session=session, clock=lambda: datetime.now() + timedelta(days=3)
    )
    _profile(session, account_id="acc-nina", email="nina@gmail.com", name="Nina New")
    _, state, nonce = svc.begin_login("invite-token")
    with pytest.raises(OAuthFlowError) as exc:
        svc.complete_login("code", state, nonce)
    assert exc.value.code == "invitation_expired"


def test_state_must_match_session_nonce(svc):
    _, state, _ = svc.begin_login()
    with pytest.raises(OAuthFlowError) as exc:
        svc.complete_login("code", state, "another-nonce")
    assert exc.value.code == "invalid_state"
    with pytest.raises(OAuthFlowError):
        svc.complete_login("code", state + "tampered", None)
    with pytest.raises(OAuthFlowError):
        svc.complete_login(None, state, "x")


def test_token_exchange_failure(users):
    session = FakeSession().on("POST", TOKEN_URL, make_response(400, {"error": "invalid_grant"}, url=TOKEN_URL))
    svc = AtlassianOAuthService(users, SETTINGS, session=session)
    _, state, nonce = svc.begin_login()
    with pytest.raises(OAuthFlowError) as exc:
        svc.complete_login("code", state, nonce)
    assert exc.value.code == "token_exchange_failed"


def test_profile_fetch_failure(svc, session):
    session.on("GET", PROFILE_URL, requests.Timeout("slow"))
    _, state, nonce = svc.begin_login()
    with pytest.raises(OAuthFlowError) as exc:
        svc.complete_login("code", state, nonce)
    assert exc.value.code == "profile_fetch_failed"
