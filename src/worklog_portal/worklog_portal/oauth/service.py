from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Optional
from urllib.parse import urlencode

import requests
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..core.constants import OAUTH_STATE_MAX_AGE_SECONDS
from ..core.enums import Role, UserStatus
from ..core.exceptions import DomainError, ValidationError
from ..users.model import AtlassianAccount, User
from ..users.repository import UserRepository
from ..users.service import SessionUser

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://auth.atlassian.com/authorize"
TOKEN_URL = "https://auth.atlassian.com/oauth/token"
PROFILE_URL = "https://api.atlassian.com/me"
SCOPE = "read:me read:account"


class OAuthFlowError(DomainError):
    """Callback failure; `code` is passed back to the login page as ?error=<code>."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code


@dataclass(frozen=True)
class OAuthSettings:
    client_id: str
    client_secret: str
    redirect_uri: str
    secret_key: str


class AtlassianOAuthService:
    """Atlassian OAuth 2.0 (3LO) login and invitation acceptance."""

    def __init__(
        self,
        users: UserRepository,
        settings: OAuthSettings,
        *,
        session: Optional[requests.Session] = None,
        timeout: int = 20,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._users = users
        self._settings = settings
        self._http = session or requests.Session()
        self._timeout = timeout
        self._clock = clock or datetime.now
        self._signer = URLSafeTimedSerializer(settings.secret_key, salt="atlassian-oauth")

    def begin_login(self, invitation_token: Optional[str] = None) -> tuple[str, str, str]:
        """Return (authorize_url, state, nonce). The nonce must be kept in the session."""
        invited_user_id = None
        if invitation_token:
            pending = self._users.get_by_invitation_token(invitation_token)
            if not pending or pending.status != UserStatus.INVITED or pending.role != Role.DEVELOPER:
                raise ValidationError("Invalid invitation token")
            invited_user_id = pending.user_id

        nonce = secrets.token_urlsafe(16)
        state = self._signer.dumps({"nonce": nonce, "invited_user_id": invited_user_id})
        params = {
            "audience": "api.atlassian.com",
            "client_id": self._settings.client_id,
            "scope": SCOPE,
            "redirect_uri": self._settings.redirect_uri,
            "state": state,
            "response_type": "code",
            "prompt": "consent",
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}", state, nonce

    def _verify_state(self, state: str, expected_nonce: Optional[str]) -> dict:
        try:
            payload = self._signer.loads(state, max_age=OAUTH_STATE_MAX_AGE_SECONDS)
        except SignatureExpired:
            raise OAuthFlowError("invalid_state", "Login attempt expired")
        except BadSignature:
            raise OAuthFlowError("invalid_state", "Invalid OAuth state")
        if not expected_nonce or payload.get("nonce") != expected_nonce:
            raise OAuthFlowError("invalid_state", "OAuth state does not match this browser session")
        return payload

    def _exchange_code(self, code: str) -> dict:
        try:
            resp = self._http.post(
                TOKEN_URL,
                json={
                    "grant_type": "authorization_code",
                    "client_id": self._settings.client_id,
                    "client_secret": self._settings.client_secret,
                    "code": code,
                    "redirect_uri": self._settings.redirect_uri,
                },
                timeout=self._timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Atlassian token exchange failed: %s", exc)
            raise OAuthFlowError("token_exchange_failed") from exc

    def _fetch_profile(self, access_token: str) -> dict:
        try:
            resp = self._http.get(
                PROFILE_URL,
                headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            profile = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Atlassian profile fetch failed: %s", exc)
            raise OAuthFlowError("profile_fetch_failed") from exc
        if not profile.get("account_id"):
            raise OAuthFlowError("profile_fetch_failed")
        return profile

    def _account(self, profile: dict, tokens: dict) -> AtlassianAccount:
        expires_in = int(tokens.get("expires_in") or 0)
        return AtlassianAccount(
            account_id=profile["account_id"],
            email=profile.get("email"),
            display_name=profile.get("name"),
            avatar_url=profile.get("picture"),
            access_token=tokens.get("access_token"),
            refresh_token=tokens.get("refresh_token"),
            token_expires=self._clock() + timedelta(seconds=expires_in),
        )

    @staticmethod
    def _with_atlassian(methods: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(methods + ("atlassian",)))

    def complete_login(self, code: Optional[str], state: Optional[str], expected_nonce: Optional[str]) -> SessionUser:
        if not code or not state:
            raise OAuthFlowError("invalid_state", "Missing code or state")
        payload = self._verify_state(state, expected_nonce)

        tokens = self._exchange_code(code)
        profile = self._fetch_profile(tokens.get("access_token", ""))
        account = self._account(profile, tokens)

        invited_user_id = payload.get("invited_user_id")
        if invited_user_id:
            user = self._accept_invitation(int(invited_user_id), account)
        else:
            user = self._login_developer(account, profile)
        return SessionUser.from_user(user)

    def _accept_invitation(self, user_id: int, account: AtlassianAccount) -> User:
        pending = self._users.get_by_id(user_id)
        if not pending or pending.status != UserStatus.INVITED:
            raise OAuthFlowError("invalid_state", "Invitation is no longer pending")
        if not pending.invitation_expires or pending.invitation_expires < self._clock():
            raise OAuthFlowError("invitation_expired", "Invitation has expired")

        activated = replace(
            pending,
            status=UserStatus.ACTIVE,
            atlassian=account,
            auth_methods=self._with_atlassian(pending.auth_methods),
            is_email_verified=True,
            invitation_token=None,
            invitation_expires=None,
        )
        self._users.update(activated)
        logger.info("Invitation accepted through Atlassian for user_id=%s", activated.user_id)
        return activated

    def _login_developer(self, account: AtlassianAccount, profile: dict) -> User:
        existing = self._users.get_active_developer_by_account(account.account_id)
        if existing is None and account.email:
            by_email = self._users.get_by_email(account.email)
            if by_email is not None:
                if by_email.role != Role.DEVELOPER or by_email.status != UserStatus.ACTIVE:
                    raise OAuthFlowError("invalid_user_status", "This email belongs to another account")
                existing = by_email

        if existing is not None:
            if not existing.is_active:
                raise OAuthFlowError("invalid_user_status", "Account is disabled")
            updated = replace(
                existing,
                atlassian=account,
                auth_methods=self._with_atlassian(existing.auth_methods),
            )
            self._users.update(updated)
            return updated

        if not account.email:
            raise OAuthFlowError("profile_fetch_failed", "Atlassian profile has no email")
        name_parts = (profile.get("name") or "").split(" ")
        new_user = User(
            user_id=0,
            email=account.email.lower(),
            password_hash=None,
            first_name=name_parts[0] or "Developer",
            last_name=" ".join(name_parts[1:]) or "User",
            role=Role.DEVELOPER,
            status=UserStatus.ACTIVE,
            is_email_verified=True,
            atlassian=account,
            auth_methods=("atlassian",),
        )
        new_user = replace(new_user, user_id=self._users.create(new_user))
        logger.info("Created developer user_id=%s from Atlassian login", new_user.user_id)
        return new_user
