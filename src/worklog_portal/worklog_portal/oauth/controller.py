from __future__ import annotations

import logging
from urllib.parse import urlencode

from flask import Flask, redirect, request, session

from ..common.web import error_response, start_session
from ..container import Container
from ..core.exceptions import DomainError
from .service import OAuthFlowError

logger = logging.getLogger(__name__)

NONCE_KEY = "atlassian_oauth_nonce"


def register(app: Flask, container: Container) -> None:
    base_url = str(app.config.get("APP_BASE_URL", "")).rstrip("/")

    def _login_error(code: str):
        return redirect(f"{base_url}/auth/login?{urlencode({'error': code})}")

    @app.route("/api/auth/atlassian/login", endpoint="atlassian_login")
    def atlassian_login():
        try:
            url, _, nonce = container.oauth_service.begin_login(request.args.get("token") or None)
        except DomainError as e:
            return error_response(e)
        session[NONCE_KEY] = nonce
        return redirect(url)

    @app.route("/api/auth/atlassian/callback", endpoint="atlassian_callback")
    def atlassian_callback():
        if request.args.get("error"):
            return _login_error("access_denied")

        nonce = session.pop(NONCE_KEY, None)
        try:
            s_user = container.oauth_service.complete_login(
                request.args.get("code"), request.args.get("state"), nonce
            )
        except OAuthFlowError as e:
            logger.warning("Atlassian callback failed: %s", e.code)
            return _login_error(e.code)
        except Exception:
            logger.exception("Atlassian callback failed")
            return _login_error("callback_failed")

        start_session(s_user)
        return redirect(f"{base_url}/dashboard/developer")
