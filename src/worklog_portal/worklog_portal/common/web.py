from __future__ import annotations

import logging
from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import current_app, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import ConflictError, DomainError, ValidationError
from .datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)


def json_error(message: str, status: int, **extra: Any):
    body = {"success": False, "error": message}
    body.update(extra)
    return jsonify(body), status


def error_response(exc: DomainError):
    """Map a domain exception to its JSON response."""
    extra = {}
    if isinstance(exc, ConflictError):
        extra.update(exc.payload)
    return json_error(str(exc), exc.status_code, **extra)


def server_error(message: str, exc: Exception):
    logger.exception(message)
    if current_app.config.get("DEBUG"):
        return json_error(message, 500, details=str(exc))
    return json_error(message, 500)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return json_error("Unauthorized", 401)
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return json_error("Unauthorized", 401)
            if session.get("role") not in allowed:
                return json_error("Forbidden", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_user_id() -> int:
    return int(session["user_id"])


def current_role() -> Role:
    return Role(session["role"])


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def date_arg(name: str) -> Optional[date]:
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"Invalid {name}. Use YYYY-MM-DD")


def int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Invalid {name}")


def start_session(s_user) -> None:
    """Store the authenticated user in the signed cookie session."""
    session.clear()
    session.permanent = True
    session["user_id"] = s_user.user_id
    session["name"] = s_user.full_name
    session["email"] = s_user.email
    session["role"] = s_user.role.value
    session["organization_id"] = s_user.organization_id


def as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}")
