from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when credentials or a session are missing or invalid."""

    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """Raised when a record already exists (duplicate email, second check-in)."""

    status_code = 409

    def __init__(self, message: str, *, payload: Optional[dict] = None):
        super().__init__(message)
        self.payload = payload or {}


class GoneError(DomainError):
    """Raised for expired invitations and tokens."""

    status_code = 410


class JiraApiError(Exception):
    """Upstream Jira call failed.

    `status` is the HTTP status returned by Jira (0 when the request never got
    a response) and `details` is the decoded error body, if any.
    """

    def __init__(self, status: int, message: str, *, details: Any = None):
        super().__init__(message)
        self.status = int(status)
        self.details = details
