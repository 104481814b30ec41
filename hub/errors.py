"""Domain errors raised by services and rendered by the web layer."""
from __future__ import annotations

from fastapi import status


class HubError(Exception):
    """Base class for errors scoped to a single user action."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "request_failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class AuthError(HubError):
    """Missing or invalid credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "not_authenticated"


class ForbiddenError(HubError):
    """Raised when an authorization predicate denies the operation."""

    status_code = status.HTTP_403_FORBIDDEN
    detail = "forbidden"


class ProfileIncompleteError(ForbiddenError):
    detail = "profile_incomplete"


class NotFoundError(HubError):
    """Referenced row is missing (or not visible to the actor)."""

    status_code = status.HTTP_404_NOT_FOUND
    detail = "not_found"


class ConflictError(HubError):
    """Uniqueness violation, e.g. a duplicate registration."""

    status_code = status.HTTP_409_CONFLICT
    detail = "conflict"


class ValidationError(HubError):
    """Business rule rejected the request (capacity, team size, wrong mode)."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    detail = "validation_error"
