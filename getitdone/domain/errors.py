"""
Error taxonomy shared by the domain, the services and the API layer.

Every error carries the HTTP status the API renders it with, so the
exception handlers in ``getitdone.api.app`` stay a single mapping.
"""

from __future__ import annotations


class GetItDoneError(Exception):
    """Base class for errors that are safe to show to API clients."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(GetItDoneError):
    status_code = 400
    default_message = "Invalid request"


class InvalidInput(ValidationError):
    """Raised by pure calculators (pricing, geolocation) on bad arguments."""


class AuthError(GetItDoneError):
    status_code = 401
    default_message = "Invalid token. Please log in again."


class PermissionDenied(GetItDoneError):
    status_code = 403
    default_message = "You do not have permission to perform this action."


class NotFound(GetItDoneError):
    status_code = 404
    default_message = "Resource not found"


class InvalidTransition(GetItDoneError):
    status_code = 400
    default_message = "Invalid status transition"


class Conflict(InvalidTransition):
    """A concurrent writer got there first."""

    status_code = 409
    default_message = "The errand was modified by another request"


class InvalidState(GetItDoneError):
    status_code = 400
    default_message = "Operation not allowed in the current state"


class AlreadyRated(InvalidState):
    default_message = "Errand already rated"


class TransportFailure(GetItDoneError):
    """An email / SMS / payment / geocoding provider call failed."""

    status_code = 502
    default_message = "Upstream provider unavailable"

    def __init__(self, message: str | None = None, *, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable
