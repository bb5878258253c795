"""
errors.py — Typed failures raised by the commitment services.

Every error carries the HTTP status and a machine-readable code so the API
layer can render it without knowing which service raised it.
"""

from typing import Optional


class CommitmentError(Exception):
    """Base class for all errors surfaced to callers."""

    status_code = 400
    error_code = "COMMITMENT_ERROR"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(CommitmentError):
    """Referenced sprint, goal or promise does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier=None):
        self.resource = resource
        self.identifier = identifier
        detail = f"{resource} not found" if identifier is None else f"{resource} not found: {identifier}"
        super().__init__(detail)


class AuthorizationError(NotFoundError):
    """
    The record exists but belongs to another user.

    Rendered exactly like NotFoundError so a caller cannot tell which ids
    exist for other users.
    """


class ValidationError(CommitmentError):
    """Invalid input; `field` names the offending promise, goal or attribute."""

    status_code = 422
    error_code = "VALIDATION_ERROR"

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(detail)
        self.field = field


class ConsistencyError(CommitmentError):
    """A write failed mid-transaction and was rolled back as a whole."""

    status_code = 409
    error_code = "CONSISTENCY_ERROR"


class AuthenticationError(CommitmentError):
    """No usable bearer token: missing, malformed, expired or badly signed."""

    status_code = 401
    error_code = "UNAUTHENTICATED"
