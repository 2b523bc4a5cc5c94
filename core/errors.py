"""
core/errors.py -- Typed rejections raised by the credential and donation layers.

Every failure a caller can provoke is a PortalError subclass carrying a
machine-readable code, the HTTP status it maps to, and a client-safe message.
Domain code (auth/, donations/) raises these; api/main.py owns the single
exception handler that renders them into the JSON error envelope. Nothing
below the API layer builds HTTP responses.

Unexpected faults are NOT modelled here. They propagate as ordinary
exceptions and the catch-all handler turns them into a generic 500.

Layer rule: core/ is the kernel. No imports from api/, auth/, donations/, or contact/.
"""

from __future__ import annotations


class PortalError(Exception):
    """Base class for expected, client-facing failures."""

    code: str = "error"
    status_code: int = 400
    default_message: str = "Request failed."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class InvalidInput(PortalError):
    code = "invalid_input"
    status_code = 400
    default_message = "Invalid input."


class DuplicateEmail(PortalError):
    code = "duplicate_email"
    status_code = 400
    default_message = "User exists."


# ---------------------------------------------------------------------------
# Authentication (401)
# ---------------------------------------------------------------------------


class InvalidCredentials(PortalError):
    """Unknown email and wrong password share this error so neither leaks."""

    code = "invalid_credentials"
    status_code = 401
    default_message = "Invalid credentials."


class MissingToken(PortalError):
    code = "missing_token"
    status_code = 401
    default_message = "No token."


class InvalidToken(PortalError):
    code = "invalid_token"
    status_code = 401
    default_message = "Invalid token."


class ExpiredToken(PortalError):
    code = "expired_token"
    status_code = 401
    default_message = "Token expired."


# ---------------------------------------------------------------------------
# Authorization and state
# ---------------------------------------------------------------------------


class Forbidden(PortalError):
    code = "forbidden"
    status_code = 403
    default_message = "Forbidden."


class NotFound(PortalError):
    code = "not_found"
    status_code = 404
    default_message = "Not found."


class Conflict(PortalError):
    code = "conflict"
    status_code = 409
    default_message = "Conflict."
