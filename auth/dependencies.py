"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The only accepted credential is an "Authorization: Bearer <token>" header.
The token is verified by the CredentialService stored on app.state; the
result is a Principal built from the token's signed claims.

get_principal() raises MissingToken / InvalidToken / ExpiredToken (all 401).
Role checks are NOT done here -- DonationLifecycle decides who may do what,
so the same rules apply whether a caller comes in over HTTP or the CLI.

Layer rule: no imports from donations/ or contact/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import Principal
from auth.service import CredentialService

_BEARER_PREFIX = "bearer "


def bearer_token(request: Request) -> str | None:
    """Extract the raw token from the Authorization header, or None.

    The scheme name is matched case-insensitively (RFC 7235). Any other
    scheme, or an empty token after the prefix, counts as no token.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        return None
    token = auth_header[len(_BEARER_PREFIX) :].strip()
    return token or None


def get_principal(request: Request) -> Principal:
    """Require authentication. Use as a FastAPI dependency:

        @router.get("/protected")
        def route(principal: Principal = Depends(get_principal)): ...
    """
    credentials: CredentialService = request.app.state.credentials
    return credentials.verify_token(bearer_token(request))
