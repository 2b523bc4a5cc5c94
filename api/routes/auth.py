"""
api/routes/auth.py -- Signup and login endpoints.

Routes:
  POST /api/auth/signup   -- register a credential; returns token + role
  POST /api/auth/login    -- verify a credential; returns token + role

Security:
  Both routes are public and rate-limited per client IP (LOGIN_RATE_LIMIT,
  SIGNUP_RATE_LIMIT) as brute-force mitigation.
  @router.post must stay above @limiter.limit: the router has to register
  slowapi's wrapper, not the bare function, or the limit is never checked.
  CredentialService.verify_credential() does timing equalization -- never
  inline a store lookup + verify_password() here.
  Cache-Control: no-store on every response that carries a token.
  The plaintext password is passed straight to the service and never logged.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import AuthResponse, LoginRequest, SignupRequest
from auth.models import User
from auth.service import CredentialService
from core.config import get_settings

_settings = get_settings()

# Auth policy:
# - POST /api/auth/signup: public
# - POST /api/auth/login:  public
router = APIRouter()


def _token_response(credentials: CredentialService, user: User, status_code: int) -> JSONResponse:
    token = credentials.issue_token(user.id, user.role)
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(
            token=token,
            role=user.role,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=credentials.settings.token_expire_seconds,
        ).model_dump(by_alias=True),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/signup", response_model=AuthResponse, status_code=201)
@limiter.limit(_settings.signup_rate_limit)
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Create an account and log it in immediately.

    Duplicate email -> 400 duplicate_email. Admin role when admin signup is
    disabled -> 403 forbidden.
    """
    credentials: CredentialService = request.app.state.credentials
    profile = body.model_dump(include={"full_name", "contact", "address", "blood_group"}, exclude_none=True)
    user = credentials.register_credential(body.email, body.password, body.role.value, profile)
    return _token_response(credentials, user, status_code=201)


@router.post("/auth/login", response_model=AuthResponse)
@limiter.limit(_settings.login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange email + password for a bearer token.

    Unknown email and wrong password both return 401 invalid_credentials
    with the same message.
    """
    credentials: CredentialService = request.app.state.credentials
    user = credentials.verify_credential(body.email, body.password)
    return _token_response(credentials, user, status_code=200)
