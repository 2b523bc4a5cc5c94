"""
auth/service.py -- Credential & Session Service.

Turns plaintext credentials into a verified User, and a User into a signed
bearer token and back into a Principal.

CredentialService is constructed with its collaborators (UserStore, Settings)
rather than reaching for module-level singletons, so tests can hand it an
in-memory store and a fixed signing key.

Failure contract (all raised, never returned):
  register_credential -- InvalidInput, DuplicateEmail, Forbidden
  verify_credential   -- InvalidCredentials (unknown email and wrong password
                         are indistinguishable, including in timing)
  verify_token        -- MissingToken, InvalidToken, ExpiredToken

Stateless tokens: there is no revocation list. A token is valid from issue
until its "exp" claim, full stop.

Layer rule: no imports from api/, donations/, or contact/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError

from auth.models import PROFILE_FIELDS, ROLE_ADMIN, ROLES, Principal, User
from auth.store import UserStore
from auth.tokens import (
    DUMMY_HASH,
    PASSWORD_MAX_BYTES,
    decode_token,
    encode_token,
    hash_password,
    password_too_long,
    verify_password,
)
from core.config import Settings
from core.errors import (
    DuplicateEmail,
    ExpiredToken,
    Forbidden,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
    MissingToken,
)

logger = logging.getLogger("donationportal.auth")


class CredentialService:
    def __init__(self, user_store: UserStore, settings: Settings) -> None:
        self.user_store = user_store
        self.settings = settings

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def register_credential(
        self,
        email: str,
        password: str,
        role: str,
        profile: dict | None = None,
        self_service: bool = True,
    ) -> User:
        """Create a new account and return the stored User.

        profile may carry any of PROFILE_FIELDS; other keys are InvalidInput.
        The password is hashed before it touches the store and is never logged.
        self_service=False marks an operator-created account (management CLI),
        which is exempt from the admin_signup_enabled switch.
        """
        if not email or not password:
            raise InvalidInput("Email and password are required.")
        if password_too_long(password):
            raise InvalidInput(f"Password must be at most {PASSWORD_MAX_BYTES} bytes.")
        if role not in ROLES:
            raise InvalidInput(f"Role must be one of: {', '.join(sorted(ROLES))}.")
        if role == ROLE_ADMIN and self_service and not self.settings.admin_signup_enabled:
            raise Forbidden("Admin self-registration is disabled.")

        profile = dict(profile or {})
        unknown = set(profile) - set(PROFILE_FIELDS)
        if unknown:
            raise InvalidInput(f"Unknown profile fields: {', '.join(sorted(unknown))}.")

        if self.user_store.get_by_email(email) is not None:
            raise DuplicateEmail()

        user = User(email=email, role=role, hashed_password=hash_password(password), **profile)
        try:
            user_id = self.user_store.create_user(user)
        except IntegrityError as exc:
            # Lost a race with a concurrent signup for the same email.
            raise DuplicateEmail() from exc

        logger.info("Registered user id=%d role=%s", user_id, role)
        return self.user_store.get_by_id(user_id)

    def verify_credential(self, email: str, password: str) -> User:
        """Return the User whose email and password match, else InvalidCredentials.

        Always runs bcrypt whether or not the email exists:
        - Unknown email: bcrypt runs against DUMMY_HASH (same cost as real check)
        - Wrong password: bcrypt runs against the real hash (same cost)
        Do NOT return early before the bcrypt call.
        """
        user = self.user_store.get_by_email(email) if email else None
        if user is None:
            verify_password(password or "", DUMMY_HASH)
            raise InvalidCredentials()
        if not verify_password(password or "", user.hashed_password):
            raise InvalidCredentials()
        return user

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def issue_token(self, user_id: int, role: str, now: datetime | None = None) -> str:
        """Sign a token for (user_id, role) valid for token_expire_seconds from now."""
        issued_at = now or datetime.now(timezone.utc)
        expires_at = issued_at + timedelta(seconds=self.settings.token_expire_seconds)
        claims = {
            "sub": str(user_id),
            "role": role,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return encode_token(claims, self.settings.token_key_id, self.settings.secret_key)

    def verify_token(self, token: str | None, now: datetime | None = None) -> Principal:
        """Verify a bearer token and return the Principal it names.

        Order of checks: presence, signature (via the kid keyring), claim
        shape, then expiry. A token whose signature fails is InvalidToken even
        if it is also past its expiry -- unsigned claims are never trusted.
        """
        if not token:
            raise MissingToken()

        claims = decode_token(token, self.settings.signing_keyring())

        try:
            subject_id = int(claims["sub"])
            role = claims["role"]
            expires_at = int(claims["exp"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidToken() from exc
        if role not in ROLES:
            raise InvalidToken()

        current = now or datetime.now(timezone.utc)
        if current.timestamp() >= expires_at:
            raise ExpiredToken()

        return Principal(subject_id=subject_id, role=role)
