"""
auth/tokens.py -- Password hashing and JWT encode/decode primitives.

Security design decisions:
  Passwords: bcrypt directly (no passlib wrapper). Bcrypt's cost factor makes
       brute-force of low-entropy secrets expensive. DUMMY_HASH lets
       CredentialService.verify_credential() run a full bcrypt check even for
       unknown emails, so response time does not reveal which emails exist.

  JWT: python-jose with HS256. Every token carries a "kid" header naming the
       key that signed it. decode_token() looks the kid up in a keyring, so a
       rotated-out key can keep verifying old tokens until they expire.

  Expiry is NOT checked here. decode_token() only proves the token is
       well-formed and authentically signed; CredentialService compares "exp"
       against its own clock so the comparison can be tested deterministically.

These functions take the secret as an argument. Nothing in this module reads
configuration -- the caller owns the keys.

Layer rule: no imports from api/, donations/, or contact/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging

import bcrypt
from jose import JWTError, jwt

from core.errors import InvalidToken

logger = logging.getLogger("donationportal.auth")

ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
#
# passlib's internal wrap-bug detection hashes a password longer than 72 bytes,
# which bcrypt 4.x rejects with an explicit error. Direct bcrypt usage has no
# compatibility shim and is actively maintained.
# ---------------------------------------------------------------------------


PASSWORD_MAX_BYTES = 72


def password_too_long(plain: str) -> bool:
    """bcrypt only reads the first 72 bytes; anything longer is refused, not truncated."""
    return len(plain.encode("utf-8")) > PASSWORD_MAX_BYTES


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Raises ValueError for passwords over PASSWORD_MAX_BYTES so two long
    passwords sharing a prefix can never hash alike.
    """
    if password_too_long(plain):
        raise ValueError(f"Password exceeds {PASSWORD_MAX_BYTES} bytes")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    if password_too_long(plain):
        # No stored hash can have come from it.
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store -- treat as a mismatch, never as a match.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
DUMMY_HASH: str = hash_password("donationportal_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def encode_token(claims: dict, key_id: str, secret: str) -> str:
    """Sign claims with HS256 and stamp key_id into the JOSE header."""
    return jwt.encode(claims, secret, algorithm=ALGORITHM, headers={"kid": key_id})


def decode_token(token: str, keyring: dict[str, str]) -> dict:
    """Verify the signature of token against the key named by its kid header.

    Returns the claims dict. Raises InvalidToken when the token is malformed,
    names an unknown key, or fails signature verification. Expiry is left to
    the caller (verify_exp is disabled here).
    """
    try:
        header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise InvalidToken() from exc

    # The header is attacker-controlled until the signature checks out.
    kid = header.get("kid")
    secret = keyring.get(kid) if isinstance(kid, str) else None
    if secret is None:
        logger.info("Rejected token signed with unknown key id %r", kid)
        raise InvalidToken()

    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM], options={"verify_exp": False})
    except JWTError as exc:
        raise InvalidToken() from exc
