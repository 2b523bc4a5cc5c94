"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in donations/models.py -- dataclasses own domain shape; stores and services
do the work.

Layer rule: no imports from api/, donations/, or contact/.
"""

from __future__ import annotations

from dataclasses import dataclass

ROLE_DONOR = "donor"
ROLE_ADMIN = "admin"
ROLES = frozenset({ROLE_DONOR, ROLE_ADMIN})

# Profile fields a user may edit after signup. email, role and the password
# hash are deliberately absent.
PROFILE_FIELDS = ("full_name", "contact", "address", "blood_group")


@dataclass
class User:
    """A registered account -- the credential record plus donor profile.

    email is the login key: unique and compared by exact, case-sensitive match.
    hashed_password is a bcrypt hash. It is never returned over HTTP, never
    logged, and only ever checked through auth.tokens.verify_password().

    The profile fields (full_name, contact, address, blood_group) are what a
    donation request snapshots at submission time.
    """

    email: str
    role: str  # "donor" | "admin"
    hashed_password: str
    id: int | None = None
    full_name: str | None = None
    contact: str | None = None
    address: str | None = None
    blood_group: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Principal:
    """The authenticated identity for the duration of one request.

    Built from verified token claims only -- no store lookup is involved, so a
    Principal says nothing about whether the user record still exists.
    """

    subject_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_donor(self) -> bool:
        return self.role == ROLE_DONOR
