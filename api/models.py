"""
API request and response models for the donation portal REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
donations/models.py, which own the internal domain representation. Route
handlers map between the two.

Every request model sets extra="forbid": a body with unexpected keys is
rejected as invalid input before any domain code runs, instead of being
forwarded toward the store.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import User
from auth.tokens import PASSWORD_MAX_BYTES, password_too_long
from donations.models import Donation, DonationSummary

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Deliberately loose: one "@", a dot in the domain, no whitespace. Email is
# matched case-sensitively downstream, so no normalization happens here.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
BLOOD_GROUP_PATTERN = r"^(A|B|AB|O)[+-]$"

# Character cap; the byte cap bcrypt needs is checked by _check_password.
_PASSWORD_MAX = PASSWORD_MAX_BYTES

# JSON keys are camelCase (fullName, preferredDate, createdAt) to match the
# SPA. populate_by_name also accepts the snake_case field names on input.
_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_password(value: str) -> str:
    if password_too_long(value):
        raise ValueError(f"must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    donor = "donor"
    admin = "admin"


class DonationTypeEnum(str, Enum):
    blood = "blood"
    organ = "organ"


class DonationStatusEnum(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class DecisionEnum(str, Enum):
    """Statuses an admin may move a pending request to."""

    approved = "approved"
    rejected = "rejected"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/auth/signup.

    Profile fields are optional at signup; donors can fill them in later via
    PUT /api/user/profile before submitting a request.
    """

    model_config = ConfigDict(**_CAMEL, extra="forbid")

    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)
    role: RoleEnum = RoleEnum.donor
    full_name: Optional[str] = Field(default=None, max_length=255)
    contact: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=500)
    blood_group: Optional[str] = Field(default=None, pattern=BLOOD_GROUP_PATTERN)

    check_password_bytes = field_validator("password")(_check_password)


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    model_config = ConfigDict(**_CAMEL, extra="forbid")

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)

    check_password_bytes = field_validator("password")(_check_password)


class AuthResponse(BaseModel):
    """Returned by signup and login. The client stores token and role."""

    model_config = ConfigDict(**_CAMEL, frozen=True)

    token: str
    role: str
    token_type: str = "bearer"
    expires_in: int


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class ProfileResponse(BaseModel):
    """The caller's account. hashed_password is never part of this model."""

    model_config = ConfigDict(**_CAMEL, frozen=True)

    id: int
    email: str
    role: str
    full_name: Optional[str]
    contact: Optional[str]
    address: Optional[str]
    blood_group: Optional[str]
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "ProfileResponse":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            full_name=user.full_name,
            contact=user.contact,
            address=user.address,
            blood_group=user.blood_group,
            created_at=user.created_at or "",
        )


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/user/profile. Omitted fields are left unchanged."""

    model_config = ConfigDict(**_CAMEL, extra="forbid", str_strip_whitespace=True)

    full_name: Optional[str] = Field(default=None, max_length=255)
    contact: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=500)
    blood_group: Optional[str] = Field(default=None, pattern=BLOOD_GROUP_PATTERN)


# ---------------------------------------------------------------------------
# Donations
# ---------------------------------------------------------------------------


class DonationCreate(BaseModel):
    """Request body for POST /api/donations.

    Whitespace is stripped before min_length applies, so a blank hospital is
    rejected the same as a missing one. The SPA posts camelCase preferredDate;
    snake_case preferred_date is accepted as well.
    """

    model_config = ConfigDict(**_CAMEL, extra="forbid", str_strip_whitespace=True)

    type: DonationTypeEnum
    hospital: str = Field(min_length=1, max_length=255)
    preferred_date: str = Field(min_length=1, max_length=32)
    time: str = Field(min_length=1, max_length=16)
    details: Optional[str] = Field(default=None, max_length=1000)


class DonationStatusUpdate(BaseModel):
    """Request body for PUT /api/donations/{id}."""

    model_config = ConfigDict(**_CAMEL, extra="forbid")

    status: DecisionEnum


class DonationResponse(BaseModel):
    """A donation request as returned to clients, snapshot fields included."""

    model_config = ConfigDict(**_CAMEL, frozen=True)

    id: int
    owner_id: int
    type: str
    status: str
    details: Optional[str]
    full_name: Optional[str]
    email: Optional[str]
    contact: Optional[str]
    address: Optional[str]
    blood_group: Optional[str]
    hospital: str
    preferred_date: str
    time: str
    created_at: str
    updated_at: Optional[str]

    @classmethod
    def from_donation(cls, donation: Donation) -> "DonationResponse":
        """Factory Method -- the mapping lives with the output model, not in handlers."""
        return cls(
            id=donation.id,
            owner_id=donation.owner_id,
            type=donation.type,
            status=donation.status,
            details=donation.details,
            full_name=donation.full_name,
            email=donation.email,
            contact=donation.contact,
            address=donation.address,
            blood_group=donation.blood_group,
            hospital=donation.hospital,
            preferred_date=donation.preferred_date,
            time=donation.time,
            created_at=donation.created_at,
            updated_at=donation.updated_at,
        )


class DonationSummaryResponse(BaseModel):
    """Response for GET /api/donations/summary."""

    model_config = ConfigDict(**_CAMEL, frozen=True)

    total: int
    pending: int
    approved: int
    rejected: int
    today: int
    this_week: int
    this_month: int

    @classmethod
    def from_summary(cls, summary: DonationSummary) -> "DonationSummaryResponse":
        return cls(
            total=summary.total,
            pending=summary.pending,
            approved=summary.approved,
            rejected=summary.rejected,
            today=summary.today,
            this_week=summary.this_week,
            this_month=summary.this_month,
        )


# ---------------------------------------------------------------------------
# Contact
# ---------------------------------------------------------------------------


class ContactCreate(BaseModel):
    """Request body for POST /api/contact."""

    model_config = ConfigDict(**_CAMEL, extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    subject: Optional[str] = Field(default=None, max_length=255)
    message: str = Field(min_length=1, max_length=5000)


# ---------------------------------------------------------------------------
# Generic
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    model_config = ConfigDict(**_CAMEL, frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(**_CAMEL, frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses.

    message duplicates error.message at the top level so simple clients can
    read `response.data.message` without knowing the envelope.
    """

    model_config = ConfigDict(**_CAMEL, frozen=True)

    message: str
    error: ErrorDetail

    @classmethod
    def build(cls, code: str, message: str, detail: Optional[str] = None) -> "ErrorResponse":
        return cls(message=message, error=ErrorDetail(code=code, message=message, detail=detail))


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(**_CAMEL, frozen=True)

    status: str = "ok"
    version: str
    database: str
