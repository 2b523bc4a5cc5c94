"""
donations/models.py -- Domain dataclasses for donation requests.

These are pure data containers with zero logic. The state machine and the
authorization rules live in donations/lifecycle.py; persistence in
donations/store.py.
"""

from dataclasses import dataclass
from typing import Optional

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

DONATION_TYPES = frozenset({"blood", "organ"})

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"

STATUSES = frozenset({STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED})
# No transition leaves a terminal status.
TERMINAL_STATUSES = frozenset({STATUS_APPROVED, STATUS_REJECTED})


@dataclass
class DonationInput:
    """What a donor submits. Everything else on a Donation is derived."""

    type: str
    hospital: str
    preferred_date: str
    time: str
    details: Optional[str] = None


@dataclass
class Donation:
    """A donation request.

    The snapshot fields (full_name, email, contact, address, blood_group) are
    copied from the owner's profile when the request is created and are never
    refreshed. Editing a profile later does not rewrite history; status is the
    only field that changes after insert.

    id is None before the record is written to the database.
    """

    owner_id: int
    type: str  # "blood" | "organ"
    hospital: str
    preferred_date: str
    time: str
    status: str = STATUS_PENDING
    details: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    contact: Optional[str] = None
    address: Optional[str] = None
    blood_group: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: Optional[str] = None  # ISO 8601, set on status change
    id: Optional[int] = None


@dataclass
class DonationSummary:
    """Counts behind the admin dashboard widgets."""

    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    today: int = 0
    this_week: int = 0
    this_month: int = 0
