"""
donations/lifecycle.py -- Donation Lifecycle Manager.

Enforces who may create, list, transition, or cancel a donation request, and
the request's status state machine:

    pending --> approved   (terminal)
            \\-> rejected   (terminal)

Authorization matrix:
  create_request      donor only                       else Forbidden
  list_all_requests   admin only                       else Forbidden
  list_own_requests   any authenticated principal
  transition_status   admin only                       else Forbidden
  cancel_request      the owning donor only            else NotFound
  summarize           admin only                       else Forbidden

Existence leakage:
  cancel_request collapses "no such id" and "someone else's id" into one
  NotFound, so a donor cannot probe for other donors' requests.
  transition_status is admin-only, so a missing id is a plain NotFound.

Both state-changing operations are conditional writes against the store
(WHERE status = 'pending'). A request that has already left pending yields
Conflict instead of being silently overwritten.
"""

from __future__ import annotations

import logging
from datetime import datetime

from auth.models import Principal
from auth.store import UserStore
from core.errors import Conflict, Forbidden, InvalidInput, NotFound
from donations.models import (
    DONATION_TYPES,
    STATUS_PENDING,
    STATUSES,
    TERMINAL_STATUSES,
    Donation,
    DonationInput,
    DonationSummary,
)
from donations.store import DonationStore

logger = logging.getLogger("donationportal.donations")

_REQUIRED_FIELDS = ("hospital", "preferred_date", "time")


def _require_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise Forbidden("Admin access required.")


def _check_status_filter(status: str | None) -> None:
    if status is not None and status not in STATUSES:
        raise InvalidInput(f"status must be one of: {', '.join(sorted(STATUSES))}")


class DonationLifecycle:
    def __init__(self, donation_store: DonationStore, user_store: UserStore) -> None:
        self.donation_store = donation_store
        self.user_store = user_store

    def create_request(self, principal: Principal, data: DonationInput) -> Donation:
        """Submit a new pending request on behalf of a donor.

        Validation runs before the profile lookup and before any write, so a
        rejected submission leaves no trace in the store.
        """
        if not principal.is_donor:
            raise Forbidden("Only donors can submit donation requests.")

        if data.type not in DONATION_TYPES:
            raise InvalidInput(f"type must be one of: {', '.join(sorted(DONATION_TYPES))}")
        missing = [name for name in _REQUIRED_FIELDS if not (getattr(data, name) or "").strip()]
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}")

        owner = self.user_store.get_by_id(principal.subject_id)
        if owner is None:
            raise NotFound("User not found.")

        donation = Donation(
            owner_id=owner.id,
            type=data.type,
            details=data.details or None,
            hospital=data.hospital.strip(),
            preferred_date=data.preferred_date.strip(),
            time=data.time.strip(),
            status=STATUS_PENDING,
            # One-time snapshot -- never re-read from the profile afterwards.
            full_name=owner.full_name,
            email=owner.email,
            contact=owner.contact,
            address=owner.address,
            blood_group=owner.blood_group,
        )
        donation_id = self.donation_store.create_donation(donation)
        logger.info("Donation %d created by user %d (%s)", donation_id, owner.id, data.type)
        return self.donation_store.get_donation(donation_id)

    def list_all_requests(self, principal: Principal, status: str | None = None) -> list[Donation]:
        _require_admin(principal)
        _check_status_filter(status)
        return self.donation_store.list_donations(status=status)

    def list_own_requests(self, principal: Principal, status: str | None = None) -> list[Donation]:
        _check_status_filter(status)
        return self.donation_store.list_donations(owner_id=principal.subject_id, status=status)

    def transition_status(self, principal: Principal, request_id: int, new_status: str) -> Donation:
        """Approve or reject a pending request. Terminal statuses are final."""
        _require_admin(principal)
        if new_status not in TERMINAL_STATUSES:
            raise InvalidInput(f"status must be one of: {', '.join(sorted(TERMINAL_STATUSES))}")

        if not self.donation_store.update_status(request_id, new_status, from_status=STATUS_PENDING):
            current = self.donation_store.get_donation(request_id)
            if current is None:
                raise NotFound("Donation not found.")
            raise Conflict(f"Donation is already {current.status}.")

        logger.info("Donation %d %s by admin %d", request_id, new_status, principal.subject_id)
        return self.donation_store.get_donation(request_id)

    def cancel_request(self, principal: Principal, request_id: int) -> None:
        """Withdraw the caller's own pending request."""
        if self.donation_store.delete_pending(request_id, owner_id=principal.subject_id):
            logger.info("Donation %d cancelled by owner %d", request_id, principal.subject_id)
            return

        current = self.donation_store.get_donation(request_id)
        if current is None or current.owner_id != principal.subject_id:
            raise NotFound("Donation not found.")
        raise Conflict(f"Only pending requests can be cancelled; this one is {current.status}.")

    def summarize(self, principal: Principal, now: datetime | None = None) -> DonationSummary:
        _require_admin(principal)
        return self.donation_store.summarize(now=now)
