"""
api/routes/donations.py -- Donation request routes.

Routes (in registration order to avoid FastAPI path capture conflicts):
  POST   /donations             -- donor submits a request (201)
  GET    /donations             -- admin lists every request (?status= filter)
  GET    /donations/summary     -- admin dashboard counts
  PUT    /donations/{id}        -- admin approves or rejects a pending request
  DELETE /donations/{id}        -- owner cancels their own pending request

Handlers are thin: authenticate via get_principal, hand the Principal to
DonationLifecycle, map the result. Every role and ownership rule lives in
donations/lifecycle.py, and every failure surfaces as a PortalError that
api/main.py renders.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.models import (
    DonationCreate,
    DonationResponse,
    DonationStatusEnum,
    DonationStatusUpdate,
    DonationSummaryResponse,
    MessageResponse,
)
from auth.dependencies import get_principal
from auth.models import Principal
from donations.lifecycle import DonationLifecycle
from donations.models import DonationInput

# All donation routes require authentication.
# Router-level dependency rejects missing/invalid/expired tokens before the
# handler runs; handlers still take the Principal for the role checks.
router = APIRouter(dependencies=[Depends(get_principal)])


@router.post("/donations", response_model=DonationResponse, status_code=201)
def create_donation(
    request: Request,
    body: DonationCreate,
    principal: Principal = Depends(get_principal),
) -> DonationResponse:
    """Submit a donation request. The donor's current profile is snapshotted onto it."""
    lifecycle: DonationLifecycle = request.app.state.donations
    donation = lifecycle.create_request(
        principal,
        DonationInput(
            type=body.type.value,
            hospital=body.hospital,
            preferred_date=body.preferred_date,
            time=body.time,
            details=body.details,
        ),
    )
    return DonationResponse.from_donation(donation)


@router.get("/donations", response_model=list[DonationResponse])
def list_donations(
    request: Request,
    status: Optional[DonationStatusEnum] = None,
    principal: Principal = Depends(get_principal),
) -> list[DonationResponse]:
    lifecycle: DonationLifecycle = request.app.state.donations
    donations = lifecycle.list_all_requests(principal, status=status.value if status else None)
    return [DonationResponse.from_donation(d) for d in donations]


@router.get("/donations/summary", response_model=DonationSummaryResponse)
def donation_summary(request: Request, principal: Principal = Depends(get_principal)) -> DonationSummaryResponse:
    """Totals per status plus requests created today / in the last 7 and 30 days."""
    lifecycle: DonationLifecycle = request.app.state.donations
    return DonationSummaryResponse.from_summary(lifecycle.summarize(principal))


@router.put("/donations/{donation_id}", response_model=DonationResponse)
def update_donation_status(
    request: Request,
    donation_id: int,
    body: DonationStatusUpdate,
    principal: Principal = Depends(get_principal),
) -> DonationResponse:
    """Approve or reject. 409 if the request already left pending."""
    lifecycle: DonationLifecycle = request.app.state.donations
    donation = lifecycle.transition_status(principal, donation_id, body.status.value)
    return DonationResponse.from_donation(donation)


@router.delete("/donations/{donation_id}", response_model=MessageResponse)
def cancel_donation(
    request: Request,
    donation_id: int,
    principal: Principal = Depends(get_principal),
) -> MessageResponse:
    """Cancel the caller's own pending request.

    404 for both "no such id" and "not yours" so ids of other donors' requests
    cannot be probed. 409 if it is yours but already decided.
    """
    lifecycle: DonationLifecycle = request.app.state.donations
    lifecycle.cancel_request(principal, donation_id)
    return MessageResponse(message="Donation request cancelled.")
