"""
api/routes/users.py -- The caller's own account and donation history.

Routes:
  GET /api/user/profile     -- caller's profile (password hash never included)
  PUT /api/user/profile     -- update full_name / contact / address / blood_group
  GET /api/user/donations   -- caller's own donation requests, newest first

Editing the profile does NOT touch existing donation requests; those keep the
snapshot taken when they were submitted.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.models import DonationResponse, DonationStatusEnum, ProfileResponse, ProfileUpdate
from auth.dependencies import get_principal
from auth.models import Principal
from auth.store import UserStore
from core.errors import NotFound
from donations.lifecycle import DonationLifecycle

# Auth policy: every route here requires a valid bearer token.
router = APIRouter()


def _load_user(user_store: UserStore, principal: Principal):
    user = user_store.get_by_id(principal.subject_id)
    if user is None:
        # Token is still valid but the account is gone.
        raise NotFound("User not found.")
    return user


@router.get("/user/profile", response_model=ProfileResponse)
def get_profile(request: Request, principal: Principal = Depends(get_principal)) -> ProfileResponse:
    user_store: UserStore = request.app.state.user_store
    return ProfileResponse.from_user(_load_user(user_store, principal))


@router.put("/user/profile", response_model=ProfileResponse)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    principal: Principal = Depends(get_principal),
) -> ProfileResponse:
    """Apply the fields present in the body. An empty body is a no-op."""
    user_store: UserStore = request.app.state.user_store
    _load_user(user_store, principal)
    user_store.update_profile(principal.subject_id, **body.model_dump(exclude_unset=True))
    return ProfileResponse.from_user(_load_user(user_store, principal))


@router.get("/user/donations", response_model=list[DonationResponse])
def list_own_donations(
    request: Request,
    status: Optional[DonationStatusEnum] = None,
    principal: Principal = Depends(get_principal),
) -> list[DonationResponse]:
    lifecycle: DonationLifecycle = request.app.state.donations
    donations = lifecycle.list_own_requests(principal, status=status.value if status else None)
    return [DonationResponse.from_donation(d) for d in donations]
