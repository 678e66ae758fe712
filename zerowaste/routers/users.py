from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from zerowaste.config import get_settings
from zerowaste.db.db import get_session
from zerowaste.models.user import User
from zerowaste.repositories.donations import DonationRepository
from zerowaste.repositories.users import UserRepository
from zerowaste.routers.donations import DonationStatus
from zerowaste.schemas import (
    DonationListMetadata,
    DonationListResponse,
    DonationRead,
    MessageResponse,
    StatsResponse,
    UserListResponse,
    UserProfileResponse,
    UserRead,
    UserResponse,
)
from zerowaste.services.stats import dashboard_stats, profile_stats
from zerowaste.services.users import UserService
from zerowaste.utils.auth_helper import get_principal
from zerowaste.utils.form_validator import ProfileUpdate


router = APIRouter()

Role = Literal["donor", "ngo"]


@router.get("", response_model=UserListResponse)
def get_all_users(
    role: Optional[Role] = None,
    limit: int = Query(default=50, ge=1, le=100),
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    users = UserRepository(session).find_all(role=role, limit=limit)
    return UserListResponse(users=[UserRead.from_user(u) for u in users], count=len(users))


@router.get("/search", response_model=UserListResponse)
def search_users(
    q: str = Query(..., min_length=1, max_length=100),
    role: Optional[Role] = None,
    limit: int = Query(default=20, ge=1, le=100),
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    """Match display name or email, case-insensitive."""
    users = UserRepository(session).search(q, role=role, limit=limit)
    return UserListResponse(users=[UserRead.from_user(u) for u in users], count=len(users))


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    found = UserService(session).get(user_id)
    return UserResponse(user=UserRead.from_user(found), has_location=found.has_coordinates)


@router.get("/{user_id}/profile", response_model=UserProfileResponse)
def get_user_profile(
    user_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    found = UserService(session).get(user_id)
    stats = profile_stats(session, found, default_radius_km=get_settings().DEFAULT_RADIUS_KM)

    return UserProfileResponse(user=UserRead.from_user(found), stats=stats)


@router.get("/{user_id}/donations", response_model=DonationListResponse)
def get_user_donations(
    user_id: int,
    status: Optional[DonationStatus] = None,
    limit: int = Query(default=50, ge=1, le=100),
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    """Donations a donor posted, or donations an NGO claimed."""
    found = UserService(session).get(user_id)
    repo = DonationRepository(session)
    statuses = [status] if status else None

    if found.is_ngo:
        donations = repo.find_by_claimant(found.id, statuses=statuses, limit=limit)
    else:
        donations = repo.find_by_owner(found.id, statuses=statuses, limit=limit)

    reads = [DonationRead.from_donation(d) for d in donations]
    return DonationListResponse(
        donations=reads,
        metadata=DonationListMetadata(total_count=len(reads), user_role=found.role),
    )


@router.get("/{user_id}/dashboard-stats", response_model=StatsResponse)
def get_user_dashboard_stats(
    user_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    found = UserService(session).get(user_id)
    stats = dashboard_stats(session, found, default_radius_km=get_settings().DEFAULT_RADIUS_KM)

    # recent lists hold ORM rows
    for key in ("recentDonations", "recentClaims"):
        if key in stats:
            stats[key] = [
                DonationRead.from_donation(d).model_dump(mode="json", by_alias=True)
                for d in stats[key]
            ]

    return StatsResponse(stats=stats)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    payload: ProfileUpdate,
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    service = UserService(session)
    updated = service.update_profile(service.get(user_id), payload, acting_user_id=user.id)

    return UserResponse(user=UserRead.from_user(updated), has_location=updated.has_coordinates)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    service = UserService(session)
    service.delete_account(service.get(user_id), acting_user_id=user.id)

    return MessageResponse(message="User deleted successfully")
