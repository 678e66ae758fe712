from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from zerowaste.config import get_settings
from zerowaste.db.db import get_session
from zerowaste.models.user import User
from zerowaste.schemas import (
    CoordinatesOut,
    MessageResponse,
    NearbyNGOsResponse,
    StatsResponse,
    UserRead,
    UserResponse,
)
from zerowaste.services.matching import MatchingService
from zerowaste.services.stats import user_stats
from zerowaste.services.users import UserService
from zerowaste.utils.auth_helper import get_principal
from zerowaste.utils.form_validator import ProfileUpdate


router = APIRouter()


@router.get("/ngos/nearby", response_model=NearbyNGOsResponse)
def get_ngos_near_location(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: Optional[float] = Query(default=None, ge=0.1, le=100),
    session: Session = Depends(get_session),
):
    """NGOs whose base is within ``radius`` km of a point, for donors checking who can see a listing."""
    radius = radius or get_settings().DEFAULT_RADIUS_KM
    nearby = MatchingService(session).nearby_ngos(lat, lng, radius)

    return NearbyNGOsResponse(
        ngos=[UserRead.from_user(ngo, distance_km=distance) for ngo, distance in nearby],
        count=len(nearby),
        search_location=CoordinatesOut(lat=lat, lng=lng),
        radius=radius,
    )


@router.get("/me", response_model=UserResponse)
def get_my_profile(user: User = Depends(get_principal)):
    return UserResponse(user=UserRead.from_user(user), has_location=user.has_coordinates)


@router.put("/profile", response_model=UserResponse)
def update_profile(
    payload: ProfileUpdate,
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    user = UserService(session).update_profile(user, payload, acting_user_id=user.id)
    return UserResponse(user=UserRead.from_user(user), has_location=user.has_coordinates)


@router.delete("/account", response_model=MessageResponse)
def delete_account(
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    UserService(session).delete_account(user, acting_user_id=user.id)
    return MessageResponse(message="Account deleted successfully")


@router.get("/stats", response_model=StatsResponse)
def get_user_stats(
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    return StatsResponse(stats=user_stats(session, user, default_radius_km=get_settings().DEFAULT_RADIUS_KM))
