import logging
import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from zerowaste.config import get_settings
from zerowaste.db.db import get_session
from zerowaste.errors import ValidationError
from zerowaste.models.user import User
from zerowaste.repositories.claims import ClaimRequestRepository
from zerowaste.repositories.donations import DonationRepository
from zerowaste.schemas import (
    CancelClaimResponse,
    ClaimRequestRead,
    ClaimResponse,
    DonationDetailResponse,
    DonationListMetadata,
    DonationListResponse,
    DonationRead,
    DonationResponse,
    MessageResponse,
    MyClaimsResponse,
    StatsResponse,
)
from zerowaste.services.claims import ClaimCoordinator
from zerowaste.services.donations import DonationService
from zerowaste.services.matching import MatchingService
from zerowaste.services.stats import donation_stats
from zerowaste.utils.auth_helper import get_principal, require_donor, require_ngo
from zerowaste.utils.form_validator import DonationCreate, DonationUpdate
from zerowaste.utils.geo import distance_km
from zerowaste.utils.timeutil import utcnow


logger = logging.getLogger(__name__)

router = APIRouter()

DonationStatus = Literal["available", "claimed", "picked", "expired"]
ClaimStatus = Literal["pending", "approved", "rejected", "cancelled"]


def _read_all(donations, ngo: Optional[User] = None):
    now = utcnow()
    reads = []

    for donation in donations:
        distance = None
        if ngo is not None and ngo.has_coordinates and donation.has_coordinates:
            distance = distance_km(ngo.lat, ngo.lng, donation.lat, donation.lng)
        reads.append(DonationRead.from_donation(donation, now=now, distance_km=distance))

    return reads


@router.get("", response_model=DonationListResponse)
def list_donations(
    status: Optional[DonationStatus] = None,
    donor_id: Optional[int] = Query(default=None, alias="donorId"),
    claimed_by: Optional[int] = Query(default=None, alias="claimedBy"),
    limit: int = Query(default=100, ge=1, le=100),
    session: Session = Depends(get_session),
    user: User = Depends(get_principal),
):
    repo = DonationRepository(session)
    metadata = {"user_role": user.role}

    if donor_id is not None or claimed_by is not None:
        statuses = [status] if status else None
        if donor_id is not None:
            donations = repo.find_by_owner(donor_id, statuses=statuses, limit=limit)
        else:
            donations = repo.find_by_claimant(claimed_by, statuses=statuses, limit=limit)

        reads = _read_all(donations)

    elif status not in (None, "available"):
        raise ValidationError("Filtering by this status requires donorId or claimedBy")

    elif user.is_ngo:
        match = MatchingService(session, default_radius_km=get_settings().DEFAULT_RADIUS_KM).visible_donations(user)
        metadata["location_filtering_active"] = match.location_filtering_active
        metadata["radius_km"] = match.radius_km
        reads = _read_all(match.donations[:limit], ngo=user)

    else:
        reads = _read_all(repo.find_available(exclude_expired=True, limit=limit))
        metadata["location_filtering_active"] = False

    return DonationListResponse(
        donations=reads,
        metadata=DonationListMetadata(total_count=len(reads), **metadata),
    )


@router.get("/location", response_model=DonationListResponse)
def get_donations_by_location(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: Optional[float] = Query(default=None, ge=0.1, le=100),
    session: Session = Depends(get_session),
):
    radius = radius or get_settings().LOCATION_SEARCH_RADIUS_KM
    donations = MatchingService(session).donations_near(lat, lng, radius)

    now = utcnow()
    reads = [
        DonationRead.from_donation(d, now=now, distance_km=distance_km(lat, lng, d.lat, d.lng))
        for d in donations
    ]

    return DonationListResponse(
        donations=reads,
        metadata=DonationListMetadata(total_count=len(reads), search_radius=radius),
    )


@router.get("/stats", response_model=StatsResponse)
def get_donation_stats(session: Session = Depends(get_session)):
    return StatsResponse(stats=donation_stats(session))


@router.get("/ngo/my-donations", response_model=DonationListResponse)
def get_my_ngo_donations(
    limit: int = Query(default=50, ge=1, le=100),
    session: Session = Depends(get_session),
    ngo: User = Depends(require_ngo),
):
    donations = DonationRepository(session).find_by_claimant(
        ngo.id, statuses=["claimed", "picked"], limit=limit
    )
    reads = _read_all(donations, ngo=ngo)

    return DonationListResponse(
        donations=reads,
        metadata=DonationListMetadata(total_count=len(reads), user_role=ngo.role),
    )


@router.get("/ngo/my-claims", response_model=MyClaimsResponse)
def get_my_claims(
    status: Optional[ClaimStatus] = None,
    limit: int = Query(default=50, ge=1, le=100),
    session: Session = Depends(get_session),
    ngo: User = Depends(require_ngo),
):
    claims = ClaimRequestRepository(session).find_by_ngo(ngo.id, status=status, limit=limit)
    donations = DonationRepository(session).find_by_claimant(
        ngo.id, statuses=["claimed", "picked"], limit=limit
    )

    return MyClaimsResponse(
        claim_requests=[ClaimRequestRead.from_claim(c) for c in claims],
        claimed_donations=_read_all(donations, ngo=ngo),
        counts={"claims": len(claims), "donations": len(donations)},
    )


@router.post("/claims/{claim_id}/cancel", response_model=CancelClaimResponse)
def cancel_claim(
    claim_id: uuid.UUID,
    session: Session = Depends(get_session),
    ngo: User = Depends(require_ngo),
):
    result = ClaimCoordinator(session).cancel_claim(claim_id, ngo.id)

    return CancelClaimResponse(
        message="Claim cancelled successfully",
        claim_request=ClaimRequestRead.from_claim(result.claim_request),
        donation=DonationRead.from_donation(result.donation) if result.donation else None,
        donation_released=result.donation_released,
    )


@router.post("", response_model=DonationResponse, status_code=201)
def create_donation(
    payload: DonationCreate,
    session: Session = Depends(get_session),
    donor: User = Depends(require_donor),
):
    donation = DonationService(session).create(donor, payload)

    return DonationResponse(
        donation=DonationRead.from_donation(donation),
        message="Donation created successfully",
    )


@router.get("/{donation_id}", response_model=DonationDetailResponse)
def get_donation(donation_id: uuid.UUID, session: Session = Depends(get_session)):
    donation, claims = DonationService(session).get(donation_id)

    return DonationDetailResponse(
        donation=DonationRead.from_donation(donation),
        claim_requests=[ClaimRequestRead.from_claim(c) for c in claims],
        claim_count=len(claims),
    )


@router.put("/{donation_id}", response_model=DonationResponse)
def update_donation(
    donation_id: uuid.UUID,
    payload: DonationUpdate,
    session: Session = Depends(get_session),
    donor: User = Depends(require_donor),
):
    donation = DonationService(session).update(donation_id, donor.id, payload)

    return DonationResponse(
        donation=DonationRead.from_donation(donation),
        message="Donation updated successfully",
    )


@router.delete("/{donation_id}", response_model=MessageResponse)
def delete_donation(
    donation_id: uuid.UUID,
    session: Session = Depends(get_session),
    donor: User = Depends(require_donor),
):
    ClaimCoordinator(session).delete_donation(donation_id, donor.id)
    return MessageResponse(message="Donation deleted successfully")


@router.post("/{donation_id}/claim", response_model=ClaimResponse)
def claim_donation(
    donation_id: uuid.UUID,
    session: Session = Depends(get_session),
    ngo: User = Depends(require_ngo),
):
    result = ClaimCoordinator(session).claim(donation_id, ngo.id, ngo.name)

    return ClaimResponse(
        message="Donation claimed successfully",
        donation=DonationRead.from_donation(result.donation),
        claim_request=ClaimRequestRead.from_claim(result.claim_request),
    )


@router.post("/{donation_id}/pickup", response_model=DonationResponse)
def mark_as_picked(
    donation_id: uuid.UUID,
    session: Session = Depends(get_session),
    ngo: User = Depends(require_ngo),
):
    donation = ClaimCoordinator(session).mark_picked(donation_id, ngo.id)

    return DonationResponse(
        donation=DonationRead.from_donation(donation),
        message="Donation marked as picked up",
    )


@router.post("/{donation_id}/expire", response_model=DonationResponse)
def mark_as_expired(
    donation_id: uuid.UUID,
    session: Session = Depends(get_session),
    donor: User = Depends(require_donor),
):
    donation = ClaimCoordinator(session).mark_expired(donation_id, donor.id)

    return DonationResponse(
        donation=DonationRead.from_donation(donation),
        message="Donation marked as expired",
    )
