import uuid
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from zerowaste.models.claim_request import ClaimRequest
from zerowaste.models.donation import Donation
from zerowaste.models.user import User
from zerowaste.utils.timeutil import iso_utc, time_until, utcnow


UTCDatetime = Annotated[datetime, PlainSerializer(iso_utc, return_type=str)]


class CamelOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CoordinatesOut(CamelOut):
    lat: float
    lng: float


class LocationOut(CamelOut):
    address: Optional[str] = None
    coordinates: Optional[CoordinatesOut] = None


class PickupWindowOut(CamelOut):
    start: UTCDatetime
    end: UTCDatetime


class DonationRead(CamelOut):
    id: uuid.UUID
    donor_id: int
    donor_name: str
    title: str
    description: str
    quantity: str
    food_type: str
    image_url: Optional[str] = None
    expiry_time: UTCDatetime
    pickup_window: PickupWindowOut
    location: LocationOut
    status: str
    claimed_by: Optional[int] = None
    claimed_by_name: Optional[str] = None
    claimed_at: Optional[UTCDatetime] = None
    picked_at: Optional[UTCDatetime] = None
    expired_at: Optional[UTCDatetime] = None
    created_at: UTCDatetime
    updated_at: UTCDatetime

    # derived at read time, never stored
    is_expired: bool
    time_until_expiry: str
    distance_km: Optional[float] = None

    @classmethod
    def from_donation(
        cls,
        donation: Donation,
        now: Optional[datetime] = None,
        distance_km: Optional[float] = None,
    ) -> "DonationRead":
        now = now or utcnow()
        coordinates = (
            CoordinatesOut(lat=donation.lat, lng=donation.lng)
            if donation.has_coordinates
            else None
        )

        return cls(
            id=donation.id,
            donor_id=donation.donor_id,
            donor_name=donation.donor_name,
            title=donation.title,
            description=donation.description,
            quantity=donation.quantity,
            food_type=donation.food_type,
            image_url=donation.image_url,
            expiry_time=donation.expiry_time,
            pickup_window=PickupWindowOut(start=donation.pickup_start, end=donation.pickup_end),
            location=LocationOut(address=donation.address, coordinates=coordinates),
            status=donation.status,
            claimed_by=donation.claimed_by,
            claimed_by_name=donation.claimed_by_name,
            claimed_at=donation.claimed_at,
            picked_at=donation.picked_at,
            expired_at=donation.expired_at,
            created_at=donation.created_at,
            updated_at=donation.updated_at,
            is_expired=donation.is_expired(now),
            time_until_expiry=time_until(donation.expiry_time, now),
            distance_km=round(distance_km, 2) if distance_km is not None else None,
        )


class ClaimRequestRead(CamelOut):
    id: uuid.UUID
    donation_id: uuid.UUID
    ngo_id: int
    ngo_name: str
    status: str
    message: Optional[str] = None
    created_at: UTCDatetime
    approved_at: Optional[UTCDatetime] = None
    rejected_at: Optional[UTCDatetime] = None
    cancelled_at: Optional[UTCDatetime] = None

    @classmethod
    def from_claim(cls, claim: ClaimRequest) -> "ClaimRequestRead":
        return cls.model_validate(claim, from_attributes=True)


class NGODetailsOut(CamelOut):
    description: str = ""
    contact_number: str = ""
    website: str = ""
    operational_radius: Optional[float] = None


class UserRead(CamelOut):
    id: int
    public_id: str
    display_name: str
    email: str
    role: str
    image: Optional[str] = None
    is_active: bool
    location: Optional[LocationOut] = None
    ngo_details: Optional[NGODetailsOut] = None
    created_at: UTCDatetime
    distance_km: Optional[float] = None

    @classmethod
    def from_user(cls, user: User, distance_km: Optional[float] = None) -> "UserRead":
        location = None
        if user.address or user.has_coordinates:
            location = LocationOut(
                address=user.address,
                coordinates=CoordinatesOut(lat=user.lat, lng=user.lng) if user.has_coordinates else None,
            )

        ngo_details = None
        if user.is_ngo:
            ngo_details = NGODetailsOut(
                description=user.description,
                contact_number=user.contact_number,
                website=user.website,
                operational_radius=user.operational_radius,
            )

        return cls(
            id=user.id,
            public_id=user.public_id,
            display_name=user.name,
            email=user.email,
            role=user.role,
            image=user.image,
            is_active=user.is_active,
            location=location,
            ngo_details=ngo_details,
            created_at=user.created_at,
            distance_km=round(distance_km, 2) if distance_km is not None else None,
        )


# Envelopes


class ErrorResponse(CamelOut):
    success: Literal[False] = False
    error: str
    code: str
    details: Any = None


class DonationListMetadata(CamelOut):
    total_count: int
    user_role: Optional[str] = None
    location_filtering_active: Optional[bool] = None
    radius_km: Optional[float] = None
    search_radius: Optional[float] = None


class DonationListResponse(CamelOut):
    success: Literal[True] = True
    donations: List[DonationRead]
    metadata: DonationListMetadata


class DonationResponse(CamelOut):
    success: Literal[True] = True
    donation: DonationRead
    message: Optional[str] = None


class DonationDetailResponse(CamelOut):
    success: Literal[True] = True
    donation: DonationRead
    claim_requests: List[ClaimRequestRead]
    claim_count: int


class ClaimResponse(CamelOut):
    success: Literal[True] = True
    message: str
    donation: DonationRead
    claim_request: ClaimRequestRead


class CancelClaimResponse(CamelOut):
    success: Literal[True] = True
    message: str
    claim_request: ClaimRequestRead
    donation: Optional[DonationRead] = None
    donation_released: bool


class MyClaimsResponse(CamelOut):
    success: Literal[True] = True
    claim_requests: List[ClaimRequestRead]
    claimed_donations: List[DonationRead]
    counts: Dict[str, int]


class MessageResponse(CamelOut):
    success: Literal[True] = True
    message: str


class StatsResponse(CamelOut):
    success: Literal[True] = True
    stats: Dict[str, Any]


class NearbyNGOsResponse(CamelOut):
    success: Literal[True] = True
    ngos: List[UserRead]
    count: int
    search_location: CoordinatesOut
    radius: float


class UserResponse(CamelOut):
    success: Literal[True] = True
    user: UserRead
    has_location: bool


class ImageUploadResponse(CamelOut):
    success: Literal[True] = True
    image_url: Optional[str] = Field(default=None)
    key: str


class UserListResponse(CamelOut):
    success: Literal[True] = True
    users: List[UserRead]
    count: int


class UserProfileResponse(CamelOut):
    success: Literal[True] = True
    user: UserRead
    stats: Dict[str, Any]


class ImageInfo(CamelOut):
    key: str
    file_name: str
    url: Optional[str] = None
    size: int
    content_type: Optional[str] = None
    uploaded_at: Optional[UTCDatetime] = None


class ImageListResponse(CamelOut):
    success: Literal[True] = True
    images: List[ImageInfo]


class ImageInfoResponse(CamelOut):
    success: Literal[True] = True
    image: ImageInfo
