from typing import Optional
import uuid
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

from zerowaste.utils.timeutil import as_utc, utcnow


class Donation(SQLModel, table=True):
    __tablename__ = "donations"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Donor info
    donor_id: int = Field(foreign_key="users.id", index=True)
    donor_name: str

    # Listing fields
    title: str
    description: str
    quantity: str  # free text, e.g. "20 plates"
    food_type: str
    image_url: Optional[str] = None

    expiry_time: datetime = Field(index=True)
    pickup_start: datetime
    pickup_end: datetime

    address: str
    lat: Optional[float] = None
    lng: Optional[float] = None

    status: str = Field(default="available", index=True)  # values: available, claimed, picked, expired

    # Claim linkage
    claimed_by: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    claimed_by_name: Optional[str] = None
    claimed_at: Optional[datetime] = None
    picked_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return as_utc(now or utcnow()) > as_utc(self.expiry_time)
