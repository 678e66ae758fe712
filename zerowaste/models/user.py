from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: str = Field(index=True, unique=True)  # bearer token subject
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    name: str
    email: str = Field(index=True, unique=True)
    image: Optional[str] = None  # avatar URL

    role: str = Field(default="donor", index=True)  # Possible roles: donor, ngo
    is_active: bool = Field(default=True)

    # Location (required in practice for NGOs)
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    # NGO details
    description: str = Field(default="")
    contact_number: str = Field(default="")
    website: str = Field(default="")
    operational_radius: Optional[float] = None  # km, unset means the service default

    @property
    def is_ngo(self) -> bool:
        return self.role == "ngo"

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None
