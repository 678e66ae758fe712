from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from zerowaste.utils.timeutil import as_utc


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class Coordinates(CamelModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class LocationIn(CamelModel):
    address: str = Field(min_length=5, max_length=200)
    coordinates: Optional[Coordinates] = None


class PickupWindowIn(CamelModel):
    start: datetime
    end: datetime

    @model_validator(mode="after")
    def check_order(self):
        if as_utc(self.start) > as_utc(self.end):
            raise ValueError("Pickup window start must not be after its end")
        return self


class DonationCreate(CamelModel):
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=500)
    quantity: str = Field(min_length=1, max_length=50)
    food_type: str = Field(min_length=2, max_length=50)
    expiry_time: datetime
    pickup_window: PickupWindowIn
    location: LocationIn
    image_url: Optional[AnyHttpUrl] = None


class DonationUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, min_length=10, max_length=500)
    quantity: Optional[str] = Field(default=None, min_length=1, max_length=50)
    food_type: Optional[str] = Field(default=None, min_length=2, max_length=50)
    expiry_time: Optional[datetime] = None
    pickup_window: Optional[PickupWindowIn] = None
    location: Optional[LocationIn] = None
    image_url: Optional[AnyHttpUrl] = None

    # omitted means unchanged; only imageUrl may be cleared with null
    @field_validator(
        "title", "description", "quantity", "food_type", "expiry_time", "pickup_window", "location",
        mode="before",
    )
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class NGODetailsIn(CamelModel):
    description: Optional[str] = Field(default=None, max_length=1000)
    contact_number: Optional[str] = Field(default=None, max_length=30)
    website: Optional[str] = Field(default=None, max_length=200)
    operational_radius: Optional[float] = Field(default=None, gt=0, le=500)


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=50, alias="displayName")
    image: Optional[AnyHttpUrl] = None
    location: Optional[LocationIn] = None
    ngo_details: Optional[NGODetailsIn] = None


def donation_columns(payload: CamelModel) -> Dict[str, Any]:
    """Flatten a create/update payload into ``Donation`` column values (only fields that were sent)."""
    data = payload.model_dump(exclude_unset=True)
    columns: Dict[str, Any] = {}

    for field in ("title", "description", "quantity", "food_type"):
        if field in data:
            columns[field] = data[field]

    if "expiry_time" in data:
        columns["expiry_time"] = as_utc(data["expiry_time"])

    if data.get("pickup_window"):
        columns["pickup_start"] = as_utc(data["pickup_window"]["start"])
        columns["pickup_end"] = as_utc(data["pickup_window"]["end"])

    if data.get("location"):
        location = data["location"]
        coordinates = location.get("coordinates") or {}
        columns["address"] = location["address"]
        columns["lat"] = coordinates.get("lat")
        columns["lng"] = coordinates.get("lng")

    if "image_url" in data:
        columns["image_url"] = str(data["image_url"]) if data["image_url"] else None

    return columns
