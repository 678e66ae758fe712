from typing import Optional
import uuid
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone


ACTIVE_CLAIM_STATUSES = ("pending", "approved")


class ClaimRequest(SQLModel, table=True):
    __tablename__ = "claim_requests"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Linked donation, removed together with it
    donation_id: uuid.UUID = Field(foreign_key="donations.id", index=True, ondelete="CASCADE")

    # Claimant
    ngo_id: int = Field(foreign_key="users.id", index=True)
    ngo_name: str

    status: str = Field(default="pending", index=True)  # values: pending, approved, rejected, cancelled
    message: Optional[str] = None

    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
