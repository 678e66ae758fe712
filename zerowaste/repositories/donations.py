import logging
import uuid
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import delete, update
from sqlmodel import Session, select

from zerowaste.errors import Conflict
from zerowaste.models.claim_request import ClaimRequest
from zerowaste.models.donation import Donation
from zerowaste.utils.timeutil import utcnow


logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


class DonationRepository:
    def __init__(self, session: Session):
        self.session = session

    # Reads

    def find_by_id(self, donation_id: uuid.UUID) -> Optional[Donation]:
        return self.session.get(Donation, donation_id)

    def find_available(
        self,
        exclude_expired: bool = True,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> Sequence[Donation]:
        query = (
            select(Donation)
            .where(Donation.status == "available")
            .order_by(Donation.expiry_time.asc(), Donation.created_at.desc())
        )

        if exclude_expired:
            query = query.where(Donation.expiry_time > (now or utcnow()))

        if limit:
            query = query.limit(limit)

        return self.session.exec(query).all()

    def find_by_owner(
        self,
        donor_id: int,
        statuses: Optional[Sequence[str]] = None,
        limit: Optional[int] = DEFAULT_LIMIT,
    ) -> Sequence[Donation]:
        query = select(Donation).where(Donation.donor_id == donor_id)

        if statuses:
            query = query.where(Donation.status.in_(statuses))

        return self.session.exec(
            query.order_by(Donation.created_at.desc()).limit(limit)
        ).all()

    def find_by_claimant(
        self,
        ngo_id: int,
        statuses: Optional[Sequence[str]] = None,
        limit: Optional[int] = DEFAULT_LIMIT,
    ) -> Sequence[Donation]:
        query = select(Donation).where(Donation.claimed_by == ngo_id)

        if statuses:
            query = query.where(Donation.status.in_(statuses))

        return self.session.exec(
            query.order_by(Donation.claimed_at.desc()).limit(limit)
        ).all()

    def find_all(self, limit: Optional[int] = None) -> Sequence[Donation]:
        query = select(Donation).order_by(Donation.created_at.desc())
        if limit:
            query = query.limit(limit)
        return self.session.exec(query).all()

    # Writes (callers own the commit)

    def insert(self, donation: Donation) -> Donation:
        self.session.add(donation)
        self.session.flush()
        return donation

    def update_status_and_claim_fields(
        self,
        donation_id: uuid.UUID,
        expected_status: str,
        expected_claimant: Optional[int] = None,
        **fields,
    ) -> Donation:
        """
        Conditional single-row update: only applies while the stored status is
        still ``expected_status`` (and, if given, the donation is still held by
        ``expected_claimant``). Raises ``Conflict`` when another request got
        there first.
        """
        fields.setdefault("updated_at", utcnow())

        stmt = (
            update(Donation)
            .where(Donation.id == donation_id)
            .where(Donation.status == expected_status)
        )
        if expected_claimant is not None:
            stmt = stmt.where(Donation.claimed_by == expected_claimant)

        result = self.session.execute(
            stmt.values(**fields).execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            logger.warning(
                "Conditional update on donation %s lost: expected status %r",
                donation_id,
                expected_status,
            )
            raise Conflict("Someone else claimed this first")

        donation = self.session.get(Donation, donation_id)
        self.session.refresh(donation)
        return donation

    def delete(self, donation: Donation) -> None:
        # explicit so it does not depend on the backend enforcing FK cascades
        self.session.execute(
            delete(ClaimRequest).where(ClaimRequest.donation_id == donation.id)
        )
        self.session.delete(donation)
        self.session.flush()

    def delete_by_owner(self, donor_id: int) -> int:
        owned = select(Donation.id).where(Donation.donor_id == donor_id)

        self.session.execute(
            delete(ClaimRequest)
            .where(ClaimRequest.donation_id.in_(owned))
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(
            delete(Donation)
            .where(Donation.donor_id == donor_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
