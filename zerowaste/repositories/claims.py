import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import update
from sqlmodel import Session, select

from zerowaste.errors import Conflict
from zerowaste.models.claim_request import ACTIVE_CLAIM_STATUSES, ClaimRequest


logger = logging.getLogger(__name__)


class ClaimRequestRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, claim_id: uuid.UUID) -> Optional[ClaimRequest]:
        return self.session.get(ClaimRequest, claim_id)

    def find_active(self, donation_id: uuid.UUID, ngo_id: int) -> Optional[ClaimRequest]:
        return self.session.exec(
            select(ClaimRequest)
            .where(ClaimRequest.donation_id == donation_id)
            .where(ClaimRequest.ngo_id == ngo_id)
            .where(ClaimRequest.status.in_(ACTIVE_CLAIM_STATUSES))
        ).first()

    def find_by_donation(self, donation_id: uuid.UUID) -> Sequence[ClaimRequest]:
        return self.session.exec(
            select(ClaimRequest)
            .where(ClaimRequest.donation_id == donation_id)
            .order_by(ClaimRequest.created_at.desc())
        ).all()

    def find_by_ngo(
        self,
        ngo_id: int,
        status: Optional[str] = None,
        limit: Optional[int] = 50,
    ) -> Sequence[ClaimRequest]:
        query = select(ClaimRequest).where(ClaimRequest.ngo_id == ngo_id)

        if status:
            query = query.where(ClaimRequest.status == status)

        return self.session.exec(
            query.order_by(ClaimRequest.created_at.desc()).limit(limit)
        ).all()

    def find_all(self) -> Sequence[ClaimRequest]:
        return self.session.exec(select(ClaimRequest)).all()

    def insert(self, claim: ClaimRequest) -> ClaimRequest:
        self.session.add(claim)
        self.session.flush()
        return claim

    def update_status(
        self,
        claim_id: uuid.UUID,
        expected_status: str,
        new_status: str,
        **fields,
    ) -> ClaimRequest:
        result = self.session.execute(
            update(ClaimRequest)
            .where(ClaimRequest.id == claim_id)
            .where(ClaimRequest.status == expected_status)
            .values(status=new_status, **fields)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            logger.warning("Claim %s is no longer %r", claim_id, expected_status)
            raise Conflict("Claim was updated by another request")

        claim = self.session.get(ClaimRequest, claim_id)
        self.session.refresh(claim)
        return claim
