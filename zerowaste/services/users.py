import logging
from datetime import datetime
from typing import Callable

from sqlmodel import Session

from zerowaste.errors import Forbidden, NotFound
from zerowaste.models.claim_request import ACTIVE_CLAIM_STATUSES
from zerowaste.models.user import User
from zerowaste.repositories.claims import ClaimRequestRepository
from zerowaste.repositories.donations import DonationRepository
from zerowaste.repositories.users import UserRepository
from zerowaste.utils.form_validator import ProfileUpdate
from zerowaste.utils.timeutil import utcnow


logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock
        self.users = UserRepository(session)
        self.donations = DonationRepository(session)
        self.claims = ClaimRequestRepository(session)

    def get(self, user_id: int) -> User:
        user = self.users.find_by_id(user_id)
        if not user or not user.is_active:
            raise NotFound("User not found")
        return user

    def update_profile(self, user: User, payload: ProfileUpdate, acting_user_id: int) -> User:
        if user.id != acting_user_id:
            raise Forbidden("Not authorized to update this user")

        sent = payload.model_fields_set

        if payload.name is not None:
            user.name = payload.name

        if "image" in sent:
            user.image = str(payload.image) if payload.image else None

        if payload.location is not None:
            user.address = payload.location.address
            coordinates = payload.location.coordinates
            user.lat = coordinates.lat if coordinates else None
            user.lng = coordinates.lng if coordinates else None

        # NGO details are ignored for donors
        if payload.ngo_details is not None and user.is_ngo:
            for field, value in payload.ngo_details.model_dump(exclude_none=True).items():
                setattr(user, field, value)

        try:
            self.session.add(user)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(user)
        logger.info("User %s updated profile", user.id)
        return user

    def delete_account(self, user: User, acting_user_id: int) -> None:
        """
        Donors lose their donations (and the claims on them) together with the
        account. NGOs give back the donations they still hold and are
        deactivated, since picked donations keep pointing at them.
        """
        if user.id != acting_user_id:
            raise Forbidden("Not authorized to delete this user")

        now = self.clock()

        try:
            if user.is_ngo:
                released = self._release_claims(user.id, now)
                user.is_active = False
                self.session.add(user)
                logger.info("NGO %s deactivated, %d donations released", user.id, released)
            else:
                removed = self.donations.delete_by_owner(user.id)
                self.users.delete(user)
                logger.info("Donor %s deleted with %d donations", user.id, removed)

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _release_claims(self, ngo_id: int, now: datetime) -> int:
        held = self.donations.find_by_claimant(ngo_id, statuses=["claimed"], limit=None)
        released_ids = set()

        for donation in held:
            self.donations.update_status_and_claim_fields(
                donation.id,
                expected_status="claimed",
                expected_claimant=ngo_id,
                status="available",
                claimed_by=None,
                claimed_by_name=None,
                claimed_at=None,
            )
            released_ids.add(donation.id)

        # picked donations keep their approved claim
        for claim in self.claims.find_by_ngo(ngo_id, limit=None):
            if claim.status == "pending" or (
                claim.status in ACTIVE_CLAIM_STATUSES and claim.donation_id in released_ids
            ):
                self.claims.update_status(claim.id, claim.status, "cancelled", cancelled_at=now)

        return len(released_ids)
