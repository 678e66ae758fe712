import logging
import uuid
from datetime import datetime
from typing import Callable, List, Tuple

from sqlmodel import Session

from zerowaste.errors import Forbidden, InvalidState, NotFound, ValidationError
from zerowaste.models.claim_request import ClaimRequest
from zerowaste.models.donation import Donation
from zerowaste.models.user import User
from zerowaste.repositories.claims import ClaimRequestRepository
from zerowaste.repositories.donations import DonationRepository
from zerowaste.utils.form_validator import DonationCreate, DonationUpdate, donation_columns
from zerowaste.utils.timeutil import utcnow


logger = logging.getLogger(__name__)


class DonationService:
    """Donor-side listing management; status changes live in ``ClaimCoordinator``."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock
        self.donations = DonationRepository(session)
        self.claims = ClaimRequestRepository(session)

    def get(self, donation_id: uuid.UUID) -> Tuple[Donation, List[ClaimRequest]]:
        donation = self.donations.find_by_id(donation_id)
        if not donation:
            raise NotFound("Donation not found")

        return donation, list(self.claims.find_by_donation(donation.id))

    def create(self, donor: User, payload: DonationCreate) -> Donation:
        donation = Donation(
            donor_id=donor.id,
            donor_name=donor.name,
            **donation_columns(payload),
        )

        try:
            self.donations.insert(donation)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(donation)
        logger.info("Donor %s posted donation %s (%s)", donor.id, donation.id, donation.title)
        return donation

    def update(self, donation_id: uuid.UUID, donor_id: int, payload: DonationUpdate) -> Donation:
        donation = self.donations.find_by_id(donation_id)
        if not donation:
            raise NotFound("Donation not found")

        if donation.donor_id != donor_id:
            raise Forbidden("Not authorized to update this donation")

        if donation.status != "available":
            raise InvalidState("Only available donations can be edited")

        changes = donation_columns(payload)
        if not changes:
            raise ValidationError("No fields to update")

        try:
            # conditional on status so an edit never lands on a donation claimed meanwhile
            donation = self.donations.update_status_and_claim_fields(
                donation.id,
                expected_status="available",
                **changes,
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(donation)
        logger.info("Donation %s updated: %s", donation.id, ", ".join(sorted(changes)))
        return donation
