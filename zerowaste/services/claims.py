import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlmodel import Session

from zerowaste.errors import DuplicateClaim, Expired, Forbidden, InvalidState, NotFound
from zerowaste.models.claim_request import ClaimRequest
from zerowaste.models.donation import Donation
from zerowaste.repositories.claims import ClaimRequestRepository
from zerowaste.repositories.donations import DonationRepository
from zerowaste.utils.timeutil import utcnow


logger = logging.getLogger(__name__)


@dataclass
class ClaimResult:
    donation: Donation
    claim_request: ClaimRequest


@dataclass
class CancelResult:
    claim_request: ClaimRequest
    donation: Optional[Donation]
    donation_released: bool


# available -> claimed -> picked, claimed -> available on cancel, available -> expired
class ClaimCoordinator:
    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock
        self.donations = DonationRepository(session)
        self.claims = ClaimRequestRepository(session)

    def _get_donation(self, donation_id: uuid.UUID) -> Donation:
        donation = self.donations.find_by_id(donation_id)
        if not donation:
            raise NotFound("Donation not found")
        return donation

    def _commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def claim(self, donation_id: uuid.UUID, ngo_id: int, ngo_name: str) -> ClaimResult:
        now = self.clock()
        donation = self._get_donation(donation_id)

        if donation.status != "available":
            raise InvalidState("Donation is no longer available")

        if donation.is_expired(now):
            raise Expired("Donation has expired")

        if self.claims.find_active(donation.id, ngo_id):
            raise DuplicateClaim("You have already claimed this donation")

        try:
            donation = self.donations.update_status_and_claim_fields(
                donation.id,
                expected_status="available",
                status="claimed",
                claimed_by=ngo_id,
                claimed_by_name=ngo_name,
                claimed_at=now,
            )

            # Claims are approved immediately, there is no donor review step
            claim_request = self.claims.insert(
                ClaimRequest(
                    donation_id=donation.id,
                    ngo_id=ngo_id,
                    ngo_name=ngo_name,
                    status="approved",
                    created_at=now,
                    approved_at=now,
                )
            )
        except Exception:
            self.session.rollback()
            raise

        self._commit()
        self.session.refresh(donation)
        self.session.refresh(claim_request)

        logger.info("Donation %s claimed by NGO %s (%s)", donation.id, ngo_id, ngo_name)
        return ClaimResult(donation=donation, claim_request=claim_request)

    def cancel_claim(self, claim_id: uuid.UUID, ngo_id: int) -> CancelResult:
        """
        Cancel a pending claim and release the donation if this NGO still holds it.

        Claims created by ``claim`` are already approved, so they cannot be
        cancelled here.
        """
        now = self.clock()

        claim_request = self.claims.find_by_id(claim_id)
        if not claim_request:
            raise NotFound("Claim request not found")

        if claim_request.ngo_id != ngo_id:
            raise Forbidden("Not authorized to cancel this claim")

        if claim_request.status != "pending":
            raise InvalidState("Only pending claims can be cancelled")

        released = False
        try:
            claim_request = self.claims.update_status(
                claim_request.id,
                expected_status="pending",
                new_status="cancelled",
                cancelled_at=now,
            )

            donation = self.donations.find_by_id(claim_request.donation_id)
            if donation and donation.status == "claimed" and donation.claimed_by == ngo_id:
                donation = self.donations.update_status_and_claim_fields(
                    donation.id,
                    expected_status="claimed",
                    expected_claimant=ngo_id,
                    status="available",
                    claimed_by=None,
                    claimed_by_name=None,
                    claimed_at=None,
                )
                released = True
        except Exception:
            self.session.rollback()
            raise

        self._commit()
        self.session.refresh(claim_request)
        if donation:
            self.session.refresh(donation)

        logger.info("Claim %s cancelled by NGO %s (donation released: %s)", claim_id, ngo_id, released)
        return CancelResult(claim_request=claim_request, donation=donation, donation_released=released)

    def mark_picked(self, donation_id: uuid.UUID, ngo_id: int) -> Donation:
        now = self.clock()
        donation = self._get_donation(donation_id)

        if donation.claimed_by != ngo_id:
            raise Forbidden("Not authorized to mark this donation as picked")

        if donation.status != "claimed":
            raise InvalidState("Donation must be claimed before it can be marked as picked")

        try:
            donation = self.donations.update_status_and_claim_fields(
                donation.id,
                expected_status="claimed",
                expected_claimant=ngo_id,
                status="picked",
                picked_at=now,
            )
        except Exception:
            self.session.rollback()
            raise

        self._commit()
        self.session.refresh(donation)

        logger.info("Donation %s picked up by NGO %s", donation.id, ngo_id)
        return donation

    def mark_expired(self, donation_id: uuid.UUID, donor_id: int) -> Donation:
        """Store the expired status explicitly. Reads treat it as lazy either way."""
        now = self.clock()
        donation = self._get_donation(donation_id)

        if donation.donor_id != donor_id:
            raise Forbidden("Not authorized to update this donation")

        if donation.status != "available":
            raise InvalidState("Only available donations can be marked as expired")

        try:
            donation = self.donations.update_status_and_claim_fields(
                donation.id,
                expected_status="available",
                status="expired",
                expired_at=now,
            )
        except Exception:
            self.session.rollback()
            raise

        self._commit()
        self.session.refresh(donation)

        logger.info("Donation %s marked as expired", donation.id)
        return donation

    def delete_donation(self, donation_id: uuid.UUID, donor_id: int) -> None:
        donation = self._get_donation(donation_id)

        if donation.donor_id != donor_id:
            raise Forbidden("Not authorized to delete this donation")

        try:
            self.donations.delete(donation)
        except Exception:
            self.session.rollback()
            raise

        self._commit()
        logger.info("Donation %s deleted by donor %s", donation_id, donor_id)
