from datetime import timedelta

import pytest

from zerowaste.errors import Conflict
from zerowaste.models.claim_request import ClaimRequest
from zerowaste.repositories.claims import ClaimRequestRepository
from zerowaste.repositories.donations import DonationRepository
from zerowaste.repositories.users import UserRepository
from zerowaste.utils.timeutil import utcnow


def test_conditional_update_applies_on_expected_status(session, donor, ngo, make_donation):
    donation = make_donation(donor)

    updated = DonationRepository(session).update_status_and_claim_fields(
        donation.id, "available", status="claimed", claimed_by=ngo.id, claimed_by_name=ngo.name
    )
    session.commit()

    assert updated.status == "claimed"
    assert updated.claimed_by == ngo.id
    assert updated.updated_at >= donation.created_at


def test_conditional_update_conflicts_on_stale_status(session, donor, ngo, make_donation):
    donation = make_donation(donor, status="claimed", claimed_by=ngo.id, claimed_by_name=ngo.name)

    with pytest.raises(Conflict):
        DonationRepository(session).update_status_and_claim_fields(donation.id, "available", status="claimed")

    session.rollback()
    session.refresh(donation)
    assert donation.status == "claimed"


def test_conditional_update_checks_claimant(session, donor, ngo, other_ngo, make_donation):
    donation = make_donation(donor, status="claimed", claimed_by=ngo.id, claimed_by_name=ngo.name)
    repo = DonationRepository(session)

    with pytest.raises(Conflict):
        repo.update_status_and_claim_fields(
            donation.id, "claimed", expected_claimant=other_ngo.id, status="picked", picked_at=utcnow()
        )
    session.rollback()

    picked = repo.update_status_and_claim_fields(
        donation.id, "claimed", expected_claimant=ngo.id, status="picked", picked_at=utcnow()
    )
    session.commit()
    assert picked.status == "picked"


def test_find_available_skips_expired_unless_asked(session, donor, make_donation):
    fresh = make_donation(donor)
    stale = make_donation(donor, expires_in=timedelta(minutes=-1))
    repo = DonationRepository(session)

    assert [d.id for d in repo.find_available()] == [fresh.id]
    assert {d.id for d in repo.find_available(exclude_expired=False)} == {fresh.id, stale.id}


def test_find_by_owner_and_claimant(session, donor, ngo, make_user, make_donation):
    other_donor = make_user("Cafe Coffee Day", role="donor")
    mine = make_donation(donor)
    make_donation(other_donor)
    held = make_donation(other_donor, status="claimed", claimed_by=ngo.id, claimed_by_name=ngo.name, claimed_at=utcnow())
    repo = DonationRepository(session)

    assert [d.id for d in repo.find_by_owner(donor.id)] == [mine.id]
    assert [d.id for d in repo.find_by_claimant(ngo.id)] == [held.id]
    assert repo.find_by_claimant(ngo.id, statuses=["picked"]) == []


def test_delete_removes_claim_requests(session, donor, ngo, make_donation):
    donation = make_donation(donor)
    session.add(ClaimRequest(donation_id=donation.id, ngo_id=ngo.id, ngo_name=ngo.name))
    session.commit()
    donation_id = donation.id

    DonationRepository(session).delete(donation)
    session.commit()

    assert DonationRepository(session).find_by_id(donation_id) is None
    assert ClaimRequestRepository(session).find_by_donation(donation_id) == []


def test_claim_status_update_is_conditional(session, donor, ngo, make_donation):
    donation = make_donation(donor)
    claim = ClaimRequest(donation_id=donation.id, ngo_id=ngo.id, ngo_name=ngo.name, status="pending")
    session.add(claim)
    session.commit()
    repo = ClaimRequestRepository(session)

    cancelled = repo.update_status(claim.id, "pending", "cancelled", cancelled_at=utcnow())
    session.commit()
    assert cancelled.status == "cancelled"

    with pytest.raises(Conflict):
        repo.update_status(claim.id, "pending", "cancelled")


def test_find_active_ignores_closed_claims(session, donor, ngo, make_donation):
    donation = make_donation(donor)
    session.add(ClaimRequest(donation_id=donation.id, ngo_id=ngo.id, ngo_name=ngo.name, status="cancelled"))
    session.commit()
    repo = ClaimRequestRepository(session)

    assert repo.find_active(donation.id, ngo.id) is None

    session.add(ClaimRequest(donation_id=donation.id, ngo_id=ngo.id, ngo_name=ngo.name, status="approved"))
    session.commit()

    assert repo.find_active(donation.id, ngo.id).status == "approved"


def test_find_ngos_with_location(session, ngo, make_user):
    make_user("Nomad NGO", role="ngo")
    make_user("Closed NGO", role="ngo", lat=12.0, lng=77.0, is_active=False)
    make_user("Located donor", role="donor", lat=12.0, lng=77.0)
    repo = UserRepository(session)

    assert [u.id for u in repo.find_ngos_with_location()] == [ngo.id]
    assert len(repo.find_ngos_with_location(active_only=False)) == 2
    assert repo.find_by_public_id(ngo.public_id).id == ngo.id


def test_find_by_owner_filters_status_before_limit(session, donor, ngo, make_donation):
    available = make_donation(donor)
    for _ in range(3):
        make_donation(donor, status="picked", claimed_by=ngo.id, claimed_by_name=ngo.name)
    repo = DonationRepository(session)

    assert [d.id for d in repo.find_by_owner(donor.id, statuses=["available"], limit=1)] == [available.id]
    assert len(repo.find_by_owner(donor.id, statuses=["picked", "available"], limit=None)) == 4


def test_delete_by_owner_removes_donations_and_claims(session, donor, ngo, make_user, make_donation):
    other_donor = make_user("Cafe Coffee Day", role="donor")
    mine = make_donation(donor)
    theirs = make_donation(other_donor)
    for donation in (mine, theirs):
        session.add(ClaimRequest(donation_id=donation.id, ngo_id=ngo.id, ngo_name=ngo.name))
    session.commit()
    repo = DonationRepository(session)

    assert repo.delete_by_owner(donor.id) == 1
    session.commit()

    assert repo.find_by_owner(donor.id) == []
    assert [c.donation_id for c in ClaimRequestRepository(session).find_by_ngo(ngo.id)] == [theirs.id]


def test_search_users_is_case_insensitive(session, ngo, other_ngo, donor):
    repo = UserRepository(session)

    assert [u.id for u in repo.search("feeding")] == [ngo.id]
    assert [u.id for u in repo.search("EXAMPLE.COM", role="ngo")] == [ngo.id, other_ngo.id]
    assert [u.id for u in repo.find_all(role="donor")] == [donor.id]
