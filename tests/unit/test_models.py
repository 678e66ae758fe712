import uuid
from datetime import datetime, timedelta, timezone

from zerowaste.models.claim_request import ClaimRequest
from zerowaste.models.donation import Donation
from zerowaste.models.user import User
from zerowaste.utils.timeutil import utcnow


def test_default_timestamps_are_utc_aware():
    user = User(public_id="u-1", name="Hotel Annapurna", email="a@example.com")
    claim = ClaimRequest(donation_id=uuid.uuid4(), ngo_id=1, ngo_name="Feeding India")

    for value in (user.created_at, claim.created_at):
        assert value.tzinfo is not None
        assert value.utcoffset() == timedelta(0)


def test_is_expired_accepts_naive_stored_values():
    now = utcnow()
    donation = Donation(
        donor_id=1,
        donor_name="Hotel Annapurna",
        title="Leftover biryani",
        description="Two large trays of vegetable biryani",
        quantity="40 plates",
        food_type="cooked",
        expiry_time=(now - timedelta(minutes=1)).replace(tzinfo=None),
        pickup_start=now,
        pickup_end=now,
        address="MG Road 1, Bengaluru",
    )

    assert donation.created_at.tzinfo is not None
    assert donation.is_expired(now)
    assert not donation.is_expired(datetime(2000, 1, 1, tzinfo=timezone.utc))


def test_stored_donation_round_trips_timestamps(session, donor, make_donation):
    donation = make_donation(donor, expires_in=timedelta(hours=2))

    session.refresh(donation)

    assert not donation.is_expired()
    assert donation.is_expired(utcnow() + timedelta(hours=3))


def test_unset_radius_is_stored_as_null(session, make_user):
    ngo = make_user("Default NGO", role="ngo", lat=12.97, lng=77.59, radius=None)

    session.refresh(ngo)

    assert ngo.operational_radius is None
