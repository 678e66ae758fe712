import threading
import uuid
from datetime import timedelta

import pytest

from zerowaste.db.db import Database
from zerowaste.errors import Conflict, InvalidState
from zerowaste.models.donation import Donation
from zerowaste.models.user import User
from zerowaste.repositories.claims import ClaimRequestRepository
from zerowaste.services.claims import ClaimCoordinator
from zerowaste.utils.timeutil import utcnow


NGO_COUNT = 8


@pytest.fixture()
def file_database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'claims.db'}")
    db.create_db_and_tables()
    yield db
    db.dispose()


def _seed(db):
    with db.session() as session:
        donor = User(public_id=uuid.uuid4().hex, name="Taj Kitchen", email="taj@example.com", role="donor")
        ngos = [
            User(public_id=uuid.uuid4().hex, name=f"NGO {i}", email=f"ngo{i}@example.com", role="ngo")
            for i in range(NGO_COUNT)
        ]
        session.add(donor)
        session.add_all(ngos)
        session.commit()

        now = utcnow()
        donation = Donation(
            donor_id=donor.id,
            donor_name=donor.name,
            title="Banquet leftovers",
            description="Rice, dal and sabzi for about eighty people",
            quantity="80 plates",
            food_type="cooked",
            expiry_time=now + timedelta(hours=5),
            pickup_start=now,
            pickup_end=now + timedelta(hours=2),
            address="Residency Road, Bengaluru",
        )
        session.add(donation)
        session.commit()

        return donation.id, [(ngo.id, ngo.name) for ngo in ngos]


def test_at_most_one_claim_wins(file_database):
    donation_id, ngos = _seed(file_database)
    barrier = threading.Barrier(len(ngos))
    outcomes = []
    lock = threading.Lock()

    def attempt(ngo_id, ngo_name):
        with file_database.session() as session:
            barrier.wait()
            try:
                ClaimCoordinator(session).claim(donation_id, ngo_id, ngo_name)
                outcome = ("won", ngo_id)
            except (Conflict, InvalidState) as e:
                outcome = (type(e).__name__, ngo_id)

        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=attempt, args=ngo) for ngo in ngos]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert len(outcomes) == len(ngos)
    winners = [ngo_id for result, ngo_id in outcomes if result == "won"]
    assert len(winners) == 1

    with file_database.session() as session:
        donation = session.get(Donation, donation_id)
        assert donation.status == "claimed"
        assert donation.claimed_by == winners[0]

        claims = ClaimRequestRepository(session).find_by_donation(donation_id)
        assert [c.ngo_id for c in claims] == winners
