import math
import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from zerowaste.db.db import Database
from zerowaste.main import create_app
from zerowaste.models.donation import Donation
from zerowaste.models.user import User
from zerowaste.utils.auth_helper import create_access_token
from zerowaste.utils.timeutil import utcnow


MEMORY_URL = "sqlite://"

# Base point for fixtures (Bengaluru)
BASE_LAT = 12.9716
BASE_LNG = 77.5946


def _north_of(lat: float, km: float) -> float:
    """Latitude ``km`` kilometers due north; along a meridian haversine is exact."""
    return lat + math.degrees(km / 6371.0)


def _assert_memory_db(url: str):
    if url != MEMORY_URL:
        raise RuntimeError(
            f"Refusing to run tests on non-memory DB: {url!r}. "
            "This guard protects your real database."
        )


@pytest.fixture()
def database():
    db = Database(MEMORY_URL)
    _assert_memory_db(db.url)
    db.create_db_and_tables()
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture()
def session(database):
    with database.session() as s:
        yield s


@pytest.fixture()
def app(database):
    return create_app(database=database)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_user(session):
    def _make_user(name: str, role: str = "donor", lat=None, lng=None, radius=20.0, is_active=True):
        user = User(
            public_id=uuid.uuid4().hex,
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            role=role,
            is_active=is_active,
            address="Somewhere 12, Bengaluru" if lat is not None else None,
            lat=lat,
            lng=lng,
            operational_radius=radius,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_donation(session):
    def _make_donation(donor: User, lat=BASE_LAT, lng=BASE_LNG, expires_in=timedelta(hours=24), **fields):
        now = utcnow()
        values = dict(
            donor_id=donor.id,
            donor_name=donor.name,
            title="Leftover biryani",
            description="Two large trays of vegetable biryani from lunch",
            quantity="40 plates",
            food_type="cooked",
            expiry_time=now + expires_in,
            pickup_start=now,
            pickup_end=now + timedelta(hours=4),
            address="MG Road 1, Bengaluru",
            lat=lat,
            lng=lng,
        )
        values.update(fields)

        donation = Donation(**values)
        session.add(donation)
        session.commit()
        session.refresh(donation)
        return donation

    return _make_donation


@pytest.fixture()
def north_of():
    return _north_of


@pytest.fixture()
def auth_headers():
    def _auth_headers(user: User):
        return {"Authorization": f"Bearer {create_access_token(user.public_id, user.role)}"}

    return _auth_headers


@pytest.fixture()
def donor(make_user):
    return make_user("Hotel Annapurna", role="donor")


@pytest.fixture()
def ngo(make_user):
    # 10 km north of the default donation spot, 20 km radius
    return make_user("Feeding India", role="ngo", lat=_north_of(BASE_LAT, 10), lng=BASE_LNG)


@pytest.fixture()
def other_ngo(make_user):
    return make_user("Robin Hood Army", role="ngo", lat=_north_of(BASE_LAT, 5), lng=BASE_LNG)
