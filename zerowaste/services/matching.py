import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from sqlmodel import Session

from zerowaste.models.donation import Donation
from zerowaste.models.user import User
from zerowaste.repositories.donations import DonationRepository
from zerowaste.repositories.users import UserRepository
from zerowaste.utils.geo import distance_km, within_radius
from zerowaste.utils.timeutil import utcnow


logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 20.0


@dataclass
class MatchResult:
    donations: List[Donation]
    location_filtering_active: bool
    radius_km: Optional[float] = None


def filter_by_radius(
    donations: Sequence[Donation],
    lat: float,
    lng: float,
    radius_km: float,
) -> List[Donation]:
    # donations without coordinates cannot be shown to be in range
    return [
        donation
        for donation in donations
        if donation.has_coordinates
        and within_radius(lat, lng, donation.lat, donation.lng, radius_km)
    ]


class MatchingService:
    def __init__(
        self,
        session: Session,
        default_radius_km: float = DEFAULT_RADIUS_KM,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.donations = DonationRepository(session)
        self.users = UserRepository(session)
        self.default_radius_km = default_radius_km
        self.clock = clock

    def radius_for(self, ngo: User) -> float:
        return ngo.operational_radius or self.default_radius_km

    def visible_donations(self, ngo: User) -> MatchResult:
        """Available, unexpired donations inside the NGO's operational radius, most urgent first."""
        available = list(self.donations.find_available(exclude_expired=True, now=self.clock()))

        if not ngo.has_coordinates:
            logger.info("NGO %s has no coordinates, returning unfiltered donations", ngo.id)
            return MatchResult(donations=available, location_filtering_active=False)

        radius = self.radius_for(ngo)
        visible = filter_by_radius(available, ngo.lat, ngo.lng, radius)

        logger.debug("NGO %s sees %d of %d donations within %.1f km", ngo.id, len(visible), len(available), radius)
        return MatchResult(donations=visible, location_filtering_active=True, radius_km=radius)

    def donations_near(self, lat: float, lng: float, radius_km: float) -> List[Donation]:
        available = self.donations.find_available(exclude_expired=True, now=self.clock())
        return filter_by_radius(available, lat, lng, radius_km)

    def nearby_ngos(self, lat: float, lng: float, radius_km: float) -> List[Tuple[User, float]]:
        """Active NGOs within ``radius_km`` of the point, nearest first."""
        nearby = []

        for ngo in self.users.find_ngos_with_location():
            distance = distance_km(lat, lng, ngo.lat, ngo.lng)
            if distance <= radius_km:
                nearby.append((ngo, distance))

        nearby.sort(key=lambda pair: pair[1])
        return nearby
