from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlmodel import Session

from zerowaste.models.user import User
from zerowaste.repositories.claims import ClaimRequestRepository
from zerowaste.repositories.donations import DonationRepository
from zerowaste.services.matching import MatchingService
from zerowaste.utils.timeutil import utcnow


STATS_SAMPLE_LIMIT = 1000
RECENT_LIMIT = 5

DONOR_IMPACT_POINTS = 10
NGO_IMPACT_POINTS = 15


def donation_stats(session: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()

    donations = DonationRepository(session).find_all(limit=STATS_SAMPLE_LIMIT)
    claims = ClaimRequestRepository(session).find_all()

    statuses = Counter(d.status for d in donations)
    claim_statuses = Counter(c.status for c in claims)

    return {
        "total": len(donations),
        "available": sum(1 for d in donations if d.status == "available" and not d.is_expired(now)),
        "claimed": statuses["claimed"],
        "picked": statuses["picked"],
        "expired": sum(1 for d in donations if d.status == "expired" or d.is_expired(now)),
        "byFoodType": dict(Counter(d.food_type for d in donations)),
        "claimStats": {
            "total": len(claims),
            "pending": claim_statuses["pending"],
            "approved": claim_statuses["approved"],
            "rejected": claim_statuses["rejected"],
            "cancelled": claim_statuses["cancelled"],
        },
    }


def user_stats(
    session: Session,
    user: User,
    default_radius_km: float,
    clock: Callable[[], datetime] = utcnow,
) -> Dict[str, Any]:
    repo = DonationRepository(session)

    if user.role == "ngo":
        claimed = repo.find_by_claimant(user.id, limit=STATS_SAMPLE_LIMIT)
        match = MatchingService(session, default_radius_km=default_radius_km, clock=clock).visible_donations(user)

        return {
            "totalClaims": len(claimed),
            "pendingClaims": sum(1 for d in claimed if d.status == "claimed"),
            "completedClaims": sum(1 for d in claimed if d.status == "picked"),
            "availableDonations": len(match.donations),
            "hasLocation": user.has_coordinates,
            "operationalRadius": user.operational_radius or default_radius_km,
        }

    donations = repo.find_by_owner(user.id, limit=STATS_SAMPLE_LIMIT)
    return {
        "totalDonations": len(donations),
        "availableDonations": sum(1 for d in donations if d.status == "available"),
        "claimedDonations": sum(1 for d in donations if d.status == "claimed"),
        "completedDonations": sum(1 for d in donations if d.status == "picked"),
    }


def profile_stats(
    session: Session,
    user: User,
    default_radius_km: float,
    clock: Callable[[], datetime] = utcnow,
) -> Dict[str, Any]:
    stats = user_stats(session, user, default_radius_km, clock)
    stats["totalImpact"] = stats["completedClaims"] if user.role == "ngo" else stats["completedDonations"]
    return stats


def dashboard_stats(
    session: Session,
    user: User,
    default_radius_km: float,
    clock: Callable[[], datetime] = utcnow,
) -> Dict[str, Any]:
    """Per-user stats plus the five most recent donations and an impact score."""
    stats = user_stats(session, user, default_radius_km, clock)
    repo = DonationRepository(session)

    # NGOs score higher per pickup than donors
    if user.role == "ngo":
        stats["recentClaims"] = list(repo.find_by_claimant(user.id, limit=RECENT_LIMIT))
        stats["impactScore"] = stats["completedClaims"] * NGO_IMPACT_POINTS
    else:
        stats["recentDonations"] = list(repo.find_by_owner(user.id, limit=RECENT_LIMIT))
        stats["impactScore"] = stats["completedDonations"] * DONOR_IMPACT_POINTS

    return stats
