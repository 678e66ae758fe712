from math import asin, cos, radians, sin, sqrt


EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Haversine distance in kilometers between two (lat, lng) points.

    Straight-line distance on a sphere, not road distance. Coordinates are
    expected to be validated by the caller (lat in [-90, 90], lng in [-180, 180]).
    """
    lat1, lng1, lat2, lng2 = map(radians, [lat1, lng1, lat2, lng2])

    dlat = lat2 - lat1
    dlng = lng2 - lng1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    # rounding can push a slightly above 1 for antipodal points
    c = 2 * asin(sqrt(min(1.0, a)))

    return EARTH_RADIUS_KM * c


def within_radius(lat1: float, lng1: float, lat2: float, lng2: float, radius_km: float) -> bool:
    return distance_km(lat1, lng1, lat2, lng2) <= radius_km
