import math

import pytest

from zerowaste.utils.geo import distance_km, within_radius


POINTS = [
    (12.9716, 77.5946),
    (28.6139, 77.2090),
    (-33.8688, 151.2093),
    (51.5074, -0.1278),
    (0.0, 0.0),
    (89.9, 179.9),
    (-90.0, -180.0),
]


@pytest.mark.parametrize("a", POINTS)
@pytest.mark.parametrize("b", POINTS)
def test_distance_is_symmetric(a, b):
    assert distance_km(*a, *b) == pytest.approx(distance_km(*b, *a), abs=1e-9)


@pytest.mark.parametrize("point", POINTS)
def test_distance_to_self_is_zero(point):
    assert distance_km(*point, *point) == 0


def test_one_degree_of_latitude():
    assert distance_km(0, 0, 1, 0) == pytest.approx(6371 * math.pi / 180, rel=1e-9)


def test_known_city_pair():
    # Bengaluru -> New Delhi, roughly 1740 km as the crow flies
    assert distance_km(12.9716, 77.5946, 28.6139, 77.2090) == pytest.approx(1740, abs=10)


def test_antipodal_points_do_not_overflow():
    assert distance_km(0, 0, 0, 180) == pytest.approx(math.pi * 6371, rel=1e-9)


def test_within_radius_includes_boundary():
    d = distance_km(10, 10, 10.1, 10)
    assert within_radius(10, 10, 10.1, 10, d)
    assert not within_radius(10, 10, 10.1, 10, d - 0.001)
