import math

import pytest

from lead_matcher.errors import InvalidCoordinates
from lead_matcher.geo import GeoPoint, distance_miles, haversine_miles

BOULDER = GeoPoint(40.0150, -105.2705)
DENVER = GeoPoint(39.7547, -105.0178)
NEW_YORK = GeoPoint(40.7505, -73.9934)


def test_distance_to_self_is_zero() -> None:
    assert distance_miles(BOULDER, BOULDER) == 0.0


def test_distance_is_symmetric() -> None:
    assert distance_miles(BOULDER, NEW_YORK) == pytest.approx(distance_miles(NEW_YORK, BOULDER))


def test_boulder_to_denver() -> None:
    distance = distance_miles(BOULDER, DENVER)

    assert 20 < distance < 25
    assert distance == pytest.approx(22.4, abs=0.2)


def test_one_degree_of_latitude_is_about_69_miles() -> None:
    assert haversine_miles(0.0, 0.0, 1.0, 0.0) == pytest.approx(69.1, abs=0.1)


def test_antipodal_points() -> None:
    assert haversine_miles(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * 3959.0)


@pytest.mark.parametrize(
    "coordinates",
    [
        (91.0, 0.0, 0.0, 0.0),
        (0.0, 0.0, 0.0, -181.0),
        (float("nan"), 0.0, 0.0, 0.0),
        (0.0, float("inf"), 0.0, 0.0),
    ],
)
def test_invalid_coordinates_are_rejected(coordinates) -> None:
    with pytest.raises(InvalidCoordinates):
        haversine_miles(*coordinates)


def test_geopoint_validates_on_construction() -> None:
    with pytest.raises(InvalidCoordinates):
        GeoPoint(-90.5, 10.0)

    point = GeoPoint("39.5", "-105")
    assert point.as_tuple() == (39.5, -105.0)
