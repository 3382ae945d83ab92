"""Tests for great-circle distance."""

import pytest

from rollcall.domain.geo import Coordinate, distance

SAN_FRANCISCO = Coordinate(37.7749, -122.4194)
NEARBY = Coordinate(37.7849, -122.4094)


def test_distance_matches_known_pair() -> None:
    assert 1400 <= distance(SAN_FRANCISCO, NEARBY) <= 1500


def test_distance_is_symmetric() -> None:
    points = [
        SAN_FRANCISCO,
        NEARBY,
        Coordinate(0, 0),
        Coordinate(-33.8688, 151.2093),
        Coordinate(89.9, 179.9),
    ]
    for a in points:
        for b in points:
            assert distance(a, b) == pytest.approx(distance(b, a))


def test_distance_to_self_is_zero() -> None:
    assert distance(SAN_FRANCISCO, SAN_FRANCISCO) == 0
    assert distance(Coordinate(0, 0), Coordinate(0, 0)) == 0


def test_one_degree_diagonal_at_equator() -> None:
    assert distance(Coordinate(0, 0), Coordinate(1, 1)) == pytest.approx(
        157_249, rel=1e-3
    )


def test_antipodal_points() -> None:
    assert distance(Coordinate(0, 0), Coordinate(0, 180)) == pytest.approx(
        20_015_087, rel=1e-4
    )
