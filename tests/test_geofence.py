from __future__ import annotations

import math

import pytest

from src.shift_attendance.shift_attendance.branches.model import Branch
from src.shift_attendance.shift_attendance.geo.fence import Coordinate, check_fence, distance_meters, is_within_fence


def _branch(radius=100.0, lat=10.7769, lng=106.7009) -> Branch:
    return Branch(branch_id="1", name="Q1", lat=lat, lng=lng, radius=radius)


def test_distance_is_zero_for_same_point():
    p = Coordinate(10.7769, 106.7009)
    assert distance_meters(p, p) == pytest.approx(0.0, abs=1e-6)


def test_distance_is_symmetric():
    a = Coordinate(10.7769, 106.7009)
    b = Coordinate(10.7289, 106.7082)
    assert distance_meters(a, b) == pytest.approx(distance_meters(b, a))


def test_one_degree_of_latitude_is_about_111km():
    d = distance_meters(Coordinate(0.0, 0.0), Coordinate(1.0, 0.0))
    assert d == pytest.approx(111_195, rel=1e-3)


def test_point_inside_radius():
    # ~55m north of the branch
    assert is_within_fence(Coordinate(10.7774, 106.7009), _branch(radius=100))


def test_point_outside_radius_reports_distance():
    result = check_fence(Coordinate(10.7789, 106.7009), _branch(radius=100))
    assert not result.inside
    assert result.rounded_distance == pytest.approx(222, abs=1)


def test_boundary_is_inclusive():
    observed = Coordinate(10.7774, 106.7009)
    exact = distance_meters(observed, Coordinate(10.7769, 106.7009))
    assert is_within_fence(observed, _branch(radius=exact))


def test_zero_radius_only_accepts_the_exact_point():
    assert is_within_fence(Coordinate(10.7769, 106.7009), _branch(radius=0))
    assert not is_within_fence(Coordinate(10.7770, 106.7009), _branch(radius=0))


@pytest.mark.parametrize(
    "observed",
    [
        Coordinate(float("nan"), 106.7),
        Coordinate(10.7, float("inf")),
        Coordinate(91.0, 106.7),
        Coordinate(10.7, -181.0),
    ],
)
def test_invalid_coordinates_fail_closed(observed):
    result = check_fence(observed, _branch(radius=1_000_000))
    assert not result.inside
    assert math.isinf(result.distance_m)
    assert result.rounded_distance == -1


@pytest.mark.parametrize("radius", [-1.0, float("nan"), float("inf") * -1])
def test_invalid_radius_fails_closed(radius):
    assert not is_within_fence(Coordinate(10.7769, 106.7009), _branch(radius=radius))


def test_invalid_branch_coordinates_fail_closed():
    assert not is_within_fence(Coordinate(10.7769, 106.7009), _branch(lat=float("nan")))
