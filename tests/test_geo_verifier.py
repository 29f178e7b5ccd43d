import json

import pytest

from qr_attendance.modules import geo_verifier
from qr_attendance.modules.geo_verifier import (
    GeoVerifier, haversine_distance, parse_location, within_range
)

from conftest import CLASSROOM, north_of


def test_identical_points_are_in_range():
    assert within_range(CLASSROOM, CLASSROOM) is True
    assert GeoVerifier().distance(CLASSROOM, CLASSROOM) == 0


def test_points_under_radius_pass():
    assert within_range(north_of(CLASSROOM, 89), CLASSROOM) is True
    assert within_range(north_of(CLASSROOM, 99.9), CLASSROOM) is True


def test_points_150_meters_apart_fail():
    assert within_range(north_of(CLASSROOM, 150), CLASSROOM) is False


def test_points_500_meters_apart_fail():
    assert within_range(north_of(CLASSROOM, 500), CLASSROOM) is False


def test_radius_is_inclusive(monkeypatch):
    monkeypatch.setattr(geo_verifier, 'haversine_distance', lambda *args, **kwargs: 100.0)
    assert GeoVerifier().within_range(CLASSROOM, CLASSROOM) is True

    monkeypatch.setattr(geo_verifier, 'haversine_distance', lambda *args, **kwargs: 100.0001)
    assert GeoVerifier().within_range(CLASSROOM, CLASSROOM) is False


def test_haversine_matches_known_city_distance():
    # London to Paris is roughly 343.5 km
    distance = haversine_distance(51.5074, -0.1278, 48.8566, 2.3522)

    assert distance == pytest.approx(343500, rel=0.01)


def test_distance_due_north_is_arc_length():
    assert GeoVerifier().distance(north_of(CLASSROOM, 250), CLASSROOM) == pytest.approx(250, abs=0.01)


def test_custom_radius():
    verifier = GeoVerifier(max_distance=200)

    assert verifier.within_range(north_of(CLASSROOM, 150), CLASSROOM) is True


def test_json_string_locations_are_accepted():
    student = json.dumps(north_of(CLASSROOM, 20))
    classroom = json.dumps(CLASSROOM)

    assert within_range(student, classroom) is True


def test_coordinate_pairs_are_accepted():
    assert parse_location((12.5, 77.25)) == (12.5, 77.25)
    assert parse_location(['12.5', '77.25']) == (12.5, 77.25)


@pytest.mark.parametrize('bad', [
    None,
    '',
    'not json',
    '{"latitude": 12.9}',
    {'latitude': 'north', 'longitude': 77.5},
    {'latitude': 91, 'longitude': 77.5},
    {'latitude': 12.9, 'longitude': -181},
    {'latitude': float('nan'), 'longitude': 77.5},
    {'latitude': True, 'longitude': False},
    [12.9],
    42,
])
def test_malformed_locations_fail_without_raising(bad):
    assert parse_location(bad) is None
    assert within_range(bad, CLASSROOM) is False
    assert within_range(CLASSROOM, bad) is False
