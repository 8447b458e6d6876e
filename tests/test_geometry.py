"""Tests for single-track geometry helpers."""

from __future__ import annotations

from typing import List, Tuple

import numpy as np
import pytest

from trackkit.geometry import (
    bounding_box,
    haversine_km,
    haversine_matrix_km,
    resample,
    resample_by_distance,
    round_coordinate,
    simplify,
    snap_to_grid,
    track_length_km,
    track_statistics,
)

SF = (37.7749, -122.4194)
NYC = (40.7128, -74.0060)


def test_haversine_identity_and_symmetry() -> None:
    assert haversine_km(SF, SF) == 0.0
    assert haversine_km(SF, NYC) == haversine_km(NYC, SF)
    assert haversine_km(SF, NYC) == pytest.approx(4129.0, abs=20.0)


def test_haversine_matrix_matches_scalar() -> None:
    matrix = haversine_matrix_km([SF, NYC], [NYC])
    assert matrix.shape == (2, 1)
    assert matrix[0, 0] == pytest.approx(haversine_km(SF, NYC))
    assert matrix[1, 0] == pytest.approx(0.0, abs=1e-9)


def test_bounding_box() -> None:
    assert bounding_box([]) is None
    assert bounding_box([SF]) == (SF[0], SF[1], SF[0], SF[1])
    assert bounding_box([SF, NYC]) == (SF[0], SF[1], NYC[0], NYC[1])


def test_track_statistics(sf_track: List[Tuple[float, float]]) -> None:
    assert track_statistics([]) is None
    stats = track_statistics(sf_track)
    assert stats is not None
    assert stats.point_count == 3
    assert stats.distance_km == pytest.approx(track_length_km(sf_track))
    assert stats.distance_km > 0
    assert stats.bounding_box == bounding_box(sf_track)


def test_round_coordinate() -> None:
    assert round_coordinate(37.123456789) == 37.12346
    assert round_coordinate(0.000006) == 0.00001


def test_snap_to_grid() -> None:
    assert snap_to_grid((37.7749123, -122.4194456), 0.001) == (37.775, -122.419)
    assert snap_to_grid((37.7749, -122.4194), 0.01) == (37.77, -122.42)


def test_snap_to_grid_rejects_non_positive_tolerance() -> None:
    with pytest.raises(ValueError):
        snap_to_grid(SF, 0.0)


def test_simplify_zero_tolerance_is_noop(long_track: List[Tuple[float, float]]) -> None:
    assert simplify(long_track, 0.0) == long_track


def test_simplify_removes_collinear_points() -> None:
    track = [(1.0, 1.0), (2.0, 2.0), (3.0, 3.0), (4.0, 4.0)]
    assert simplify(track, 0.1) == [(1.0, 1.0), (4.0, 4.0)]


def test_simplify_keeps_endpoints_and_is_monotonic(
    long_track: List[Tuple[float, float]]
) -> None:
    counts = []
    for tolerance in (0.000001, 0.00001, 0.0001, 0.001, 0.01):
        simplified = simplify(long_track, tolerance)
        assert simplified[0] == long_track[0]
        assert simplified[-1] == long_track[-1]
        counts.append(len(simplified))
    assert counts == sorted(counts, reverse=True)
    assert counts[-1] < len(long_track)


def test_simplify_short_track_unchanged() -> None:
    assert simplify([SF, NYC], 1.0) == [SF, NYC]


def test_simplify_rejects_negative_tolerance() -> None:
    with pytest.raises(ValueError):
        simplify([SF, NYC, SF], -1.0)


def test_resample_large_track(long_track: List[Tuple[float, float]]) -> None:
    resampled = resample(long_track, 1000)
    assert len(resampled) == 1001
    assert resampled[0] == long_track[0]
    assert resampled[-1] == long_track[-1]


def test_resample_returns_short_tracks_unchanged(
    sf_track: List[Tuple[float, float]]
) -> None:
    assert resample(sf_track, 3) == sf_track
    assert resample(sf_track, 10) == sf_track


def test_resample_rejects_zero_target() -> None:
    with pytest.raises(ValueError):
        resample([SF], 0)


def test_resample_by_distance_spacing() -> None:
    track = [(37.7749, -122.4194), (37.7849, -122.4194)]
    resampled = resample_by_distance(track, 100.0)
    assert resampled[0] == track[0]
    assert resampled[-1] == track[-1]
    assert len(resampled) == 13
    gaps = np.array([haversine_km(a, b) for a, b in zip(resampled, resampled[1:-1])])
    assert np.allclose(gaps, 0.1, rtol=0.02)


def test_resample_by_distance_rejects_bad_interval() -> None:
    with pytest.raises(ValueError):
        resample_by_distance([SF, NYC], 0.0)
