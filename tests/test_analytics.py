"""Tests for cross-track analytics."""

from __future__ import annotations

from typing import List, Tuple

import pytest

from trackkit.analytics import (
    cluster_tracks,
    coverage_area,
    create_heatmap,
    find_intersections,
    merge_nearby_tracks,
    segment_key,
    track_similarity,
)
from trackkit.geometry import haversine_km

Track = List[Tuple[float, float]]

HORIZONTAL = [(37.78, -122.43), (37.78, -122.40)]
VERTICAL = [(37.77, -122.415), (37.79, -122.415)]
DIAGONAL = [(37.77, -122.425), (37.79, -122.405)]
CROSSING = (37.78, -122.415)


# --- Heatmap ------------------------------------------------------------
def test_segment_key_is_direction_independent() -> None:
    a, b = (37.7749, -122.4194), (37.7849, -122.4094)
    assert segment_key(a, b) == segment_key(b, a)
    assert str(segment_key(a, b)) == "37.775,-122.419-37.785,-122.409"


def test_heatmap_duplicate_track_registers_shared_segments(sf_track: Track) -> None:
    result = create_heatmap([sf_track, list(sf_track)])
    assert result.max_frequency >= 2
    assert all(record.frequency == 2 for record in result.tracks)


def test_heatmap_single_track(sf_track: Track) -> None:
    result = create_heatmap([sf_track])
    assert result.max_frequency == 1
    assert result.tracks[0].frequency == 1
    assert result.tracks[0].coordinates == sf_track


def test_heatmap_empty_input() -> None:
    result = create_heatmap([])
    assert result.max_frequency == 1
    assert result.tracks == []


def test_heatmap_counts_each_track_once_per_segment(sf_track: Track) -> None:
    out_and_back = sf_track + sf_track[::-1]
    result = create_heatmap([out_and_back])
    assert result.max_frequency == 1


def test_heatmap_skips_single_point_tracks(sf_tracks: List[Track]) -> None:
    result = create_heatmap([sf_tracks[0], [sf_tracks[1][0]], sf_tracks[2]])
    assert len(result.tracks) == 2


# --- Intersections ------------------------------------------------------
def test_crossing_lines_intersect() -> None:
    points = find_intersections([HORIZONTAL, VERTICAL], 0.01)
    assert len(points) == 1
    assert points[0].track_indices == (0, 1)
    assert haversine_km(points[0].coordinate, CROSSING) < 0.01


def test_distant_tracks_have_no_intersections() -> None:
    far = [(40.7128, -74.0060), (40.7228, -74.0160)]
    assert find_intersections([HORIZONTAL, far], 0.05) == []


def test_nearby_parallel_tracks_intersect_within_tolerance() -> None:
    nearby = [(37.78001, -122.43), (37.78001, -122.40)]
    points = find_intersections([HORIZONTAL, nearby], 0.05)
    assert points
    assert all(point.track_indices == (0, 1) for point in points)
    assert find_intersections([HORIZONTAL, nearby], 0.0001) == []


def test_identical_hits_merge_into_one_point() -> None:
    points = find_intersections([HORIZONTAL, list(HORIZONTAL)], 0.01)
    assert len(points) == 2
    assert {point.coordinate for point in points} == {(37.78, -122.43), (37.78, -122.4)}
    assert all(point.track_indices == (0, 1) for point in points)


def test_three_tracks_through_one_location() -> None:
    points = find_intersections([HORIZONTAL, VERTICAL, DIAGONAL], 0.01)
    assert 1 <= len(points) <= 3
    indices = set()
    for point in points:
        assert haversine_km(point.coordinate, CROSSING) < 0.02
        assert list(point.track_indices) == sorted(point.track_indices)
        indices.update(point.track_indices)
    assert indices == {0, 1, 2}


def test_intersections_reject_negative_tolerance() -> None:
    with pytest.raises(ValueError):
        find_intersections([HORIZONTAL, VERTICAL], -1.0)


# --- Similarity and clustering ------------------------------------------
def test_similarity_bounds_and_symmetry(sf_tracks: List[Track]) -> None:
    a, b, c = sf_tracks
    assert track_similarity(a, a) == pytest.approx(1.0)
    assert track_similarity(a, b) == track_similarity(b, a)
    for other in (b, c):
        assert 0.0 <= track_similarity(a, other) <= 1.0
    assert track_similarity(a, b) > track_similarity(a, c)
    assert track_similarity(a, []) == 0.0


def test_cluster_groups_similar_tracks(sf_tracks: List[Track]) -> None:
    clusters = cluster_tracks(sf_tracks, 0.8)
    assert [cluster.member_indices for cluster in clusters] == [(0, 1), (2,)]
    assert clusters[0].representative == sf_tracks[0]
    for cluster in clusters:
        assert 0.0 <= cluster.score <= 1.0
        assert len(cluster.members) == len(cluster.member_indices)


def test_cluster_identical_tracks_score_one(sf_track: Track) -> None:
    clusters = cluster_tracks([sf_track, list(sf_track)], 0.9)
    assert len(clusters) == 1
    assert clusters[0].score == pytest.approx(1.0)


def test_cluster_threshold_one_separates_distinct_tracks(sf_tracks: List[Track]) -> None:
    clusters = cluster_tracks(sf_tracks, 1.0)
    assert len(clusters) == 3


def test_cluster_empty_input() -> None:
    assert cluster_tracks([], 0.5) == []


@pytest.mark.parametrize("threshold", [-0.1, 1.1])
def test_cluster_rejects_invalid_threshold(threshold: float) -> None:
    with pytest.raises(ValueError):
        cluster_tracks([HORIZONTAL], threshold)


# --- Coverage and merging -----------------------------------------------
def test_coverage_empty() -> None:
    assert coverage_area([]) is None
    assert coverage_area([[], []]) is None


def test_coverage_rectangle() -> None:
    corners = [(37.0, -122.0), (37.0, -121.0), (38.0, -122.0), (38.0, -121.0)]
    coverage = coverage_area([corners])
    assert coverage is not None
    min_lat, min_lng, max_lat, max_lng = coverage.bounding_box
    assert min_lat == pytest.approx(37.0, abs=0.001)
    assert min_lng == pytest.approx(-122.0, abs=0.001)
    assert max_lat == pytest.approx(38.0, abs=0.001)
    assert max_lng == pytest.approx(-121.0, abs=0.001)
    assert coverage.area_km2 > 0
    assert coverage.area_km2 == pytest.approx(9809.0, rel=0.01)
    assert coverage.point_count == 4


def test_merge_nearby_tracks_joins_continuations() -> None:
    first = [(37.77, -122.42), (37.78, -122.41)]
    second = [(37.78001, -122.41001), (37.79, -122.40)]
    merged = merge_nearby_tracks([first, second], 0.1)
    assert merged == [first + second]


def test_merge_nearby_tracks_never_grows(sf_tracks: List[Track]) -> None:
    merged = merge_nearby_tracks(sf_tracks, 0.1)
    assert len(merged) <= len(sf_tracks)
    assert sum(len(track) for track in merged) == sum(len(t) for t in sf_tracks)
