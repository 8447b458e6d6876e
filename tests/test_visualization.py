"""Tests for the heatmap map renderer."""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

import folium

from trackkit.analytics import create_heatmap, find_intersections
from trackkit.models import HeatmapResult
from trackkit.visualization import _HIGH_COLOR, _blend_color, create_heatmap_map


def test_blend_color_endpoints() -> None:
    assert _blend_color(0.0) == "#2c7bb6"
    assert _blend_color(1.0) == "#{:02x}{:02x}{:02x}".format(*_HIGH_COLOR)
    assert _blend_color(5.0) == _blend_color(1.0)


def test_create_heatmap_map_writes_html(
    sf_tracks: List[List[Tuple[float, float]]], tmp_path: Path
) -> None:
    tracks = [sf_tracks[0], list(sf_tracks[0]), sf_tracks[2]]
    result = create_heatmap(tracks)
    intersections = find_intersections(tracks, 0.05)
    output_path = tmp_path / "maps" / "heatmap.html"

    folium_map = create_heatmap_map(
        result, intersections=intersections, output_html_path=output_path
    )

    assert isinstance(folium_map, folium.Map)
    assert output_path.exists()
    html = output_path.read_text(encoding="utf-8")
    assert "Frequency 2 of 2" in html
    assert "Frequency 1 of 2" in html
    assert "Tracks 0, 1" in html


def test_create_heatmap_map_handles_empty_result() -> None:
    folium_map = create_heatmap_map(HeatmapResult(tracks=[], max_frequency=1))
    assert isinstance(folium_map, folium.Map)
