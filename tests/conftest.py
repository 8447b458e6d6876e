"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable tracks shared by the
geometry, sanitizer and analytics tests.
"""
from __future__ import annotations

import os
import sys
from typing import List, Tuple

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


# --- Factory helpers -------------------------------------------------
def make_sf_tracks() -> List[List[Tuple[float, float]]]:
    return [
        [(37.7749, -122.4194), (37.7849, -122.4094), (37.7949, -122.3994)],
        [(37.7750, -122.4195), (37.7850, -122.4095), (37.7950, -122.3995)],
        [(37.7000, -122.5000), (37.7100, -122.4900), (37.7200, -122.4800)],
    ]


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def sf_tracks() -> List[List[Tuple[float, float]]]:
    return make_sf_tracks()


@pytest.fixture
def sf_track() -> List[Tuple[float, float]]:
    return make_sf_tracks()[0]


@pytest.fixture
def long_track() -> List[Tuple[float, float]]:
    """A gently wiggling 10,000 point track around San Francisco."""

    return [
        (37.70 + i * 1e-5, -122.50 + i * 1e-5 + ((i % 50) - 25) * 1e-6)
        for i in range(10_000)
    ]
