"""Shared pytest fixtures for eulercube tests."""

import numpy as np
import pytest

from eulercube import CubeProfile, get_srs


# (lat, lon) pairs well inside one face each
INTERIOR_POINTS = [
    (10.0, 20.0),
    (-30.0, 100.0),
    (40.0, -170.0),
    (5.0, 179.0),
    (-20.0, -60.0),
    (70.0, 30.0),
    (-75.0, -120.0),
    (33.3, 12.5),
]


@pytest.fixture
def interior_points():
    """Geographic points that lie strictly inside a face."""
    return list(INTERIOR_POINTS)


@pytest.fixture
def cube_srs():
    """The shared cube spatial reference."""
    return get_srs("cube")


@pytest.fixture
def geographic_srs():
    """The shared WGS 84 geographic spatial reference."""
    return get_srs("EPSG:4326")


@pytest.fixture
def mercator_srs():
    """The shared Web Mercator spatial reference."""
    return get_srs("EPSG:3857")


@pytest.fixture
def profile(cube_srs):
    """Cube profile on the shared cube spatial reference."""
    return CubeProfile(cube_srs)


@pytest.fixture
def face_grid():
    """Interior face coordinates on a regular grid."""
    ticks = np.linspace(-0.95, 0.95, 9)
    return [(float(x), float(y)) for x in ticks for y in ticks]


@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(1234)
