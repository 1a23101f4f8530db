"""Euler cube projection for seamless tiling of the globe.

Modules
-------
face_math : latitude/longitude, face, cube layout and direction cosine
    conversions, arc lengths and point to arc distances
geocentric : geodetic <-> geocentric conversion on the configured ellipsoid
locator : per-face locators between tile-local and world coordinates
srs : geographic, projected and cube spatial references
profile : the cube tiling profile
config : Dynaconf settings
"""
from . import config, face_math, geocentric, locator, srs, profile
from .locator import FaceLocator
from .profile import CubeProfile, InvalidTileKeyError
from .srs import (
    INVALID_COORDINATE,
    CubeSpatialReference,
    GeographicSpatialReference,
    ProjectedSpatialReference,
    SpatialReference,
    SpatialReferenceRegistry,
    get_srs,
    reproject,
    reproject_points,
)
