"""Geodetic <-> geocentric conversion on the configured ellipsoid.

Coordinates follow the pyproj ``always_xy`` order: longitude first. The
``geodetic_crs`` and ``geocentric_crs`` settings are read on every call, so
`eulercube.config.change_env` takes effect immediately. ``geodetic_crs``
should share the datum of the cube's ``geographic_crs``.
"""
import functools
import math

from pyproj import Transformer

from .config import settings


@functools.lru_cache(maxsize=None)
def _transformer(src_crs, dst_crs):
    return Transformer.from_crs(src_crs, dst_crs, always_xy=True)


def _crs_pair():
    return (settings.get("geodetic_crs", "EPSG:4979"),
            settings.get("geocentric_crs", "EPSG:4978"))


def geodetic_to_geocentric(lon, lat, height=0.0):
    """Convert a geodetic position to geocentric coordinates.

    Parameters
    ----------
    lon : float
        Longitude in degrees.
    lat : float
        Latitude in degrees.
    height : float, optional
        Height above the ellipsoid in meters, by default 0.

    Returns
    -------
    tuple of float or None
        ``(X, Y, Z)`` in meters, or None if the conversion failed.
    """
    geodetic_crs, geocentric_crs = _crs_pair()
    xyz = _transformer(geodetic_crs, geocentric_crs).transform(lon, lat, height)
    if not all(math.isfinite(v) for v in xyz):
        return None
    return tuple(float(v) for v in xyz)


def geocentric_to_geodetic(x, y, z):
    """Inverse of `geodetic_to_geocentric`, returning ``(lon, lat, height)``."""
    geodetic_crs, geocentric_crs = _crs_pair()
    llh = _transformer(geocentric_crs, geodetic_crs).transform(x, y, z)
    if not all(math.isfinite(v) for v in llh):
        return None
    return tuple(float(v) for v in llh)
