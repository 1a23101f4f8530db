"""Geometry of the Euler cube projection.

The sphere is split into six faces. Faces 0-3 straddle the equator and are
centred on longitudes 0, 90, 180 and 270 degrees; face 4 covers the North Pole
and face 5 the South Pole. Face coordinates ``(x, y)`` lie in ``[-1, 1]`` and
map to the sphere through an equiangular gnomonic parameterization: with face
centre ``c`` and tangent axes ``u``, ``v`` the direction cosine of ``(x, y)``
is ``normalize(c + tan(x*pi/4) u + tan(y*pi/4) v)``. Every line of constant
``x`` (or ``y``) therefore lies in a plane through the centre of the sphere,
i.e. on a great circle.

The faces are also laid out on a flat ``[0, 4] x [0, 3]`` cube layout::

    y=3 +-----+
        |  4  |
    y=2 +-----+-----+-----+-----+
        |  0  |  1  |  2  |  3  |
    y=1 +-----+-----+-----+-----+
        |  5  |
    y=0 +-----+
       x=0   x=1   x=2   x=3   x=4

All functions are pure. Failures (non-finite input, out-of-range coordinates,
a face hint that cannot hold the point, extents spanning several faces) are
reported by returning None.
"""
import math

import numpy as np

NUM_FACES = 6
QUARTER_PI = math.pi / 4.0

# Faces whose centre dot products are within TIE_EPSILON of the best one are
# tied; the lowest index wins.
TIE_EPSILON = 1e-12
# Slack allowed when checking that a point lies on a given face, in face units.
FACE_EPSILON = 1e-9
# Slack allowed when checking extent containment, in cube layout units.
CUBE_EPSILON = 1e-9

# (centre, u, v) per face in geocentric axes: X toward (0N, 0E), Y toward
# (0N, 90E), Z toward the North Pole.
FACE_AXES = np.array([
    [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
    [[0.0, 1.0, 0.0], [-1.0, 0.0, 0.0], [0.0, 0.0, 1.0]],
    [[-1.0, 0.0, 0.0], [0.0, -1.0, 0.0], [0.0, 0.0, 1.0]],
    [[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]],
    [[0.0, 0.0, 1.0], [0.0, 1.0, 0.0], [-1.0, 0.0, 0.0]],
    [[0.0, 0.0, -1.0], [0.0, 1.0, 0.0], [1.0, 0.0, 0.0]],
])

# Lower left corner of each face in the cube layout.
FACE_ORIGINS = (
    (0.0, 1.0),
    (1.0, 1.0),
    (2.0, 1.0),
    (3.0, 1.0),
    (0.0, 2.0),
    (0.0, 0.0),
)

CUBE_WIDTH = 4.0
CUBE_HEIGHT = 3.0


def is_face(face) -> bool:
    """Return True if `face` is a valid face index."""
    return (isinstance(face, (int, np.integer)) and not isinstance(face, bool)
            and 0 <= face < NUM_FACES)


def _finite(*values):
    return all(math.isfinite(v) for v in values)


def _clamp_unit(value):
    return max(-1.0, min(1.0, value))


def face_rect(face):
    """Cube layout rectangle ``(xmin, ymin, xmax, ymax)`` covered by `face`."""
    x0, y0 = FACE_ORIGINS[face]
    return x0, y0, x0 + 1.0, y0 + 1.0


def lat_lon_to_dc(lat: float, lon: float) -> np.ndarray:
    """Direction cosine of a geographic position given in degrees."""
    lat_r = math.radians(lat)
    lon_r = math.radians(lon)
    cos_lat = math.cos(lat_r)
    return np.array([cos_lat * math.cos(lon_r),
                     cos_lat * math.sin(lon_r),
                     math.sin(lat_r)])


def dc_to_lat_lon(dc):
    """Latitude and longitude in degrees of a (not necessarily unit) vector.

    Longitude is returned in ``[-180, 180]``.
    """
    x, y, z = (float(v) for v in dc)
    lat = math.degrees(math.atan2(z, math.hypot(x, y)))
    lon = math.degrees(math.atan2(y, x))
    return lat, lon


def dc_to_face(dc) -> int:
    """Face whose centre is angularly nearest to `dc`.

    Ties within TIE_EPSILON go to the lowest face index.
    """
    dots = FACE_AXES[:, 0] @ np.asarray(dc, dtype=float)
    best = dots.max()
    return int(np.flatnonzero(dots >= best - TIE_EPSILON)[0])


def dc_to_face_coords(dc, face):
    """Coordinates of `dc` on `face`, or None if the face cannot hold it."""
    centre, u, v = FACE_AXES[face]
    dc = np.asarray(dc, dtype=float)
    denom = float(dc @ centre)
    if denom <= 0.0:
        return None
    x = math.atan(float(dc @ u) / denom) / QUARTER_PI
    y = math.atan(float(dc @ v) / denom) / QUARTER_PI
    if abs(x) > 1.0 + FACE_EPSILON or abs(y) > 1.0 + FACE_EPSILON:
        return None
    return _clamp_unit(x), _clamp_unit(y)


def face_to_dc(face, coord):
    """Unit direction cosine of the face coordinate ``coord = (x, y)``.

    Parameters
    ----------
    face : int
        Face index in 0..5.
    coord : tuple of float
        Face coordinates ``(x, y)`` in ``[-1, 1]``.

    Returns
    -------
    numpy.ndarray or None
        Unit vector of shape (3,), or None if `face` is not a face index or
        the coordinates are not finite values in ``[-1, 1]``.
    """
    x, y = coord
    if not is_face(face) or not _finite(x, y):
        return None
    if abs(x) > 1.0 + FACE_EPSILON or abs(y) > 1.0 + FACE_EPSILON:
        return None
    x, y = _clamp_unit(x), _clamp_unit(y)
    centre, u, v = FACE_AXES[int(face)]
    p = centre + math.tan(x * QUARTER_PI) * u + math.tan(y * QUARTER_PI) * v
    return p / np.linalg.norm(p)


def lat_lon_to_face_coords(lat, lon, face_hint=None):
    """Find the face holding a geographic position and its face coordinates.

    Parameters
    ----------
    lat : float
        Latitude in degrees, ``[-90, 90]``.
    lon : float
        Longitude in degrees.
    face_hint : int, optional
        Face to express the point on. Points on a shared edge or corner
        belong to every adjacent face; the hint picks one of them. Without
        a hint the nearest face centre wins, ties going to the lowest index.

    Returns
    -------
    tuple of (float, float, int) or None
        ``(x, y, face)``, or None for non-finite input, a latitude outside
        ``[-90, 90]`` or a hint naming a face that cannot hold the point.
    """
    if not _finite(lat, lon) or abs(lat) > 90.0:
        return None
    dc = lat_lon_to_dc(lat, lon)
    if face_hint is None:
        face = dc_to_face(dc)
    elif is_face(face_hint):
        face = int(face_hint)
    else:
        return None
    coords = dc_to_face_coords(dc, face)
    if coords is None:
        return None
    return coords[0], coords[1], face


def face_coords_to_lat_lon(x, y, face):
    """Inverse of `lat_lon_to_face_coords`.

    Returns ``(lat, lon)`` in degrees, or None if `face` is not a face index
    or ``(x, y)`` lies outside ``[-1, 1]``.
    """
    dc = face_to_dc(face, (x, y))
    if dc is None:
        return None
    return dc_to_lat_lon(dc)


def cube_to_face(x, y):
    """Map a cube layout point to ``(x, y, face)``.

    A point on an edge shared by two faces resolves to the lower-numbered
    face. Use `cube_to_face_extent` when the point is part of a region.
    Returns None for points outside the six face rectangles.
    """
    if not _finite(x, y):
        return None
    for face, (x0, y0) in enumerate(FACE_ORIGINS):
        if x0 <= x <= x0 + 1.0 and y0 <= y <= y0 + 1.0:
            return 2.0 * (x - x0) - 1.0, 2.0 * (y - y0) - 1.0, face
    return None


def cube_to_face_extent(xmin, ymin, xmax, ymax):
    """Face whose layout rectangle contains the whole extent.

    Returns None if the extent is malformed, leaves the layout, or overlaps
    more than one face; such extents must be split by the caller.
    """
    if not _finite(xmin, ymin, xmax, ymax) or xmin > xmax or ymin > ymax:
        return None
    for face, (x0, y0) in enumerate(FACE_ORIGINS):
        if (xmin >= x0 - CUBE_EPSILON and xmax <= x0 + 1.0 + CUBE_EPSILON and
                ymin >= y0 - CUBE_EPSILON and ymax <= y0 + 1.0 + CUBE_EPSILON):
            return face
    return None


def cube_to_face_coords(x, y, face):
    """Express a cube layout point in the coordinates of a known face.

    Unlike `cube_to_face` there is no edge ambiguity since the face is
    given. The result is not range checked.
    """
    x0, y0 = FACE_ORIGINS[face]
    return 2.0 * (x - x0) - 1.0, 2.0 * (y - y0) - 1.0


def face_to_cube(x, y, face):
    """Map face coordinates to the cube layout, or None for invalid input."""
    if not is_face(face) or not _finite(x, y):
        return None
    if abs(x) > 1.0 + FACE_EPSILON or abs(y) > 1.0 + FACE_EPSILON:
        return None
    x0, y0 = FACE_ORIGINS[face]
    return (_clamp_unit(x) + 1.0) / 2.0 + x0, (_clamp_unit(y) + 1.0) / 2.0 + y0


def _angle(a, b):
    return math.atan2(float(np.linalg.norm(np.cross(a, b))), float(a @ b))


def arc_length(coord1, coord2, face):
    """Great-circle length, in radians on the unit sphere, between two
    points on the same face, or None for an invalid face or coordinate."""
    dc1 = face_to_dc(face, coord1)
    dc2 = face_to_dc(face, coord2)
    if dc1 is None or dc2 is None:
        return None
    return _angle(dc1, dc2)


def distance_to_arc(p, dc1, dc2) -> float:
    """Euclidean distance from a 3D point to the great-circle arc
    between two direction cosines.

    The point is projected onto the plane holding the arc and the centre of
    the sphere. If the projection falls between the endpoints the distance to
    that point of the arc is returned, otherwise the distance to the nearer
    endpoint. Coincident endpoints reduce to a point distance.
    """
    p = np.asarray(p, dtype=float)
    a = np.asarray(dc1, dtype=float)
    b = np.asarray(dc2, dtype=float)
    to_a = float(np.linalg.norm(p - a))
    to_b = float(np.linalg.norm(p - b))

    normal = np.cross(a, b)
    normal_len = float(np.linalg.norm(normal))
    if normal_len < TIE_EPSILON:
        return min(to_a, to_b)
    normal = normal / normal_len

    q = p - float(p @ normal) * normal
    q_len = float(np.linalg.norm(q))
    if q_len < TIE_EPSILON:
        # p sits on the axis of the great circle, every arc point is as near
        return min(to_a, to_b)
    q = q / q_len

    theta = math.atan2(normal_len, float(a @ b))
    phi = math.atan2(float(np.cross(a, q) @ normal), float(a @ q))
    t = phi / theta
    if 0.0 <= t <= 1.0:
        return float(np.linalg.norm(p - q))
    return min(to_a, to_b)


def distance_to_segment(p, coord1, coord2, face):
    """`distance_to_arc` for endpoints given as face coordinates.

    Returns None if `face` is not a face index or an endpoint is not a valid
    face coordinate.
    """
    dc1 = face_to_dc(face, coord1)
    dc2 = face_to_dc(face, coord2)
    if dc1 is None or dc2 is None:
        return None
    return distance_to_arc(p, dc1, dc2)
