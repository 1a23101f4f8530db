"""Per-face locators converting tile-local coordinates to world space."""
import logging

from . import face_math, geocentric

logger = logging.getLogger(__name__)

FULL_FACE = (-1.0, -1.0, 1.0, 1.0)


class FaceLocator:
    """Map tile-local unit coordinates on one cube face to geocentric space.

    Local coordinates are ``(s, t, h)`` where ``s`` and ``t`` run from 0 to 1
    across the locator's extent and ``h`` is the height above the ellipsoid
    in meters. World coordinates are geocentric ``(X, Y, Z)`` meters.

    Parameters
    ----------
    face : int
        Face index in 0..5.
    extent : tuple of float, optional
        ``(xmin, ymin, xmax, ymax)`` in face coordinates that local ``0..1``
        spans. Defaults to the whole face.

    Raises
    ------
    ValueError
        If `face` is not a face index or `extent` is empty.
    """

    def __init__(self, face, extent=None):
        if not face_math.is_face(face):
            raise ValueError(f"face must be 0-5, got {face}")
        xmin, ymin, xmax, ymax = extent if extent is not None else FULL_FACE
        if not (xmin < xmax and ymin < ymax):
            raise ValueError(f"empty locator extent {extent}")
        self.face = int(face)
        self.extent = (float(xmin), float(ymin), float(xmax), float(ymax))

    def __repr__(self):
        return f"FaceLocator(face={self.face}, extent={self.extent})"

    def local_to_face_coords(self, s, t):
        xmin, ymin, xmax, ymax = self.extent
        return xmin + s * (xmax - xmin), ymin + t * (ymax - ymin)

    def face_coords_to_local(self, x, y):
        xmin, ymin, xmax, ymax = self.extent
        return (x - xmin) / (xmax - xmin), (y - ymin) / (ymax - ymin)

    def convert_local_to_model(self, local):
        """Convert ``(s, t[, h])`` to geocentric ``(X, Y, Z)``.

        Returns None if the local point falls off the face or the geocentric
        conversion fails.
        """
        s, t = local[0], local[1]
        height = local[2] if len(local) > 2 else 0.0
        x, y = self.local_to_face_coords(s, t)
        latlon = face_math.face_coords_to_lat_lon(x, y, self.face)
        if latlon is None:
            return None
        lat, lon = latlon
        return geocentric.geodetic_to_geocentric(lon, lat, height)

    def convert_model_to_local(self, world):
        """Convert geocentric ``(X, Y, Z)`` to ``(s, t, h)``.

        Returns None if the point does not project onto this locator's face,
        e.g. when the locator of a neighbouring face was asked.
        """
        llh = geocentric.geocentric_to_geodetic(*world)
        if llh is None:
            return None
        lon, lat, height = llh
        coords = face_math.lat_lon_to_face_coords(lat, lon, face_hint=self.face)
        if coords is None:
            logger.debug(f"{world} does not project onto face {self.face}")
            return None
        s, t = self.face_coords_to_local(coords[0], coords[1])
        return s, t, height
