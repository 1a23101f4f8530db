"""Tiling profile of the Euler cube.

Tile keys are `mercantile.Tile` index triples over a square quadtree whose
root tile covers the cube layout square ``[0, 4] x [0, 4]``; rows are counted
from the top, as in slippy maps. Tiles at level 2 have an edge of one layout
unit and coincide with the faces, so every key from level 2 down lies on a
single face. Keys above level 2 and keys in the empty cells of the layout are
not valid.
"""
import logging
import math

import mercantile

from . import face_math
from .locator import FaceLocator
from .srs import get_srs

logger = logging.getLogger(__name__)


class InvalidTileKeyError(ValueError):
    """Raised for tile keys that do not lie on exactly one face."""


class CubeProfile:
    """Tiling scheme partitioning the cube layout into a quadtree of tiles.

    Parameters
    ----------
    srs : CubeSpatialReference, optional
        Cube spatial reference of the profile. Defaults to the shared
        ``"cube"`` reference.

    Attributes
    ----------
    ROOT_SIZE : float
        Edge of the root tile in cube layout units.
    FIRST_LOD : int
        Shallowest level at which tiles lie on a single face.
    """

    ROOT_SIZE = 4.0
    FIRST_LOD = 2

    def __init__(self, srs=None):
        self.srs = srs if srs is not None else get_srs("cube")
        if not self.srs.is_cube:
            raise ValueError(f"{self.srs!r} is not a cube spatial reference")

    def tile_size(self, lod: int) -> float:
        return self.ROOT_SIZE / 2**lod

    def tile_extent(self, key):
        """Cube layout extent ``(xmin, ymin, xmax, ymax)`` of a tile key."""
        size = self.tile_size(key.z)
        xmin = key.x * size
        ymax = self.ROOT_SIZE - key.y * size
        return xmin, ymax - size, xmin + size, ymax

    def get_face(self, key) -> int:
        """Face holding the whole tile.

        Raises
        ------
        InvalidTileKeyError
            If the key is above FIRST_LOD or lies outside the faces.
        """
        face = None
        if key.z >= self.FIRST_LOD:
            face = face_math.cube_to_face_extent(*self.tile_extent(key))
        if face is None:
            logger.warning(f"Tile {mercantile.quadkey(key)} is not on a single face")
            raise InvalidTileKeyError(f"{key} does not lie on exactly one face")
        return face

    def tile_face_extent(self, key):
        """Extent of a tile in the face coordinates of its face."""
        face = self.get_face(key)
        xmin, ymin, xmax, ymax = self.tile_extent(key)
        x0, y0 = face_math.cube_to_face_coords(xmin, ymin, face)
        x1, y1 = face_math.cube_to_face_coords(xmax, ymax, face)
        return x0, y0, x1, y1

    def tile_geographic_extent(self, key):
        """Longitude/latitude bounding box of a tile."""
        return self.srs.transform_extent(self.srs.geographic_srs, *self.tile_extent(key))

    def get_locator(self, key) -> FaceLocator:
        """Locator mapping the tile's local ``0..1`` range to world space."""
        return FaceLocator(self.get_face(key), extent=self.tile_face_extent(key))

    def get_root_keys(self):
        """The six level-2 keys, one per face, in face order."""
        keys = []
        for x0, y0 in face_math.FACE_ORIGINS:
            row = int(self.ROOT_SIZE - y0) - 1
            keys.append(mercantile.Tile(int(x0), row, self.FIRST_LOD))
        return keys

    def get_child_keys(self, key):
        return mercantile.children(key)

    def get_parent_key(self, key):
        """Parent of a key, or None if the parent would span several faces."""
        if key.z <= self.FIRST_LOD:
            return None
        return mercantile.parent(key)

    def _face_tiles(self, face, extent, lod):
        """Keys at `lod` on `face` intersecting a layout extent on that face."""
        size = self.tile_size(lod)
        per_face = 2**(lod - self.FIRST_LOD)
        fx0, fy0, _, fy1 = face_math.face_rect(face)
        col_lo = int(fx0) * per_face
        row_lo = int(self.ROOT_SIZE - fy1) * per_face

        def clamp(value, lo):
            return max(lo, min(lo + per_face - 1, value))

        xmin, ymin, xmax, ymax = extent
        col0 = clamp(math.floor(xmin / size), col_lo)
        col1 = clamp(max(col0, math.ceil(xmax / size) - 1), col_lo)
        row0 = clamp(math.floor((self.ROOT_SIZE - ymax) / size), row_lo)
        row1 = clamp(max(row0, math.ceil((self.ROOT_SIZE - ymin) / size) - 1), row_lo)
        return [mercantile.Tile(x, y, lod)
                for y in range(row0, row1 + 1) for x in range(col0, col1 + 1)]

    def get_intersecting_tiles(self, extent, lod, extent_srs=None):
        """Keys at `lod` intersecting a query extent.

        Parameters
        ----------
        extent : tuple of float
            ``(xmin, ymin, xmax, ymax)``. Longitude/latitude on the profile's
            geographic base unless `extent_srs` is given; a geographic extent
            with ``xmin > xmax`` crosses the antimeridian.
        lod : int
            Level of detail, at least FIRST_LOD.
        extent_srs : SpatialReference, optional
            Spatial reference of `extent`.

        Returns
        -------
        list of mercantile.Tile
            Sorted keys; empty if the extent cannot be represented.

        Raises
        ------
        ValueError
            If `lod` is shallower than FIRST_LOD.
        """
        if lod < self.FIRST_LOD:
            raise ValueError(f"lod must be at least {self.FIRST_LOD}, got {lod}")
        geographic = self.srs.geographic_srs
        if extent_srs is not None and not (
                extent_srs.is_geographic and extent_srs.crs == geographic.crs):
            extent = extent_srs.transform_extent(geographic, *extent)
            if extent is None:
                logger.debug(f"Query extent is not representable in {geographic!r}")
                return []

        pieces = self.srs.decompose_geographic_extent(*extent)
        if pieces is None:
            logger.debug(f"Malformed query extent {extent}")
            return []

        keys = set()
        for piece in pieces:
            face = face_math.cube_to_face_extent(*piece)
            if face is None:
                logger.debug(f"Sub-extent {piece} spans several faces")
                continue
            keys.update(self._face_tiles(face, piece, lod))
        return sorted(keys)
