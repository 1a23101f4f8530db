"""Tests for the eulercube.profile module."""

import mercantile
import pytest

from eulercube import CubeProfile, InvalidTileKeyError, face_math
from eulercube.profile import logger as profile_logger


WHOLE_GLOBE = (-180.0, -90.0, 180.0, 90.0)


class TestTileKeys:
    """Tests for tile key geometry and navigation."""

    def test_root_keys(self, profile):
        """One level-2 key per face, in face order."""
        assert profile.get_root_keys() == [
            mercantile.Tile(0, 2, 2),
            mercantile.Tile(1, 2, 2),
            mercantile.Tile(2, 2, 2),
            mercantile.Tile(3, 2, 2),
            mercantile.Tile(0, 1, 2),
            mercantile.Tile(0, 3, 2),
        ]

    def test_root_keys_are_faces(self, profile):
        for face, key in enumerate(profile.get_root_keys()):
            assert profile.get_face(key) == face
            assert profile.tile_extent(key) == face_math.face_rect(face)
            assert profile.tile_face_extent(key) == (-1.0, -1.0, 1.0, 1.0)

    def test_tile_size(self, profile):
        assert profile.tile_size(2) == 1.0
        assert profile.tile_size(5) == 0.125

    def test_child_keys_stay_on_face(self, profile):
        for face, key in enumerate(profile.get_root_keys()):
            children = profile.get_child_keys(key)
            assert len(children) == 4
            assert {profile.get_face(child) for child in children} == {face}

    def test_parent_keys(self, profile):
        root = profile.get_root_keys()[3]
        child = profile.get_child_keys(root)[2]
        assert profile.get_parent_key(child) == root
        assert profile.get_parent_key(root) is None

    @pytest.mark.parametrize("key", [
        mercantile.Tile(0, 0, 0),
        mercantile.Tile(0, 0, 1),
        mercantile.Tile(1, 1, 2),
        mercantile.Tile(3, 0, 2),
        mercantile.Tile(5, 1, 3),
    ])
    def test_invalid_key_raises(self, profile, key):
        """Keys above level 2 or in empty cells have no face."""
        with pytest.raises(InvalidTileKeyError):
            profile.get_face(key)

    def test_invalid_key_is_value_error(self, profile):
        with pytest.raises(ValueError):
            profile.get_locator(mercantile.Tile(2, 0, 2))

    def test_invalid_key_is_logged(self, profile, caplog):
        with caplog.at_level("WARNING", logger=profile_logger.name):
            with pytest.raises(InvalidTileKeyError):
                profile.get_face(mercantile.Tile(1, 1, 2))
        assert "not on a single face" in caplog.text

    def test_locator_of_child_tile(self, profile):
        """The top left quarter of face 0 spans x in [-1, 0], y in [0, 1]."""
        locator = profile.get_locator(mercantile.Tile(0, 4, 3))
        assert locator.face == 0
        assert locator.extent == (-1.0, 0.0, 0.0, 1.0)

    def test_tile_geographic_extent(self, profile):
        extent = profile.tile_geographic_extent(profile.get_root_keys()[0])
        assert extent == pytest.approx((-45.0, -45.0, 45.0, 45.0))

    def test_requires_cube_srs(self, geographic_srs):
        with pytest.raises(ValueError):
            CubeProfile(geographic_srs)

    def test_default_srs(self, cube_srs):
        assert CubeProfile().srs is cube_srs


class TestIntersectingTiles:
    """Tests for get_intersecting_tiles."""

    def test_whole_globe_first_lod(self, profile):
        keys = profile.get_intersecting_tiles(WHOLE_GLOBE, 2)
        assert keys == sorted(profile.get_root_keys())

    def test_whole_globe_second_lod(self, profile):
        keys = profile.get_intersecting_tiles(WHOLE_GLOBE, 3)
        assert len(keys) == 24
        faces = [profile.get_face(key) for key in keys]
        assert all(faces.count(face) == 4 for face in range(face_math.NUM_FACES))

    def test_lod_too_shallow(self, profile):
        with pytest.raises(ValueError):
            profile.get_intersecting_tiles(WHOLE_GLOBE, 1)

    def test_small_extent_at_face_centre(self, profile):
        """A box around (0, 0) touches the four tiles meeting at the centre."""
        keys = profile.get_intersecting_tiles((-1.0, -1.0, 1.0, 1.0), 4)
        assert keys == [
            mercantile.Tile(1, 9, 4),
            mercantile.Tile(1, 10, 4),
            mercantile.Tile(2, 9, 4),
            mercantile.Tile(2, 10, 4),
        ]

    def test_extent_across_faces(self, profile):
        keys = profile.get_intersecting_tiles((30.0, -10.0, 60.0, 10.0), 2)
        assert keys == [mercantile.Tile(0, 2, 2), mercantile.Tile(1, 2, 2)]

    def test_extent_across_antimeridian(self, profile):
        keys = profile.get_intersecting_tiles((170.0, -10.0, -170.0, 10.0), 2)
        assert keys == [mercantile.Tile(2, 2, 2)]

    def test_polar_cap(self, profile):
        keys = profile.get_intersecting_tiles((-180.0, 80.0, 180.0, 90.0), 3)
        assert {profile.get_face(key) for key in keys} == {4}
        assert len(keys) == 4

    def test_every_tile_on_one_face(self, profile):
        keys = profile.get_intersecting_tiles((-60.0, -50.0, 100.0, 70.0), 5)
        assert keys
        for key in keys:
            assert face_math.is_face(profile.get_face(key))

    def test_extent_srs(self, profile, mercator_srs, geographic_srs):
        """Extents in another system are brought to geographic first."""
        x, y = mercator_srs.post_transform(20.0, 20.0)
        keys = profile.get_intersecting_tiles((-x, -y, x, y), 2, extent_srs=mercator_srs)
        assert keys == [mercantile.Tile(0, 2, 2)]
        keys = profile.get_intersecting_tiles((-20.0, -20.0, 20.0, 20.0), 2,
                                              extent_srs=geographic_srs)
        assert keys == [mercantile.Tile(0, 2, 2)]

    def test_malformed_extent(self, profile):
        assert profile.get_intersecting_tiles((0.0, 10.0, 10.0, -10.0), 3) == []
