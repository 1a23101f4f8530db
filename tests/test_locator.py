"""Tests for FaceLocator and the geocentric helpers."""

from unittest.mock import patch

import pytest

from eulercube import FaceLocator, face_math, geocentric


WGS84_A = 6378137.0
WGS84_B = 6356752.314245179


class TestGeocentric:
    """Tests for the geodetic <-> geocentric conversions."""

    def test_equator_prime_meridian(self):
        x, y, z = geocentric.geodetic_to_geocentric(0.0, 0.0)
        assert x == pytest.approx(WGS84_A)
        assert y == pytest.approx(0.0, abs=1e-6)
        assert z == pytest.approx(0.0, abs=1e-6)

    def test_north_pole(self):
        x, y, z = geocentric.geodetic_to_geocentric(0.0, 90.0, 100.0)
        assert z == pytest.approx(WGS84_B + 100.0, abs=1e-3)
        assert x == pytest.approx(0.0, abs=1e-6)

    def test_round_trip(self, interior_points):
        """Geodetic positions survive a trip through geocentric space."""
        for lat, lon in interior_points:
            xyz = geocentric.geodetic_to_geocentric(lon, lat, 250.0)
            lon2, lat2, h2 = geocentric.geocentric_to_geodetic(*xyz)
            assert lon2 == pytest.approx(lon, abs=1e-9)
            assert lat2 == pytest.approx(lat, abs=1e-9)
            assert h2 == pytest.approx(250.0, abs=1e-4)

    @patch.object(geocentric, "settings")
    def test_settings_read_per_call(self, mock_settings):
        """CRS settings are looked up on each conversion, not at import."""
        values = {"geodetic_crs": "EPSG:4979", "geocentric_crs": "EPSG:4978"}
        mock_settings.get.side_effect = lambda key, default=None: values.get(key, default)
        x, _, _ = geocentric.geodetic_to_geocentric(0.0, 0.0)
        assert x == pytest.approx(WGS84_A)
        keys = [call.args[0] for call in mock_settings.get.call_args_list]
        assert "geodetic_crs" in keys and "geocentric_crs" in keys
        mock_settings.get.reset_mock()
        geocentric.geocentric_to_geodetic(WGS84_A, 0.0, 0.0)
        assert mock_settings.get.call_count == 2


class TestFaceLocator:
    """Tests for FaceLocator."""

    @pytest.mark.parametrize("face", [-1, 6, 2.0, None])
    def test_invalid_face_raises(self, face):
        """A locator needs a face index in 0..5."""
        with pytest.raises(ValueError):
            FaceLocator(face)

    def test_empty_extent_raises(self):
        with pytest.raises(ValueError):
            FaceLocator(0, extent=(0.5, 0.0, 0.5, 1.0))

    def test_face_centre_on_equator(self):
        """The middle of face 0 sits on the equatorial radius along X."""
        x, y, z = FaceLocator(0).convert_local_to_model((0.5, 0.5))
        assert x == pytest.approx(WGS84_A)
        assert y == pytest.approx(0.0, abs=1e-6)
        assert z == pytest.approx(0.0, abs=1e-6)

    def test_face_centre_at_pole(self):
        """The middle of face 4 is the North Pole."""
        x, y, z = FaceLocator(4).convert_local_to_model((0.5, 0.5, 0.0))
        assert z == pytest.approx(WGS84_B, abs=1e-3)
        assert abs(x) < 1e-6 and abs(y) < 1e-6

    def test_sub_extent(self):
        """Local 0..1 spans the locator extent, not the whole face."""
        locator = FaceLocator(0, extent=(0.0, 0.0, 1.0, 1.0))
        x, y, z = locator.convert_local_to_model((0.0, 0.0))
        assert x == pytest.approx(WGS84_A)
        assert locator.local_to_face_coords(0.5, 0.5) == (0.5, 0.5)
        assert locator.face_coords_to_local(0.5, 0.5) == (0.5, 0.5)

    @pytest.mark.parametrize("face", range(face_math.NUM_FACES))
    def test_round_trip(self, face):
        """Local points survive a trip through world space."""
        locator = FaceLocator(face, extent=(-0.5, -0.25, 0.75, 1.0))
        for local in [(0.1, 0.2, 0.0), (0.5, 0.5, 1000.0), (0.9, 0.05, -30.0)]:
            world = locator.convert_local_to_model(local)
            s, t, h = locator.convert_model_to_local(world)
            assert s == pytest.approx(local[0], abs=1e-9)
            assert t == pytest.approx(local[1], abs=1e-9)
            assert h == pytest.approx(local[2], abs=1e-4)

    def test_wrong_face_returns_none(self):
        """A world point on face 0 is not representable on face 2."""
        world = FaceLocator(0).convert_local_to_model((0.3, 0.6))
        assert FaceLocator(2).convert_model_to_local(world) is None

    def test_wrong_face_is_logged(self, caplog):
        world = FaceLocator(0).convert_local_to_model((0.3, 0.6))
        with caplog.at_level("DEBUG", logger="eulercube.locator"):
            assert FaceLocator(2).convert_model_to_local(world) is None
        assert "does not project onto face 2" in caplog.text

    def test_shared_edge_seen_from_both_faces(self):
        """A point on the 0/1 edge is at s = 1 on face 0 and s = 0 on face 1."""
        world = FaceLocator(0).convert_local_to_model((1.0, 0.3))
        s, t, _ = FaceLocator(1).convert_model_to_local(world)
        assert s == pytest.approx(0.0, abs=1e-9)
        assert t == pytest.approx(0.3, abs=1e-9)

    def test_local_off_face_returns_none(self):
        """Local coordinates leaving the face cannot be converted."""
        assert FaceLocator(3).convert_local_to_model((1.5, 0.5)) is None
