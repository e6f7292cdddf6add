"""
Unit tests for GlobalReference.

Tests cover:
    - Anchoring and round-trip conversions
    - Heading rotation of the local frame
    - Re-anchoring around a current local position
    - Altitude reference
"""

import unittest

import numpy as np
from numpy.testing import assert_allclose

from pose_estimation.coords.global_reference import GeodeticPosition, GlobalReference
from pose_estimation.coords.transforms import local_radii, radii_of_curvature, wrap_angle

LAT0 = np.deg2rad(49.86)
LON0 = np.deg2rad(8.68)


class TestTransforms(unittest.TestCase):
    """Test WGS84 radii and angle wrapping."""

    def test_radii_at_equator(self) -> None:
        M, N = radii_of_curvature(0.0)
        self.assertAlmostEqual(N, 6378137.0, places=3)
        self.assertLess(M, N)

    def test_local_radii_with_height(self) -> None:
        north, east = local_radii(0.0, 100.0)
        M, N = radii_of_curvature(0.0)
        self.assertAlmostEqual(north, M + 100.0)
        self.assertAlmostEqual(east, N + 100.0)

    def test_wrap_angle(self) -> None:
        self.assertAlmostEqual(wrap_angle(3.0 * np.pi / 2), -np.pi / 2)
        self.assertAlmostEqual(wrap_angle(-3.0 * np.pi / 2), np.pi / 2)
        self.assertAlmostEqual(wrap_angle(0.1), 0.1)


class TestGlobalReferenceAnchor(unittest.TestCase):
    """Test anchoring and conversions."""

    def setUp(self) -> None:
        self.ref = GlobalReference()
        self.ref.set_position(LAT0, LON0)

    def test_unset_reference(self) -> None:
        ref = GlobalReference()
        self.assertFalse(ref.has_position)
        self.assertFalse(ref.has_heading)
        self.assertEqual(ref.heading, 0.0)
        self.assertEqual(ref.altitude, 0.0)
        with self.assertRaises(RuntimeError):
            ref.from_wgs84(LAT0, LON0)
        with self.assertRaises(RuntimeError):
            ref.to_wgs84(0.0, 0.0)

    def test_anchor_maps_to_origin(self) -> None:
        x, y = self.ref.from_wgs84(LAT0, LON0)
        self.assertAlmostEqual(x, 0.0)
        self.assertAlmostEqual(y, 0.0)

    def test_north_is_x_and_east_is_minus_y(self) -> None:
        x, y = self.ref.from_wgs84(LAT0 + 1e-5, LON0)
        self.assertGreater(x, 0.0)
        self.assertAlmostEqual(y, 0.0)
        x, y = self.ref.from_wgs84(LAT0, LON0 + 1e-5)
        self.assertAlmostEqual(x, 0.0)
        self.assertLess(y, 0.0)

    def test_round_trip(self) -> None:
        lat, lon = self.ref.to_wgs84(123.4, -56.7)
        x, y = self.ref.from_wgs84(lat, lon)
        assert_allclose([x, y], [123.4, -56.7], atol=1e-6)

    def test_invalid_position(self) -> None:
        with self.assertRaises(ValueError):
            self.ref.set_position(np.nan, 0.0)
        with self.assertRaises(ValueError):
            self.ref.set_position(2.0, 0.0)

    def test_reset(self) -> None:
        self.ref.set_heading(0.5)
        self.ref.reset()
        self.assertFalse(self.ref.has_position)
        self.assertFalse(self.ref.has_heading)

    def test_position(self) -> None:
        position = self.ref.position
        self.assertIsInstance(position, GeodeticPosition)
        self.assertAlmostEqual(position.latitude, LAT0)
        self.assertTrue(np.isnan(position.altitude))


class TestGlobalReferenceHeading(unittest.TestCase):
    """Test the heading of the local x axis."""

    def test_north_east_rotation(self) -> None:
        ref = GlobalReference()
        ref.set_heading(np.pi / 2)
        # heading 90°: x points east, y points north
        x, y = ref.from_north_east(0.0, 1.0)
        assert_allclose([x, y], [1.0, 0.0], atol=1e-12)
        x, y = ref.from_north_east(1.0, 0.0)
        assert_allclose([x, y], [0.0, 1.0], atol=1e-12)

    def test_north_east_inverse(self) -> None:
        ref = GlobalReference()
        ref.set_heading(0.7)
        north, east = ref.to_north_east(*ref.from_north_east(3.0, 4.0))
        assert_allclose([north, east], [3.0, 4.0], atol=1e-12)

    def test_heading_round_trip(self) -> None:
        ref = GlobalReference()
        ref.set_position(LAT0, LON0)
        ref.set_heading(-1.2)
        lat, lon = ref.to_wgs84(10.0, 20.0)
        assert_allclose(ref.from_wgs84(lat, lon), [10.0, 20.0], atol=1e-6)

    def test_heading_wrapped(self) -> None:
        ref = GlobalReference()
        ref.set_heading(2.0 * np.pi + 0.1)
        self.assertAlmostEqual(ref.heading, 0.1)


class TestGlobalReferenceReanchor(unittest.TestCase):
    """Test reanchor."""

    def test_current_position_maps_to_fix(self) -> None:
        ref = GlobalReference()
        ref.set_heading(0.0)
        ref.reanchor(LAT0, LON0, 120.0, -35.0)
        x, y = ref.from_wgs84(LAT0, LON0)
        assert_allclose([x, y], [120.0, -35.0], atol=1e-2)
        lat, lon = ref.to_wgs84(120.0, -35.0)
        assert_allclose([lat, lon], [LAT0, LON0], atol=1e-8)

    def test_zero_offset_is_plain_anchor(self) -> None:
        ref = GlobalReference()
        ref.reanchor(LAT0, LON0, 0.0, 0.0)
        self.assertAlmostEqual(ref.latitude, LAT0)
        self.assertAlmostEqual(ref.longitude, LON0)


class TestGlobalReferenceAltitude(unittest.TestCase):
    """Test altitude handling."""

    def test_to_altitude_without_reference(self) -> None:
        self.assertTrue(np.isnan(GlobalReference().to_altitude(5.0)))

    def test_to_altitude(self) -> None:
        ref = GlobalReference()
        ref.set_altitude(100.0)
        self.assertTrue(ref.has_altitude)
        self.assertAlmostEqual(ref.to_altitude(5.0), 105.0)

    def test_invalid_altitude(self) -> None:
        with self.assertRaises(ValueError):
            GlobalReference().set_altitude(np.inf)


if __name__ == "__main__":
    unittest.main()
