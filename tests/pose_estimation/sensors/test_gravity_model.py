"""
Unit tests for the gravity magnitude model.

Tests cover:
    - WGS-84 latitude dependence
    - Constant fallback and validation
"""

import unittest

import numpy as np

from pose_estimation.sensors.gravity import (
    STANDARD_GRAVITY,
    gravity_magnitude,
    gravity_magnitude_wgs84,
)


class TestGravityMagnitude(unittest.TestCase):
    """Test gravity_magnitude and gravity_magnitude_wgs84."""

    def test_equator_and_pole(self) -> None:
        self.assertAlmostEqual(gravity_magnitude_wgs84(0.0), 9.7803, places=4)
        self.assertAlmostEqual(gravity_magnitude_wgs84(np.pi / 2), 9.8322, places=4)

    def test_increases_towards_poles(self) -> None:
        values = [gravity_magnitude_wgs84(np.deg2rad(lat)) for lat in (0, 30, 60, 90)]
        self.assertEqual(values, sorted(values))

    def test_symmetric_hemispheres(self) -> None:
        self.assertAlmostEqual(
            gravity_magnitude_wgs84(np.deg2rad(45.0)),
            gravity_magnitude_wgs84(np.deg2rad(-45.0)),
        )

    def test_default(self) -> None:
        self.assertEqual(gravity_magnitude(), STANDARD_GRAVITY)
        self.assertEqual(gravity_magnitude(default_g=9.81), 9.81)

    def test_latitude(self) -> None:
        self.assertAlmostEqual(gravity_magnitude(0.0), gravity_magnitude_wgs84(0.0))

    def test_degrees_rejected(self) -> None:
        with self.assertRaises(ValueError):
            gravity_magnitude(45.0)

    def test_non_positive_default(self) -> None:
        with self.assertRaises(ValueError):
            gravity_magnitude(default_g=0.0)


if __name__ == "__main__":
    unittest.main()
