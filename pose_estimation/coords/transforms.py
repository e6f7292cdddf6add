"""WGS84 ellipsoid parameters and local-tangent-plane helpers.

WGS84 ellipsoid parameters:
- Semi-major axis (a): 6378137.0 m
- Flattening (f): 1/298.257223563
- Semi-minor axis (b): 6356752.314245 m
- First eccentricity squared (e²): 0.00669437999014

The radii of curvature computed here scale small latitude/longitude
offsets to metres around a reference point (equirectangular projection),
which is what GlobalReference uses to anchor GPS fixes.
"""

from typing import Tuple

import numpy as np

# WGS84 ellipsoid parameters
WGS84_A = 6378137.0  # Semi-major axis (m)
WGS84_F = 1.0 / 298.257223563  # Flattening
WGS84_B = WGS84_A * (1.0 - WGS84_F)  # Semi-minor axis (m)
WGS84_E2 = 1.0 - (WGS84_B / WGS84_A) ** 2  # First eccentricity squared


def radii_of_curvature(lat: float) -> Tuple[float, float]:
    """Meridian and prime-vertical radii of curvature at a latitude.

    Args:
        lat: Geodetic latitude in radians.

    Returns:
        Tuple (M, N) in meters: M is the meridian radius (north-south),
        N the prime-vertical radius (east-west).

    Example:
        >>> M, N = radii_of_curvature(0.0)
        >>> round(N)  # equals the semi-major axis at the equator
        6378137
    """
    sin_lat = np.sin(lat)
    denominator = 1.0 - WGS84_E2 * sin_lat * sin_lat
    N = WGS84_A / np.sqrt(denominator)
    M = WGS84_A * (1.0 - WGS84_E2) / denominator**1.5
    return float(M), float(N)


def local_radii(lat: float, height: float = 0.0) -> Tuple[float, float]:
    """Scale factors (m/rad) for north and east offsets around a reference.

    Args:
        lat: Reference latitude in radians.
        height: Reference height above the ellipsoid in meters.

    Returns:
        Tuple (radius_north, radius_east) with
        radius_north = M + h and radius_east = (N + h) * cos(lat).
    """
    M, N = radii_of_curvature(lat)
    return M + height, (N + height) * float(np.cos(lat))


def wrap_angle(angle: float) -> float:
    """Wrap an angle to [-π, π)."""
    return float((angle + np.pi) % (2.0 * np.pi) - np.pi)
