"""
Gravity magnitude.

The process model adds gravity back onto the vertical specific force and
the gravity measurement model predicts the accelerometer reading of a
vehicle at rest; both take their magnitude from here.

The WGS-84 latitude formula accounts for:
    - Earth's oblate spheroid shape (equatorial bulge)
    - Centrifugal force from Earth's rotation
    - Latitude-dependent variation (±0.05 m/s² from equator to poles)

Latitude is always in radians.
"""

from typing import Optional

import numpy as np

STANDARD_GRAVITY = 9.80665  # m/s², conventional standard value


def gravity_magnitude_wgs84(lat_rad: float) -> float:
    """
    Gravity magnitude at sea level for a geodetic latitude.

        g(φ) = 9.7803 * (1 + 0.0053024·sin²(φ) - 0.000005·sin²(2φ))

    Args:
        lat_rad: Geodetic latitude in radians, [-π/2, +π/2].

    Returns:
        Gravity magnitude g in m/s², approximately [9.780, 9.832].

    Example:
        >>> round(gravity_magnitude_wgs84(0.0), 4)
        9.7803
        >>> round(gravity_magnitude_wgs84(np.pi / 2), 4)
        9.8322
    """
    sin_lat = np.sin(lat_rad)
    sin_2lat = np.sin(2.0 * lat_rad)

    g = 9.7803 * (1.0 + 0.0053024 * sin_lat * sin_lat - 0.000005 * sin_2lat * sin_2lat)

    return float(g)


def gravity_magnitude(
    lat_rad: Optional[float] = None,
    default_g: float = STANDARD_GRAVITY,
) -> float:
    """
    Gravity magnitude with fallback to a constant.

    Args:
        lat_rad: Geodetic latitude in radians, or None when unknown.
        default_g: Value returned when no latitude is available.

    Returns:
        Latitude-dependent gravity if lat_rad is given, else default_g.

    Raises:
        ValueError: If lat_rad is outside [-π/2, π/2] or default_g <= 0.
    """
    if default_g <= 0:
        raise ValueError(f"default_g must be positive, got {default_g}")
    if lat_rad is None:
        return float(default_g)
    if abs(lat_rad) > np.pi / 2 + 1e-9:
        raise ValueError(
            f"Latitude must be in [-π/2, π/2] radians, got {lat_rad}. "
            "Did you pass degrees?"
        )
    return gravity_magnitude_wgs84(lat_rad)
