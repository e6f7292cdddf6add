"""
Sensor environment models.

This module provides the physical reference models the measurement
models rely on:
    - Gravity magnitude (standard and WGS-84 latitude dependent)
    - Standard atmosphere pressure/altitude conversion
    - Magnetometer tilt compensation
"""

from pose_estimation.sensors.environment import (
    altitude_to_pressure,
    mag_tilt_compensate,
    pressure_altitude_derivative,
    pressure_to_altitude,
)
from pose_estimation.sensors.gravity import (
    STANDARD_GRAVITY,
    gravity_magnitude,
    gravity_magnitude_wgs84,
)

__all__ = [
    "STANDARD_GRAVITY",
    "gravity_magnitude",
    "gravity_magnitude_wgs84",
    "pressure_to_altitude",
    "altitude_to_pressure",
    "pressure_altitude_derivative",
    "mag_tilt_compensate",
]
