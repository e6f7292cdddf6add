"""
Environmental sensor helpers: barometer and magnetometer.

    - Barometric altitude from pressure and its inverse (standard atmosphere)
    - Magnetometer tilt compensation (project the body field to the level
      plane using roll and pitch)

Barometric formula (troposphere, standard lapse rate):

    h = (T / L) * (1 - (p / p0)^α),     α = R·L / (g·M) ≈ 0.190263
    p = p0 * (1 - L·h / T)^(1/α)

Frame conventions: body vectors rotate into the local navigation frame
(z up) by R = Rz(yaw) Ry(pitch) Rx(roll).
"""

import numpy as np

from pose_estimation.coords.rotations import euler_to_rotation_matrix
from pose_estimation.sensors.gravity import STANDARD_GRAVITY

# Standard atmosphere parameters
LAPSE_RATE = 0.0065  # K/m (temperature lapse rate)
GAS_CONSTANT = 8.31432  # J/(mol·K) (universal gas constant)
MOLAR_MASS_AIR = 0.0289644  # kg/mol
SEA_LEVEL_PRESSURE = 101325.0  # Pa
SEA_LEVEL_TEMPERATURE = 288.15  # K

# α = (R * L) / (g * M) ≈ 0.190263
BAROMETRIC_EXPONENT = (GAS_CONSTANT * LAPSE_RATE) / (STANDARD_GRAVITY * MOLAR_MASS_AIR)


def _check_reference(p0: float, T: float) -> None:
    if p0 <= 0:
        raise ValueError(f"p0 (reference pressure) must be positive, got {p0}")
    if T <= 0:
        raise ValueError(f"T (temperature) must be positive, got {T}")


def pressure_to_altitude(
    p: float,
    p0: float = SEA_LEVEL_PRESSURE,
    T: float = SEA_LEVEL_TEMPERATURE,
) -> float:
    """
    Convert barometric pressure to altitude.

        h = (T / L) * (1 - (p / p0)^α)

    Args:
        p: Measured static pressure in Pa. Typical range: 95000-105000 Pa.
        p0: Reference pressure (QNH or a local reference) in Pa.
        T: Reference temperature in Kelvin.

    Returns:
        Altitude above the p0 level in meters.

    Notes:
        - Pressure changes ~12 Pa per meter near sea level.
        - Weather changes move p0; the height model absorbs the offset in
          its elevation term.

    Example:
        >>> pressure_to_altitude(101325.0)
        0.0
        >>> round(pressure_to_altitude(101325.0 - 36.0), 1)
        3.0
    """
    if p <= 0:
        raise ValueError(f"p (pressure) must be positive, got {p}")
    _check_reference(p0, T)

    return float((T / LAPSE_RATE) * (1.0 - (p / p0) ** BAROMETRIC_EXPONENT))


def altitude_to_pressure(
    h: float,
    p0: float = SEA_LEVEL_PRESSURE,
    T: float = SEA_LEVEL_TEMPERATURE,
) -> float:
    """
    Static pressure at altitude ``h`` (inverse of pressure_to_altitude).

        p = p0 * (1 - L·h / T)^(1/α)

    Raises:
        ValueError: If h lies above the top of the model atmosphere
            (L·h >= T).
    """
    _check_reference(p0, T)
    base = 1.0 - LAPSE_RATE * h / T
    if base <= 0:
        raise ValueError(f"Altitude {h} m is outside the barometric model range")
    return float(p0 * base ** (1.0 / BAROMETRIC_EXPONENT))


def pressure_altitude_derivative(
    h: float,
    p0: float = SEA_LEVEL_PRESSURE,
    T: float = SEA_LEVEL_TEMPERATURE,
) -> float:
    """dp/dh of altitude_to_pressure at ``h`` (Pa/m, negative)."""
    _check_reference(p0, T)
    base = 1.0 - LAPSE_RATE * h / T
    if base <= 0:
        raise ValueError(f"Altitude {h} m is outside the barometric model range")
    exponent = 1.0 / BAROMETRIC_EXPONENT
    return float(-p0 * exponent * base ** (exponent - 1.0) * LAPSE_RATE / T)


def mag_tilt_compensate(
    mag_b: np.ndarray,
    roll: float,
    pitch: float,
) -> np.ndarray:
    """
    Project a body-frame magnetic field onto the level plane.

        mag_h = R_y(pitch) @ R_x(roll) @ mag_b

    The result is the field expressed in a frame that shares the body yaw
    but is level; its x/y components give the horizontal field direction.

    Args:
        mag_b: Magnetic field in body frame, shape (3,). Any unit.
        roll: Roll angle in radians.
        pitch: Pitch angle in radians.

    Returns:
        Tilt-compensated field, shape (3,).

    Example:
        >>> mag = np.array([20.0, 0.0, -40.0])
        >>> np.allclose(mag_tilt_compensate(mag, 0.0, 0.0), mag)
        True
    """
    mag_b = np.asarray(mag_b, dtype=float)
    if mag_b.shape != (3,):
        raise ValueError(f"mag_b must have shape (3,), got {mag_b.shape}")

    return euler_to_rotation_matrix(roll, pitch, 0.0) @ mag_b
