"""
Height and barometric pressure measurements.

Both sensors observe the vertical position up to an unknown offset, the
elevation of the local z = 0 plane:

    Height:  y = z + elevation                       (m)
    Baro:    y = p(z + elevation; qnh, T)            (Pa)

With ``auto_elevation`` the first sample fixes the offset so that the
prediction matches it exactly, e.g. a first height of 10.0 m at z = 0
gives elevation = 10.0. The offset is kept until the model is reset and
is published as the global reference altitude.
"""

import logging
from typing import TYPE_CHECKING

import numpy as np

from pose_estimation.measurements.base import Measurement, MeasurementError
from pose_estimation.sensors.environment import (
    SEA_LEVEL_PRESSURE,
    SEA_LEVEL_TEMPERATURE,
    altitude_to_pressure,
    pressure_altitude_derivative,
    pressure_to_altitude,
)
from pose_estimation.state import State, StateBlock
from pose_estimation.status import StatusFlags
from pose_estimation.types import Update

if TYPE_CHECKING:
    from pose_estimation.estimator import PoseEstimation

logger = logging.getLogger(__name__)


class Height(Measurement):
    """
    Altitude sensor (e.g. a barometric altimeter or a range finder over
    flat ground) measuring z plus an elevation offset.

    Args:
        stddev: Measurement noise (m).
        elevation: Initial elevation offset (m). Used as is when
            auto_elevation is False.
        auto_elevation: Solve the elevation from the first sample.
        **kwargs: Forwarded to Measurement.

    Example:
        >>> height = Height(stddev=2.0, elevation=5.0, auto_elevation=False)
        >>> height.expected_value(State())
        array([5.])
    """

    dimension = 1
    required_blocks = (StateBlock.POSITION,)
    default_name = "height"

    def __init__(
        self,
        stddev: float = 10.0,
        elevation: float = 0.0,
        auto_elevation: bool = True,
        **kwargs,
    ):
        super().__init__(**kwargs)
        if stddev <= 0:
            raise ValueError(f"stddev must be positive, got {stddev}")
        self.stddev = float(stddev)
        self.initial_elevation = float(elevation)
        self.elevation = float(elevation)
        self.auto_elevation = bool(auto_elevation)
        self.elevation_initialized = False

    def on_reset(self) -> None:
        self.elevation = self.initial_elevation
        self.elevation_initialized = False

    def status_flags(self) -> StatusFlags:
        return StatusFlags.POSITION_Z

    def noise_covariance(self) -> np.ndarray:
        return np.array([[self.stddev**2]])

    def raw_altitude(self, y: np.ndarray) -> float:
        """Altitude in meters represented by a raw sample."""
        return float(y[0])

    def before_update(self, estimator: "PoseEstimation", update: Update) -> bool:
        y = self._check_dimension(update.y)
        if self.auto_elevation and not self.elevation_initialized:
            altitude = self.raw_altitude(y)
            if not np.isfinite(altitude):
                return False
            self.elevation = altitude - float(estimator.state.get_position()[2])
            self.elevation_initialized = True
            estimator.global_reference.set_altitude(self.elevation)
            logger.info("%s: elevation set to %.2f m", self.name, self.elevation)
        return True

    def altitude(self, state: State) -> float:
        """Predicted altitude z + elevation."""
        return float(state.get_position()[2]) + self.elevation

    def expected_value(self, state: State) -> np.ndarray:
        return np.array([self.altitude(state)])

    def jacobian(self, state: State) -> np.ndarray:
        C = self._zero_jacobian()
        C[0, StateBlock.POSITION.offset + 2] = 1.0
        return C


class Baro(Height):
    """
    Barometer observing static pressure.

    Args:
        stddev: Pressure noise (Pa).
        qnh: Pressure at elevation zero (Pa).
        temperature: Reference temperature (K).
        **kwargs: Forwarded to Height (elevation, auto_elevation, ...).
    """

    default_name = "baro"

    def __init__(
        self,
        stddev: float = 100.0,
        qnh: float = SEA_LEVEL_PRESSURE,
        temperature: float = SEA_LEVEL_TEMPERATURE,
        **kwargs,
    ):
        super().__init__(stddev=stddev, **kwargs)
        if qnh <= 0 or temperature <= 0:
            raise ValueError(
                f"qnh and temperature must be positive, got {qnh}, {temperature}"
            )
        self.qnh = float(qnh)
        self.temperature = float(temperature)

    def raw_altitude(self, y: np.ndarray) -> float:
        try:
            return pressure_to_altitude(float(y[0]), self.qnh, self.temperature)
        except ValueError as e:
            raise MeasurementError(f"{self.name}: {e}") from e

    def expected_value(self, state: State) -> np.ndarray:
        try:
            pressure = altitude_to_pressure(
                self.altitude(state), self.qnh, self.temperature
            )
        except ValueError as e:
            raise MeasurementError(f"{self.name}: {e}") from e
        return np.array([pressure])

    def jacobian(self, state: State) -> np.ndarray:
        C = self._zero_jacobian()
        try:
            C[0, StateBlock.POSITION.offset + 2] = pressure_altitude_derivative(
                self.altitude(state), self.qnh, self.temperature
            )
        except ValueError as e:
            raise MeasurementError(f"{self.name}: {e}") from e
        return C
