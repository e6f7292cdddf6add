"""Gyroscope reading as a direct observation of the angular rate state."""

import numpy as np

from pose_estimation.measurements.base import Measurement
from pose_estimation.state import State, StateBlock
from pose_estimation.status import StatusFlags


class Rate(Measurement):
    """
    Observes the body rate through the gyroscope: y = ω - b_g.

    Only meaningful when the rate is estimated as a state (RATE block).

    Args:
        stddev: Gyro noise (rad/s).
        **kwargs: Forwarded to Measurement.

    Example:
        >>> state = State()
        >>> state.get_rate()[:] = [0.1, 0.0, 0.0]
        >>> Rate().expected_value(state)
        array([0.1, 0. , 0. ])
    """

    dimension = 3
    required_blocks = (StateBlock.RATE,)
    default_name = "rate"

    def __init__(self, stddev: float = np.deg2rad(1.0), **kwargs):
        super().__init__(**kwargs)
        if stddev <= 0:
            raise ValueError(f"stddev must be positive, got {stddev}")
        self.stddev = float(stddev)

    def status_flags(self) -> StatusFlags:
        return StatusFlags.RATE_XY | StatusFlags.RATE_Z

    def noise_covariance(self) -> np.ndarray:
        return np.eye(3) * self.stddev**2

    def expected_value(self, state: State) -> np.ndarray:
        return state.get_rate() - state.get_gyro_bias()

    def jacobian(self, state: State) -> np.ndarray:
        C = self._zero_jacobian()
        C[:, StateBlock.RATE.slice] = np.eye(3)
        C[:, StateBlock.GYRO_BIAS.slice] = -np.eye(3)
        return C
