"""
Stationarity pseudo-measurements.

A motion detector (e.g. a threshold on gyro and accelerometer variance)
reports whether the vehicle is at rest. Raw samples are one-element flags:
``Update(y=[1.0])`` when stationary, ``Update(y=[0.0])`` otherwise. While
stationary the models observe

    ZeroRate:      ω = 0         (stops rate and yaw drift)
    ZeroVelocity:  v = 0         (zero-velocity update, ZUPT)

Without a rate state, ZeroRate observes the bias-corrected gyro of the last
prediction, gyro + b_g = 0, which calibrates the gyro bias at rest.

A non-stationary flag suppresses the correction. Since the raw sample has
one element, a covariance override is a 1x1 variance applied to each of
the three observed axes.
"""

from typing import TYPE_CHECKING

import numpy as np

from pose_estimation.measurements.base import Measurement, MeasurementError
from pose_estimation.state import State, StateBlock
from pose_estimation.status import StatusFlags
from pose_estimation.types import Update

if TYPE_CHECKING:
    from pose_estimation.estimator import PoseEstimation


class _Stationarity(Measurement):
    dimension = 3
    block: StateBlock = StateBlock.RATE

    def __init__(self, stddev: float, **kwargs):
        super().__init__(**kwargs)
        if stddev <= 0:
            raise ValueError(f"stddev must be positive, got {stddev}")
        self.stddev = float(stddev)

    @property
    def required_blocks(self):
        return (self.block,)

    def noise_covariance(self) -> np.ndarray:
        return np.eye(3) * self.stddev**2

    def get_covariance(self, update: Update) -> np.ndarray:
        if not update.has_covariance:
            return self.noise_covariance()
        if update.R.shape != (1, 1):
            raise MeasurementError(
                f"{self.name}: covariance override must be a 1x1 variance, "
                f"got shape {update.R.shape}"
            )
        return np.eye(self.dimension) * update.R[0, 0]

    def before_update(self, estimator: "PoseEstimation", update: Update) -> bool:
        flag = np.atleast_1d(update.y)
        return bool(flag.size > 0 and np.isfinite(flag[0]) and flag[0] != 0.0)

    def get_vector(self, update: Update, state: State) -> np.ndarray:
        return np.zeros(self.dimension)

    def expected_value(self, state: State) -> np.ndarray:
        return state.get(self.block).copy()

    def jacobian(self, state: State) -> np.ndarray:
        C = self._zero_jacobian()
        C[:, self.block.slice] = np.eye(3)
        return C


class ZeroRate(_Stationarity):
    """
    Observes zero angular rate while stationary.

    The rate state is observed when it is estimated. Otherwise the
    observation is the last gyro sample plus the gyro bias estimate, so the
    correction lands on the gyro bias block.

    Args:
        stddev: Residual rate noise at rest (rad/s).
        **kwargs: Forwarded to Measurement.
    """

    block = StateBlock.RATE
    default_name = "zero_rate"

    def __init__(self, stddev: float = np.deg2rad(0.5), **kwargs):
        super().__init__(stddev, **kwargs)
        self._gyro = np.zeros(3)

    def on_reset(self) -> None:
        self.block = StateBlock.RATE
        self._gyro = np.zeros(3)

    def before_update(self, estimator: "PoseEstimation", update: Update) -> bool:
        if not super().before_update(estimator, update):
            return False
        if estimator.state.is_active(StateBlock.RATE):
            self.block = StateBlock.RATE
        else:
            self.block = StateBlock.GYRO_BIAS
            self._gyro = np.array(estimator.last_input.gyro, dtype=float)
        return True

    def expected_value(self, state: State) -> np.ndarray:
        if self.block is StateBlock.GYRO_BIAS:
            return self._gyro + state.get_gyro_bias()
        return state.get_rate().copy()


class ZeroVelocity(_Stationarity):
    """
    Zero-velocity update: observes v = 0 while stationary.

    Args:
        stddev: Residual velocity noise at rest (m/s).
        **kwargs: Forwarded to Measurement.

    Example:
        >>> zupt = ZeroVelocity(stddev=0.05)
        >>> zupt.noise_covariance().diagonal()
        array([0.0025, 0.0025, 0.0025])
    """

    block = StateBlock.VELOCITY
    default_name = "zero_velocity"

    def __init__(self, stddev: float = 0.05, **kwargs):
        super().__init__(stddev, **kwargs)

    def status_flags(self) -> StatusFlags:
        return StatusFlags.VELOCITY_XY | StatusFlags.VELOCITY_Z
