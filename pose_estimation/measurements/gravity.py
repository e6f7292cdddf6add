"""
Accelerometer reading as an observation of the gravity direction.

When the vehicle is not accelerating the accelerometer measures only the
reaction to gravity, rotated into body frame:

    y = R(q)ᵀ [0, 0, -g] - b_a

which makes roll and pitch observable. Any real acceleration shows up as
measurement error, so the noise should be set generously.
"""

from typing import TYPE_CHECKING, Optional

import numpy as np

from pose_estimation.coords.rotations import (
    inverse_rotate_vector_jacobian,
    quat_to_rotation_matrix,
)
from pose_estimation.measurements.base import Measurement
from pose_estimation.sensors.gravity import gravity_magnitude
from pose_estimation.state import State, StateBlock
from pose_estimation.status import StatusFlags
from pose_estimation.types import Update

if TYPE_CHECKING:
    from pose_estimation.estimator import PoseEstimation


class Gravity(Measurement):
    """
    Gravity direction measured by the accelerometer.

    Args:
        stddev: Accelerometer noise including unmodelled motion (m/s²).
        gravity: Gravity magnitude. Taken from the estimator's process
            model on every update when None.
        **kwargs: Forwarded to Measurement.
    """

    dimension = 3
    required_blocks = (StateBlock.ORIENTATION,)
    default_name = "gravity"

    def __init__(self, stddev: float = 1.0, gravity: Optional[float] = None, **kwargs):
        super().__init__(**kwargs)
        if stddev <= 0:
            raise ValueError(f"stddev must be positive, got {stddev}")
        self.stddev = float(stddev)
        self.follow_system_gravity = gravity is None
        self.gravity = gravity_magnitude() if gravity is None else float(gravity)

    def status_flags(self) -> StatusFlags:
        return StatusFlags.ROLLPITCH

    def noise_covariance(self) -> np.ndarray:
        return np.eye(3) * self.stddev**2

    def before_update(self, estimator: "PoseEstimation", update: Update) -> bool:
        if self.follow_system_gravity:
            self.gravity = estimator.system_model.gravity
        return True

    def _gravity_vector(self) -> np.ndarray:
        return np.array([0.0, 0.0, -self.gravity])

    def expected_value(self, state: State) -> np.ndarray:
        R = quat_to_rotation_matrix(state.get_orientation())
        return R.T @ self._gravity_vector() - state.get_accel_bias()

    def jacobian(self, state: State) -> np.ndarray:
        C = self._zero_jacobian()
        C[:, StateBlock.ORIENTATION.slice] = inverse_rotate_vector_jacobian(
            state.get_orientation(), self._gravity_vector()
        )
        C[:, StateBlock.ACCEL_BIAS.slice] = -np.eye(3)
        return C
