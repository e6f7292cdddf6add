"""
Three-axis magnetometer measurement.

The Earth's field at the reference point is described by

    declination δ   angle of magnetic north east of true north (rad)
    inclination i   dip below the horizontal (rad)
    magnitude m     field strength (any unit, 0 disables the model)

In the north-west-up frame it is

    f_north = m * [cos i cos δ, -cos i sin δ, -sin i]

and in the local frame (x axis at reference heading h) f = Rz(h) f_north.
The model predicts the body-frame reading y = R(q)ᵀ f.
"""

import logging
from typing import TYPE_CHECKING

import numpy as np

from pose_estimation.coords.rotations import (
    euler_to_rotation_matrix,
    inverse_rotate_vector_jacobian,
    quat_to_euler,
    quat_to_rotation_matrix,
)
from pose_estimation.coords.transforms import wrap_angle
from pose_estimation.measurements.base import Measurement
from pose_estimation.sensors.environment import mag_tilt_compensate
from pose_estimation.state import State, StateBlock
from pose_estimation.status import StatusFlags
from pose_estimation.types import Update

if TYPE_CHECKING:
    from pose_estimation.estimator import PoseEstimation

logger = logging.getLogger(__name__)


class Magnetic(Measurement):
    """
    Magnetometer observing the reference field in body frame.

    Args:
        stddev: Measurement noise, same unit as magnitude.
        declination: Magnetic declination (rad, east positive).
        inclination: Magnetic inclination (rad, downward positive).
        magnitude: Field strength. 0.0 disables the model.
        auto_heading: If no heading reference exists yet, choose it so the
            first sample agrees with the current yaw estimate.
        **kwargs: Forwarded to Measurement.
    """

    dimension = 3
    required_blocks = (StateBlock.ORIENTATION,)
    default_name = "magnetic"

    def __init__(
        self,
        stddev: float = 1.0,
        declination: float = 0.0,
        inclination: float = np.deg2rad(60.0),
        magnitude: float = 0.0,
        auto_heading: bool = True,
        **kwargs,
    ):
        super().__init__(**kwargs)
        if stddev <= 0:
            raise ValueError(f"stddev must be positive, got {stddev}")
        if magnitude < 0:
            raise ValueError(f"magnitude must be non-negative, got {magnitude}")
        self.stddev = float(stddev)
        self.declination = float(declination)
        self.inclination = float(inclination)
        self.magnitude = float(magnitude)
        self.auto_heading = bool(auto_heading)
        self.reference_heading = 0.0

    @property
    def disabled_by_magnitude(self) -> bool:
        return self.magnitude == 0.0

    def status_flags(self) -> StatusFlags:
        if self.disabled_by_magnitude:
            return StatusFlags.NONE
        return StatusFlags.YAW

    def noise_covariance(self) -> np.ndarray:
        return np.eye(3) * self.stddev**2

    def reference_field(self) -> np.ndarray:
        """Earth field in the local navigation frame."""
        ci, si = np.cos(self.inclination), np.sin(self.inclination)
        cd, sd = np.cos(self.declination), np.sin(self.declination)
        field_north = self.magnitude * np.array([ci * cd, -ci * sd, -si])
        return euler_to_rotation_matrix(0.0, 0.0, self.reference_heading) @ field_north

    def magnetic_heading(self, state: State, y: np.ndarray) -> float:
        """Yaw relative to magnetic north from a body-frame reading.

        The reading is levelled with the estimated roll and pitch first.
        """
        roll, pitch, _ = quat_to_euler(state.get_orientation())
        level = mag_tilt_compensate(np.asarray(y, dtype=float), roll, pitch)
        return wrap_angle(-np.arctan2(level[1], level[0]))

    def true_heading(self, state: State, y: np.ndarray) -> float:
        """Yaw relative to true north: magnetic heading minus declination."""
        return wrap_angle(self.magnetic_heading(state, y) - self.declination)

    def before_update(self, estimator: "PoseEstimation", update: Update) -> bool:
        if self.disabled_by_magnitude:
            return False
        y = self._check_dimension(update.y)
        if not np.all(np.isfinite(y)):
            return False

        reference = estimator.global_reference
        if self.auto_heading and not reference.has_heading:
            yaw = quat_to_euler(estimator.state.get_orientation())[2]
            reference.set_heading(yaw - self.true_heading(estimator.state, y))
            logger.info(
                "%s: reference heading set to %.1f deg",
                self.name,
                np.rad2deg(reference.heading),
            )
        self.reference_heading = reference.heading
        return True

    def expected_value(self, state: State) -> np.ndarray:
        R = quat_to_rotation_matrix(state.get_orientation())
        return R.T @ self.reference_field()

    def jacobian(self, state: State) -> np.ndarray:
        C = self._zero_jacobian()
        C[:, StateBlock.ORIENTATION.slice] = inverse_rotate_vector_jacobian(
            state.get_orientation(), self.reference_field()
        )
        return C
