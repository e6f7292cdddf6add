"""
GPS position and velocity measurement.

Raw samples are ``[latitude, longitude, velocity_north, velocity_east]``
(radians, m/s). The model converts them into the local frame through the
estimator's GlobalReference and observes

    y = [x, y, vx, vy]

The first fix anchors the global reference. If fixes stop for longer than
``timeout`` the next fix anchors it again, this time around the filter's
current position so that everything estimated in between keeps its
geodetic meaning.
"""

import logging
from typing import TYPE_CHECKING, Optional

import numpy as np

from pose_estimation.coords.global_reference import GlobalReference
from pose_estimation.measurements.base import Measurement
from pose_estimation.sensors.gravity import gravity_magnitude
from pose_estimation.state import State, StateBlock
from pose_estimation.status import StatusFlags
from pose_estimation.types import Update

if TYPE_CHECKING:
    from pose_estimation.estimator import PoseEstimation

logger = logging.getLogger(__name__)


class GPS(Measurement):
    """
    GNSS receiver delivering position and horizontal velocity.

    Args:
        position_stddev: Horizontal position noise (m).
        velocity_stddev: Horizontal velocity noise (m/s).
        latitude_gravity: Replace the process model's gravity by the
            WGS-84 value at the anchor latitude when anchoring.
        **kwargs: Forwarded to Measurement (name, enabled, timeout,
            gate_confidence).

    Example:
        >>> gps = GPS(position_stddev=5.0)
        >>> gps.noise_covariance().diagonal()
        array([25., 25.,  1.,  1.])
    """

    dimension = 4
    required_blocks = (StateBlock.POSITION,)
    default_name = "gps"

    def __init__(
        self,
        position_stddev: float = 10.0,
        velocity_stddev: float = 1.0,
        latitude_gravity: bool = False,
        **kwargs,
    ):
        super().__init__(**kwargs)
        if position_stddev <= 0 or velocity_stddev <= 0:
            raise ValueError(
                "GPS stddevs must be positive, got "
                f"position={position_stddev}, velocity={velocity_stddev}"
            )
        self.position_stddev = float(position_stddev)
        self.velocity_stddev = float(velocity_stddev)
        self.latitude_gravity = bool(latitude_gravity)
        self._reference: Optional[GlobalReference] = None

    @property
    def has_reference(self) -> bool:
        return self._reference is not None and self._reference.has_position

    def on_reset(self) -> None:
        self._reference = None

    def status_flags(self) -> StatusFlags:
        return StatusFlags.POSITION_XY | StatusFlags.VELOCITY_XY

    def noise_covariance(self) -> np.ndarray:
        return np.diag(
            [
                self.position_stddev**2,
                self.position_stddev**2,
                self.velocity_stddev**2,
                self.velocity_stddev**2,
            ]
        )

    def before_update(self, estimator: "PoseEstimation", update: Update) -> bool:
        y = self._check_dimension(update.y)
        now = estimator.measurement_time(update)

        if self._reference is not None and self.timed_out(now):
            logger.info(
                "%s: no fix for %.2f s, re-anchoring the global reference",
                self.name,
                now - self.last_update,
            )
            self._reference = None

        if self._reference is not None:
            return True

        latitude, longitude = y[0], y[1]
        if not (np.isfinite(latitude) and np.isfinite(longitude)):
            return False

        reference = estimator.global_reference
        if not reference.has_heading:
            reference.set_heading(0.0)

        # A reference set up front is reused for the very first fix
        if not (reference.has_position and self.last_update is None):
            x, y_local = estimator.state.get_position()[0:2]
            reference.reanchor(latitude, longitude, x, y_local)

        if self.latitude_gravity:
            estimator.system_model.gravity = gravity_magnitude(reference.latitude)

        self._reference = reference
        return True

    def get_vector(self, update: Update, state: State) -> np.ndarray:
        y = self._check_dimension(update.y)
        if not self.has_reference:
            return np.full(self.dimension, np.nan)

        x, y_local = self._reference.from_wgs84(y[0], y[1])
        vx, vy = self._reference.from_north_east(y[2], y[3])
        return np.array([x, y_local, vx, vy])

    def expected_value(self, state: State) -> np.ndarray:
        position = state.get_position()
        velocity = state.get_velocity()
        return np.array([position[0], position[1], velocity[0], velocity[1]])

    def jacobian(self, state: State) -> np.ndarray:
        C = self._zero_jacobian()
        pos = StateBlock.POSITION.offset
        vel = StateBlock.VELOCITY.offset
        C[0, pos] = 1.0
        C[1, pos + 1] = 1.0
        C[2, vel] = 1.0
        C[3, vel + 1] = 1.0
        return C
