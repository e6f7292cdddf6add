"""
Pose estimation orchestrator.

``PoseEstimation`` owns the filter state, the process model, the global
reference and a registry of named measurement models. It is driven from
outside, single-threaded:

    estimator = PoseEstimation.from_config(EstimatorConfig.default())
    for sample in imu_stream:
        estimator.update(ImuInput(sample.accel, sample.gyro), dt)
        if gps_fix_available:
            estimator.correct("gps", Update([lat, lon, v_north, v_east]))

Every prediction first aggregates the measurement status from the models
that are currently delivering data, derives the system status from it
(which axes the process model integrates), then propagates the state.
Every correction runs the model's ``before_update`` hook and skips the
update instead of raising when a sample cannot be used.
"""

import logging
from typing import Callable, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from pose_estimation.config import EstimatorConfig
from pose_estimation.coords.global_reference import GeodeticPosition, GlobalReference
from pose_estimation.coords.rotations import quat_to_euler
from pose_estimation.estimators.extended_kalman_filter import ExtendedKalmanFilter
from pose_estimation.measurements.base import Measurement, MeasurementError
from pose_estimation.models.system_model import SystemModel
from pose_estimation.state import STATE_DIMENSION, State, StateBlock
from pose_estimation.status import (
    ALL_FLAGS,
    ESTIMATED_STATES,
    StatusFlags,
    apply_status_update,
    status_string,
)
from pose_estimation.types import ImuInput, Update

logger = logging.getLogger(__name__)

StatusCallback = Callable[[StatusFlags], bool]


def _complement(mask: StatusFlags, flags: StatusFlags) -> StatusFlags:
    """Flags of ``mask`` not contained in ``flags``."""
    return StatusFlags(int(mask) & ~int(flags))


class PoseEstimation:
    """
    Extended Kalman filter pose estimator with pluggable models.

    Args:
        system_model: Process model. Built from ``config`` when None.
        config: Estimator configuration. Defaults to ``EstimatorConfig()``
            (no measurements registered).

    Attributes:
        state: Filter state (mean, covariance, block flags, status).
        system_model: Process model in use.
        global_reference: Geodetic anchor of the local frame.
        timestamp: Estimator clock in seconds, advanced by ``predict``.
    """

    def __init__(
        self,
        system_model: Optional[SystemModel] = None,
        config: Optional[EstimatorConfig] = None,
    ):
        self.config = config if config is not None else EstimatorConfig()
        self.system_model = (
            system_model
            if system_model is not None
            else self.config.build_system_model()
        )
        self.state = State(self.config.active_blocks())
        self.filter = ExtendedKalmanFilter(
            self.state, max_condition_number=self.config.max_condition_number
        )
        self.global_reference = GlobalReference()
        self._measurements: Dict[str, Measurement] = {}
        self._status_callback: Optional[StatusCallback] = None
        self._system_noise = np.zeros((STATE_DIMENSION, STATE_DIMENSION))
        self._input = self.system_model.stationary_input()
        self._started = False
        self.timestamp = 0.0
        self.reset()

    @classmethod
    def from_config(cls, config: EstimatorConfig) -> "PoseEstimation":
        """Build an estimator and register the configured measurements."""
        estimator = cls(config=config)
        for measurement in config.build_measurements():
            estimator.add_measurement(measurement)
        return estimator

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_measurement(
        self, measurement: Measurement, name: Optional[str] = None
    ) -> Measurement:
        """Register a measurement model under ``name`` (or its own name).

        Raises:
            RuntimeError: If the filter loop has already started.
            ValueError: If the name is already taken.
        """
        if self._started:
            raise RuntimeError(
                "Measurements must be registered before the first predict/correct"
            )
        if name is not None:
            measurement.name = name
        if measurement.name in self._measurements:
            raise ValueError(f"A measurement named {measurement.name!r} already exists")
        self._measurements[measurement.name] = measurement
        return measurement

    def get_measurement(self, name: str) -> Measurement:
        try:
            return self._measurements[name]
        except KeyError:
            raise KeyError(f"No measurement named {name!r}") from None

    @property
    def measurements(self) -> Mapping[str, Measurement]:
        return dict(self._measurements)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Return to the prior: state, noise, reference and measurements."""
        self.state.reset()
        self.state.set_covariance(self.system_model.prior(self.state))
        self.system_model.system_noise(
            self.state, self._system_noise, initializing=True
        )

        self.global_reference.reset()
        self.config.apply_reference(self.global_reference)

        for measurement in self._measurements.values():
            measurement.reset()

        self._input = self.system_model.stationary_input()
        self.timestamp = 0.0
        self.state.update_system_status(StatusFlags.READY)

    def measurement_time(self, update: Update) -> float:
        """Timestamp of ``update``, or the estimator clock if it has none."""
        return update.timestamp if update.timestamp is not None else self.timestamp

    # ------------------------------------------------------------------
    # Filter loop
    # ------------------------------------------------------------------

    def predict(
        self,
        dt: float,
        imu: Optional[ImuInput] = None,
        timestamp: Optional[float] = None,
    ) -> bool:
        """
        Time update over ``dt`` seconds.

        Args:
            dt: Time step in seconds, positive.
            imu: Inertial sample for this step. The previous sample (or a
                stationary reading) is reused when None.
            timestamp: Absolute time at the end of the step, on the same
                time base as ``Update.timestamp``. The clock advances by
                ``dt`` when None and never moves backwards.

        Returns:
            True once the state has been propagated.

        Raises:
            ValueError: If dt is not a positive finite number or timestamp
                is not finite.
        """
        if not np.isfinite(dt) or dt <= 0:
            raise ValueError(f"dt must be positive and finite, got {dt}")
        if timestamp is not None and not np.isfinite(timestamp):
            raise ValueError(f"timestamp must be finite, got {timestamp}")
        self._started = True
        if imu is not None:
            self._input = imu

        measurement_flags = StatusFlags.NONE
        for measurement in self._measurements.values():
            if measurement.is_active(self.timestamp):
                measurement_flags |= measurement.status_flags()
        self.update_measurement_status(
            measurement_flags, _complement(ESTIMATED_STATES, measurement_flags)
        )

        system_flags = self.system_model.status_flags(self.state)
        self.update_system_status(
            system_flags, _complement(ESTIMATED_STATES, system_flags)
        )

        x_dot = self.system_model.derivative(self.state, self._input)
        A = self.system_model.state_jacobian(self.state, self._input)
        Q = self.system_model.system_noise(self.state, self._system_noise)
        self.filter.predict(x_dot, A, Q, dt)
        if timestamp is None:
            self.timestamp += dt
        else:
            self.timestamp = max(self.timestamp, float(timestamp))
        return True

    def correct(
        self, measurement: Union[str, Measurement], update: Update
    ) -> bool:
        """
        Measurement update with one sample.

        Args:
            measurement: Registered name or model instance.
            update: Raw sample with optional covariance override.

        Returns:
            True if the state was corrected. False if the sample was
            skipped (model disabled, hook declined, no reference yet,
            required block inactive, singular innovation covariance,
            gated out, or a MeasurementError).

        A timestamped sample newer than the estimator clock moves the clock
        forward, so timeouts are always judged on one time base.
        """
        if isinstance(measurement, str):
            measurement = self.get_measurement(measurement)
        self._started = True
        if update.timestamp is not None and update.timestamp > self.timestamp:
            self.timestamp = float(update.timestamp)

        if not measurement.enabled:
            return False

        try:
            if not measurement.before_update(self, update):
                logger.debug("%s: update declined by model", measurement.name)
                return False

            y = measurement.get_vector(update, self.state)
            if not np.all(np.isfinite(y)):
                logger.debug(
                    "%s: no reference available, update skipped", measurement.name
                )
                return False

            for block in measurement.required_blocks:
                if not self.state.is_active(block):
                    logger.debug(
                        "%s: state block %s is not estimated, update skipped",
                        measurement.name,
                        block.name,
                    )
                    return False

            y_hat = measurement.expected_value(self.state)
            C = measurement.jacobian(self.state)
            R = measurement.get_covariance(update)
        except MeasurementError as e:
            logger.warning("%s: update skipped: %s", measurement.name, e)
            return False

        try:
            accepted = self.filter.correct(
                y, y_hat, C, R, gate_confidence=measurement.gate_confidence
            )
        except np.linalg.LinAlgError as e:
            logger.warning("%s: update skipped: %s", measurement.name, e)
            return False

        if not accepted:
            logger.debug("%s: innovation rejected by chi-square gate", measurement.name)
            return False

        measurement.mark_updated(self.measurement_time(update))
        return True

    def update(
        self, imu: ImuInput, dt: float, timestamp: Optional[float] = None
    ) -> None:
        """
        Predict with an inertial sample and feed it to the registered
        ``rate`` and ``gravity`` models.

        The gravity correction is applied only while no horizontal velocity
        reference is available; with one, roll and pitch are observed
        through the velocity error and real accelerations would bias it.
        ``timestamp`` is forwarded to ``predict``.
        """
        self.predict(dt, imu, timestamp)

        rate = self._measurements.get("rate")
        if rate is not None and self.state.is_active(StateBlock.RATE):
            self.correct(rate, Update(imu.gyro))

        gravity = self._measurements.get("gravity")
        if gravity is not None and not (
            self.state.measurement_status & StatusFlags.VELOCITY_XY
        ):
            self.correct(gravity, Update(imu.accel))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def system_status(self) -> StatusFlags:
        return self.state.system_status

    @property
    def measurement_status(self) -> StatusFlags:
        return self.state.measurement_status

    def in_system_status(self, flags: StatusFlags) -> bool:
        """True if every flag in ``flags`` is set in the system status."""
        return (self.state.system_status & flags) == flags

    def set_status_callback(self, callback: Optional[StatusCallback]) -> None:
        """Install a callback consulted before every system status change.

        The callback receives the proposed status; returning False keeps
        the current one.
        """
        self._status_callback = callback

    def update_system_status(
        self,
        set_flags: StatusFlags = StatusFlags.NONE,
        clear_flags: StatusFlags = StatusFlags.NONE,
    ) -> bool:
        """Apply set then clear masks to the system status.

        Returns:
            False if the status callback vetoed the change.
        """
        current = self.state.system_status
        proposed = apply_status_update(current, set_flags, clear_flags)
        if proposed == current:
            return True
        if self._status_callback is not None and not self._status_callback(proposed):
            logger.debug("System status change to %s vetoed", status_string(proposed))
            return False
        self.state.update_system_status(set_flags, clear_flags)
        logger.debug("System status: %s", status_string(proposed))
        return True

    def update_measurement_status(
        self,
        set_flags: StatusFlags = StatusFlags.NONE,
        clear_flags: StatusFlags = StatusFlags.NONE,
    ) -> bool:
        """Apply set then clear masks to the measurement status."""
        changed = self.state.update_measurement_status(set_flags, clear_flags)
        if changed:
            logger.debug(
                "Measurement status: %s", status_string(self.state.measurement_status)
            )
        return changed

    def set_system_status(self, status: StatusFlags) -> bool:
        return self.update_system_status(
            status, _complement(ALL_FLAGS, status)
        )

    def set_measurement_status(self, status: StatusFlags) -> bool:
        return self.update_measurement_status(
            status, _complement(ALL_FLAGS, status)
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_state(self) -> np.ndarray:
        return self.state.x.copy()

    def get_covariance(self) -> np.ndarray:
        return self.state.P.copy()

    def set_state(self, x: np.ndarray) -> None:
        self.state.set_vector(x)

    def set_covariance(self, P: np.ndarray) -> None:
        self.state.set_covariance(P)

    def get_orientation(self) -> np.ndarray:
        """Unit quaternion [qw, qx, qy, qz], body to local frame."""
        return self.state.get_orientation().copy()

    def get_euler(self) -> np.ndarray:
        """[roll, pitch, yaw] in radians."""
        return quat_to_euler(self.state.get_orientation())

    def get_position(self) -> np.ndarray:
        return self.state.get_position().copy()

    def get_velocity(self) -> np.ndarray:
        return self.state.get_velocity().copy()

    def get_rate(self) -> np.ndarray:
        """Body angular rate: the rate state, or the bias-corrected gyro."""
        if self.state.is_active(StateBlock.RATE):
            return self.state.get_rate().copy()
        return self._input.gyro + self.state.get_gyro_bias()

    def get_pose(self) -> Tuple[np.ndarray, np.ndarray]:
        """(position, orientation quaternion)."""
        return self.get_position(), self.get_orientation()

    def get_bias(self) -> Tuple[np.ndarray, np.ndarray]:
        """(gyro_bias, accel_bias) estimates."""
        return self.state.get_gyro_bias().copy(), self.state.get_accel_bias().copy()

    @property
    def last_input(self) -> ImuInput:
        """Inertial sample used by the most recent prediction."""
        return self._input

    def get_imu_with_biases(self) -> Tuple[np.ndarray, np.ndarray]:
        """Last inertial sample corrected by the bias estimates (accel, gyro)."""
        accel = self._input.accel + self.state.get_accel_bias()
        gyro = self._input.gyro + self.state.get_gyro_bias()
        return accel, gyro

    def get_global_position(self) -> GeodeticPosition:
        """Latitude/longitude (rad) and altitude (m) of the current position.

        Components without a reference are NaN.
        """
        x, y, z = self.state.get_position()
        if self.global_reference.has_position:
            latitude, longitude = self.global_reference.to_wgs84(x, y)
        else:
            latitude = longitude = float("nan")
        return GeodeticPosition(latitude, longitude, self.global_reference.to_altitude(z))
