"""
Process (system) models for the pose filter.

A system model describes the continuous-time dynamics x_dot = f(x, u) of
the filter state driven by an inertial input u, together with:

    - the Jacobian A = ∂f/∂x evaluated at the current estimate,
    - the process noise spectral density Q (per second),
    - the system status: which quantities the model propagates given what
      the measurements currently observe.

The estimator discretizes with one forward-Euler step per dt:

    x' = x + f(x, u)·dt
    Φ  = I + A·dt
    P' = Φ P Φᵀ + Q·dt

Models hold parameters only. All inputs are passed explicitly, the state
belongs to the estimator and the noise buffer Q is owned by the caller.
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from pose_estimation.coords.rotations import (
    omega_matrix,
    quat_rate_matrix,
    quat_to_rotation_matrix,
    rotate_vector_jacobian,
)
from pose_estimation.models.bias_models import AccelerometerModel, GyroModel
from pose_estimation.sensors.gravity import STANDARD_GRAVITY, gravity_magnitude
from pose_estimation.state import STATE_DIMENSION, State, StateBlock
from pose_estimation.status import StatusFlags
from pose_estimation.types import ImuInput


class SystemModel(ABC):
    """Interface every process model implements."""

    gravity: float = STANDARD_GRAVITY

    @abstractmethod
    def derivative(self, state: State, imu: ImuInput) -> np.ndarray:
        """State derivative f(x, u), shape (19,)."""

    @abstractmethod
    def state_jacobian(self, state: State, imu: ImuInput) -> np.ndarray:
        """Jacobian ∂f/∂x, shape (19, 19)."""

    @abstractmethod
    def system_noise(
        self, state: State, Q: np.ndarray, initializing: bool = False
    ) -> np.ndarray:
        """Update the noise density buffer ``Q`` in place and return it."""

    @abstractmethod
    def prior(self, state: State) -> np.ndarray:
        """Initial state covariance, shape (19, 19)."""

    def status_flags(self, state: State) -> StatusFlags:
        """System status implied by the current measurement status."""
        return StatusFlags.NONE

    def stationary_input(self) -> ImuInput:
        """Input used when no inertial sample has been received."""
        return ImuInput(accel=np.zeros(3), gyro=np.zeros(3))


class GenericQuaternionSystemModel(SystemModel):
    """
    Strapdown kinematics with a quaternion attitude.

        q_dot = ½ Ω(ω) q                       ω = rate state, or gyro + b_g
        v_dot = R(q) a + [0, 0, g]             a = accel + b_a
        p_dot = v

    Velocity and position only move along the axes enabled in the system
    status (VELOCITY_XY, VELOCITY_Z, POSITION_XY, POSITION_Z). Without an
    absolute velocity or position reference the pure inertial solution
    would drift without bound, so those axes are held instead.

    Args:
        gravity: Gravity magnitude in m/s². Defaults to standard gravity.
        angular_acceleration_stddev: Noise driving the rate block when
            the rate is estimated as a state (rad/s²).
        velocity_stddev: Random-walk noise on position (m/s).
        gyro: Gyroscope sub-model (rate noise and bias drift).
        accelerometer: Accelerometer sub-model (noise and bias drift).

    Example:
        >>> model = GenericQuaternionSystemModel()
        >>> state = State()
        >>> x_dot = model.derivative(state, model.stationary_input())
        >>> np.allclose(x_dot, 0.0)
        True
    """

    def __init__(
        self,
        gravity: Optional[float] = None,
        angular_acceleration_stddev: float = np.deg2rad(360.0),
        velocity_stddev: float = 0.0,
        gyro: Optional[GyroModel] = None,
        accelerometer: Optional[AccelerometerModel] = None,
    ):
        if angular_acceleration_stddev < 0:
            raise ValueError(
                "angular_acceleration_stddev must be non-negative, "
                f"got {angular_acceleration_stddev}"
            )
        if velocity_stddev < 0:
            raise ValueError(
                f"velocity_stddev must be non-negative, got {velocity_stddev}"
            )
        if gravity is None:
            gravity = gravity_magnitude()
        elif gravity <= 0:
            raise ValueError(f"gravity must be positive, got {gravity}")
        self.gravity = float(gravity)
        self.angular_acceleration_stddev = float(angular_acceleration_stddev)
        self.velocity_stddev = float(velocity_stddev)
        self.gyro = gyro if gyro is not None else GyroModel()
        self.accelerometer = (
            accelerometer if accelerometer is not None else AccelerometerModel()
        )

    @property
    def rate_stddev(self) -> float:
        return self.gyro.stddev

    @property
    def acceleration_stddev(self) -> float:
        return self.accelerometer.stddev

    def stationary_input(self) -> ImuInput:
        return ImuInput.stationary(self.gravity)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def rate(self, state: State, imu: ImuInput) -> np.ndarray:
        """Body angular rate driving the attitude (rad/s)."""
        if state.is_active(StateBlock.RATE):
            return state.get_rate().copy()
        return imu.gyro + self.gyro.bias(state)

    def acceleration(self, state: State, imu: ImuInput) -> np.ndarray:
        """Bias-corrected specific force in body frame (m/s²)."""
        return imu.accel + self.accelerometer.bias(state)

    # ------------------------------------------------------------------
    # Dynamics
    # ------------------------------------------------------------------

    def derivative(self, state: State, imu: ImuInput) -> np.ndarray:
        x_dot = np.zeros(STATE_DIMENSION)
        status = state.system_status
        q = state.get_orientation()
        v = state.get_velocity()
        o = StateBlock.ORIENTATION.slice
        vel = StateBlock.VELOCITY.offset
        pos = StateBlock.POSITION.offset

        x_dot[o] = 0.5 * omega_matrix(self.rate(state, imu)) @ q

        if status & (StatusFlags.VELOCITY_XY | StatusFlags.VELOCITY_Z):
            accel_nav = quat_to_rotation_matrix(q) @ self.acceleration(state, imu)
            if status & StatusFlags.VELOCITY_XY:
                x_dot[vel : vel + 2] = accel_nav[0:2]
            if status & StatusFlags.VELOCITY_Z:
                x_dot[vel + 2] = accel_nav[2] + self.gravity

        if status & StatusFlags.POSITION_XY:
            x_dot[pos : pos + 2] = v[0:2]
        if status & StatusFlags.POSITION_Z:
            x_dot[pos + 2] = v[2]

        x_dot[~state.active_mask()] = 0.0
        return x_dot

    def state_jacobian(self, state: State, imu: ImuInput) -> np.ndarray:
        A = np.zeros((STATE_DIMENSION, STATE_DIMENSION))
        status = state.system_status
        q = state.get_orientation()
        o = StateBlock.ORIENTATION.slice
        vel = StateBlock.VELOCITY.offset
        pos = StateBlock.POSITION.offset

        A[o, o] = 0.5 * omega_matrix(self.rate(state, imu))
        rate_jacobian = 0.5 * quat_rate_matrix(q)
        if state.is_active(StateBlock.RATE):
            A[o, StateBlock.RATE.slice] = rate_jacobian
        else:
            A[o, StateBlock.GYRO_BIAS.slice] = rate_jacobian

        rows = []
        if status & StatusFlags.VELOCITY_XY:
            rows += [0, 1]
        if status & StatusFlags.VELOCITY_Z:
            rows += [2]
        if rows:
            accel = self.acceleration(state, imu)
            J = rotate_vector_jacobian(q, accel)
            R = quat_to_rotation_matrix(q)
            for i in rows:
                A[vel + i, o] = J[i]
                A[vel + i, StateBlock.ACCEL_BIAS.slice] = R[i]

        if status & StatusFlags.POSITION_XY:
            A[pos, vel] = 1.0
            A[pos + 1, vel + 1] = 1.0
        if status & StatusFlags.POSITION_Z:
            A[pos + 2, vel + 2] = 1.0

        inactive = ~state.active_mask()
        A[inactive, :] = 0.0
        A[:, inactive] = 0.0
        return A

    def system_noise(
        self, state: State, Q: np.ndarray, initializing: bool = False
    ) -> np.ndarray:
        """Refresh the process noise density.

        On initialization the whole diagonal is seeded; afterwards only the
        orientation block changes, since it depends on the current
        quaternion: Q_qq = ¼ σ_ω² Ξ(q) Ξ(q)ᵀ.
        """
        if initializing:
            Q[:, :] = 0.0
            r = StateBlock.RATE.slice
            p = StateBlock.POSITION.slice
            v = StateBlock.VELOCITY.slice
            Q[r, r] = np.eye(3) * self.angular_acceleration_stddev**2
            Q[p, p] = np.eye(3) * self.velocity_stddev**2
            Q[v, v] = np.eye(3) * self.acceleration_stddev**2
            self.gyro.system_noise(state, Q)
            self.accelerometer.system_noise(state, Q)

        o = StateBlock.ORIENTATION.slice
        Xi = quat_rate_matrix(state.get_orientation())
        Q[o, o] = 0.25 * self.rate_stddev**2 * (Xi @ Xi.T)
        return Q

    def prior(self, state: State) -> np.ndarray:
        P = np.zeros((STATE_DIMENSION, STATE_DIMENSION))
        o = StateBlock.ORIENTATION.slice
        P[o, o] = np.eye(4) * 0.25
        r = StateBlock.RATE.slice
        P[r, r] = np.eye(3)
        self.gyro.prior(state, P)
        self.accelerometer.prior(state, P)
        return P

    def status_flags(self, state: State) -> StatusFlags:
        measurement_status = state.measurement_status
        flags = StatusFlags.NONE

        if measurement_status & StatusFlags.POSITION_XY:
            flags |= StatusFlags.POSITION_XY | StatusFlags.VELOCITY_XY
        if measurement_status & StatusFlags.POSITION_Z:
            flags |= StatusFlags.POSITION_Z | StatusFlags.VELOCITY_Z
        if measurement_status & StatusFlags.VELOCITY_XY:
            flags |= StatusFlags.VELOCITY_XY
        if measurement_status & StatusFlags.VELOCITY_Z:
            flags |= StatusFlags.VELOCITY_Z
        if flags & StatusFlags.VELOCITY_XY:
            flags |= StatusFlags.ROLLPITCH
        if measurement_status & (StatusFlags.ROLLPITCH | StatusFlags.PSEUDO_ROLLPITCH):
            flags |= StatusFlags.ROLLPITCH
        if measurement_status & (StatusFlags.YAW | StatusFlags.PSEUDO_YAW):
            flags |= StatusFlags.YAW
        if flags & StatusFlags.ROLLPITCH:
            flags |= StatusFlags.RATE_XY
        if not state.is_active(StateBlock.RATE):
            flags |= StatusFlags.RATE_XY | StatusFlags.RATE_Z
        else:
            flags |= measurement_status & (StatusFlags.RATE_XY | StatusFlags.RATE_Z)

        return flags
