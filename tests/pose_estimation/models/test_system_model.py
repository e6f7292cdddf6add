"""
Unit tests for the quaternion strapdown system model.

Tests cover:
    - Derivative for a hovering and a rotating vehicle
    - Axis gating by the system status
    - State Jacobian against finite differences
    - Process noise and prior covariance
    - System status derived from the measurement status
"""

import unittest

import numpy as np
from numpy.testing import assert_allclose

from pose_estimation.coords.rotations import euler_to_quat
from pose_estimation.models.bias_models import AccelerometerModel, GyroModel
from pose_estimation.models.system_model import GenericQuaternionSystemModel
from pose_estimation.sensors.gravity import STANDARD_GRAVITY
from pose_estimation.state import State, StateBlock
from pose_estimation.status import StatusFlags
from pose_estimation.types import ImuInput

ALL_AXES = (
    StatusFlags.VELOCITY_XY
    | StatusFlags.VELOCITY_Z
    | StatusFlags.POSITION_XY
    | StatusFlags.POSITION_Z
)


def inertial_state() -> State:
    """State without a rate block, integrating all axes."""
    blocks = [block for block in StateBlock if block != StateBlock.RATE]
    state = State(blocks)
    state.system_status = ALL_AXES
    return state


class TestSystemModelConstruction(unittest.TestCase):
    """Test parameters and validation."""

    def test_defaults(self) -> None:
        model = GenericQuaternionSystemModel()
        self.assertAlmostEqual(model.gravity, STANDARD_GRAVITY)
        self.assertAlmostEqual(model.rate_stddev, GyroModel().stddev)
        self.assertAlmostEqual(model.acceleration_stddev, AccelerometerModel().stddev)

    def test_invalid_parameters(self) -> None:
        with self.assertRaises(ValueError):
            GenericQuaternionSystemModel(gravity=-9.8)
        with self.assertRaises(ValueError):
            GenericQuaternionSystemModel(velocity_stddev=-1.0)
        with self.assertRaises(ValueError):
            GenericQuaternionSystemModel(angular_acceleration_stddev=-1.0)

    def test_stationary_input(self) -> None:
        model = GenericQuaternionSystemModel(gravity=9.81)
        assert_allclose(model.stationary_input().accel, [0.0, 0.0, -9.81])


class TestSystemModelDerivative(unittest.TestCase):
    """Test the continuous-time dynamics."""

    def setUp(self) -> None:
        self.model = GenericQuaternionSystemModel()
        self.state = inertial_state()

    def test_hover_is_stationary(self) -> None:
        x_dot = self.model.derivative(self.state, self.model.stationary_input())
        assert_allclose(x_dot, np.zeros(19), atol=1e-12)

    def test_velocity_integrates_into_position(self) -> None:
        self.state.get_velocity()[:] = [1.0, -2.0, 0.5]
        x_dot = self.model.derivative(self.state, self.model.stationary_input())
        assert_allclose(x_dot[StateBlock.POSITION.slice], [1.0, -2.0, 0.5])

    def test_position_held_without_status(self) -> None:
        self.state.system_status = StatusFlags.NONE
        self.state.get_velocity()[:] = [1.0, 1.0, 1.0]
        imu = ImuInput(accel=[1.0, 0.0, -5.0], gyro=[0.0, 0.0, 0.0])
        x_dot = self.model.derivative(self.state, imu)
        assert_allclose(x_dot[StateBlock.POSITION.slice], np.zeros(3))
        assert_allclose(x_dot[StateBlock.VELOCITY.slice], np.zeros(3))

    def test_horizontal_acceleration(self) -> None:
        imu = ImuInput(accel=[0.5, 0.0, -STANDARD_GRAVITY], gyro=np.zeros(3))
        x_dot = self.model.derivative(self.state, imu)
        assert_allclose(x_dot[StateBlock.VELOCITY.slice], [0.5, 0.0, 0.0], atol=1e-12)

    def test_gyro_drives_quaternion(self) -> None:
        imu = ImuInput(accel=[0.0, 0.0, -STANDARD_GRAVITY], gyro=[0.0, 0.0, 0.2])
        x_dot = self.model.derivative(self.state, imu)
        assert_allclose(x_dot[StateBlock.ORIENTATION.slice], [0.0, 0.0, 0.0, 0.1])

    def test_gyro_bias_added(self) -> None:
        self.state.get_gyro_bias()[:] = [0.0, 0.0, 0.2]
        x_dot = self.model.derivative(self.state, self.model.stationary_input())
        assert_allclose(x_dot[StateBlock.ORIENTATION.slice], [0.0, 0.0, 0.0, 0.1])

    def test_rate_state_drives_quaternion(self) -> None:
        state = State()
        state.get_rate()[:] = [0.4, 0.0, 0.0]
        imu = ImuInput(accel=[0.0, 0.0, -STANDARD_GRAVITY], gyro=[0.0, 0.0, 1.0])
        x_dot = self.model.derivative(state, imu)
        assert_allclose(x_dot[StateBlock.ORIENTATION.slice], [0.0, 0.2, 0.0, 0.0])

    def test_biases_are_random_walks(self) -> None:
        self.state.get_accel_bias()[:] = [0.1, 0.2, 0.3]
        x_dot = self.model.derivative(self.state, self.model.stationary_input())
        assert_allclose(x_dot[StateBlock.GYRO_BIAS.slice], np.zeros(3))
        assert_allclose(x_dot[StateBlock.ACCEL_BIAS.slice], np.zeros(3))


class TestSystemModelJacobian(unittest.TestCase):
    """Test the state Jacobian against finite differences."""

    def numerical_jacobian(self, model, state, imu, eps=1e-6):
        x0 = state.x.copy()
        A = np.zeros((19, 19))
        for i in range(19):
            state.x = x0.copy()
            state.x[i] += eps
            f_plus = model.derivative(state, imu)
            state.x = x0.copy()
            state.x[i] -= eps
            f_minus = model.derivative(state, imu)
            A[:, i] = (f_plus - f_minus) / (2.0 * eps)
        state.x = x0
        return A

    def test_jacobian_inertial(self) -> None:
        model = GenericQuaternionSystemModel()
        state = inertial_state()
        state.x[StateBlock.ORIENTATION.slice] = euler_to_quat(0.2, -0.1, 0.7)
        state.get_velocity()[:] = [1.0, 0.5, -0.2]
        state.get_gyro_bias()[:] = [0.01, -0.02, 0.03]
        state.get_accel_bias()[:] = [0.1, 0.0, -0.1]
        imu = ImuInput(accel=[0.3, -0.4, -9.5], gyro=[0.1, 0.2, -0.3])

        A = model.state_jacobian(state, imu)
        assert_allclose(A, self.numerical_jacobian(model, state, imu), atol=1e-6)

    def test_jacobian_rate_state(self) -> None:
        model = GenericQuaternionSystemModel()
        state = State()
        state.system_status = ALL_AXES
        state.x[StateBlock.ORIENTATION.slice] = euler_to_quat(-0.3, 0.2, 1.5)
        state.get_rate()[:] = [0.2, -0.1, 0.05]
        imu = ImuInput(accel=[0.1, 0.2, -9.8], gyro=[0.0, 0.0, 0.0])

        A = model.state_jacobian(state, imu)
        assert_allclose(A, self.numerical_jacobian(model, state, imu), atol=1e-6)
        assert_allclose(A[0:4, StateBlock.GYRO_BIAS.slice], np.zeros((4, 3)))

    def test_inactive_blocks_masked(self) -> None:
        model = GenericQuaternionSystemModel()
        state = inertial_state()
        state.deactivate(StateBlock.ACCEL_BIAS)
        A = model.state_jacobian(state, model.stationary_input())
        assert_allclose(A[:, StateBlock.ACCEL_BIAS.slice], np.zeros((19, 3)))
        assert_allclose(A[:, StateBlock.RATE.slice], np.zeros((19, 3)))


class TestSystemModelNoise(unittest.TestCase):
    """Test process noise and prior."""

    def test_initial_noise(self) -> None:
        model = GenericQuaternionSystemModel(velocity_stddev=0.5)
        state = State()
        Q = model.system_noise(state, np.zeros((19, 19)), initializing=True)
        assert_allclose(np.diag(Q)[StateBlock.POSITION.slice], [0.25] * 3)
        assert_allclose(
            np.diag(Q)[StateBlock.VELOCITY.slice], [model.acceleration_stddev**2] * 3
        )
        assert_allclose(
            np.diag(Q)[StateBlock.GYRO_BIAS.slice], [model.gyro.drift**2] * 3
        )
        assert_allclose(Q, Q.T)

    def test_orientation_noise_follows_quaternion(self) -> None:
        model = GenericQuaternionSystemModel()
        state = State()
        Q = model.system_noise(state, np.zeros((19, 19)), initializing=True)
        # Rate noise only perturbs the quaternion orthogonally to itself
        q = state.get_orientation()
        assert_allclose(Q[0:4, 0:4] @ q, np.zeros(4), atol=1e-15)
        self.assertAlmostEqual(np.trace(Q[0:4, 0:4]), 0.75 * model.rate_stddev**2)

    def test_inactive_bias_has_no_drift(self) -> None:
        model = GenericQuaternionSystemModel()
        state = State()
        state.deactivate(StateBlock.GYRO_BIAS)
        Q = model.system_noise(state, np.zeros((19, 19)), initializing=True)
        assert_allclose(Q[StateBlock.GYRO_BIAS.slice, StateBlock.GYRO_BIAS.slice], 0.0)

    def test_prior(self) -> None:
        model = GenericQuaternionSystemModel()
        P = model.prior(State())
        assert_allclose(np.diag(P)[0:4], [0.25] * 4)
        r = StateBlock.RATE.slice
        assert_allclose(P[r, r], np.eye(3))
        assert_allclose(
            np.diag(P)[StateBlock.ACCEL_BIAS.slice], [model.accelerometer.stddev**2] * 3
        )
        self.assertTrue(np.all(np.linalg.eigvalsh(P) >= 0.0))


class TestSystemModelStatus(unittest.TestCase):
    """Test status_flags."""

    def setUp(self) -> None:
        self.model = GenericQuaternionSystemModel()

    def flags_for(self, measurement_status, rate_active=False):
        state = State()
        if not rate_active:
            state.deactivate(StateBlock.RATE)
        state.measurement_status = measurement_status
        return self.model.status_flags(state)

    def test_nothing_observed(self) -> None:
        self.assertEqual(
            self.flags_for(StatusFlags.NONE), StatusFlags.RATE_XY | StatusFlags.RATE_Z
        )

    def test_horizontal_position(self) -> None:
        flags = self.flags_for(StatusFlags.POSITION_XY)
        for flag in (
            StatusFlags.POSITION_XY,
            StatusFlags.VELOCITY_XY,
            StatusFlags.ROLLPITCH,
            StatusFlags.RATE_XY,
        ):
            self.assertTrue(flags & flag)
        self.assertFalse(flags & StatusFlags.POSITION_Z)
        self.assertFalse(flags & StatusFlags.YAW)

    def test_vertical_position(self) -> None:
        flags = self.flags_for(StatusFlags.POSITION_Z)
        self.assertTrue(flags & StatusFlags.VELOCITY_Z)
        self.assertFalse(flags & StatusFlags.VELOCITY_XY)

    def test_pseudo_attitude(self) -> None:
        flags = self.flags_for(StatusFlags.PSEUDO_ROLLPITCH | StatusFlags.PSEUDO_YAW)
        self.assertTrue(flags & StatusFlags.ROLLPITCH)
        self.assertTrue(flags & StatusFlags.YAW)

    def test_rate_state_needs_rate_measurement(self) -> None:
        flags = self.flags_for(StatusFlags.NONE, rate_active=True)
        self.assertFalse(flags & StatusFlags.RATE_Z)
        flags = self.flags_for(StatusFlags.RATE_Z, rate_active=True)
        self.assertTrue(flags & StatusFlags.RATE_Z)


if __name__ == "__main__":
    unittest.main()
