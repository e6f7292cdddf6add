"""
Unit tests for the inertial and stationarity measurement models.

Tests cover:
    - Rate: gyro observation of the rate state
    - Gravity: accelerometer observation of roll and pitch
    - ZeroRate / ZeroVelocity: stationarity pseudo-measurements, gyro bias
      calibration at rest and per-axis covariance overrides
"""

import unittest

import numpy as np
from numpy.testing import assert_allclose

from pose_estimation.config import EstimatorConfig
from pose_estimation.coords.rotations import euler_to_quat, quat_to_rotation_matrix
from pose_estimation.estimator import PoseEstimation
from pose_estimation.measurements.gravity import Gravity
from pose_estimation.measurements.rate import Rate
from pose_estimation.measurements.zero_rate import ZeroRate, ZeroVelocity
from pose_estimation.sensors.gravity import STANDARD_GRAVITY
from pose_estimation.state import State, StateBlock
from pose_estimation.status import StatusFlags
from pose_estimation.types import ImuInput, Update


class TestRate(unittest.TestCase):
    """Test the Rate model."""

    def test_expected_value_subtracts_bias(self) -> None:
        state = State()
        state.get_rate()[:] = [0.1, 0.2, 0.3]
        state.get_gyro_bias()[:] = [0.01, 0.0, -0.01]
        assert_allclose(Rate().expected_value(state), [0.09, 0.2, 0.31])

    def test_jacobian(self) -> None:
        C = Rate().jacobian(State())
        assert_allclose(C[:, StateBlock.RATE.slice], np.eye(3))
        assert_allclose(C[:, StateBlock.GYRO_BIAS.slice], -np.eye(3))

    def test_flags(self) -> None:
        self.assertEqual(Rate().status_flags(), StatusFlags.RATE_XY | StatusFlags.RATE_Z)

    def test_skipped_without_rate_state(self) -> None:
        estimator = PoseEstimation()
        estimator.add_measurement(Rate())
        self.assertFalse(estimator.correct("rate", Update([0.0, 0.0, 0.1])))

    def test_rate_state_follows_gyro(self) -> None:
        estimator = PoseEstimation(config=EstimatorConfig(rate_state=True))
        estimator.add_measurement(Rate(stddev=0.01))
        self.assertTrue(estimator.correct("rate", Update([0.0, 0.0, 0.5])))
        self.assertGreater(estimator.get_rate()[2], 0.4)


class TestGravity(unittest.TestCase):
    """Test the Gravity model."""

    def test_expected_value_level(self) -> None:
        gravity = Gravity(gravity=9.81)
        assert_allclose(gravity.expected_value(State()), [0.0, 0.0, -9.81])

    def test_expected_value_with_bias(self) -> None:
        state = State()
        state.get_accel_bias()[:] = [0.1, 0.0, 0.2]
        expected = Gravity(gravity=9.81).expected_value(state)
        assert_allclose(expected, [-0.1, 0.0, -10.01])

    def test_tilted(self) -> None:
        state = State()
        q = euler_to_quat(0.2, 0.0, 0.0)
        state.x[StateBlock.ORIENTATION.slice] = q
        expected = Gravity(gravity=9.81).expected_value(state)
        assert_allclose(expected, quat_to_rotation_matrix(q).T @ [0.0, 0.0, -9.81])
        self.assertLess(expected[1], 0.0)

    def test_jacobian_bias_columns(self) -> None:
        C = Gravity().jacobian(State())
        assert_allclose(C[:, StateBlock.ACCEL_BIAS.slice], -np.eye(3))

    def test_follows_system_gravity(self) -> None:
        estimator = PoseEstimation(config=EstimatorConfig(gravity=9.79))
        gravity = estimator.add_measurement(Gravity())
        estimator.correct("gravity", Update([0.0, 0.0, -9.79]))
        self.assertAlmostEqual(gravity.gravity, 9.79)

    def test_fixed_gravity(self) -> None:
        estimator = PoseEstimation(config=EstimatorConfig(gravity=9.79))
        gravity = estimator.add_measurement(Gravity(gravity=STANDARD_GRAVITY))
        estimator.correct("gravity", Update([0.0, 0.0, -STANDARD_GRAVITY]))
        self.assertAlmostEqual(gravity.gravity, STANDARD_GRAVITY)

    def test_roll_observed(self) -> None:
        estimator = PoseEstimation(config=EstimatorConfig(estimate_biases=False))
        estimator.add_measurement(Gravity(stddev=0.1))
        q_true = euler_to_quat(0.1, -0.05, 0.0)
        reading = quat_to_rotation_matrix(q_true).T @ [0.0, 0.0, -STANDARD_GRAVITY]
        for _ in range(10):
            estimator.correct("gravity", Update(reading))
        roll, pitch, _ = estimator.get_euler()
        self.assertAlmostEqual(roll, 0.1, places=2)
        self.assertAlmostEqual(pitch, -0.05, places=2)


class TestStationarity(unittest.TestCase):
    """Test ZeroRate and ZeroVelocity."""

    def test_zero_velocity_model(self) -> None:
        zupt = ZeroVelocity(stddev=0.05)
        assert_allclose(np.diag(zupt.noise_covariance()), [0.0025] * 3)
        self.assertEqual(zupt.required_blocks, (StateBlock.VELOCITY,))
        self.assertEqual(
            zupt.status_flags(), StatusFlags.VELOCITY_XY | StatusFlags.VELOCITY_Z
        )
        state = State()
        state.get_velocity()[:] = [1.0, 2.0, 3.0]
        assert_allclose(zupt.expected_value(state), [1.0, 2.0, 3.0])
        assert_allclose(zupt.jacobian(state) @ state.x, [1.0, 2.0, 3.0])

    def test_zero_velocity_update(self) -> None:
        estimator = PoseEstimation()
        estimator.add_measurement(ZeroVelocity())
        estimator.set_covariance(np.eye(19))
        estimator.state.get_velocity()[:] = [1.0, -1.0, 0.5]
        self.assertTrue(estimator.correct("zero_velocity", Update([1.0])))
        assert_allclose(estimator.get_velocity(), np.zeros(3), atol=0.01)

    def test_moving_flag_suppresses_update(self) -> None:
        estimator = PoseEstimation()
        estimator.add_measurement(ZeroVelocity())
        estimator.set_covariance(np.eye(19))
        estimator.state.get_velocity()[:] = [1.0, 0.0, 0.0]
        self.assertFalse(estimator.correct("zero_velocity", Update([0.0])))
        assert_allclose(estimator.get_velocity(), [1.0, 0.0, 0.0])

    def test_zero_rate(self) -> None:
        zero_rate = ZeroRate()
        self.assertEqual(zero_rate.name, "zero_rate")
        self.assertEqual(zero_rate.required_blocks, (StateBlock.RATE,))
        self.assertEqual(zero_rate.status_flags(), StatusFlags.NONE)

    def test_zero_rate_with_rate_state(self) -> None:
        estimator = PoseEstimation(config=EstimatorConfig(rate_state=True))
        zero_rate = estimator.add_measurement(ZeroRate())
        estimator.state.get_rate()[:] = [0.0, 0.0, 0.2]
        self.assertTrue(estimator.correct("zero_rate", Update([1.0])))
        self.assertEqual(zero_rate.required_blocks, (StateBlock.RATE,))
        self.assertLess(abs(estimator.get_rate()[2]), 0.01)

    def test_zero_rate_estimates_gyro_bias(self) -> None:
        estimator = PoseEstimation()
        zero_rate = estimator.add_measurement(ZeroRate())
        gyro = np.array([0.004, -0.003, 0.002])
        imu = ImuInput(
            accel=np.array([0.0, 0.0, -estimator.system_model.gravity]), gyro=gyro
        )
        for _ in range(300):
            estimator.predict(0.01, imu)
            self.assertTrue(estimator.correct("zero_rate", Update([1.0])))

        self.assertEqual(zero_rate.required_blocks, (StateBlock.GYRO_BIAS,))
        assert_allclose(estimator.get_bias()[0], -gyro, atol=5e-4)
        assert_allclose(estimator.get_rate(), np.zeros(3), atol=5e-4)

    def test_zero_rate_without_rate_or_bias_state(self) -> None:
        estimator = PoseEstimation(config=EstimatorConfig(estimate_biases=False))
        estimator.add_measurement(ZeroRate())
        self.assertFalse(estimator.correct("zero_rate", Update([1.0])))

    def test_covariance_override_is_per_axis_variance(self) -> None:
        estimator = PoseEstimation()
        zupt = estimator.add_measurement(ZeroVelocity())
        assert_allclose(zupt.get_covariance(Update([1.0], R=[[0.5]])), np.eye(3) * 0.5)

        estimator.set_covariance(np.eye(19))
        estimator.state.get_velocity()[:] = [1.0, -1.0, 0.5]
        self.assertTrue(estimator.correct("zero_velocity", Update([1.0], R=[[1.0]])))
        # S = P + R = 2 I, so the gain on velocity is one half
        assert_allclose(estimator.get_velocity(), [0.5, -0.5, 0.25], atol=1e-12)


if __name__ == "__main__":
    unittest.main()
