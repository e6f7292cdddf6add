"""
Example: Quadrotor Pose Estimation with IMU, GPS, Barometer and Magnetometer

Simulates a quadrotor flying a horizontal circle and runs the quaternion
EKF on noisy, biased sensor data.

Implements:
    - IMU driven strapdown prediction (gyro and accelerometer with bias)
    - Gravity aiding of roll and pitch until GPS velocity is available
    - GPS anchoring of the global reference on the first fix
    - Barometric altitude with automatic elevation
    - Magnetometer heading with automatic heading reference

Errors are evaluated in geodetic coordinates, so they do not depend on
where the estimator chose to anchor its local frame.

Usage:
    python examples/example_pose_estimation.py
    python examples/example_pose_estimation.py --duration 120 --plot
"""

import argparse
import logging
from dataclasses import replace

import numpy as np

from pose_estimation import EstimatorConfig, ImuInput, PoseEstimation, Update
from pose_estimation.coords import GlobalReference, euler_to_quat, quat_to_rotation_matrix
from pose_estimation.coords.transforms import wrap_angle
from pose_estimation.measurements import Magnetic
from pose_estimation.sensors import STANDARD_GRAVITY, altitude_to_pressure

LAT0 = np.deg2rad(22.3045)
LON0 = np.deg2rad(114.1798)
GROUND_ELEVATION = 35.0  # m


def generate_circle_flight(duration=60.0, dt=0.01, radius=20.0, speed=4.0, altitude=10.0):
    """
    Ground truth of a level circular flight at constant speed.

    Args:
        duration: Flight time [s].
        dt: IMU sample interval [s].
        radius: Circle radius [m].
        speed: Tangential speed [m/s].
        altitude: Height above the take-off point [m].

    Returns:
        Dict with time, position, velocity, acceleration, yaw and yaw rate.
    """
    t = np.arange(0.0, duration, dt)
    omega = speed / radius
    angle = omega * t

    position = np.column_stack(
        [radius * np.cos(angle), radius * np.sin(angle), np.full_like(t, altitude)]
    )
    velocity = np.column_stack(
        [-speed * np.sin(angle), speed * np.cos(angle), np.zeros_like(t)]
    )
    acceleration = np.column_stack(
        [-omega * speed * np.cos(angle), -omega * speed * np.sin(angle), np.zeros_like(t)]
    )
    yaw = np.array([wrap_angle(a + np.pi / 2) for a in angle])

    return {
        "t": t,
        "dt": dt,
        "position": position,
        "velocity": velocity,
        "acceleration": acceleration,
        "yaw": yaw,
        "yaw_rate": omega,
    }


def simulate_imu(truth, rng, gyro_bias, accel_bias, gyro_noise=0.005, accel_noise=0.05):
    """Body-frame IMU readings: accel = Rᵀ(a - [0, 0, g]), gyro = ω, minus bias."""
    gravity = np.array([0.0, 0.0, STANDARD_GRAVITY])
    samples = []
    for k in range(len(truth["t"])):
        R = quat_to_rotation_matrix(euler_to_quat(0.0, 0.0, truth["yaw"][k]))
        accel = R.T @ (truth["acceleration"][k] - gravity) - accel_bias
        gyro = np.array([0.0, 0.0, truth["yaw_rate"]]) - gyro_bias
        samples.append(
            ImuInput(
                accel=accel + rng.normal(0.0, accel_noise, 3),
                gyro=gyro + rng.normal(0.0, gyro_noise, 3),
            )
        )
    return samples


def run_estimator(truth, imu, rng, config):
    """Feed simulated sensors into the estimator and record the results."""
    estimator = PoseEstimation.from_config(config)
    dt = truth["dt"]

    truth_reference = GlobalReference()
    truth_reference.set_position(LAT0, LON0)
    truth_reference.set_heading(0.0)
    truth_reference.set_altitude(GROUND_ELEVATION)

    magnetic_truth = Magnetic(magnitude=1.0)
    field = magnetic_truth.reference_field()

    history = {"t": [], "horizontal_error": [], "altitude_error": [], "yaw_error": []}
    for k, t in enumerate(truth["t"]):
        estimator.update(imu[k], dt)

        q_true = euler_to_quat(0.0, 0.0, truth["yaw"][k])
        if k % 10 == 0:
            reading = quat_to_rotation_matrix(q_true).T @ field
            estimator.correct("magnetic", Update(reading + rng.normal(0.0, 0.05, 3)))

            altitude = GROUND_ELEVATION + truth["position"][k, 2]
            pressure = altitude_to_pressure(altitude) + rng.normal(0.0, 30.0)
            estimator.correct("baro", Update([pressure]))

        if k % 20 == 0:
            x, y = truth["position"][k, 0:2] + rng.normal(0.0, 2.0, 2)
            latitude, longitude = truth_reference.to_wgs84(x, y)
            north, east = truth_reference.to_north_east(*truth["velocity"][k, 0:2])
            v_north, v_east = np.array([north, east]) + rng.normal(0.0, 0.2, 2)
            estimator.correct("gps", Update([latitude, longitude, v_north, v_east]))

        position = estimator.get_global_position()
        if np.isnan(position.latitude):
            continue
        x_est, y_est = truth_reference.from_wgs84(position.latitude, position.longitude)
        yaw_est = estimator.get_euler()[2] - estimator.global_reference.heading

        history["t"].append(t)
        history["horizontal_error"].append(
            np.hypot(x_est - truth["position"][k, 0], y_est - truth["position"][k, 1])
        )
        history["altitude_error"].append(
            position.altitude - GROUND_ELEVATION - truth["position"][k, 2]
        )
        history["yaw_error"].append(wrap_angle(yaw_est - truth["yaw"][k]))

    return estimator, {key: np.array(value) for key, value in history.items()}


def plot_results(history, save_path=None):
    """Plot error histories (requires matplotlib)."""
    import matplotlib.pyplot as plt

    fig, axes = plt.subplots(3, 1, figsize=(10, 9), sharex=True)
    axes[0].plot(history["t"], history["horizontal_error"], "b-")
    axes[0].set_ylabel("Horizontal Error [m]")
    axes[1].plot(history["t"], history["altitude_error"], "g-")
    axes[1].set_ylabel("Altitude Error [m]")
    axes[2].plot(history["t"], np.rad2deg(history["yaw_error"]), "r-")
    axes[2].set_ylabel("Yaw Error [deg]")
    axes[2].set_xlabel("Time [s]")
    for ax in axes:
        ax.grid(True)
    fig.suptitle("Quadrotor Pose Estimation Errors")
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches="tight")
        print(f"\nSaved figure: {save_path}")
    plt.show()


def main():
    """Main entry point for the pose estimation demo."""
    parser = argparse.ArgumentParser(description="Quadrotor pose estimation demo")
    parser.add_argument("--duration", type=float, default=60.0, help="Flight time [s]")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument("--plot", action="store_true", help="Plot error histories")
    parser.add_argument("--save", type=str, default=None, help="Path to save figure")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    rng = np.random.default_rng(args.seed)
    truth = generate_circle_flight(duration=args.duration)
    gyro_bias = np.array([0.002, -0.003, 0.001])
    accel_bias = np.array([0.05, -0.04, 0.02])
    imu = simulate_imu(truth, rng, gyro_bias, accel_bias)

    config = replace(
        EstimatorConfig.quadrotor(),
        gyro_stddev=0.005,
        accel_stddev=0.05,
    )

    print("\n" + "=" * 70)
    print("Quadrotor Pose Estimation (IMU + GPS + Baro + Magnetometer)")
    print("=" * 70)
    print(f"  Duration     : {args.duration:.1f} s")
    print(f"  IMU samples  : {len(imu)}")

    estimator, history = run_estimator(truth, imu, rng, config)

    gyro_bias_est, accel_bias_est = estimator.get_bias()
    print("\nResults")
    print("-" * 70)
    print(f"  RMSE (horizontal) : {np.sqrt(np.mean(history['horizontal_error'] ** 2)):.3f} m")
    print(f"  RMSE (altitude)   : {np.sqrt(np.mean(history['altitude_error'] ** 2)):.3f} m")
    print(f"  RMSE (yaw)        : {np.rad2deg(np.sqrt(np.mean(history['yaw_error'] ** 2))):.2f} deg")
    print(f"  Gyro bias (true)  : {gyro_bias}")
    print(f"  Gyro bias (est.)  : {np.round(gyro_bias_est, 4)}")
    print(f"  Accel bias (true) : {accel_bias}")
    print(f"  Accel bias (est.) : {np.round(accel_bias_est, 3)}")

    if args.plot or args.save:
        plot_results(history, save_path=args.save)


if __name__ == "__main__":
    main()
