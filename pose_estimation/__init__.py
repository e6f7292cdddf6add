"""Quaternion EKF pose estimation.

This package estimates the attitude, position and velocity of a vehicle
from an IMU aided by GPS, height/barometer, magnetometer and stationarity
measurements:
- coords: Rotations, geodetic radii and the global reference anchor
- estimators: Extended Kalman filter over a block-gated state
- models: Strapdown process model and IMU bias models
- measurements: Measurement models (GPS, height, baro, magnetic, ...)
- sensors: Gravity and atmosphere models
- fusion: Chi-square innovation gating
"""

from pose_estimation.config import MEASUREMENT_TYPES, EstimatorConfig
from pose_estimation.estimator import PoseEstimation
from pose_estimation.state import STATE_DIMENSION, State, StateBlock
from pose_estimation.status import StatusFlags
from pose_estimation.types import ImuInput, Update

__version__ = "0.1.0"

__all__ = [
    "EstimatorConfig",
    "MEASUREMENT_TYPES",
    "PoseEstimation",
    "State",
    "StateBlock",
    "STATE_DIMENSION",
    "StatusFlags",
    "ImuInput",
    "Update",
]
