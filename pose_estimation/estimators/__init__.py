"""
State estimation algorithms.

Available estimators:
    - Extended Kalman Filter (EKF) over a block-gated State
"""

from pose_estimation.estimators.base import StateEstimator
from pose_estimation.estimators.extended_kalman_filter import ExtendedKalmanFilter

__all__ = [
    "StateEstimator",
    "ExtendedKalmanFilter",
]
