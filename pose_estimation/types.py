"""Data types passed into the estimator.

This module defines the per-sample envelopes the estimator consumes:
the inertial input driving prediction and the measurement update
envelope driving correction.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class ImuInput:
    """One inertial sample.

    Attributes:
        accel: Specific force in body frame, shape (3,). Units: m/s².
               A level vehicle at rest reads [0, 0, -g] in this package's
               z-up convention (gravity added back by the process model).
        gyro: Angular rate in body frame, shape (3,). Units: rad/s.

    Example:
        >>> imu = ImuInput(accel=[0.0, 0.0, -9.80665], gyro=[0.0, 0.0, 0.1])
        >>> imu.gyro
        array([0. , 0. , 0.1])
    """

    accel: np.ndarray
    gyro: np.ndarray

    def __post_init__(self) -> None:
        accel = np.asarray(self.accel, dtype=np.float64)
        gyro = np.asarray(self.gyro, dtype=np.float64)
        if accel.shape != (3,):
            raise ValueError(f"ImuInput.accel must have shape (3,), got {accel.shape}")
        if gyro.shape != (3,):
            raise ValueError(f"ImuInput.gyro must have shape (3,), got {gyro.shape}")
        object.__setattr__(self, "accel", accel)
        object.__setattr__(self, "gyro", gyro)

    @classmethod
    def stationary(cls, gravity: float) -> "ImuInput":
        """Reading of a level IMU at rest."""
        return cls(accel=np.array([0.0, 0.0, -gravity]), gyro=np.zeros(3))


@dataclass(frozen=True)
class Update:
    """Raw measurement sample with an optional covariance override.

    The envelope is built per incoming sample and consumed synchronously by
    ``PoseEstimation.correct``. Whether the caller supplied ``R`` is a
    runtime property (``has_covariance``); without it the measurement model
    falls back to its configured noise.

    Attributes:
        y: Raw measurement vector, 1D. May contain NaN; the estimator
           rejects such samples.
        R: Optional covariance override (m x m where m = len(y)).
        timestamp: Optional sample time in seconds. Defaults to the
           estimator clock when absent.

    Example:
        >>> update = Update(y=[10.0], R=[[0.25]])
        >>> update.has_covariance
        True
    """

    y: np.ndarray
    R: Optional[np.ndarray] = None
    timestamp: Optional[float] = None

    def __post_init__(self) -> None:
        y = np.atleast_1d(np.asarray(self.y, dtype=np.float64))
        if y.ndim != 1:
            raise ValueError(f"Measurement y must be 1D array, got shape {y.shape}")
        object.__setattr__(self, "y", y)

        if self.timestamp is not None and not np.isfinite(self.timestamp):
            raise ValueError(f"Timestamp must be finite, got {self.timestamp}")

        if self.R is None:
            return

        R = np.atleast_2d(np.asarray(self.R, dtype=np.float64))
        m = len(y)
        if R.shape != (m, m):
            raise ValueError(
                f"Covariance R shape {R.shape} must match "
                f"measurement dimension ({m}, {m})"
            )
        if not np.all(np.isfinite(R)):
            raise ValueError("Covariance R must be finite")
        if not np.allclose(R, R.T):
            raise ValueError("Covariance R must be symmetric")
        eigvals = np.linalg.eigvalsh(R)
        if np.any(eigvals < -1e-10):
            raise ValueError(
                f"Covariance R must be positive semi-definite, got eigenvalues {eigvals}"
            )
        object.__setattr__(self, "R", R)

    @property
    def has_covariance(self) -> bool:
        return self.R is not None
