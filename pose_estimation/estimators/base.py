"""
Base class for recursive state estimators.

This module defines the common interface of the filters operating on a
block-structured ``State``.
"""

from abc import ABC, abstractmethod
from typing import Tuple

import numpy as np

from pose_estimation.state import State


class StateEstimator(ABC):
    """Abstract base class for recursive estimators over a shared State."""

    def __init__(self, state: State):
        """
        Initialize state estimator.

        Args:
            state: State owned by the caller; the estimator mutates it.
        """
        self.state = state

    @property
    def state_dim(self) -> int:
        return len(self.state.x)

    @abstractmethod
    def predict(
        self, x_dot: np.ndarray, A: np.ndarray, Q: np.ndarray, dt: float
    ) -> None:
        """
        Perform prediction step (time update).

        Args:
            x_dot: State derivative at the current estimate.
            A: Continuous-time state Jacobian.
            Q: Process noise spectral density.
            dt: Time step in seconds.
        """

    @abstractmethod
    def correct(
        self, y: np.ndarray, y_hat: np.ndarray, C: np.ndarray, R: np.ndarray
    ) -> bool:
        """
        Perform measurement update (correction step).

        Args:
            y: Measurement vector.
            y_hat: Predicted measurement.
            C: Measurement Jacobian.
            R: Measurement noise covariance.

        Returns:
            True if the state was corrected.
        """

    def get_state(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Get current state estimate and covariance.

        Returns:
            Tuple of (state_vector, covariance_matrix).
        """
        return self.state.x.copy(), self.state.P.copy()
