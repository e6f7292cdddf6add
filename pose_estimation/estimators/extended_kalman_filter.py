"""
Extended Kalman Filter arithmetic over a block-gated state.

Implements:
    - Prediction with one forward-Euler step
      x̂⁻ = x̂ + f(x̂, u)·dt
      Φ  = I + A·dt,  A = ∂f/∂x evaluated at the pre-prediction estimate
      P⁻ = Φ P Φᵀ + Q·dt
    - Correction
      ν = y − h(x̂⁻),  S = C P⁻ Cᵀ + R,  K = P⁻ Cᵀ S⁻¹
      x̂ = x̂⁻ + K ν
      P = (I − KC) P⁻ (I − KC)ᵀ + K R Kᵀ   (Joseph form)

Blocks marked inactive in the State neither move nor correlate newly:
their Jacobian columns and gain rows are forced to zero, so they keep
their last value and variance. The Joseph form keeps P symmetric positive
semi-definite for such a non-optimal (masked) gain.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from pose_estimation.estimators.base import StateEstimator
from pose_estimation.fusion.gating import chi_square_gate
from pose_estimation.state import State

logger = logging.getLogger(__name__)


class ExtendedKalmanFilter(StateEstimator):
    """
    Extended Kalman Filter acting in place on a ``State``.

    The filter itself is model-agnostic: the caller evaluates the process
    and measurement models and passes derivative, Jacobians and noise.

    Attributes:
        state: The State being estimated (mean, covariance, block flags).
        max_condition_number: Innovation covariances with a larger
            condition number are treated as singular.
    """

    def __init__(self, state: State, max_condition_number: float = 1e12):
        super().__init__(state)
        if max_condition_number <= 1.0:
            raise ValueError(
                f"max_condition_number must be > 1, got {max_condition_number}"
            )
        self.max_condition_number = float(max_condition_number)

    def predict(
        self, x_dot: np.ndarray, A: np.ndarray, Q: np.ndarray, dt: float
    ) -> None:
        """
        Propagate mean and covariance over ``dt`` seconds.

        Args:
            x_dot: State derivative f(x̂, u), shape (n,).
            A: Continuous-time Jacobian ∂f/∂x at the pre-prediction state.
            Q: Process noise spectral density (n×n), scaled by dt.
            dt: Time step in seconds.
        """
        state = self.state
        n = self.state_dim
        inactive = ~state.active_mask()

        x_dot = np.array(x_dot, dtype=float)
        A = np.array(A, dtype=float)
        Q = np.array(Q, dtype=float)
        x_dot[inactive] = 0.0
        A[inactive, :] = 0.0
        A[:, inactive] = 0.0
        Q[inactive, :] = 0.0
        Q[:, inactive] = 0.0

        Phi = np.eye(n) + A * dt

        state.x = state.x + x_dot * dt
        P = Phi @ state.P @ Phi.T + Q * dt
        state.P = 0.5 * (P + P.T)
        state.normalize()

    def innovation(
        self, y: np.ndarray, y_hat: np.ndarray, C: np.ndarray, R: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Compute innovation and its covariance for the active blocks.

        Returns:
            Tuple (nu, S, C_masked).
        """
        C = np.array(C, dtype=float)
        C[:, ~self.state.active_mask()] = 0.0
        nu = np.asarray(y, dtype=float) - np.asarray(y_hat, dtype=float)
        S = C @ self.state.P @ C.T + np.asarray(R, dtype=float)
        return nu, 0.5 * (S + S.T), C

    def correct(
        self,
        y: np.ndarray,
        y_hat: np.ndarray,
        C: np.ndarray,
        R: np.ndarray,
        gate_confidence: Optional[float] = None,
    ) -> bool:
        """
        Correct the state with one measurement.

        Args:
            y: Measurement vector (m,).
            y_hat: Predicted measurement h(x̂⁻) (m,).
            C: Measurement Jacobian (m×n).
            R: Measurement noise covariance (m×m).
            gate_confidence: If given, reject the measurement when its
                squared Mahalanobis distance exceeds the chi-square quantile
                at this confidence.

        Returns:
            True if the state was corrected, False if the gate rejected it.

        Raises:
            np.linalg.LinAlgError: If the innovation covariance is singular
                or too ill-conditioned to invert. The state is unchanged.
        """
        state = self.state
        n = self.state_dim
        inactive = ~state.active_mask()

        nu, S, C = self.innovation(y, y_hat, C, R)

        condition = np.linalg.cond(S)
        if not np.isfinite(condition) or condition > self.max_condition_number:
            raise np.linalg.LinAlgError(
                f"Innovation covariance is ill-conditioned (cond = {condition:.3g})"
            )

        if gate_confidence is not None and not chi_square_gate(
            nu, S, confidence=gate_confidence
        ):
            return False

        # K = P Cᵀ S⁻¹, computed as (S⁻¹ C P)ᵀ since S and P are symmetric
        K = np.linalg.solve(S, C @ state.P).T
        K[inactive, :] = 0.0

        state.x = state.x + K @ nu

        I_KC = np.eye(n) - K @ C
        P = I_KC @ state.P @ I_KC.T + K @ np.asarray(R, dtype=float) @ K.T
        state.P = 0.5 * (P + P.T)
        state.normalize()
        return True
