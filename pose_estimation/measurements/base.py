"""
Common contract of all measurement models.

A measurement model predicts what a sensor should read given the filter
state and supplies the pieces the EKF correction needs:

    y_hat = h(x)           expected_value(state)
    C     = ∂h/∂x          jacobian(state)          shape (m, 19)
    R                      noise_covariance()       shape (m, m)

plus the bookkeeping the estimator uses to gate corrections and to derive
the measurement status:

    status_flags()                 quantities observed while active
    required_blocks                state blocks that must be estimated
    before_update(estimator, u)    hook run before the correction;
                                   returning False suppresses it
    get_vector(update, state)      raw sample -> measurement vector
    timeout                        seconds without a successful update
                                   after which the model counts as lost
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np

from pose_estimation.state import STATE_DIMENSION, State, StateBlock
from pose_estimation.status import StatusFlags
from pose_estimation.types import Update

if TYPE_CHECKING:
    from pose_estimation.estimator import PoseEstimation


class MeasurementError(RuntimeError):
    """A sample could not be converted into a measurement vector.

    Raised from ``before_update``/``get_vector`` when e.g. a frame
    transform is unavailable. The estimator skips that single update.
    """


class Measurement(ABC):
    """
    Base class of measurement models.

    Args:
        name: Registry name. Defaults to the model's ``default_name``.
        enabled: Disabled models never correct and contribute no flags.
        timeout: Seconds after the last successful update at which the
            model counts as timed out. None disables the timeout.
        gate_confidence: Optional chi-square gate confidence in (0, 1).
    """

    dimension: int = 0
    required_blocks: Tuple[StateBlock, ...] = ()
    default_name = "measurement"

    def __init__(
        self,
        name: Optional[str] = None,
        enabled: bool = True,
        timeout: Optional[float] = 1.0,
        gate_confidence: Optional[float] = None,
    ):
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be positive or None, got {timeout}")
        if gate_confidence is not None and not (0 < gate_confidence < 1):
            raise ValueError(
                f"gate_confidence must be in (0, 1), got {gate_confidence}"
            )
        self.name = name or self.default_name
        self.enabled = bool(enabled)
        self.timeout = timeout
        self.gate_confidence = gate_confidence
        self.last_update: Optional[float] = None

    # ------------------------------------------------------------------
    # Model
    # ------------------------------------------------------------------

    @abstractmethod
    def expected_value(self, state: State) -> np.ndarray:
        """Predicted measurement h(x), shape (dimension,)."""

    @abstractmethod
    def jacobian(self, state: State) -> np.ndarray:
        """Measurement Jacobian ∂h/∂x, shape (dimension, 19)."""

    @abstractmethod
    def noise_covariance(self) -> np.ndarray:
        """Configured measurement noise covariance."""

    def status_flags(self) -> StatusFlags:
        return StatusFlags.NONE

    def before_update(self, estimator: "PoseEstimation", update: Update) -> bool:
        return True

    def get_vector(self, update: Update, state: State) -> np.ndarray:
        """Measurement vector for the correction (raw sample by default)."""
        return self._check_dimension(update.y)

    def get_covariance(self, update: Update) -> np.ndarray:
        """Caller-supplied covariance if present, else the model noise."""
        if update.has_covariance:
            R = update.R
            if R.shape != (self.dimension, self.dimension):
                raise MeasurementError(
                    f"{self.name}: covariance override has shape {R.shape}, "
                    f"expected ({self.dimension}, {self.dimension})"
                )
            return R
        return self.noise_covariance()

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    def mark_updated(self, timestamp: float) -> None:
        self.last_update = float(timestamp)

    def timed_out(self, now: float) -> bool:
        if self.timeout is None or self.last_update is None:
            return False
        return now - self.last_update > self.timeout

    def is_active(self, now: float) -> bool:
        """Enabled, updated at least once, and not timed out."""
        return self.enabled and self.last_update is not None and not self.timed_out(now)

    def reset(self) -> None:
        self.last_update = None
        self.on_reset()

    def on_reset(self) -> None:
        """Hook for models that keep state across updates."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _zero_jacobian(self) -> np.ndarray:
        return np.zeros((self.dimension, STATE_DIMENSION))

    def _check_dimension(self, y: np.ndarray) -> np.ndarray:
        y = np.asarray(y, dtype=float)
        if y.shape != (self.dimension,):
            raise MeasurementError(
                f"{self.name}: expected a measurement of shape ({self.dimension},), "
                f"got {y.shape}"
            )
        return y

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, enabled={self.enabled})"
