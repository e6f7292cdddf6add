"""
Gyroscope and accelerometer sub-models.

Each sensor is modelled as

    true = measured + bias + white noise,   d(bias)/dt = drift noise

The bias state is the additive correction applied to the raw reading.
It is a random walk: its derivative is zero
and only the drift variance is injected as process noise. The white
noise standard deviation is consumed by the main system model, which
turns it into orientation (gyro) or velocity (accelerometer) noise.
"""

from typing import Optional

import numpy as np

from pose_estimation.state import State, StateBlock


class BiasModel:
    """Random-walk bias of a 3-axis inertial sensor.

    Args:
        stddev: White measurement noise standard deviation of the sensor.
        drift: Bias random-walk intensity (units per sqrt(s)).
    """

    block: Optional[StateBlock] = None

    def __init__(self, stddev: float, drift: float):
        if stddev < 0:
            raise ValueError(f"stddev must be non-negative, got {stddev}")
        if drift < 0:
            raise ValueError(f"drift must be non-negative, got {drift}")
        self.stddev = float(stddev)
        self.drift = float(drift)

    def bias(self, state: State) -> np.ndarray:
        """Current bias estimate (the last one if the block is inactive)."""
        return state.get(self.block).copy()

    def system_noise(self, state: State, Q: np.ndarray) -> None:
        """Write the drift variance onto the diagonal of ``Q`` (in place)."""
        s = self.block.slice
        Q[s, s] = np.eye(3) * (self.drift**2 if state.is_active(self.block) else 0.0)

    def prior(self, state: State, P: np.ndarray) -> None:
        """Seed the bias covariance with the sensor noise variance."""
        s = self.block.slice
        P[s, s] = np.eye(3) * self.stddev**2

    def __repr__(self) -> str:
        return f"{type(self).__name__}(stddev={self.stddev}, drift={self.drift})"


class GyroModel(BiasModel):
    """Gyroscope with rate noise (rad/s) and bias drift (rad/s/sqrt(s))."""

    block = StateBlock.GYRO_BIAS

    def __init__(self, stddev: float = 0.01, drift: float = 1e-4):
        super().__init__(stddev, drift)


class AccelerometerModel(BiasModel):
    """Accelerometer with noise (m/s²) and bias drift (m/s²/sqrt(s))."""

    block = StateBlock.ACCEL_BIAS

    def __init__(self, stddev: float = 0.1, drift: float = 1e-3):
        super().__init__(stddev, drift)
