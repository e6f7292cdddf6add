"""
Filter state: mean vector, covariance and per-block activity flags.

The state vector has a fixed maximal layout of 19 entries:

    index   block         size  units
    0:4     ORIENTATION   4     unit quaternion [qw, qx, qy, qz], body -> nav
    4:7     RATE          3     rad/s, body frame
    7:10    POSITION      3     m, local navigation frame
    10:13   VELOCITY      3     m/s, local navigation frame
    13:16   GYRO_BIAS     3     rad/s, body frame
    16:19   ACCEL_BIAS    3     m/s², body frame

Every block can be activated or deactivated independently. An inactive
block keeps its last estimate and covariance; the filter simply stops
propagating and correcting it. Only ``reset()`` zeroes the whole state.

Example:
    >>> state = State()
    >>> state.deactivate(StateBlock.RATE)
    >>> state.is_active(StateBlock.RATE)
    False
    >>> state.get_orientation()
    array([1., 0., 0., 0.])
"""

import warnings
from enum import Enum
from typing import Iterable, Optional

import numpy as np

from pose_estimation.coords.rotations import IDENTITY_QUATERNION, quat_normalize
from pose_estimation.status import StatusFlags, apply_status_update


class StateBlock(Enum):
    """Named sub-blocks of the state vector as (offset, size)."""

    ORIENTATION = (0, 4)
    RATE = (4, 3)
    POSITION = (7, 3)
    VELOCITY = (10, 3)
    GYRO_BIAS = (13, 3)
    ACCEL_BIAS = (16, 3)

    @property
    def offset(self) -> int:
        return self.value[0]

    @property
    def size(self) -> int:
        return self.value[1]

    @property
    def slice(self) -> slice:
        return slice(self.value[0], self.value[0] + self.value[1])


STATE_DIMENSION = 19


class State:
    """Mean, covariance, block activity and status bitmasks of the filter.

    Args:
        active_blocks: Blocks that take part in prediction and correction.
            Defaults to all blocks.
    """

    def __init__(self, active_blocks: Optional[Iterable[StateBlock]] = None):
        if active_blocks is None:
            active_blocks = list(StateBlock)
        self._active = {block: False for block in StateBlock}
        for block in active_blocks:
            self._active[StateBlock(block)] = True

        self.x = np.zeros(STATE_DIMENSION)
        self.P = np.zeros((STATE_DIMENSION, STATE_DIMENSION))
        self.system_status = StatusFlags.NONE
        self.measurement_status = StatusFlags.NONE
        self.reset()

    def reset(self) -> None:
        """Identity orientation, zero elsewhere, zero covariance, no status."""
        self.x = np.zeros(STATE_DIMENSION)
        self.x[StateBlock.ORIENTATION.slice] = IDENTITY_QUATERNION
        self.P = np.zeros((STATE_DIMENSION, STATE_DIMENSION))
        self.system_status = StatusFlags.NONE
        self.measurement_status = StatusFlags.NONE

    # ------------------------------------------------------------------
    # Block activity
    # ------------------------------------------------------------------

    def is_active(self, block: StateBlock) -> bool:
        return self._active[block]

    def activate(self, block: StateBlock) -> None:
        self._active[block] = True

    def deactivate(self, block: StateBlock) -> None:
        self._active[block] = False

    @property
    def active_blocks(self) -> tuple:
        return tuple(block for block in StateBlock if self._active[block])

    def active_mask(self) -> np.ndarray:
        """Boolean vector (19,) selecting the entries of active blocks."""
        mask = np.zeros(STATE_DIMENSION, dtype=bool)
        for block in StateBlock:
            if self._active[block]:
                mask[block.slice] = True
        return mask

    # ------------------------------------------------------------------
    # Views into the mean vector
    # ------------------------------------------------------------------

    def get(self, block: StateBlock) -> np.ndarray:
        """View of ``block`` in the mean vector (writes go to the state)."""
        return self.x[block.slice]

    def get_orientation(self) -> np.ndarray:
        return self.x[StateBlock.ORIENTATION.slice]

    def get_rate(self) -> np.ndarray:
        return self.x[StateBlock.RATE.slice]

    def get_position(self) -> np.ndarray:
        return self.x[StateBlock.POSITION.slice]

    def get_velocity(self) -> np.ndarray:
        return self.x[StateBlock.VELOCITY.slice]

    def get_gyro_bias(self) -> np.ndarray:
        return self.x[StateBlock.GYRO_BIAS.slice]

    def get_accel_bias(self) -> np.ndarray:
        return self.x[StateBlock.ACCEL_BIAS.slice]

    def get_covariance(self, block: StateBlock) -> np.ndarray:
        """Diagonal covariance block of ``block`` (a view into P)."""
        return self.P[block.slice, block.slice]

    # ------------------------------------------------------------------
    # Whole-state setters
    # ------------------------------------------------------------------

    def set_vector(self, x: np.ndarray) -> None:
        """Replace the mean vector; the orientation is renormalized."""
        x = np.asarray(x, dtype=np.float64)
        if x.shape != (STATE_DIMENSION,):
            raise ValueError(
                f"State vector must have shape ({STATE_DIMENSION},), got {x.shape}"
            )
        if not np.all(np.isfinite(x)):
            raise ValueError("State vector contains non-finite values")

        q_norm = np.linalg.norm(x[StateBlock.ORIENTATION.slice])
        if not np.isclose(q_norm, 1.0, atol=1e-3):
            warnings.warn(
                f"State set with non-unit quaternion (||q|| = {q_norm:.6f}), "
                "normalizing.",
                UserWarning,
            )
        self.x = x.copy()
        self.normalize()

    def set_covariance(self, P: np.ndarray) -> None:
        """Replace the covariance; it is symmetrized."""
        P = np.asarray(P, dtype=np.float64)
        if P.shape != (STATE_DIMENSION, STATE_DIMENSION):
            raise ValueError(
                f"Covariance must have shape ({STATE_DIMENSION}, {STATE_DIMENSION}), "
                f"got {P.shape}"
            )
        if not np.all(np.isfinite(P)):
            raise ValueError("Covariance contains non-finite values")
        self.P = 0.5 * (P + P.T)

    def normalize(self) -> None:
        """Rescale the orientation quaternion to unit norm."""
        s = StateBlock.ORIENTATION.slice
        self.x[s] = quat_normalize(self.x[s])

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def update_system_status(
        self,
        set_flags: StatusFlags = StatusFlags.NONE,
        clear_flags: StatusFlags = StatusFlags.NONE,
    ) -> bool:
        """Apply set then clear masks to the system status.

        Returns:
            True if the stored status changed.
        """
        new_status = apply_status_update(self.system_status, set_flags, clear_flags)
        changed = new_status != self.system_status
        self.system_status = new_status
        return changed

    def update_measurement_status(
        self,
        set_flags: StatusFlags = StatusFlags.NONE,
        clear_flags: StatusFlags = StatusFlags.NONE,
    ) -> bool:
        """Apply set then clear masks to the measurement status.

        Returns:
            True if the stored status changed.
        """
        new_status = apply_status_update(
            self.measurement_status, set_flags, clear_flags
        )
        changed = new_status != self.measurement_status
        self.measurement_status = new_status
        return changed
