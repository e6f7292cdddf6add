"""Status flags describing which quantities are observed and estimated.

Two separate bitmasks use this vocabulary:

- system status: what the process model currently propagates
  (e.g. VELOCITY_XY means horizontal velocity is integrated from the
  accelerometers);
- measurement status: what the registered measurements currently correct
  (e.g. POSITION_XY while a GPS receiver delivers fixes).
"""

from enum import IntFlag


class StatusFlags(IntFlag):
    """Bitmask of estimator capabilities."""

    NONE = 0
    ALIGNMENT = 0x0001
    DEGRADED = 0x0002
    READY = 0x0004
    ROLLPITCH = 0x0010
    YAW = 0x0020
    PSEUDO_ROLLPITCH = 0x0040
    PSEUDO_YAW = 0x0080
    RATE_XY = 0x0100
    RATE_Z = 0x0200
    VELOCITY_XY = 0x0400
    VELOCITY_Z = 0x0800
    POSITION_XY = 0x1000
    POSITION_Z = 0x2000


# Flags describing observed/propagated physical quantities
ESTIMATED_STATES = (
    StatusFlags.ROLLPITCH
    | StatusFlags.YAW
    | StatusFlags.PSEUDO_ROLLPITCH
    | StatusFlags.PSEUDO_YAW
    | StatusFlags.RATE_XY
    | StatusFlags.RATE_Z
    | StatusFlags.VELOCITY_XY
    | StatusFlags.VELOCITY_Z
    | StatusFlags.POSITION_XY
    | StatusFlags.POSITION_Z
)

ALL_FLAGS = (
    ESTIMATED_STATES | StatusFlags.ALIGNMENT | StatusFlags.DEGRADED | StatusFlags.READY
)


def apply_status_update(
    current: StatusFlags,
    set_flags: StatusFlags = StatusFlags.NONE,
    clear_flags: StatusFlags = StatusFlags.NONE,
) -> StatusFlags:
    """Return ``current`` with ``set_flags`` added, then ``clear_flags`` removed.

    A flag present in both masks ends up cleared.

    Example:
        >>> apply_status_update(StatusFlags.YAW, StatusFlags.RATE_Z, StatusFlags.YAW)
        <StatusFlags.RATE_Z: 512>
    """
    value = (int(current) | int(set_flags)) & ~int(clear_flags)
    return StatusFlags(value)


def status_string(flags: StatusFlags) -> str:
    """Human readable list of the flags set in ``flags``."""
    names = [
        member.name
        for member in StatusFlags
        if member.value and (int(flags) & member.value) == member.value
    ]
    return " ".join(names) if names else "NONE"
