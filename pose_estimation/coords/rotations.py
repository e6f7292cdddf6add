"""Quaternion and rotation helpers for the pose filter.

This module provides the attitude algebra used by the process and
measurement models:
- Euler angles <-> quaternion conversion
- Quaternion -> rotation matrix
- Quaternion kinematics matrices Ω(ω) and Ξ(q)
- Analytic Jacobians of rotated vectors with respect to the quaternion

Conventions:
- Quaternions: [qw, qx, qy, qz] where qw is the scalar part
- Euler angles: [roll, pitch, yaw] in radians (ZYX/3-2-1 convention)
  - Roll: rotation about x-axis (φ)
  - Pitch: rotation about y-axis (θ)
  - Yaw: rotation about z-axis (ψ)
- Rotation matrices: R such that v_nav = R @ v_body

The rotation matrix is written in its homogeneous quadratic form
(diagonal terms qw² + qx² - qy² - qz², ...). For unit quaternions this is
identical to the familiar 1 - 2(qy² + qz²) form, and it keeps the analytic
Jacobians below exact derivatives of the functions the filter evaluates.
"""

import warnings

import numpy as np
from numpy.typing import NDArray


IDENTITY_QUATERNION = np.array([1.0, 0.0, 0.0, 0.0])


def euler_to_rotation_matrix(
    roll: float,
    pitch: float,
    yaw: float,
) -> NDArray[np.float64]:
    """Convert Euler angles to rotation matrix.

    Converts roll-pitch-yaw Euler angles (ZYX convention) to a 3x3
    rotation matrix that transforms vectors from body frame to
    navigation frame.

    Args:
        roll: Roll angle φ in radians (rotation about x-axis).
        pitch: Pitch angle θ in radians (rotation about y-axis).
        yaw: Yaw angle ψ in radians (rotation about z-axis).

    Returns:
        3x3 rotation matrix R such that v_nav = R @ v_body.

    Example:
        >>> R = euler_to_rotation_matrix(0.0, 0.0, np.pi / 2)
        >>> np.allclose(R @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0])
        True
    """
    cr = np.cos(roll)
    sr = np.sin(roll)
    cp = np.cos(pitch)
    sp = np.sin(pitch)
    cy = np.cos(yaw)
    sy = np.sin(yaw)

    return np.array(
        [
            [cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr],
            [sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr],
            [-sp, cp * sr, cp * cr],
        ],
        dtype=np.float64,
    )


def euler_to_quat(
    roll: float,
    pitch: float,
    yaw: float,
) -> NDArray[np.float64]:
    """Convert Euler angles to quaternion.

    Args:
        roll: Roll angle φ in radians (rotation about x-axis).
        pitch: Pitch angle θ in radians (rotation about y-axis).
        yaw: Yaw angle ψ in radians (rotation about z-axis).

    Returns:
        Unit quaternion as numpy array [qw, qx, qy, qz].

    Example:
        >>> q = euler_to_quat(0.0, 0.0, np.pi / 2)  # 90° yaw
        >>> np.allclose(q, [np.sqrt(0.5), 0.0, 0.0, np.sqrt(0.5)])
        True
    """
    cr = np.cos(roll / 2.0)
    sr = np.sin(roll / 2.0)
    cp = np.cos(pitch / 2.0)
    sp = np.sin(pitch / 2.0)
    cy = np.cos(yaw / 2.0)
    sy = np.sin(yaw / 2.0)

    qw = cr * cp * cy + sr * sp * sy
    qx = sr * cp * cy - cr * sp * sy
    qy = cr * sp * cy + sr * cp * sy
    qz = cr * cp * sy - sr * sp * cy

    return np.array([qw, qx, qy, qz], dtype=np.float64)


def quat_to_euler(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert quaternion to Euler angles.

    Extracts roll-pitch-yaw Euler angles (ZYX convention) from a
    unit quaternion. Pitch is clamped near ±90° (gimbal lock).

    Args:
        q: Unit quaternion as numpy array [qw, qx, qy, qz].

    Returns:
        Euler angles as numpy array [roll, pitch, yaw] in radians.

    Raises:
        ValueError: If q is not a 4-element array.
    """
    q = np.asarray(q, dtype=np.float64)
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")

    qw, qx, qy, qz = q

    roll = np.arctan2(2.0 * (qw * qx + qy * qz), 1.0 - 2.0 * (qx * qx + qy * qy))

    sin_pitch = np.clip(2.0 * (qw * qy - qz * qx), -1.0, 1.0)
    pitch = np.arcsin(sin_pitch)

    yaw = np.arctan2(2.0 * (qw * qz + qx * qy), 1.0 - 2.0 * (qy * qy + qz * qz))

    return np.array([roll, pitch, yaw], dtype=np.float64)


def quat_to_rotation_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert quaternion to rotation matrix (body -> navigation).

    Args:
        q: Quaternion as numpy array [qw, qx, qy, qz].

    Returns:
        3x3 rotation matrix R such that v_nav = R @ v_body.

    Raises:
        ValueError: If q is not a 4-element array.
    """
    q = np.asarray(q, dtype=np.float64)
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")

    qw, qx, qy, qz = q
    ww, xx, yy, zz = qw * qw, qx * qx, qy * qy, qz * qz

    return np.array(
        [
            [ww + xx - yy - zz, 2.0 * (qx * qy - qw * qz), 2.0 * (qx * qz + qw * qy)],
            [2.0 * (qx * qy + qw * qz), ww - xx + yy - zz, 2.0 * (qy * qz - qw * qx)],
            [2.0 * (qx * qz - qw * qy), 2.0 * (qy * qz + qw * qx), ww - xx - yy + zz],
        ],
        dtype=np.float64,
    )


def quat_normalize(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return q scaled to unit norm.

    A zero (or non-finite) quaternion cannot be normalized; it is replaced
    by the identity rotation and a RuntimeWarning is issued.
    """
    q = np.asarray(q, dtype=np.float64)
    norm = np.linalg.norm(q)
    if not np.isfinite(norm) or norm < 1e-12:
        warnings.warn(
            f"Cannot normalize quaternion {q}, resetting to identity",
            RuntimeWarning,
        )
        return IDENTITY_QUATERNION.copy()
    return q / norm


def omega_matrix(omega_b: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Build the Ω(ω) matrix used in quaternion kinematics.

        Ω(ω) = [  0    -ωx   -ωy   -ωz ]
               [ ωx     0     ωz   -ωy ]
               [ ωy    -ωz    0     ωx ]
               [ ωz     ωy   -ωx    0  ]

    so that dq/dt = 0.5 * Ω(ω) * q = 0.5 * q ⊗ [0, ω] for a body-frame
    angular rate ω.

    Args:
        omega_b: Angular velocity in body frame, shape (3,), rad/s.

    Returns:
        Skew-symmetric (4, 4) matrix.
    """
    omega_b = np.asarray(omega_b, dtype=np.float64)
    if omega_b.shape != (3,):
        raise ValueError(f"omega_b must have shape (3,), got {omega_b.shape}")

    wx, wy, wz = omega_b

    return np.array(
        [
            [0.0, -wx, -wy, -wz],
            [wx, 0.0, wz, -wy],
            [wy, -wz, 0.0, wx],
            [wz, wy, -wx, 0.0],
        ]
    )


def quat_rate_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Ξ(q), the (4, 3) matrix with Ω(ω) q = Ξ(q) ω.

    This is the partial derivative of the quaternion kinematics with
    respect to the body rate.
    """
    qw, qx, qy, qz = np.asarray(q, dtype=np.float64)
    return np.array(
        [
            [-qx, -qy, -qz],
            [qw, -qz, qy],
            [qz, qw, -qx],
            [-qy, qx, qw],
        ]
    )


def rotate_vector_jacobian(
    q: NDArray[np.float64],
    v: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Jacobian ∂(R(q) v)/∂q, shape (3, 4).

    Args:
        q: Quaternion [qw, qx, qy, qz].
        v: Body-frame vector, shape (3,).

    Returns:
        Matrix J with R(q + dq) v ≈ R(q) v + J dq.
    """
    qw, qx, qy, qz = np.asarray(q, dtype=np.float64)
    vx, vy, vz = np.asarray(v, dtype=np.float64)

    a = qw * vx - qz * vy + qy * vz
    b = qx * vx + qy * vy + qz * vz
    c = -qy * vx + qx * vy + qw * vz
    d = -qz * vx - qw * vy + qx * vz

    return 2.0 * np.array(
        [
            [a, b, c, d],
            [-d, -c, b, a],
            [c, -d, -a, b],
        ]
    )


def inverse_rotate_vector_jacobian(
    q: NDArray[np.float64],
    v: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Jacobian ∂(R(q)ᵀ v)/∂q, shape (3, 4).

    Uses R(q)ᵀ = R(q*) with q* = [qw, -qx, -qy, -qz].
    """
    q = np.asarray(q, dtype=np.float64)
    conjugate = q * np.array([1.0, -1.0, -1.0, -1.0])
    return rotate_vector_jacobian(conjugate, v) * np.array([1.0, -1.0, -1.0, -1.0])
