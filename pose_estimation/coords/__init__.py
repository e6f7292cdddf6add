"""
Coordinate systems and transformations.

Available components:
    - Quaternion, Euler and rotation matrix conversions with Jacobians
    - WGS84 radii of curvature
    - GlobalReference: geodetic anchor of the local north-west-up frame
"""

from pose_estimation.coords.global_reference import GeodeticPosition, GlobalReference
from pose_estimation.coords.rotations import (
    IDENTITY_QUATERNION,
    euler_to_quat,
    euler_to_rotation_matrix,
    inverse_rotate_vector_jacobian,
    omega_matrix,
    quat_normalize,
    quat_rate_matrix,
    quat_to_euler,
    quat_to_rotation_matrix,
    rotate_vector_jacobian,
)
from pose_estimation.coords.transforms import local_radii, radii_of_curvature, wrap_angle

__all__ = [
    # Rotations
    "IDENTITY_QUATERNION",
    "euler_to_quat",
    "euler_to_rotation_matrix",
    "inverse_rotate_vector_jacobian",
    "omega_matrix",
    "quat_normalize",
    "quat_rate_matrix",
    "quat_to_euler",
    "quat_to_rotation_matrix",
    "rotate_vector_jacobian",
    # Geodesy
    "local_radii",
    "radii_of_curvature",
    "wrap_angle",
    "GeodeticPosition",
    "GlobalReference",
]
