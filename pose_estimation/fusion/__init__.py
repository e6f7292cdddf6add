"""Chi-square gating for outlier rejection of measurement innovations."""

from pose_estimation.fusion.gating import (
    chi_square_gate,
    chi_square_threshold,
    mahalanobis_distance_squared,
)

__all__ = [
    "chi_square_gate",
    "chi_square_threshold",
    "mahalanobis_distance_squared",
]
