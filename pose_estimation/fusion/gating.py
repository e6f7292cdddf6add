"""
Chi-square gating of measurement innovations.

The filter hands over the innovation ν = y − h(x̂⁻) and its covariance
S = C P⁻ Cᵀ + R. Under a consistent filter the normalized innovation
squared

    d² = νᵀ S⁻¹ ν

follows a chi-square distribution with m = dim(ν) degrees of freedom, so a
sample is accepted when d² stays below the quantile χ²(m, α).

Quantiles are cached per (m, α): the gate runs once per correction, at
sensor rate, with only a handful of distinct dimensions.
"""

from functools import lru_cache

import numpy as np
from scipy import stats


def mahalanobis_distance_squared(nu: np.ndarray, S: np.ndarray) -> float:
    """
    Normalized innovation squared νᵀ S⁻¹ ν.

    Args:
        nu: Innovation vector (m,).
        S: Innovation covariance (m × m), positive definite.

    Returns:
        d² as a float.

    Raises:
        ValueError: If shapes disagree or S cannot be inverted.

    Example:
        >>> mahalanobis_distance_squared(np.array([3.0, 4.0]), np.eye(2))
        25.0
    """
    nu = np.asarray(nu, dtype=float)
    S = np.asarray(S, dtype=float)
    if nu.ndim != 1:
        raise ValueError(f"Innovation must be 1D, got shape {nu.shape}")
    if S.shape != (nu.size, nu.size):
        raise ValueError(
            f"Innovation of size {nu.size} does not match covariance shape {S.shape}"
        )

    try:
        weighted = np.linalg.solve(S, nu)
    except np.linalg.LinAlgError as e:
        raise ValueError(f"Innovation covariance is singular: {e}") from e
    return float(nu @ weighted)


@lru_cache(maxsize=64)
def chi_square_threshold(dof: int, confidence: float = 0.95) -> float:
    """Quantile χ²(dof, confidence), e.g. 3.841 for (1, 0.95)."""
    if dof < 1:
        raise ValueError(f"dof must be >= 1, got {dof}")
    if not (0 < confidence < 1):
        raise ValueError(f"confidence must be in (0, 1), got {confidence}")
    return float(stats.chi2.ppf(confidence, dof))


def chi_square_gate(nu: np.ndarray, S: np.ndarray, confidence: float = 0.95) -> bool:
    """
    Accept (True) or reject (False) one innovation.

    A higher confidence widens the gate.
    """
    nu = np.atleast_1d(np.asarray(nu, dtype=float))
    threshold = chi_square_threshold(int(nu.size), float(confidence))
    return mahalanobis_distance_squared(nu, S) < threshold
