"""Numba-optimized kernels for contribution metrics.

Contains:
- Inverse normal CDF: Acklam rational approximation, scalar and vectorized
"""

import numpy as np
from numba import njit


@njit(cache=True)
def norm_inv_cdf(p: float) -> float:
    """Acklam rational approximation for the inverse normal CDF.

    Relative error below 1.15e-9 on (0, 1). The jump where the three
    regions meet at p_low and p_high is of the same order, far below the
    spacing of percentiles (rank - 0.5) / n for any practical n.

    Returns NaN for p <= 0 or p >= 1.
    """
    if p <= 0.0 or p >= 1.0:
        return np.nan

    # Central region coefficients
    a0, a1, a2, a3, a4, a5 = (
        -3.969683028665376e01, 2.209460984245205e02, -2.759285104469687e02,
        1.383577518672690e02, -3.066479806614716e01, 2.506628277459239e00,
    )
    b0, b1, b2, b3, b4 = (
        -5.447609879822406e01, 1.615858368580409e02, -1.556989798598866e02,
        6.680131188771972e01, -1.328068155288572e01,
    )
    # Tail region coefficients
    c0, c1, c2, c3, c4, c5 = (
        -7.784894002430293e-03, -3.223964580411365e-01, -2.400758277161838e00,
        -2.549732539343734e00, 4.374664141464968e00, 2.938163982698783e00,
    )
    d0, d1, d2, d3 = (
        7.784695709041462e-03, 3.224671290700398e-01,
        2.445134137142996e00, 3.754408661907416e00,
    )

    p_low = 0.02425
    p_high = 1.0 - p_low

    if p < p_low:
        q = np.sqrt(-2.0 * np.log(p))
        numer = ((((c0 * q + c1) * q + c2) * q + c3) * q + c4) * q + c5
        denom = (((d0 * q + d1) * q + d2) * q + d3) * q + 1.0
        return numer / denom
    elif p <= p_high:
        q = p - 0.5
        r = q * q
        numer = (((((a0 * r + a1) * r + a2) * r + a3) * r + a4) * r + a5) * q
        denom = ((((b0 * r + b1) * r + b2) * r + b3) * r + b4) * r + 1.0
        return numer / denom
    else:
        # Upper tail mirrors the lower tail
        q = np.sqrt(-2.0 * np.log(1.0 - p))
        numer = ((((c0 * q + c1) * q + c2) * q + c3) * q + c4) * q + c5
        denom = (((d0 * q + d1) * q + d2) * q + d3) * q + 1.0
        return -numer / denom


@njit(cache=True)
def norm_inv_cdf_array(p: np.ndarray) -> np.ndarray:
    """Apply norm_inv_cdf element-wise to a 1-D array of probabilities."""
    n = len(p)
    result = np.empty(n, dtype=np.float64)
    for i in range(n):
        result[i] = norm_inv_cdf(p[i])
    return result
