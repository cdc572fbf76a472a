"""Vector transforms behind the contribution metrics.

All transforms take 1-D vectors and return new float64 arrays:
- tie_kept_rank: 1-based ranks, ties broken by original position
- gaussianize: ranks mapped to standard-normal quantiles, re-standardized
- orthogonalize: remove the linear projection onto a reference vector
"""

import numpy as np
from scipy import stats

from contriblab.exceptions import ConfigurationError
from contriblab.metrics._numba_kernels import norm_inv_cdf_array
from contriblab.metrics._validation import as_vector, check_lengths

# Percentiles are clipped to [CLIP_EPSILON, 1 - CLIP_EPSILON]
CLIP_EPSILON = 1e-6

# Gaussianized output with std at or below this is left unscaled
STD_TOLERANCE = 1e-10

QUANTILE_METHODS = ("scipy", "acklam")


def tie_kept_rank(x) -> np.ndarray:
    """Rank values ascending, 1-based, keeping ties in original order.

    Every element gets a distinct integer rank. Among equal values the one
    seen first gets the smaller rank, so this is not average-rank ranking.

    Args:
        x: 1-D array-like of values

    Returns:
        float64 array of ranks in 1..n

    Examples:
        >>> tie_kept_rank([3.0, 1.0, 3.0, 2.0])  # [3.0, 1.0, 4.0, 2.0]
    """
    values = as_vector("x", x)
    n = len(values)
    ranks = np.empty(n, dtype=np.float64)
    if n == 0:
        return ranks

    order = np.argsort(values, kind="stable")
    ranks[order] = np.arange(1, n + 1, dtype=np.float64)
    return ranks


def normal_quantile(p, method: str = "scipy") -> np.ndarray:
    """Inverse standard-normal CDF applied element-wise.

    Args:
        p: 1-D array-like of probabilities in (0, 1)
        method: "scipy" for scipy.stats.norm.ppf, "acklam" for the
            numba-compiled rational approximation

    Returns:
        float64 array of quantiles, non-decreasing in p
    """
    probs = as_vector("p", p)
    if method == "scipy":
        return stats.norm.ppf(probs)
    if method == "acklam":
        return norm_inv_cdf_array(np.ascontiguousarray(probs))
    raise ConfigurationError(
        f"Unknown quantile method: {method!r} (expected one of {QUANTILE_METHODS})"
    )


def gaussianize(x, method: str = "scipy", epsilon: float = CLIP_EPSILON) -> np.ndarray:
    """Map values to standard-normal quantiles of their ranks.

    Steps:
        1. Tie-kept rank
        2. percentile = (rank - 0.5) / n, clipped to [epsilon, 1 - epsilon]
        3. Inverse normal CDF; non-finite results become 0.0
        4. Subtract mean and divide by sample std (skipped when std ~ 0)

    Output order matches input order exactly: a larger input value never
    receives a smaller quantile.

    Args:
        x: 1-D array-like of values (raw values or ranks)
        method: Quantile function, see normal_quantile
        epsilon: Percentile clipping bound

    Returns:
        float64 array with mean 0 and std 1; inputs of length <= 1 are
        returned as a float copy
    """
    values = as_vector("x", x)
    n = len(values)
    if n <= 1:
        return values.copy()

    ranks = tie_kept_rank(values)
    percentiles = (ranks - 0.5) / n
    np.clip(percentiles, epsilon, 1.0 - epsilon, out=percentiles)

    gaussianized = normal_quantile(percentiles, method)
    gaussianized[~np.isfinite(gaussianized)] = 0.0

    std = gaussianized.std(ddof=1)
    if std > STD_TOLERANCE:
        gaussianized = (gaussianized - gaussianized.mean()) / std

    return gaussianized


def orthogonalize(x, reference) -> np.ndarray:
    """Remove the component of x explained linearly by reference.

    Both vectors are centered, then the projection of x onto reference is
    subtracted: x_c - beta * ref_c with beta = <x_c, ref_c> / <ref_c, ref_c>.

    Args:
        x: 1-D array-like to orthogonalize
        reference: 1-D array-like of the same length

    Returns:
        Centered residual orthogonal to the centered reference. When the
        reference has no variance, or n <= 1, a float copy of x (uncentered)

    Raises:
        LengthMismatchError: If x and reference differ in length
    """
    values = as_vector("x", x)
    ref = as_vector("reference", reference)
    n = check_lengths(x=len(values), reference=len(ref))

    if n <= 1:
        return values.copy()
    # Exactly constant reference: centering may leave rounding residue
    if ref.max() == ref.min():
        return values.copy()

    x_centered = values - values.mean()
    ref_centered = ref - ref.mean()

    ref_norm_sq = np.dot(ref_centered, ref_centered)
    if ref_norm_sq == 0.0:
        return values.copy()

    beta = np.dot(x_centered, ref_centered) / ref_norm_sq
    # In-place to avoid a second full-length temporary
    x_centered -= beta * ref_centered
    return x_centered
