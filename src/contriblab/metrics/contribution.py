"""Contribution metrics: True Contribution (TC), MMC and related scores.

TC measures how well a model's predictions line up with the part of realized
returns that the meta-model does not already explain:

    p  = gaussianize(tie_kept_rank(predictions))
    r⊥ = orthogonalize(returns, meta_model)
    tc = corr(p, r⊥)

Degenerate inputs (n <= 1, returns with no variance left after removing the
meta-model, NaN correlation) score exactly 0.0 instead of propagating NaN.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

import numpy as np

from contriblab.exceptions import LengthMismatchError, ValidationError
from contriblab.metrics._validation import as_matrix, as_vector, check_lengths
from contriblab.metrics.neutralization import neutralize
from contriblab.metrics.transforms import gaussianize, orthogonalize, tie_kept_rank

logger = logging.getLogger(__name__)

# Residual std at or below RESIDUAL_TOLERANCE * max|returns - mean| counts as zero
RESIDUAL_TOLERANCE = 1e-12

# Neutralized predictions with spread at or below NEUTRAL_TOLERANCE times the
# input spread are rounding noise
NEUTRAL_TOLERANCE = 1e-10

# Thread pool for column-parallel batch scoring
_MAX_WORKERS = 8
_PARALLEL_MIN_MODELS = 4


def _is_constant(values: np.ndarray) -> bool:
    return len(values) == 0 or values.max() == values.min()


def _spread(values: np.ndarray) -> float:
    """Largest absolute deviation from the mean."""
    return float(np.max(np.abs(values - values.mean())))


def pearson_correlation(x, y) -> float:
    """Pearson correlation clipped to [-1, 1].

    Returns 0.0 when n <= 1, when either side is constant, or when the
    result is not finite.
    """
    a = as_vector("x", x)
    b = as_vector("y", y)
    n = check_lengths(x=len(a), y=len(b))
    if n <= 1 or _is_constant(a) or _is_constant(b):
        return 0.0

    a_centered = a - a.mean()
    b_centered = b - b.mean()
    # Norms taken separately so their product cannot overflow
    denom = np.sqrt(np.dot(a_centered, a_centered)) * np.sqrt(np.dot(b_centered, b_centered))
    if denom == 0.0 or not np.isfinite(denom):
        return 0.0

    corr = np.dot(a_centered, b_centered) / denom
    if not np.isfinite(corr):
        return 0.0
    return float(np.clip(corr, -1.0, 1.0))


def _orthogonal_returns(meta_model: np.ndarray, returns: np.ndarray) -> np.ndarray | None:
    """Returns orthogonalized against the meta-model, or None when degenerate."""
    if _is_constant(returns):
        logger.debug("Returns are constant, TC is 0.0")
        return None

    residual = orthogonalize(returns, meta_model)
    if residual.std() <= RESIDUAL_TOLERANCE * _spread(returns):
        logger.debug("Orthogonalized returns have no variance, TC is 0.0")
        return None
    return residual


def _tc_from_residual(
    predictions: np.ndarray,
    residual: np.ndarray,
    quantile_method: str,
) -> float:
    p = gaussianize(tie_kept_rank(predictions), method=quantile_method)
    return pearson_correlation(p, residual)


def _map_columns(
    func: Callable[[np.ndarray], float],
    matrix: np.ndarray,
    max_workers: int,
) -> np.ndarray:
    """Apply func to every column, in parallel for wide matrices."""
    n_models = matrix.shape[1]
    columns = [matrix[:, j] for j in range(n_models)]

    if n_models >= _PARALLEL_MIN_MODELS and max_workers > 1:
        with ThreadPoolExecutor(max_workers=min(max_workers, n_models)) as executor:
            results = list(executor.map(func, columns))
    else:
        results = [func(col) for col in columns]

    return np.array(results, dtype=np.float64)


def calculate_tc(predictions, meta_model, returns, *, quantile_method: str = "scipy") -> float:
    """True Contribution of one model's predictions.

    Args:
        predictions: Model predictions, one per row
        meta_model: Meta-model predictions, same length
        returns: Realized returns or targets, same length
        quantile_method: Quantile function used by gaussianize

    Returns:
        Correlation in [-1, 1], or 0.0 for degenerate inputs

    Raises:
        LengthMismatchError: If the three vectors differ in length

    Examples:
        >>> calculate_tc([1, 2, 3, 4, 5], [0.5, 1.5, 2.5, 3.5, 4.5], [1, 2, 3, 4, 5])
    """
    preds = as_vector("predictions", predictions)
    meta = as_vector("meta_model", meta_model)
    rets = as_vector("returns", returns)
    n = check_lengths(predictions=len(preds), meta_model=len(meta), returns=len(rets))

    if n <= 1:
        return 0.0

    residual = _orthogonal_returns(meta, rets)
    if residual is None:
        return 0.0
    return _tc_from_residual(preds, residual, quantile_method)


def calculate_tc_batch(
    predictions_matrix,
    meta_model,
    returns,
    *,
    quantile_method: str = "scipy",
    max_workers: int = _MAX_WORKERS,
) -> np.ndarray:
    """True Contribution for every model column of a predictions matrix.

    Each score equals calculate_tc on that column exactly. The meta-model
    residual of the returns is computed once and shared read-only.

    Args:
        predictions_matrix: n_samples x n_models matrix
        meta_model: Meta-model vector of length n_samples
        returns: Returns vector of length n_samples
        quantile_method: Quantile function used by gaussianize
        max_workers: Thread pool size for column-parallel scoring

    Returns:
        Array of n_models TC scores

    Raises:
        ValidationError: If predictions_matrix is not 2-D
        LengthMismatchError: If row counts differ
    """
    matrix = np.asarray(predictions_matrix, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValidationError(f"predictions_matrix must be 2-D, got shape {matrix.shape}")
    meta = as_vector("meta_model", meta_model)
    rets = as_vector("returns", returns)
    n = check_lengths(predictions_matrix=matrix.shape[0], meta_model=len(meta), returns=len(rets))

    n_models = matrix.shape[1]
    if n <= 1:
        return np.zeros(n_models, dtype=np.float64)

    residual = _orthogonal_returns(meta, rets)
    if residual is None:
        return np.zeros(n_models, dtype=np.float64)

    def score_column(col: np.ndarray) -> float:
        return _tc_from_residual(col, residual, quantile_method)

    return _map_columns(score_column, matrix, max_workers)


def _feature_neutral(predictions: np.ndarray, features: np.ndarray) -> np.ndarray | None:
    """Predictions fully neutralized against features.

    Returns None when predictions with real spread lie entirely in the
    feature span, leaving only rounding noise to rank.
    """
    neutral = neutralize(predictions, features, proportion=1.0)
    spread = _spread(predictions)
    if spread > 0.0 and _spread(neutral) <= NEUTRAL_TOLERANCE * spread:
        logger.debug("Predictions lie in the feature span, score is 0.0")
        return None
    return neutral


def calculate_feature_neutralized_tc(
    predictions,
    meta_model,
    returns,
    features,
    *,
    quantile_method: str = "scipy",
) -> float:
    """TC of predictions after neutralizing them against a feature matrix.

    Predictions are replaced by their least-squares residual on features
    before scoring. With zero feature columns this is calculate_tc.
    Predictions that lie entirely in the feature span score 0.0.

    Raises:
        LengthMismatchError: If features does not have one row per prediction
    """
    preds = as_vector("predictions", predictions)
    meta = as_vector("meta_model", meta_model)
    rets = as_vector("returns", returns)
    matrix = as_matrix("features", features)
    check_lengths(
        predictions=len(preds),
        meta_model=len(meta),
        returns=len(rets),
        features=matrix.shape[0],
    )

    if matrix.shape[1] > 0 and len(preds) > 1:
        preds = _feature_neutral(preds, matrix)
        if preds is None:
            return 0.0
    return calculate_tc(preds, meta, rets, quantile_method=quantile_method)


def _mmc_reference(meta: np.ndarray, quantile_method: str) -> np.ndarray | None:
    """Gaussianized meta-model, or None when the meta-model is constant."""
    if _is_constant(meta):
        return None
    return gaussianize(tie_kept_rank(meta), method=quantile_method)


def _mmc_from_reference(
    predictions: np.ndarray,
    reference: np.ndarray | None,
    centered_targets: np.ndarray,
    quantile_method: str,
) -> float:
    p = gaussianize(tie_kept_rank(predictions), method=quantile_method)
    neutral = p if reference is None else orthogonalize(p, reference)
    mmc = np.dot(neutral, centered_targets) / len(centered_targets)
    return float(mmc) if np.isfinite(mmc) else 0.0


def calculate_mmc(predictions, meta_model, targets, *, quantile_method: str = "scipy") -> float:
    """Meta Model Contribution of one model's predictions.

    Gaussianized predictions are orthogonalized against the gaussianized
    meta-model; MMC is the covariance of that residual with centered targets.
    A constant meta-model is not orthogonalized against.

    Raises:
        LengthMismatchError: If the three vectors differ in length
    """
    preds = as_vector("predictions", predictions)
    meta = as_vector("meta_model", meta_model)
    tgts = as_vector("targets", targets)
    n = check_lengths(predictions=len(preds), meta_model=len(meta), targets=len(tgts))

    if n <= 1:
        return 0.0

    reference = _mmc_reference(meta, quantile_method)
    return _mmc_from_reference(preds, reference, tgts - tgts.mean(), quantile_method)


def calculate_mmc_batch(
    predictions_matrix,
    meta_model,
    targets,
    *,
    quantile_method: str = "scipy",
    max_workers: int = _MAX_WORKERS,
) -> np.ndarray:
    """MMC for every model column of a predictions matrix."""
    matrix = np.asarray(predictions_matrix, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValidationError(f"predictions_matrix must be 2-D, got shape {matrix.shape}")
    meta = as_vector("meta_model", meta_model)
    tgts = as_vector("targets", targets)
    n = check_lengths(predictions_matrix=matrix.shape[0], meta_model=len(meta), targets=len(tgts))

    if n <= 1:
        return np.zeros(matrix.shape[1], dtype=np.float64)

    reference = _mmc_reference(meta, quantile_method)
    centered_targets = tgts - tgts.mean()

    def score_column(col: np.ndarray) -> float:
        return _mmc_from_reference(col, reference, centered_targets, quantile_method)

    return _map_columns(score_column, matrix, max_workers)


def calculate_feature_neutralized_mmc(
    predictions,
    meta_model,
    targets,
    features,
    *,
    quantile_method: str = "scipy",
) -> float:
    """MMC of predictions after neutralizing them against a feature matrix."""
    preds = as_vector("predictions", predictions)
    meta = as_vector("meta_model", meta_model)
    tgts = as_vector("targets", targets)
    matrix = as_matrix("features", features)
    check_lengths(
        predictions=len(preds),
        meta_model=len(meta),
        targets=len(tgts),
        features=matrix.shape[0],
    )

    if matrix.shape[1] > 0 and len(preds) > 1:
        preds = _feature_neutral(preds, matrix)
        if preds is None:
            return 0.0
    return calculate_mmc(preds, meta, tgts, quantile_method=quantile_method)


def contribution_score(predictions, targets) -> float:
    """Plain Pearson correlation between predictions and targets."""
    preds = as_vector("predictions", predictions)
    tgts = as_vector("targets", targets)
    check_lengths(predictions=len(preds), targets=len(tgts))
    return pearson_correlation(preds, tgts)


def calculate_sharpe(returns) -> float:
    """Sharpe ratio (mean / sample std, zero risk-free rate).

    Constant returns give +inf, -inf or 0.0 according to the sign of the mean.
    """
    values = as_vector("returns", returns)
    if len(values) <= 1:
        return 0.0

    mean = values.mean()
    if _is_constant(values):
        if mean > 0:
            return float("inf")
        if mean < 0:
            return float("-inf")
        return 0.0

    sharpe = mean / values.std(ddof=1)
    return 0.0 if np.isnan(sharpe) else float(sharpe)


def create_stake_weighted_ensemble(predictions_matrix, stakes) -> np.ndarray:
    """Meta-model as the stake-weighted average of model predictions.

    Args:
        predictions_matrix: n_samples x n_models matrix
        stakes: Non-negative stake per model (normalized to sum to 1)

    Returns:
        Meta-model vector of length n_samples

    Raises:
        LengthMismatchError: If len(stakes) != n_models
        ValidationError: If any stake is negative or all stakes are zero
    """
    matrix = as_matrix("predictions_matrix", predictions_matrix)
    weights = as_vector("stakes", stakes)
    if len(weights) != matrix.shape[1]:
        raise LengthMismatchError({"stakes": len(weights), "models": matrix.shape[1]})
    if np.any(weights < 0):
        raise ValidationError("Stakes must be non-negative")

    total = weights.sum()
    if total == 0:
        raise ValidationError("Total stake cannot be zero")

    return matrix @ (weights / total)
