"""Feature neutralization for prediction vectors.

Predictions are regressed on a feature matrix (samples x features, intercept
included) and some or all of the feature-explained component is removed.
"""

import logging

import numpy as np

from contriblab.exceptions import ValidationError
from contriblab.metrics._validation import as_matrix, as_vector, check_lengths

logger = logging.getLogger(__name__)


def _prepare(predictions, features) -> tuple[np.ndarray, np.ndarray]:
    """Coerce inputs and check that features has one row per prediction."""
    values = as_vector("predictions", predictions)
    matrix = as_matrix("features", features)
    check_lengths(predictions=len(values), features=matrix.shape[0])
    return values, matrix


def _centered_fit(values: np.ndarray, matrix: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Least-squares fit of centered values on centered features.

    Returns:
        (centered features, coefficients)
    """
    features_centered = matrix - matrix.mean(axis=0)
    values_centered = values - values.mean()
    coefs, *_ = np.linalg.lstsq(features_centered, values_centered, rcond=None)
    return features_centered, coefs


def feature_exposures(predictions, features) -> np.ndarray:
    """Regression coefficients of predictions on each feature.

    Args:
        predictions: 1-D array-like of length n
        features: n x k matrix

    Returns:
        Array of k exposures (zeros when n <= 1)
    """
    values, matrix = _prepare(predictions, features)
    if len(values) <= 1 or matrix.shape[1] == 0:
        return np.zeros(matrix.shape[1], dtype=np.float64)
    _, coefs = _centered_fit(values, matrix)
    return coefs


def neutralize(predictions, features, proportion: float = 1.0) -> np.ndarray:
    """Remove a proportion of the feature-explained component of predictions.

    With proportion=1.0 this is the linear-regression residual of predictions
    on features, shifted back to the original prediction mean.

    Args:
        predictions: 1-D array-like of length n
        features: n x k matrix
        proportion: Fraction of the fitted component to subtract, in [0, 1]

    Returns:
        New float64 array of neutralized predictions

    Raises:
        ValidationError: If proportion is outside [0, 1]
        LengthMismatchError: If features does not have n rows
    """
    if not 0.0 <= proportion <= 1.0:
        raise ValidationError(f"proportion must be in [0, 1], got: {proportion}")

    values, matrix = _prepare(predictions, features)
    if proportion == 0.0 or matrix.shape[1] == 0 or len(values) <= 1:
        return values.copy()

    features_centered, coefs = _centered_fit(values, matrix)
    return values - proportion * (features_centered @ coefs)


def era_neutralize(predictions, features, eras, proportion: float = 0.5) -> np.ndarray:
    """Neutralize predictions separately within each era.

    Args:
        predictions: 1-D array-like of length n
        features: n x k matrix
        eras: 1-D array-like of n era labels
        proportion: Fraction of the fitted component to subtract per era

    Returns:
        New float64 array of neutralized predictions, in input order
    """
    values, matrix = _prepare(predictions, features)
    labels = np.asarray(eras)
    check_lengths(predictions=len(values), eras=len(labels))

    result = np.empty_like(values)
    if len(values) == 0:
        return result

    _, inverse = np.unique(labels, return_inverse=True)
    inverse = inverse.reshape(-1)
    for group in range(inverse.max() + 1):
        mask = inverse == group
        result[mask] = neutralize(values[mask], matrix[mask], proportion=proportion)
    return result


def feature_neutral_correlation(predictions, features, target) -> float:
    """Pearson correlation of fully neutralized predictions with target."""
    from contriblab.metrics.contribution import pearson_correlation

    neutralized = neutralize(predictions, features, proportion=1.0)
    target_values = as_vector("target", target)
    check_lengths(predictions=len(neutralized), target=len(target_values))
    return pearson_correlation(neutralized, target_values)


def max_feature_exposure(predictions, features) -> float:
    """Largest absolute feature exposure (0.0 with no features)."""
    exposures = feature_exposures(predictions, features)
    if len(exposures) == 0:
        return 0.0
    return float(np.max(np.abs(exposures)))


def iterative_neutralize(
    predictions,
    features,
    max_iterations: int = 10,
    tolerance: float = 0.01,
) -> np.ndarray:
    """Neutralize in 10% steps until the max exposure drops below tolerance.

    Args:
        predictions: 1-D array-like of length n
        features: n x k matrix
        max_iterations: Upper bound on neutralization steps
        tolerance: Stop once max |exposure| is below this

    Returns:
        New float64 array of neutralized predictions
    """
    current, matrix = _prepare(predictions, features)
    current = current.copy()

    for i in range(max_iterations):
        exposure = max_feature_exposure(current, matrix)
        if exposure < tolerance:
            logger.debug(f"Exposure {exposure:.4g} below tolerance after {i} steps")
            break
        current = neutralize(current, matrix, proportion=0.1)

    return current


def l2_normalize(x) -> np.ndarray:
    """Scale a vector to unit L2 norm; a zero vector is returned as a copy."""
    values = as_vector("x", x)
    norm = np.sqrt(np.dot(values, values))
    if norm == 0.0:
        return values.copy()
    return values / norm
