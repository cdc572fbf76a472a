"""Input coercion and shape checks shared by the metric modules."""

import numpy as np

from contriblab.exceptions import LengthMismatchError, ValidationError


def as_vector(name: str, x) -> np.ndarray:
    """Convert an array-like to a 1-D float64 array without copying when possible."""
    values = np.asarray(x, dtype=np.float64)
    if values.ndim != 1:
        raise ValidationError(f"{name} must be 1-D, got shape {values.shape}")
    return values


def as_matrix(name: str, x) -> np.ndarray:
    """Convert an array-like to a 2-D float64 array (samples on axis 0).

    A 1-D input is treated as a single column.
    """
    values = np.asarray(x, dtype=np.float64)
    if values.ndim == 1:
        values = values.reshape(-1, 1)
    if values.ndim != 2:
        raise ValidationError(f"{name} must be 2-D, got shape {values.shape}")
    return values


def check_lengths(**lengths: int) -> int:
    """Raise LengthMismatchError unless every named length is equal.

    Returns:
        The shared length
    """
    distinct = set(lengths.values())
    if len(distinct) > 1:
        raise LengthMismatchError(lengths)
    return next(iter(distinct)) if distinct else 0
