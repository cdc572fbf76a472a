"""Per-era scoring of prediction tables.

Score tables are wide DataFrames:
- First column is the era label
- Remaining columns are one float score per model
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import polars as pl

from contriblab.config import ScoringConfig
from contriblab.exceptions import LengthMismatchError, ValidationError
from contriblab.metrics import (
    calculate_feature_neutralized_mmc,
    calculate_feature_neutralized_tc,
    calculate_mmc_batch,
    calculate_sharpe,
    calculate_tc_batch,
    create_stake_weighted_ensemble,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

METRICS = ("tc", "mmc")

# Era label column and value used when the table has no era column
ERA_LABEL_COL = "era"
ALL_ERAS = "all"


def _get_value_cols(df: pl.DataFrame) -> list[str]:
    """Get value columns (all except first which is the era)."""
    return df.columns[1:]


def _drop_missing(df: pl.DataFrame, cols: list[str]) -> pl.DataFrame:
    """Drop rows with a null or non-finite value in any of cols."""
    mask = pl.all_horizontal([
        pl.col(c).is_not_null() & pl.col(c).cast(pl.Float64).is_finite()
        for c in cols
    ])
    clean = df.filter(mask)
    dropped = df.height - clean.height
    if dropped:
        logger.warning(f"Dropped {dropped} of {df.height} rows with missing or non-finite values")
    return clean


def _score_block(
    block: pl.DataFrame,
    model_cols: list[str],
    returns_col: str,
    meta_col: str | None,
    stakes: np.ndarray,
    feature_cols: list[str],
    metric: str,
    config: ScoringConfig,
) -> np.ndarray:
    """Score every model column of one era."""
    preds = block.select(model_cols).to_numpy().astype(np.float64)
    target = block[returns_col].to_numpy().astype(np.float64)

    if meta_col is not None:
        meta = block[meta_col].to_numpy().astype(np.float64)
    else:
        meta = create_stake_weighted_ensemble(preds, stakes)

    if feature_cols:
        features = block.select(feature_cols).to_numpy().astype(np.float64)
        neutral_fn = (
            calculate_feature_neutralized_tc if metric == "tc" else calculate_feature_neutralized_mmc
        )
        return np.array([
            neutral_fn(preds[:, j], meta, target, features, quantile_method=config.quantile_method)
            for j in range(preds.shape[1])
        ], dtype=np.float64)

    batch_fn = calculate_tc_batch if metric == "tc" else calculate_mmc_batch
    return batch_fn(
        preds,
        meta,
        target,
        quantile_method=config.quantile_method,
        max_workers=config.max_workers,
    )


def score_eras(
    df: pl.DataFrame,
    model_cols: Sequence[str],
    returns_col: str,
    *,
    meta_col: str | None = None,
    stakes: Sequence[float] | None = None,
    era_col: str | None = None,
    feature_cols: Sequence[str] | None = None,
    metric: str = "tc",
    config: ScoringConfig | None = None,
) -> pl.DataFrame:
    """Score each model column per era.

    Args:
        df: Long table with one row per asset (and era)
        model_cols: Prediction columns, one per model
        returns_col: Realized returns or target column
        meta_col: Meta-model column. If None, the stake-weighted ensemble
            of model_cols is used
        stakes: Stake per model for the ensemble meta-model (default: equal)
        era_col: Era column. If None, the whole table is one era "all"
        feature_cols: If given, predictions are neutralized against these
            features before scoring
        metric: "tc" or "mmc"
        config: Scoring settings (quantile method, thread pool size)

    Returns:
        Wide DataFrame with the era column followed by one score column per model

    Raises:
        ValidationError: On unknown metric, no models, duplicate or colliding
            model columns, or missing columns
        LengthMismatchError: If len(stakes) != len(model_cols)

    Examples:
        >>> scores = score_eras(df, ["model_a", "model_b"], "target", era_col="era")
        >>> summarize_scores(scores)
    """
    config = config or ScoringConfig()
    if metric not in METRICS:
        raise ValidationError(f"Unknown metric: {metric!r} (expected one of {METRICS})")

    model_cols = list(model_cols)
    if not model_cols:
        raise ValidationError("At least one model column is required")
    if len(set(model_cols)) != len(model_cols):
        raise ValidationError(f"Duplicate model columns: {model_cols}")
    label_col = era_col or ERA_LABEL_COL
    if label_col in model_cols:
        raise ValidationError(f"Model column {label_col!r} collides with the era label column")
    feature_cols = list(feature_cols or [])

    used = [*model_cols, returns_col, *feature_cols]
    if meta_col is not None:
        used.append(meta_col)
    missing = [c for c in [*used, *([era_col] if era_col else [])] if c not in df.columns]
    if missing:
        raise ValidationError(f"Columns not found: {missing}")

    if stakes is None:
        stake_arr = np.ones(len(model_cols), dtype=np.float64)
    else:
        stake_arr = np.asarray(stakes, dtype=np.float64)
        if len(stake_arr) != len(model_cols):
            raise LengthMismatchError({"stakes": len(stake_arr), "models": len(model_cols)})

    clean = _drop_missing(df, used)

    if era_col is None:
        blocks = [(ALL_ERAS, clean)]
    else:
        blocks = [
            (part[era_col][0], part)
            for part in clean.partition_by(era_col, maintain_order=True)
        ]

    labels = []
    rows = []
    for label, block in blocks:
        labels.append(label)
        rows.append(_score_block(
            block, model_cols, returns_col, meta_col, stake_arr, feature_cols, metric, config
        ))

    result = np.vstack(rows) if rows else np.empty((0, len(model_cols)), dtype=np.float64)
    logger.info(f"Scored {len(model_cols)} models over {len(labels)} eras ({metric})")

    return pl.DataFrame({
        label_col: labels,
        **{col: result[:, j] for j, col in enumerate(model_cols)}
    })


def summarize_scores(scores: pl.DataFrame) -> pl.DataFrame:
    """Per-model mean, std, Sharpe and era count of a wide score table.

    Args:
        scores: Output of score_eras

    Returns:
        DataFrame with columns model, mean, std, sharpe, n_eras
    """
    value_cols = _get_value_cols(scores)
    means, stds, sharpes, counts = [], [], [], []

    for col in value_cols:
        values = scores[col].to_numpy().astype(np.float64)
        n = len(values)
        means.append(float(values.mean()) if n else 0.0)
        stds.append(float(values.std(ddof=1)) if n > 1 else 0.0)
        sharpes.append(calculate_sharpe(values))
        counts.append(n)

    return pl.DataFrame({
        "model": value_cols,
        "mean": means,
        "std": stds,
        "sharpe": sharpes,
        "n_eras": counts,
    })


def stake_weighted_score(summary: pl.DataFrame, stakes: Sequence[float]) -> float:
    """Ensemble score: stake-weighted average of per-model mean scores.

    Args:
        summary: Output of summarize_scores
        stakes: Non-negative stake per summary row, in row order

    Raises:
        LengthMismatchError: If len(stakes) != summary.height
        ValidationError: If stakes are negative or sum to zero
    """
    weights = np.asarray(stakes, dtype=np.float64)
    if len(weights) != summary.height:
        raise LengthMismatchError({"stakes": len(weights), "models": summary.height})
    if np.any(weights < 0):
        raise ValidationError("Stakes must be non-negative")
    total = weights.sum()
    if total == 0:
        raise ValidationError("Total stake cannot be zero")

    means = summary["mean"].to_numpy().astype(np.float64)
    return float(np.dot(means, weights / total))
