"""Contribution metrics for tournament predictions.

All metrics take 1-D vectors (one value per asset row) or
samples x models matrices and return floats or float arrays.
"""

from contriblab.profiler import profiled

# Import raw metrics with underscore prefix
from contriblab.metrics.contribution import (
    calculate_feature_neutralized_mmc as _calculate_feature_neutralized_mmc,
    calculate_feature_neutralized_tc as _calculate_feature_neutralized_tc,
    calculate_mmc as _calculate_mmc,
    calculate_mmc_batch as _calculate_mmc_batch,
    calculate_sharpe as _calculate_sharpe,
    calculate_tc as _calculate_tc,
    calculate_tc_batch as _calculate_tc_batch,
    contribution_score as _contribution_score,
    create_stake_weighted_ensemble as _create_stake_weighted_ensemble,
    pearson_correlation as _pearson_correlation,
)
from contriblab.metrics.neutralization import (
    era_neutralize as _era_neutralize,
    feature_exposures as _feature_exposures,
    feature_neutral_correlation as _feature_neutral_correlation,
    iterative_neutralize as _iterative_neutralize,
    l2_normalize as _l2_normalize,
    max_feature_exposure as _max_feature_exposure,
    neutralize as _neutralize,
)
from contriblab.metrics.transforms import (
    gaussianize as _gaussianize,
    normal_quantile as _normal_quantile,
    orthogonalize as _orthogonalize,
    tie_kept_rank as _tie_kept_rank,
)

# Wrap all metrics with profiler
# Transforms
tie_kept_rank = profiled(_tie_kept_rank)
normal_quantile = profiled(_normal_quantile)
gaussianize = profiled(_gaussianize)
orthogonalize = profiled(_orthogonalize)

# Contribution
calculate_tc = profiled(_calculate_tc)
calculate_tc_batch = profiled(_calculate_tc_batch)
calculate_feature_neutralized_tc = profiled(_calculate_feature_neutralized_tc)
calculate_mmc = profiled(_calculate_mmc)
calculate_mmc_batch = profiled(_calculate_mmc_batch)
calculate_feature_neutralized_mmc = profiled(_calculate_feature_neutralized_mmc)
contribution_score = profiled(_contribution_score)
calculate_sharpe = profiled(_calculate_sharpe)
create_stake_weighted_ensemble = profiled(_create_stake_weighted_ensemble)
pearson_correlation = profiled(_pearson_correlation)

# Neutralization
neutralize = profiled(_neutralize)
era_neutralize = profiled(_era_neutralize)
feature_exposures = profiled(_feature_exposures)
feature_neutral_correlation = profiled(_feature_neutral_correlation)
max_feature_exposure = profiled(_max_feature_exposure)
iterative_neutralize = profiled(_iterative_neutralize)
l2_normalize = profiled(_l2_normalize)

__all__ = [
    # Transforms
    "tie_kept_rank",
    "normal_quantile",
    "gaussianize",
    "orthogonalize",
    # True Contribution
    "calculate_tc",
    "calculate_tc_batch",
    "calculate_feature_neutralized_tc",
    # Meta Model Contribution
    "calculate_mmc",
    "calculate_mmc_batch",
    "calculate_feature_neutralized_mmc",
    # Other scores
    "contribution_score",
    "calculate_sharpe",
    "create_stake_weighted_ensemble",
    "pearson_correlation",
    # Neutralization
    "neutralize",
    "era_neutralize",
    "feature_exposures",
    "feature_neutral_correlation",
    "max_feature_exposure",
    "iterative_neutralize",
    "l2_normalize",
]
