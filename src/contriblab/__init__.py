"""ContribLab: True Contribution scoring for tournament predictions."""

from contriblab import metrics
from contriblab.config import ScoringConfig, load_config
from contriblab.evaluation import score_eras, stake_weighted_score, summarize_scores
from contriblab.exceptions import (
    ConfigurationError,
    ContribLabError,
    LengthMismatchError,
    ValidationError,
)
from contriblab.metrics import (
    calculate_feature_neutralized_tc,
    calculate_tc,
    calculate_tc_batch,
)
from contriblab.profiler import profile

__all__ = [
    "calculate_tc",
    "calculate_tc_batch",
    "calculate_feature_neutralized_tc",
    "metrics",
    "score_eras",
    "summarize_scores",
    "stake_weighted_score",
    "ScoringConfig",
    "load_config",
    "ContribLabError",
    "ValidationError",
    "LengthMismatchError",
    "ConfigurationError",
    "profile",
]
