"""
Scoring Configuration Loader
Loads TC scoring settings from configs/scoring.yaml, with environment overrides.

YAML layout:

    true_contribution:
      quantile_method: scipy   # or "acklam"
      max_workers: 8
    logging:
      log_dir: logs
      level: INFO
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

from contriblab.exceptions import ConfigurationError
from contriblab.metrics.transforms import QUANTILE_METHODS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "configs/scoring.yaml"


@dataclass(frozen=True)
class ScoringConfig:
    """Settings consumed by the evaluation layer and the CLI."""

    quantile_method: str = "scipy"
    max_workers: int = 8
    log_dir: str = "logs"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.quantile_method not in QUANTILE_METHODS:
            raise ConfigurationError(
                f"quantile_method must be one of {QUANTILE_METHODS}, got: {self.quantile_method!r}"
            )
        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be a positive integer, got: {self.max_workers!r}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level!r}")

    @property
    def level(self) -> int:
        """Numeric logging level."""
        return logging.getLevelName(self.log_level.upper())


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping at the top of {path}")
    return data


def load_config(config_path: str | Path | None = None) -> ScoringConfig:
    """
    Build a ScoringConfig from YAML and environment variables.

    Resolution order for the file: config_path, then $CONTRIBLAB_CONFIG,
    then configs/scoring.yaml. A missing file falls back to defaults.
    CONTRIBLAB_QUANTILE_METHOD and CONTRIBLAB_MAX_WORKERS override the file.

    :param config_path: Optional explicit path to the YAML file
    :return: Validated ScoringConfig
    :raises ConfigurationError: On malformed YAML or invalid values
    """
    load_dotenv()

    path = Path(config_path or os.getenv("CONTRIBLAB_CONFIG", DEFAULT_CONFIG_PATH))
    config = ScoringConfig()

    if path.exists():
        data = _read_yaml(path)
        tc_section = data.get('true_contribution', {}) or {}
        log_section = data.get('logging', {}) or {}
        config = replace(
            config,
            quantile_method=tc_section.get('quantile_method', config.quantile_method),
            max_workers=tc_section.get('max_workers', config.max_workers),
            log_dir=str(log_section.get('log_dir', config.log_dir)),
            log_level=str(log_section.get('level', config.log_level)),
        )
    else:
        logger.warning(f"Configuration file not found: {path}. Using defaults.")

    method = os.getenv("CONTRIBLAB_QUANTILE_METHOD")
    if method:
        config = replace(config, quantile_method=method)

    workers = os.getenv("CONTRIBLAB_MAX_WORKERS")
    if workers:
        try:
            config = replace(config, max_workers=int(workers))
        except ValueError as e:
            raise ConfigurationError(f"CONTRIBLAB_MAX_WORKERS must be an integer, got: {workers!r}") from e

    return config
