"""Command-line scorer for ContribLab.

Usage:
    clab --input preds.parquet --models model_a,model_b --returns target --era era
    clab --input preds.csv --feature-prefix feature_ --metric mmc --output scores.csv
"""

import argparse
import logging
from pathlib import Path

import polars as pl
from dotenv import load_dotenv

load_dotenv()


def _read_table(path: Path) -> pl.DataFrame:
    """Read a parquet or CSV prediction table."""
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.suffix == ".parquet":
        return pl.read_parquet(path)
    if path.suffix == ".csv":
        return pl.read_csv(path)
    raise ValueError(f"Unsupported input format: {path.suffix} (use .parquet or .csv)")


def _write_table(df: pl.DataFrame, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix == ".parquet":
        df.write_parquet(path)
    else:
        df.write_csv(path)


def _split(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def _resolve_features(df: pl.DataFrame, features: str | None, prefix: str | None) -> list[str]:
    cols = _split(features)
    if prefix:
        cols += [c for c in df.columns if c.startswith(prefix) and c not in cols]
    return cols


def _score(args, logger) -> None:
    """Score the input table and report per-model summaries."""
    from contriblab.evaluation import score_eras, stake_weighted_score, summarize_scores
    from contriblab.utils.logger import console_log

    df = _read_table(Path(args.input))
    models = _split(args.models)
    if not models:
        models = [c for c in df.columns if c.startswith(args.model_prefix)]
    if not models:
        raise ValueError("No model columns given (use --models or --model-prefix)")

    features = _resolve_features(df, args.features, args.feature_prefix)
    stakes = [float(s) for s in _split(args.stakes)] or None

    console_log(logger, f"Scoring {len(models)} models ({args.metric.upper()})", section=True)
    scores = score_eras(
        df,
        models,
        args.returns,
        meta_col=args.meta,
        stakes=stakes,
        era_col=args.era,
        feature_cols=features,
        metric=args.metric,
        config=args.scoring_config,
    )
    summary = summarize_scores(scores)

    for row in summary.iter_rows(named=True):
        logger.info(
            f"{row['model']:<24} mean={row['mean']:+.4f} std={row['std']:.4f} "
            f"sharpe={row['sharpe']:+.3f} eras={row['n_eras']}"
        )

    if stakes is not None:
        logger.info(f"Stake-weighted {args.metric.upper()}: {stake_weighted_score(summary, stakes):+.4f}")

    if args.output:
        _write_table(scores, Path(args.output))
        logger.info(f"Wrote per-era scores to {args.output}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="ContribLab CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--input", required=True,
                        help="Prediction table (.parquet or .csv)")
    parser.add_argument("--models", default=None,
                        help="Comma-separated model prediction columns")
    parser.add_argument("--model-prefix", default="prediction",
                        help="Prefix of model columns when --models is not given")
    parser.add_argument("--returns", default="target",
                        help="Returns/target column (default: target)")
    parser.add_argument("--meta", default=None,
                        help="Meta-model column (default: stake-weighted ensemble)")
    parser.add_argument("--era", default=None,
                        help="Era column (default: score the whole table once)")
    parser.add_argument("--features", default=None,
                        help="Comma-separated feature columns to neutralize against")
    parser.add_argument("--feature-prefix", default=None,
                        help="Neutralize against all columns with this prefix")
    parser.add_argument("--metric", choices=["tc", "mmc"], default="tc")
    parser.add_argument("--stakes", default=None,
                        help="Comma-separated stakes, one per model")
    parser.add_argument("--config", default=None,
                        help="Path to scoring YAML (default: configs/scoring.yaml)")
    parser.add_argument("--output", default=None,
                        help="Write per-era scores (.parquet or .csv)")

    args = parser.parse_args(argv)

    from contriblab.config import load_config
    from contriblab.utils.logger import setup_logger

    config = load_config(args.config)
    args.scoring_config = config

    logger = setup_logger(
        name="clab",
        log_dir=Path(config.log_dir),
        level=config.level,
        console_output=True,
    )

    _score(args, logger)


if __name__ == "__main__":
    main()
