"""Command line entry point: fit a classifier on a CSV table and predict."""

from __future__ import annotations

import argparse
import hashlib
import json
import logging
import warnings
from pathlib import Path
from typing import Iterable

from nnclassifier import classifier
from nnclassifier.config import TrainingConfig, load_config, load_preset, presets
from nnclassifier.core.errors import OptimizerNonConvergence
from nnclassifier.data.tables import load_feature_csv, load_labelled_csv, write_predictions
from nnclassifier.reporting import CsvSink, JsonlSink, describe_model, write_manifest, write_summary

logger = logging.getLogger("nnclassifier.cli")

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(message)s"


def config_hash(config: dict) -> str:
    """Return a stable 12-character hash for ``config``."""

    canonical = json.dumps(config, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:12]


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--train", type=Path, help="CSV file with predictors and labels")
    parser.add_argument("--target", help="Name of the label column in the training CSV")
    parser.add_argument("--predict", type=Path, help="CSV file of rows to classify")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--config", type=Path, help="JSON/YAML training options")
    source.add_argument("--preset", choices=sorted(presets()), help="Named option preset")
    parser.add_argument("--seed", type=int, help="Seed for parameter initialisation")
    parser.add_argument(
        "--decision",
        choices=classifier.DECISIONS,
        default="argmax",
        help="Pick the most probable class or the one with the lowest expected cost",
    )
    parser.add_argument(
        "--output", type=Path, help="Predictions CSV (defaults to <run-dir>/predictions.csv)"
    )
    parser.add_argument(
        "--run-dir", type=Path, help="Directory for history and manifest (defaults to .artifacts/<hash>)"
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging")
    return parser.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> TrainingConfig:
    overrides = {} if args.seed is None else {"seed": int(args.seed)}
    if args.config:
        return load_config(args.config, **overrides)
    if args.preset:
        return load_preset(args.preset, **overrides)
    return TrainingConfig(**overrides)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.captureWarnings(True)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(presets()):
            print(name)
        raise SystemExit(0)

    if args.train is None or args.target is None:
        raise SystemExit("--train and --target are required")

    _configure_logging(args.verbose)
    table = load_labelled_csv(args.train, args.target)
    config = _resolve_config(args)
    if config.predictor_names is None:
        config = config.replace(predictor_names=table.predictor_names)
    if config.response_name == "Y":
        config = config.replace(response_name=table.response_name)

    config_dict = config.to_dict()
    run_dir = args.run_dir or Path(".artifacts") / config_hash(
        {"config": config_dict, "train": str(args.train)}
    )
    run_dir.mkdir(parents=True, exist_ok=True)
    metrics_path = run_dir / "history.jsonl"
    sinks = [JsonlSink(metrics_path, seed=config.seed), CsvSink(run_dir / "history.csv")]

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", OptimizerNonConvergence)
        model = classifier.fit(table.inputs, table.labels, config, callbacks=sinks)
    for warning in caught:
        logger.warning("%s", warning.message)

    train_metrics = classifier.evaluate(
        model, table.inputs[model.rows_used], table.labels[model.rows_used]
    )

    predictions_path = None
    if args.predict is not None:
        _, features = load_feature_csv(args.predict, model.predictor_names)
        probs = classifier.predict_proba(model, features)
        labels = classifier.predict(model, features, decision=args.decision)
        output = args.output or run_dir / "predictions.csv"
        predictions_path = write_predictions(
            output,
            labels,
            probs,
            model.classes.tolist(),
            response_name=model.response_name,
        )
        logger.info("Wrote %d predictions to %s", len(labels), predictions_path)

    manifest_path = write_manifest(
        run_dir / "manifest.json",
        config=config_dict,
        dataset_provenance={
            "train": str(args.train),
            "target": args.target,
            "rows": int(table.inputs.shape[0]),
            "rows_used": int(model.num_observations),
        },
        model=describe_model(model),
    )
    summary_path = write_summary(metrics_path, run_dir / "summary.json")

    payload = {
        "converged": model.convergence.converged,
        "iterations": model.convergence.iterations,
        "loss": model.convergence.loss,
        "train_metrics": dict(train_metrics),
        "history": str(metrics_path),
        "manifest": manifest_path,
        "summary": summary_path,
    }
    if predictions_path is not None:
        payload["predictions"] = predictions_path
        payload["decision"] = args.decision
    print(json.dumps(payload, sort_keys=True))


if __name__ == "__main__":
    main()
