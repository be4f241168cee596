from __future__ import annotations

"""
CLI entrypoint for the Long COVID analysis: clean the survey, fit the full
model on the training split, score it on the holdout set, then compare all
model specifications with 10-fold cross-validation.
"""

import argparse
import sys
from pathlib import Path

import pandas as pd
from loguru import logger

from long_covid import (
    FULL_MODEL,
    MODEL_SPECIFICATIONS,
    OUTCOME,
    aggregate,
    auc_table,
    brier_table,
    build_survey_dataset,
    evaluate_holdout,
    fit_model,
    split_train_holdout,
)
from long_covid.constants import (
    CLASS_THRESHOLD,
    FOLD_SEED,
    N_FOLDS,
    REFERENCE_YEAR,
    SPLIT_SEED,
    TRAIN_PROPORTION,
)
from long_covid.cross_validation import (
    EVALUATION_MODES,
    HOLDOUT_FOLDS,
    TRAINING_FOLDS,
    run_evaluation_mode,
)
from long_covid.errors import AnalysisError, NonConvergenceError
from long_covid.logging_utils import setup_logging
from long_covid.metrics import base_rate_brier, fold_metrics, partial_fold_counts
from long_covid.plots import plot_age_distribution, plot_predicted_probabilities, plot_roc_curve

MODE_TITLES = {
    TRAINING_FOLDS: "Cross-validation on training folds",
    HOLDOUT_FOLDS: "Cross-validation on holdout-derived folds (models fitted on holdout rows)",
}


def describe_dataset(meta: dict, train: pd.DataFrame, holdout: pd.DataFrame):
    """Print a short summary of dataset size, cleaning and split."""
    print(f"Survey rows: {meta['num_raw']}, after cleaning: {meta['num_rows']}")
    print(
        f"Dropped: {meta['dropped_never_had_covid']} never had COVID-19, "
        f"{meta['dropped_missing']} with missing fields"
    )
    print(f"Long COVID positive rate: {meta['positive_rate']:.3f}")
    print(f"Train size: {len(train)}, Holdout size: {len(holdout)}")


def print_holdout_evaluation(label: str, evaluation: dict):
    print(
        f"[{label}] Acc {evaluation['accuracy']:.3f} | "
        f"ROC-AUC {evaluation['roc_auc']:.3f} | Brier {evaluation['brier']:.3f}"
    )
    print("    Confusion matrix (rows: actual, columns: predicted):")
    print(evaluation["confusion_matrix"].to_string())


def print_score_table(title: str, table: pd.DataFrame, partial: pd.Series, n_folds: int):
    print(f"\n{title}")
    print(table.to_string(index=False, float_format=lambda v: f"{v:.4f}", na_rep="missing"))
    if len(partial):
        counts = ", ".join(f"{name} ({count}/{n_folds})" for name, count in partial.items())
        print(f"    Mean over fewer than {n_folds} folds: {counts}")


def build_arg_parser():
    """CLI parser with knobs for cleaning, splits, folds and output."""
    parser = argparse.ArgumentParser(
        description="Compare logistic regression models predicting Long COVID from survey answers."
    )
    parser.add_argument("--csv-path", type=Path, default=Path("data/survey.csv"))
    parser.add_argument(
        "--reference-year",
        type=int,
        default=REFERENCE_YEAR,
        help="Year used to derive age from birth_year.",
    )
    parser.add_argument("--train-proportion", type=float, default=TRAIN_PROPORTION)
    parser.add_argument("--folds", type=int, default=N_FOLDS, help="Number of cross-validation folds.")
    parser.add_argument("--split-seed", type=int, default=SPLIT_SEED, help="Seed for the train/holdout split.")
    parser.add_argument("--fold-seed", type=int, default=FOLD_SEED, help="Seed for fold assignment.")
    parser.add_argument(
        "--threshold",
        type=float,
        default=CLASS_THRESHOLD,
        help="Predict 'Yes' when P(Yes) exceeds this value.",
    )
    parser.add_argument(
        "--modes",
        type=str,
        default=",".join(EVALUATION_MODES),
        help="Comma-separated cross-validation passes: training_folds, holdout_folds.",
    )
    parser.add_argument("--n-jobs", type=int, default=1, help="joblib workers for cross-validation fits.")
    parser.add_argument("--plots-dir", type=Path, default=None, help="Write PNG plots here when set.")
    parser.add_argument("--log-level", type=str, default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    return parser


def run_holdout_fit(train: pd.DataFrame, holdout: pd.DataFrame, threshold: float):
    """Fit the full specification on the whole training set and score the holdout."""
    model = fit_model(train, FULL_MODEL, MODEL_SPECIFICATIONS[FULL_MODEL])
    probs = model.predict(holdout)
    evaluation = evaluate_holdout(holdout[OUTCOME].astype(str), probs, threshold=threshold)
    return model, probs, evaluation


def run_cross_validation(mode: str, train: pd.DataFrame, holdout: pd.DataFrame, args: argparse.Namespace):
    predictions = run_evaluation_mode(
        mode, train, holdout, k=args.folds, seed=args.fold_seed, n_jobs=args.n_jobs
    )
    per_fold = fold_metrics(predictions)
    return {
        "predictions": predictions,
        "fold_metrics": per_fold,
        "summary": aggregate(predictions),
        "n_folds": int(per_fold["fold"].nunique()),
    }


def write_plots(plots_dir: Path, dataset: pd.DataFrame, holdout: pd.DataFrame, probs):
    plots_dir.mkdir(parents=True, exist_ok=True)
    actual = holdout[OUTCOME].astype(str)
    plot_age_distribution(dataset, plots_dir / "age_distribution.png")
    if probs is None:
        logger.warning("Skipping holdout plots: no full model predictions")
        return
    plot_predicted_probabilities(actual, probs, plots_dir / "predicted_probabilities.png")
    try:
        plot_roc_curve(actual, probs, plots_dir / "roc_curve.png")
    except AnalysisError as exc:
        logger.warning("Skipping ROC curve: {}", exc)
    logger.info("Plots written to {}", plots_dir)


def run_analysis(args: argparse.Namespace) -> dict:
    """Run the whole pipeline and return every intermediate result."""
    modes = [m.strip() for m in args.modes.split(",") if m.strip()]
    unknown = [m for m in modes if m not in EVALUATION_MODES]
    if unknown:
        raise ValueError(f"Unknown evaluation modes: {unknown}")

    dataset, meta = build_survey_dataset(args.csv_path, reference_year=args.reference_year)
    train, holdout = split_train_holdout(dataset, proportion=args.train_proportion, seed=args.split_seed)

    try:
        model, probs, evaluation = run_holdout_fit(train, holdout, args.threshold)
    except NonConvergenceError as exc:
        logger.warning("Full model fit failed, holdout evaluation left missing ({})", exc)
        model = probs = evaluation = None

    cross_validation = {}
    for mode in modes:
        if mode == HOLDOUT_FOLDS and args.folds > len(holdout):
            logger.warning("Skipping {}: {} folds exceed {} holdout rows", mode, args.folds, len(holdout))
            continue
        cross_validation[mode] = run_cross_validation(mode, train, holdout, args)

    if args.plots_dir is not None:
        write_plots(args.plots_dir, dataset, holdout, probs)

    return {
        "dataset": dataset,
        "meta": meta,
        "train": train,
        "holdout": holdout,
        "full_model": model,
        "holdout_probabilities": probs,
        "holdout_evaluation": evaluation,
        "cross_validation": cross_validation,
    }


def print_report(results: dict):
    describe_dataset(results["meta"], results["train"], results["holdout"])

    if results["full_model"] is None:
        print(f"\nFull model ({FULL_MODEL}) could not be fitted; holdout evaluation missing")
    else:
        print(f"\nFull model coefficients ({FULL_MODEL}):")
        print(results["full_model"].coefficient_table().to_string(float_format=lambda v: f"{v:.4f}"))
        print()
        print_holdout_evaluation("Full model, holdout", results["holdout_evaluation"])
    print(f"Reference Brier p(1-p) on training outcome: {base_rate_brier(results['train'][OUTCOME].astype(str)):.4f}")

    for mode, outcome in results["cross_validation"].items():
        summary, n_folds = outcome["summary"], outcome["n_folds"]
        print_score_table(
            f"{MODE_TITLES[mode]}: mean AUC by model",
            auc_table(summary),
            partial_fold_counts(summary, "auc", n_folds),
            n_folds,
        )
        print_score_table(
            f"{MODE_TITLES[mode]}: mean Brier score by model",
            brier_table(summary),
            partial_fold_counts(summary, "brier", n_folds),
            n_folds,
        )


def main(args: argparse.Namespace | None = None):
    """Parse arguments, run the pipeline and print the report."""
    args = args or build_arg_parser().parse_args()
    setup_logging(level=args.log_level, log_file=args.log_file)

    try:
        results = run_analysis(args)
    except (AnalysisError, ValueError) as exc:
        logger.error("{}", exc)
        sys.exit(1)

    print_report(results)
    return results


if __name__ == "__main__":
    main()
