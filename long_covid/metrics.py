from __future__ import annotations

"""
Metric helpers: per-fold AUC and Brier score, the cross-validated model
comparison table, and the thresholded holdout evaluation.
"""

import numpy as np
import pandas as pd
from loguru import logger
from sklearn import metrics

from .constants import CLASS_THRESHOLD, NEGATIVE_LABEL, OUTCOME_LEVELS, POSITIVE_LABEL
from .data_prep import outcome_indicator
from .errors import DegenerateFoldError


def fold_auc(actual, probabilities) -> float:
    """
    ROC AUC with "Yes" as the event: the chance a random positive outranks a
    random negative, ties counting half.
    """
    y_true = outcome_indicator(actual)
    if y_true.size == 0 or y_true.min() == y_true.max():
        raise DegenerateFoldError("AUC needs at least one positive and one negative row")
    return float(metrics.roc_auc_score(y_true, np.asarray(probabilities, dtype=float)))


def brier_score(actual, probabilities) -> float:
    """Mean squared difference between P(Yes) and the 0/1 outcome."""
    y_true = outcome_indicator(actual)
    if y_true.size == 0:
        raise DegenerateFoldError("Brier score is undefined for an empty fold")
    probs = np.asarray(probabilities, dtype=float)
    return float(np.mean((probs - y_true) ** 2))


def base_rate_brier(actual) -> float:
    """Brier score p(1-p) of always predicting the observed base rate p."""
    p = float(outcome_indicator(actual).mean())
    return p * (1 - p)


def fold_metrics(prediction_table: pd.DataFrame) -> pd.DataFrame:
    """
    One row per (model, fold) with `auc`, `brier` and `n_rows`. Cells whose fit
    failed, or whose AUC is undefined, are NaN rather than a made-up number.
    """
    rows = []
    for (model, fold), cell in prediction_table.groupby(["model", "fold"], sort=False):
        auc = brier = float("nan")
        if cell["probability"].notna().all():
            brier = brier_score(cell["actual"], cell["probability"])
            try:
                auc = fold_auc(cell["actual"], cell["probability"])
            except DegenerateFoldError:
                logger.debug("Fold {} / {}: single-class fold, AUC excluded", fold, model)
        rows.append({"model": model, "fold": fold, "auc": auc, "brier": brier, "n_rows": len(cell)})
    return pd.DataFrame(rows, columns=["model", "fold", "auc", "brier", "n_rows"])


def aggregate(prediction_table: pd.DataFrame) -> pd.DataFrame:
    """Mean AUC and Brier per model over the folds where each is defined."""
    per_fold = fold_metrics(prediction_table)
    grouped = per_fold.groupby("model", sort=False)
    summary = pd.DataFrame(
        {
            "auc": grouped["auc"].mean(),
            "brier": grouped["brier"].mean(),
            "auc_folds": grouped["auc"].count(),
            "brier_folds": grouped["brier"].count(),
        }
    )
    summary.index.name = "model"
    return summary


def _score_table(summary: pd.DataFrame, column: str) -> pd.DataFrame:
    return pd.DataFrame(
        {"model_name": summary.index.to_numpy(), "score": summary[column].to_numpy()}
    )


def auc_table(summary: pd.DataFrame) -> pd.DataFrame:
    return _score_table(summary, "auc")


def brier_table(summary: pd.DataFrame) -> pd.DataFrame:
    return _score_table(summary, "brier")


def partial_fold_counts(summary: pd.DataFrame, column: str, n_folds: int) -> pd.Series:
    """Valid-fold counts for models whose `column` mean skipped at least one fold."""
    counts = summary[f"{column}_folds"]
    return counts[counts < n_folds]


def predicted_classes(probabilities, threshold: float = CLASS_THRESHOLD) -> np.ndarray:
    return np.where(np.asarray(probabilities, dtype=float) > threshold, POSITIVE_LABEL, NEGATIVE_LABEL)


def evaluate_holdout(actual, probabilities, threshold: float = CLASS_THRESHOLD):
    """Threshold P(Yes) and summarize against the actual labels."""
    y_true = np.asarray(actual, dtype=object).astype(str)
    y_pred = predicted_classes(probabilities, threshold)

    cm = metrics.confusion_matrix(y_true, y_pred, labels=OUTCOME_LEVELS)
    confusion = pd.DataFrame(
        cm,
        index=pd.Index(OUTCOME_LEVELS, name="actual"),
        columns=pd.Index(OUTCOME_LEVELS, name="predicted"),
    )
    try:
        roc_auc = fold_auc(y_true, probabilities)
    except DegenerateFoldError:
        roc_auc = float("nan")

    return {
        "accuracy": float(metrics.accuracy_score(y_true, y_pred)),
        "confusion_matrix": confusion,
        "predicted_class": y_pred,
        "roc_auc": roc_auc,
        "brier": brier_score(y_true, probabilities),
    }
