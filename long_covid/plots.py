from __future__ import annotations

"""
Descriptive plots for the report: age distribution, predicted probability
vs. outcome, and the holdout ROC curve. Each plot has a matching function
returning the numbers it draws.
"""

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from sklearn.metrics import auc, roc_curve

from .data_prep import outcome_indicator
from .errors import DegenerateFoldError


def age_distribution(dataset: pd.DataFrame) -> pd.Series:
    """Respondent count per age, ascending by age."""
    return dataset["age"].value_counts().sort_index()


def jittered_predictions(actual, probabilities, jitter: float = 0.1, random_state: int = 42):
    """Predicted probability against the 0/1 outcome plus uniform vertical jitter."""
    rng = np.random.default_rng(random_state)
    outcome = outcome_indicator(actual)
    return pd.DataFrame(
        {
            "probability": np.asarray(probabilities, dtype=float),
            "outcome": outcome,
            "outcome_jittered": outcome + rng.uniform(-jitter, jitter, size=outcome.size),
        }
    )


def roc_points(actual, probabilities) -> pd.DataFrame:
    y_true = outcome_indicator(actual)
    if y_true.size == 0 or y_true.min() == y_true.max():
        raise DegenerateFoldError("ROC curve needs both outcome classes")
    fpr, tpr, thresholds = roc_curve(y_true, np.asarray(probabilities, dtype=float))
    return pd.DataFrame({"fpr": fpr, "tpr": tpr, "threshold": thresholds})


def plot_age_distribution(dataset: pd.DataFrame, filename: Path):
    counts = age_distribution(dataset)
    plt.figure(figsize=(10, 5))
    plt.bar(counts.index, counts.values, color="steelblue")
    plt.xlabel("Age")
    plt.ylabel("Respondents")
    plt.title("Age distribution")
    plt.grid(axis="y", linestyle="--", alpha=0.7)
    plt.tight_layout()
    plt.savefig(filename)
    plt.close()


def plot_predicted_probabilities(actual, probabilities, filename: Path, random_state: int = 42):
    points = jittered_predictions(actual, probabilities, random_state=random_state)
    plt.figure(figsize=(8, 6))
    plt.scatter(points["probability"], points["outcome_jittered"], alpha=0.5)
    plt.yticks([0, 1], ["No", "Yes"])
    plt.xlim([0.0, 1.0])
    plt.xlabel("Predicted probability of Long COVID")
    plt.ylabel("Reported Long COVID")
    plt.title("Predicted probability vs. outcome")
    plt.grid(True)
    plt.tight_layout()
    plt.savefig(filename)
    plt.close()


def plot_roc_curve(actual, probabilities, filename: Path, label: str = "full model"):
    points = roc_points(actual, probabilities)
    roc_auc = auc(points["fpr"], points["tpr"])

    plt.figure(figsize=(8, 6))
    plt.plot(points["fpr"], points["tpr"], color="darkorange", lw=2, label=f"{label} (area = {roc_auc:.3f})")
    plt.plot([0, 1], [0, 1], color="navy", lw=2, linestyle="--")
    plt.xlim([0.0, 1.0])
    plt.ylim([0.0, 1.05])
    plt.xlabel("False Positive Rate")
    plt.ylabel("True Positive Rate")
    plt.title("ROC Curve: Long COVID")
    plt.legend(loc="lower right")
    plt.grid(True)
    plt.tight_layout()
    plt.savefig(filename)
    plt.close()
