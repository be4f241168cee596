from __future__ import annotations

"""
k-fold cross-validation over the fixed model specifications. Produces one
prediction row per (fold, model, validation respondent).
"""

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from loguru import logger

from .constants import FOLD_SEED, MODEL_SPECIFICATIONS, N_FOLDS, OUTCOME
from .data_prep import make_folds
from .errors import InvalidFoldCountError, NonConvergenceError
from .logreg import fit_model

PREDICTION_COLUMNS = ["fold", "model", "row_id", "probability", "actual"]

TRAINING_FOLDS = "training_folds"
HOLDOUT_FOLDS = "holdout_folds"
EVALUATION_MODES = (TRAINING_FOLDS, HOLDOUT_FOLDS)


def fold_training_subset(folds: list[pd.DataFrame], index: int) -> pd.DataFrame:
    """Concatenate every fold except `index`."""
    return pd.concat([fold for j, fold in enumerate(folds) if j != index])


def _score_cell(
    folds: list[pd.DataFrame], index: int, name: str, predictors: tuple[str, ...]
):
    """Score one (fold, specification) cell; returns the predictions and any fit error."""
    validation = folds[index]
    training = fold_training_subset(folds, index)
    error = None
    try:
        model = fit_model(training, name, predictors)
        probs = model.predict(validation)
    except NonConvergenceError as exc:
        error = str(exc)
        probs = np.full(len(validation), np.nan)

    frame = pd.DataFrame(
        {
            "fold": index + 1,
            "model": name,
            "row_id": validation.index.to_numpy(),
            "probability": probs,
            "actual": validation[OUTCOME].astype(str).to_numpy(),
        },
        columns=PREDICTION_COLUMNS,
    )
    return frame, error


def cross_validate(
    folds: list[pd.DataFrame],
    specifications: dict[str, tuple[str, ...]] = MODEL_SPECIFICATIONS,
    n_jobs: int = 1,
) -> pd.DataFrame:
    """
    Fit every specification on each fold's training complement and predict
    the held-out fold.

    Rows come out ordered by fold, then declared specification order, then
    original row order. A fit that fails leaves NaN probabilities for that
    (fold, specification) cell only.
    """
    if len(folds) < 2:
        raise InvalidFoldCountError(f"need at least 2 folds, got {len(folds)}")

    cells = [
        (index, name, predictors)
        for index in range(len(folds))
        for name, predictors in specifications.items()
    ]
    if n_jobs == 1:
        scored = [_score_cell(folds, *cell) for cell in cells]
    else:
        # joblib returns results in submission order
        scored = Parallel(n_jobs=n_jobs)(delayed(_score_cell)(folds, *cell) for cell in cells)

    # logged here so worker processes never need their own sinks
    for (index, name, _), (_, error) in zip(cells, scored):
        if error is not None:
            logger.warning("Fold {} / {}: fit failed, predictions left missing ({})", index + 1, name, error)

    table = pd.concat([frame for frame, _ in scored], ignore_index=True)
    failed = table.loc[table["probability"].isna(), ["fold", "model"]].drop_duplicates()
    logger.info(
        "Cross-validated {} specifications over {} folds ({} failed cells)",
        len(specifications),
        len(folds),
        len(failed),
    )
    return table


def cross_validate_training(
    train: pd.DataFrame,
    specifications: dict[str, tuple[str, ...]] = MODEL_SPECIFICATIONS,
    k: int = N_FOLDS,
    seed: int | None = FOLD_SEED,
    n_jobs: int = 1,
) -> pd.DataFrame:
    """Folds drawn from the training set; each model trains on k-1 training folds."""
    return cross_validate(make_folds(train, k=k, seed=seed), specifications, n_jobs=n_jobs)


def cross_validate_holdout(
    holdout: pd.DataFrame,
    specifications: dict[str, tuple[str, ...]] = MODEL_SPECIFICATIONS,
    k: int = N_FOLDS,
    seed: int | None = FOLD_SEED,
    n_jobs: int = 1,
) -> pd.DataFrame:
    """
    Folds drawn from the holdout set, so every candidate model is fitted on
    holdout rows. This reproduces the second comparison table of the survey
    analysis; its scores are not an unbiased holdout estimate.
    """
    logger.warning(
        "holdout-fold evaluation fits models on holdout rows; "
        "compare with the training-fold table before drawing conclusions"
    )
    return cross_validate(make_folds(holdout, k=k, seed=seed), specifications, n_jobs=n_jobs)


def run_evaluation_mode(mode: str, train: pd.DataFrame, holdout: pd.DataFrame, **kwargs) -> pd.DataFrame:
    """Dispatch to the cross-validation pass named by `mode`."""
    if mode == TRAINING_FOLDS:
        return cross_validate_training(train, **kwargs)
    if mode == HOLDOUT_FOLDS:
        return cross_validate_holdout(holdout, **kwargs)
    raise ValueError(f"Unknown evaluation mode: {mode}")
