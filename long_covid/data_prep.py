from __future__ import annotations

"""
Data preparation for the Long COVID analysis: load the survey, clean it,
and split it into train/holdout sets and cross-validation folds.
"""

import math
from pathlib import Path

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.model_selection import KFold, train_test_split

from .constants import (
    FOLD_SEED,
    INPUT_COLUMNS,
    MODELING_INPUT_COLUMNS,
    N_FOLDS,
    NEGATIVE_LABEL,
    NEVER_HAD_COVID,
    NUMERIC_INPUT_COLUMNS,
    OUTCOME,
    OUTCOME_LEVELS,
    POSITIVE_LABEL,
    REFERENCE_YEAR,
    REQUIRED_FIELDS,
    SPLIT_SEED,
    TRAIN_PROPORTION,
)
from .errors import (
    InsufficientDataError,
    InvalidFoldCountError,
    InvalidProportionError,
    MissingDataError,
)


def load_survey(csv_path: Path) -> pd.DataFrame:
    """Read the raw survey file, failing early if a modeling column is absent."""
    raw = pd.read_csv(csv_path)

    missing = [col for col in MODELING_INPUT_COLUMNS if col not in raw.columns]
    if missing:
        raise MissingDataError(f"{csv_path}: missing required columns {missing}")

    absent_aux = [col for col in INPUT_COLUMNS if col not in raw.columns]
    if absent_aux:
        logger.warning("{}: auxiliary columns not present: {}", csv_path, absent_aux)

    logger.info("Loaded {} survey rows from {}", len(raw), csv_path)
    return raw


def normalize_outcome(labels: pd.Series) -> pd.Series:
    """
    Map free-text answers onto the "No"/"Yes" categorical. Anything else,
    including the never-had-COVID sentinel, becomes missing.
    """
    text = labels.map(lambda value: value.strip().lower() if isinstance(value, str) else None)
    mapped = text.map({"yes": POSITIVE_LABEL, "no": NEGATIVE_LABEL})
    return pd.Series(
        pd.Categorical(mapped, categories=OUTCOME_LEVELS), index=labels.index, name=labels.name
    )


def outcome_indicator(labels) -> np.ndarray:
    """1 where the label is the positive class, 0 otherwise."""
    return (np.asarray(labels, dtype=object) == POSITIVE_LABEL).astype(int)


def clean_survey(raw: pd.DataFrame, reference_year: int = REFERENCE_YEAR):
    """
    Derive `age`, normalize `covid_long`, and drop rows missing any required field.
    Non-finite numbers and fractional birth years count as missing.

    Row labels from `raw` are kept as respondent identities.
    """
    df = raw.copy()
    for col in NUMERIC_INPUT_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    df[NUMERIC_INPUT_COLUMNS] = df[NUMERIC_INPUT_COLUMNS].replace([np.inf, -np.inf], np.nan)
    birth_year = df["birth_year"]
    df["birth_year"] = birth_year.where(birth_year == birth_year.round())

    age = reference_year - df["birth_year"]
    df["age"] = age.where(age >= 0)

    sentinel_mask = (
        df[OUTCOME]
        .map(lambda value: isinstance(value, str) and value.strip() == NEVER_HAD_COVID)
        .to_numpy(dtype=bool)
    )
    df[OUTCOME] = normalize_outcome(df[OUTCOME])

    complete_mask = df[REQUIRED_FIELDS].notna().all(axis=1).to_numpy()
    keep = complete_mask & ~sentinel_mask

    dropped_sentinel = int(sentinel_mask.sum())
    dropped_missing = int((~complete_mask & ~sentinel_mask).sum())

    dataset = df.loc[keep].copy()
    dataset["age"] = dataset["age"].astype(int)

    meta = {
        "num_raw": len(raw),
        "num_rows": len(dataset),
        "dropped_never_had_covid": dropped_sentinel,
        "dropped_missing": dropped_missing,
        "positive_rate": float(outcome_indicator(dataset[OUTCOME]).mean())
        if len(dataset)
        else float("nan"),
    }
    logger.info(
        "Cleaning kept {} of {} rows ({} never had COVID-19, {} with missing fields)",
        meta["num_rows"],
        meta["num_raw"],
        dropped_sentinel,
        dropped_missing,
    )
    return dataset, meta


def build_survey_dataset(csv_path: Path, reference_year: int = REFERENCE_YEAR):
    """Load and clean in one step; returns (dataset, meta)."""
    return clean_survey(load_survey(csv_path), reference_year=reference_year)


def split_train_holdout(
    dataset: pd.DataFrame,
    proportion: float = TRAIN_PROPORTION,
    seed: int | None = SPLIT_SEED,
):
    """
    Random train/holdout split. The training side gets floor(proportion * n)
    rows, kept at 1..n-1 so neither side is empty. Both sides keep the
    dataset's row order.
    """
    if not 0 < proportion < 1:
        raise InvalidProportionError(f"proportion must be in (0, 1), got {proportion}")
    n_rows = len(dataset)
    if n_rows < 2:
        raise InsufficientDataError(f"need at least 2 rows to split, got {n_rows}")

    n_train = math.floor(round(proportion * n_rows, 9))
    n_train = min(max(n_train, 1), n_rows - 1)

    train_pos, holdout_pos = train_test_split(
        np.arange(n_rows), train_size=n_train, random_state=seed
    )
    train = dataset.iloc[np.sort(train_pos)]
    holdout = dataset.iloc[np.sort(holdout_pos)]
    logger.debug("Split {} rows into {} train / {} holdout", n_rows, len(train), len(holdout))
    return train, holdout


def make_folds(
    train: pd.DataFrame, k: int = N_FOLDS, seed: int | None = FOLD_SEED
) -> list[pd.DataFrame]:
    """Partition `train` into k disjoint folds whose sizes differ by at most one."""
    if k < 2:
        raise InvalidFoldCountError(f"k must be at least 2, got {k}")
    if k > len(train):
        raise InsufficientDataError(f"k={k} exceeds the {len(train)} available rows")

    kfold = KFold(n_splits=k, shuffle=True, random_state=seed)
    return [train.iloc[np.sort(val_pos)] for _, val_pos in kfold.split(np.arange(len(train)))]
