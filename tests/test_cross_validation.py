import numpy as np
import pandas as pd
import pytest
from loguru import logger

from long_covid.constants import MODEL_SPECIFICATIONS
from long_covid.cross_validation import (
    PREDICTION_COLUMNS,
    cross_validate,
    cross_validate_holdout,
    cross_validate_training,
    fold_training_subset,
    run_evaluation_mode,
)
from long_covid.data_prep import make_folds, split_train_holdout
from long_covid.errors import InvalidFoldCountError
from long_covid.logging_utils import setup_logging


@pytest.fixture
def train_folds(survey_dataset):
    train, _ = split_train_holdout(survey_dataset)
    return make_folds(train, k=5, seed=0)


def test_fold_training_subset_excludes_validation_fold(train_folds):
    training = fold_training_subset(train_folds, 2)
    assert set(training.index).isdisjoint(train_folds[2].index)
    assert len(training) == sum(len(f) for f in train_folds) - len(train_folds[2])


def test_prediction_table_order(train_folds):
    table = cross_validate(train_folds)
    names = list(MODEL_SPECIFICATIONS)

    assert list(table.columns) == PREDICTION_COLUMNS
    assert len(table) == sum(len(f) for f in train_folds) * len(names)
    assert table["fold"].is_monotonic_increasing

    for fold_number, fold in enumerate(train_folds, start=1):
        block = table[table["fold"] == fold_number]
        assert list(block["model"].drop_duplicates()) == names
        for name in names:
            rows = block[block["model"] == name]
            assert rows["row_id"].tolist() == fold.index.tolist()
            assert rows["actual"].tolist() == fold["covid_long"].astype(str).tolist()


def test_cross_validation_is_reproducible(survey_dataset):
    train, _ = split_train_holdout(survey_dataset)
    first = cross_validate_training(train, k=5, seed=8)
    second = cross_validate_training(train, k=5, seed=8)
    pd.testing.assert_frame_equal(first, second)


def test_failed_fit_is_isolated(survey_dataset):
    constant_income = survey_dataset.assign(household_income=3)
    folds = make_folds(constant_income, k=4, seed=1)
    table = cross_validate(folds)

    with_income = [name for name, preds in MODEL_SPECIFICATIONS.items() if "household_income" in preds]
    failed = table[table["model"].isin(with_income)]
    succeeded = table[~table["model"].isin(with_income)]

    assert with_income
    assert failed["probability"].isna().all()
    assert succeeded["probability"].notna().all()
    assert len(failed) == len(with_income) * len(constant_income)


def test_parallel_run_matches_serial(train_folds):
    serial = cross_validate(train_folds)
    parallel = cross_validate(train_folds, n_jobs=2)
    pd.testing.assert_frame_equal(serial, parallel)


def test_cross_validate_needs_two_folds(survey_dataset):
    with pytest.raises(InvalidFoldCountError):
        cross_validate([survey_dataset])


def test_custom_specifications(train_folds):
    specs = {"age": ("age",), "null": ()}
    table = cross_validate(train_folds, specs)
    assert table["model"].unique().tolist() == ["age", "null"]
    assert np.all((table["probability"] >= 0) & (table["probability"] <= 1))


def test_holdout_mode_uses_holdout_rows_only(large_survey_dataset):
    train, holdout = split_train_holdout(large_survey_dataset)
    table = cross_validate_holdout(holdout, k=5, seed=2)

    assert set(table["row_id"]) == set(holdout.index)
    assert set(table["row_id"]).isdisjoint(train.index)


def test_run_evaluation_mode_dispatch(survey_dataset):
    train, holdout = split_train_holdout(survey_dataset)
    table = run_evaluation_mode("training_folds", train, holdout, k=3, seed=4)
    assert set(table["row_id"]) == set(train.index)

    with pytest.raises(ValueError):
        run_evaluation_mode("everything", train, holdout)


def test_parallel_fit_failures_reach_configured_log_file(survey_dataset, tmp_path):
    log_file = tmp_path / "cv.log"
    setup_logging(level="WARNING", log_file=log_file)
    try:
        folds = make_folds(survey_dataset.assign(household_income=3), k=4, seed=1)
        cross_validate(folds, n_jobs=2)
    finally:
        logger.remove()

    with_income = [name for name, preds in MODEL_SPECIFICATIONS.items() if "household_income" in preds]
    lines = [line for line in log_file.read_text().splitlines() if "fit failed" in line]
    assert len(lines) == len(with_income) * 4
