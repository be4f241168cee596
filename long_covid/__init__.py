"""
Logistic regression models for the likelihood of Long COVID among survey respondents.

This package contains survey cleaning and splitting helpers, an IRLS logistic
regression, the cross-validation harness and the metric utilities used by main.py.
"""

from .constants import FULL_MODEL, MODEL_SPECIFICATIONS, NULL_MODEL, OUTCOME
from .cross_validation import (
    cross_validate,
    cross_validate_holdout,
    cross_validate_training,
)
from .data_prep import (
    build_survey_dataset,
    clean_survey,
    load_survey,
    make_folds,
    split_train_holdout,
)
from .logreg import FittedModel, LogisticRegressionIRLS, fit_model
from .metrics import aggregate, auc_table, brier_table, evaluate_holdout

__all__ = [
    "FULL_MODEL",
    "MODEL_SPECIFICATIONS",
    "NULL_MODEL",
    "OUTCOME",
    "cross_validate",
    "cross_validate_holdout",
    "cross_validate_training",
    "build_survey_dataset",
    "clean_survey",
    "load_survey",
    "make_folds",
    "split_train_holdout",
    "FittedModel",
    "LogisticRegressionIRLS",
    "fit_model",
    "aggregate",
    "auc_table",
    "brier_table",
    "evaluate_holdout",
]
