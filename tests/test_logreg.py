import numpy as np
import pandas as pd
import pytest

from long_covid.constants import FULL_MODEL, MODEL_SPECIFICATIONS, NULL_MODEL
from long_covid.errors import NonConvergenceError, SchemaMismatchError
from long_covid.logreg import INTERCEPT, LogisticRegressionIRLS, fit_model


def _logit(p):
    return np.log(p / (1 - p))


def test_intercept_only_fit_matches_base_rate():
    y = np.array([1] * 30 + [0] * 70)
    model = LogisticRegressionIRLS().fit(np.empty((100, 0)), y)

    assert model.intercept_ == pytest.approx(_logit(0.3), abs=1e-5)
    assert model.std_errors_[0] == pytest.approx(1 / np.sqrt(100 * 0.3 * 0.7), abs=1e-5)
    assert np.allclose(model.predict_proba(np.empty((4, 0))), 0.3)


def test_binary_predictor_recovers_log_odds_ratio():
    x = np.array([0] * 40 + [1] * 60)
    y = np.array([1] * 10 + [0] * 30 + [1] * 36 + [0] * 24)
    model = LogisticRegressionIRLS().fit(x, y)

    assert model.intercept_ == pytest.approx(_logit(0.25), abs=1e-4)
    assert model.coef_[0] == pytest.approx(_logit(0.6) - _logit(0.25), abs=1e-4)
    assert model.n_iter_ <= 25


def test_perfect_separation_raises():
    x = np.arange(6, dtype=float)
    y = np.array([0, 0, 0, 1, 1, 1])
    with pytest.raises(NonConvergenceError):
        LogisticRegressionIRLS().fit(x, y)


def test_single_class_training_data_raises():
    with pytest.raises(NonConvergenceError):
        LogisticRegressionIRLS().fit(np.arange(8, dtype=float), np.zeros(8))


def test_singular_design_raises():
    x = np.arange(10, dtype=float)
    X = np.column_stack([x, 2 * x])
    y = np.array([0, 1] * 5)
    with pytest.raises(NonConvergenceError, match="singular"):
        LogisticRegressionIRLS().fit(X, y)


def test_unfitted_model_cannot_predict():
    with pytest.raises(RuntimeError):
        LogisticRegressionIRLS().predict_proba(np.zeros((2, 1)))


def test_fit_model_predicts_probabilities(survey_dataset):
    model = fit_model(survey_dataset, FULL_MODEL, MODEL_SPECIFICATIONS[FULL_MODEL])
    probs = model.predict(survey_dataset)

    assert probs.shape == (len(survey_dataset),)
    assert np.all((probs >= 0) & (probs <= 1))
    assert list(model.coefficients.index) == [INTERCEPT, *MODEL_SPECIFICATIONS[FULL_MODEL]]
    # symptoms push the synthetic outcome up
    assert model.coefficients["covid_symptoms"] > 0


def test_null_model_predicts_training_base_rate(survey_dataset):
    model = fit_model(survey_dataset, NULL_MODEL, MODEL_SPECIFICATIONS[NULL_MODEL])
    probs = model.predict(survey_dataset)
    assert np.allclose(probs, 0.24, atol=1e-5)


def test_predict_requires_modeled_columns(survey_dataset):
    model = fit_model(survey_dataset, FULL_MODEL, MODEL_SPECIFICATIONS[FULL_MODEL])
    with pytest.raises(SchemaMismatchError, match="household_income"):
        model.predict(survey_dataset.drop(columns=["household_income"]))


def test_fit_model_requires_outcome(survey_dataset):
    with pytest.raises(SchemaMismatchError):
        fit_model(survey_dataset.drop(columns=["covid_long"]), "age", ("age",))


def test_coefficient_table(survey_dataset):
    model = fit_model(survey_dataset, "age + covid_symptoms", ("age", "covid_symptoms"))
    table = model.coefficient_table()

    assert list(table.columns) == ["estimate", "std_error", "z_value", "p_value"]
    assert list(table.index) == [INTERCEPT, "age", "covid_symptoms"]
    assert (table["std_error"] > 0).all()
    assert table["p_value"].between(0, 1).all()
    pd.testing.assert_series_equal(
        table["estimate"], model.coefficients, check_names=False
    )
