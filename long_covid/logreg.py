from __future__ import annotations

"""
Binomial logistic regression fitted by iteratively reweighted least squares,
plus the FittedModel wrapper used by the cross-validation harness.
"""

import numpy as np
import pandas as pd
from loguru import logger
from scipy.stats import norm

from .constants import OUTCOME
from .data_prep import outcome_indicator
from .errors import NonConvergenceError, SchemaMismatchError

INTERCEPT = "(Intercept)"
_EPS = np.finfo(float).eps


class LogisticRegressionIRLS:
    """
    Unpenalized logistic regression (binomial GLM, logit link) solved with IRLS.
    Converges on relative change in deviance, like R's glm.
    """

    def __init__(
        self,
        max_iter: int = 25,
        tol: float = 1e-8,
        separation_tol: float = 1e-6,
    ):
        self.max_iter = max_iter
        self.tol = tol
        self.separation_tol = separation_tol
        self.weights_: np.ndarray | None = None
        self.std_errors_: np.ndarray | None = None
        self.deviance_: float = float("nan")
        self.n_iter_: int = 0

    @staticmethod
    def _sigmoid(z: np.ndarray) -> np.ndarray:
        z = np.clip(z, -500, 500)
        return 1.0 / (1.0 + np.exp(-z))

    @staticmethod
    def _add_bias(X: np.ndarray) -> np.ndarray:
        return np.hstack([np.ones((X.shape[0], 1)), X])

    @staticmethod
    def _as_matrix(X) -> np.ndarray:
        X_arr = np.asarray(X, dtype=float)
        if X_arr.ndim == 1:
            X_arr = X_arr.reshape(-1, 1)
        return X_arr

    @staticmethod
    def _deviance(y: np.ndarray, mu: np.ndarray) -> float:
        return float(-2.0 * np.sum(y * np.log(mu) + (1 - y) * np.log(1 - mu)))

    def _mean(self, eta: np.ndarray) -> np.ndarray:
        return np.clip(self._sigmoid(eta), _EPS, 1 - _EPS)

    def fit(self, X, y):
        """Fit by IRLS; raises NonConvergenceError when no usable solution exists."""
        X_design = self._add_bias(self._as_matrix(X))
        y_arr = np.asarray(y, dtype=float)
        n_rows, n_terms = X_design.shape

        if n_rows == 0 or np.linalg.matrix_rank(X_design) < n_terms:
            raise NonConvergenceError(
                f"singular design matrix ({n_rows} rows, {n_terms} terms)"
            )

        mu = (y_arr + 0.5) / 2.0
        eta = np.log(mu / (1 - mu))
        deviance = self._deviance(y_arr, mu)
        converged = False

        for step in range(1, self.max_iter + 1):
            w = mu * (1 - mu)
            z = eta + (y_arr - mu) / w
            xtw = X_design.T * w
            try:
                beta = np.linalg.solve(xtw @ X_design, xtw @ z)
            except np.linalg.LinAlgError as exc:
                raise NonConvergenceError(f"singular weighted system at step {step}") from exc
            if not np.all(np.isfinite(beta)):
                raise NonConvergenceError(f"non-finite coefficients at step {step}")

            eta = X_design @ beta
            mu = self._mean(eta)
            new_deviance = self._deviance(y_arr, mu)
            self.weights_ = beta
            self.n_iter_ = step
            logger.trace("[IRLS] step={}, deviance={:.6f}", step, new_deviance)

            if abs(new_deviance - deviance) / (abs(new_deviance) + 0.1) < self.tol:
                deviance = new_deviance
                converged = True
                break
            deviance = new_deviance

        if not converged:
            raise NonConvergenceError(f"IRLS did not converge in {self.max_iter} iterations")
        if deviance < self.separation_tol:
            raise NonConvergenceError("perfect separation: fitted probabilities are 0 or 1")

        w = mu * (1 - mu)
        try:
            cov = np.linalg.inv((X_design.T * w) @ X_design)
        except np.linalg.LinAlgError as exc:
            raise NonConvergenceError("information matrix is singular") from exc

        self.deviance_ = deviance
        self.std_errors_ = np.sqrt(np.diag(cov))
        self.intercept_ = float(self.weights_[0])
        self.coef_ = self.weights_[1:]
        return self

    def predict_proba(self, X) -> np.ndarray:
        """Return P(y=1) for each row in X."""
        if self.weights_ is None or self.std_errors_ is None:
            raise RuntimeError("Model is not fitted.")
        return self._sigmoid(self._add_bias(self._as_matrix(X)) @ self.weights_)


class FittedModel:
    """One model specification fitted on one training subset."""

    def __init__(self, name: str, predictors: tuple[str, ...], estimator: LogisticRegressionIRLS):
        self.name = name
        self.predictors = tuple(predictors)
        self.estimator = estimator

    def __repr__(self):
        return f"FittedModel({self.name!r}, n_iter={self.estimator.n_iter_})"

    @property
    def coefficients(self) -> pd.Series:
        return pd.Series(self.estimator.weights_, index=[INTERCEPT, *self.predictors])

    def predict(self, new_data: pd.DataFrame) -> np.ndarray:
        """Probability of a "Yes" outcome for every row of `new_data`."""
        _require_columns(new_data, self.predictors, self.name)
        X = new_data.loc[:, list(self.predictors)].to_numpy(dtype=float)
        return self.estimator.predict_proba(X)

    def coefficient_table(self) -> pd.DataFrame:
        """Estimates with Wald standard errors, z values and two-sided p-values."""
        estimate = self.estimator.weights_
        std_error = self.estimator.std_errors_
        z_value = estimate / std_error
        return pd.DataFrame(
            {
                "estimate": estimate,
                "std_error": std_error,
                "z_value": z_value,
                "p_value": 2 * norm.sf(np.abs(z_value)),
            },
            index=[INTERCEPT, *self.predictors],
        )


def _require_columns(data: pd.DataFrame, columns, model_name: str):
    missing = [col for col in columns if col not in data.columns]
    if missing:
        raise SchemaMismatchError(f"model {model_name!r} needs missing columns {missing}")


def fit_model(
    training_subset: pd.DataFrame,
    name: str,
    predictors: tuple[str, ...],
    outcome: str = OUTCOME,
    **solver_kwargs,
) -> FittedModel:
    """Fit `outcome ~ predictors` on `training_subset`."""
    _require_columns(training_subset, [*predictors, outcome], name)
    X = training_subset.loc[:, list(predictors)].to_numpy(dtype=float)
    y = outcome_indicator(training_subset[outcome])
    estimator = LogisticRegressionIRLS(**solver_kwargs).fit(X, y)
    return FittedModel(name, predictors, estimator)
