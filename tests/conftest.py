import numpy as np
import pandas as pd
import pytest

from long_covid.constants import INPUT_COLUMNS
from long_covid.data_prep import clean_survey


def make_raw_survey(n_rows: int = 100, positive_rate: float = 0.24, seed: int = 7) -> pd.DataFrame:
    """
    Synthetic survey where Long COVID is driven by symptom count and expense
    difficulty plus noise; exactly round(positive_rate * n_rows) answer "Yes".
    """
    rng = np.random.default_rng(seed)
    birth_year = rng.integers(1940, 2004, n_rows)
    covid_symptoms = rng.integers(0, 11, n_rows)
    household_income = rng.integers(1, 8, n_rows)
    difficulty = rng.integers(1, 5, n_rows)

    latent = (
        0.6 * covid_symptoms
        + 0.4 * difficulty
        - 0.15 * household_income
        + rng.normal(0.0, 2.0, n_rows)
    )
    n_positive = int(round(positive_rate * n_rows))
    covid_long = np.full(n_rows, "No", dtype=object)
    covid_long[np.argsort(-latent)[:n_positive]] = "Yes"

    raw = pd.DataFrame(
        {
            "birth_year": birth_year,
            "gender_identity": rng.choice(["Man", "Woman", "Non-binary"], n_rows),
            "rsv_vaccine": rng.choice(["Yes", "No"], n_rows),
            "covid_vaccine": rng.choice(["Yes", "No"], n_rows),
            "covid_ever": "Yes",
            "covid_symptoms": covid_symptoms,
            "covid_long": covid_long,
            "household_income": household_income,
            "employed": rng.choice(["Yes", "No"], n_rows),
            "religious_attendance": rng.choice(["Never", "Monthly", "Weekly"], n_rows),
            "difficulty_with_expenses": difficulty,
            "housing": rng.choice(["Own", "Rent"], n_rows),
            "medicare": rng.choice(["Yes", "No"], n_rows),
            "area": rng.choice(["Urban", "Suburban", "Rural"], n_rows),
        }
    )
    return raw[INPUT_COLUMNS]


@pytest.fixture
def raw_survey():
    return make_raw_survey()


@pytest.fixture
def survey_dataset(raw_survey):
    dataset, _ = clean_survey(raw_survey)
    return dataset


@pytest.fixture
def large_survey_dataset():
    dataset, _ = clean_survey(make_raw_survey(n_rows=400, positive_rate=0.25, seed=11))
    return dataset


@pytest.fixture
def survey_csv(tmp_path):
    raw = make_raw_survey(n_rows=200, positive_rate=0.25, seed=3)
    extra = raw.iloc[:2].copy()
    extra["covid_long"] = "Never had COVID-19"
    raw = pd.concat([raw, extra], ignore_index=True)
    raw.loc[5, "household_income"] = np.nan
    path = tmp_path / "survey.csv"
    raw.to_csv(path, index=False)
    return path
