"""
Column names, outcome labels and the fixed model specifications for the
Long COVID analysis.
"""

OUTCOME = "covid_long"
POSITIVE_LABEL = "Yes"
NEGATIVE_LABEL = "No"
OUTCOME_LEVELS = [NEGATIVE_LABEL, POSITIVE_LABEL]  # "No" is the reference level

# Respondents who never had COVID-19 were not asked the Long COVID question.
NEVER_HAD_COVID = "Never had COVID-19"

REFERENCE_YEAR = 2024

INPUT_COLUMNS = [
    "birth_year",
    "gender_identity",
    "rsv_vaccine",
    "covid_vaccine",
    "covid_ever",
    "covid_symptoms",
    "covid_long",
    "household_income",
    "employed",
    "religious_attendance",
    "difficulty_with_expenses",
    "housing",
    "medicare",
    "area",
]
NUMERIC_INPUT_COLUMNS = [
    "birth_year",
    "covid_symptoms",
    "household_income",
    "difficulty_with_expenses",
]
MODELING_INPUT_COLUMNS = NUMERIC_INPUT_COLUMNS + [OUTCOME]

PREDICTORS = ["age", "covid_symptoms", "household_income", "difficulty_with_expenses"]
REQUIRED_FIELDS = PREDICTORS + [OUTCOME]

TRAIN_PROPORTION = 0.75
N_FOLDS = 10
SPLIT_SEED = 2024
FOLD_SEED = 1234
CLASS_THRESHOLD = 0.5

NULL_MODEL = "null"


def model_label(predictors) -> str:
    return " + ".join(predictors) if predictors else NULL_MODEL


_SPEC_PREDICTORS = [
    ("age", "covid_symptoms"),
    ("age", "household_income"),
    ("age", "difficulty_with_expenses"),
    ("age", "covid_symptoms", "household_income"),
    ("age", "covid_symptoms", "difficulty_with_expenses"),
    ("age", "household_income", "difficulty_with_expenses"),
    tuple(PREDICTORS),
    (),
]

# Declared order drives the row order of every comparison table.
MODEL_SPECIFICATIONS: dict[str, tuple[str, ...]] = {
    model_label(preds): preds for preds in _SPEC_PREDICTORS
}
FULL_MODEL = model_label(PREDICTORS)
