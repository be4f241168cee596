"""Exceptions raised by the analysis pipeline."""


class AnalysisError(Exception):
    """Base class for every error raised by long_covid."""


class MissingDataError(AnalysisError):
    """A column needed for modeling is absent from the input file."""


class InvalidProportionError(AnalysisError, ValueError):
    """Train proportion outside the open interval (0, 1)."""


class InsufficientDataError(AnalysisError, ValueError):
    """Not enough rows for the requested split or number of folds."""


class InvalidFoldCountError(AnalysisError, ValueError):
    """Cross-validation needs at least two folds."""


class NonConvergenceError(AnalysisError):
    """The logistic regression solver could not produce coefficients."""


class DegenerateFoldError(AnalysisError):
    """A metric is undefined for the given fold (single class or no rows)."""


class SchemaMismatchError(AnalysisError, ValueError):
    """Data lacks a column the model specification needs."""
