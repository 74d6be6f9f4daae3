"""Error taxonomy for the injury modelling pipeline."""
from __future__ import annotations


class InjuryAnalysisError(Exception):
    """Base class for package errors."""


class ConfigurationError(InjuryAnalysisError, ValueError):
    """Invalid split fraction, stratification field, fold count, grid or cutoff."""


class ModelFitError(InjuryAnalysisError):
    """A model family could not honour a hyperparameter point.

    Raised by the trainer and caught by the grid search, which records the
    point as non-evaluable instead of aborting.
    """

    def __init__(self, family: str, params: dict, reason: str):
        self.family = family
        self.params = dict(params)
        self.reason = reason
        super().__init__(f"{family} {self.params}: {reason}")


class DataIntegrityError(InjuryAnalysisError, ValueError):
    """The loaded table violates the observation schema."""

    def __init__(self, message: str, rows: list | None = None):
        self.rows = list(rows or [])
        if self.rows:
            message = f"{message} (rows: {', '.join(map(str, self.rows))})"
        super().__init__(message)
