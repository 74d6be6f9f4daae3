"""Utils module for soccer muscle-injury analysis."""

from .metrics import ModelEvaluator, aggregate_fold_errors, rmse

__all__ = ['ModelEvaluator', 'aggregate_fold_errors', 'rmse']
