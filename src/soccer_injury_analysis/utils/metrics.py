"""
Metrics utilities for soccer muscle-injury analysis.
"""
from __future__ import annotations

from typing import Dict, Sequence, Tuple

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike
from sklearn.metrics import (
    mean_absolute_error,
    mean_squared_error,
    r2_score,
)


def rmse(y_true: ArrayLike, y_pred: ArrayLike) -> float:
    """Root-mean-squared error."""
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def aggregate_fold_errors(errors: Sequence[float]) -> Tuple[float, float]:
    """
    Mean and standard error of per-fold errors.

    The standard error uses the sample standard deviation (ddof=1) divided
    by sqrt(k); a single value has a standard error of NaN.
    """
    values = np.asarray(errors, dtype=float)
    if values.size == 0:
        raise ValueError("No fold errors to aggregate")
    mean = float(values.mean())
    if values.size < 2:
        return mean, float("nan")
    return mean, float(values.std(ddof=1) / np.sqrt(values.size))


class ModelEvaluator:
    """Evaluates and compares count-regression models."""

    def calculate_regression_metrics(
        self,
        y_true: ArrayLike,
        y_pred: ArrayLike,
    ) -> Dict[str, float]:
        """
        Calculate regression metrics.

        Args:
            y_true: observed muscle-injury counts
            y_pred: predicted counts

        Returns:
            Dictionary with rmse, mae, r2 and mean bias
        """
        y_true = np.asarray(y_true, dtype=float)
        y_pred = np.asarray(y_pred, dtype=float)
        return {
            "rmse": rmse(y_true, y_pred),
            "mae": float(mean_absolute_error(y_true, y_pred)),
            "r2": float(r2_score(y_true, y_pred)) if len(y_true) > 1 else float("nan"),
            "bias": float(np.mean(y_pred - y_true)),
        }

    def compare_models(
        self,
        models_results: Dict[str, Dict[str, float]],
        sort_by: str = "rmse",
    ) -> pd.DataFrame:
        """
        Compare multiple models' performance.

        Args:
            models_results: Dictionary mapping model names to their metrics
            sort_by: metric used to order the table, ascending

        Returns:
            DataFrame comparing model performance
        """
        comparison_df = pd.DataFrame(models_results).T
        if sort_by in comparison_df.columns:
            comparison_df = comparison_df.sort_values(sort_by)
        return comparison_df
