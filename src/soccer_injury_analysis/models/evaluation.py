"""
Test-set evaluation of finalist model families.

`TestEvaluator` holds the only reference to the test rows.  Each finalist is
refit on the full training set with its selected hyperparameters and scored
on the test rows exactly once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional

import pandas as pd

from soccer_injury_analysis.config import config, FEATURE_LISTS
from soccer_injury_analysis.data.recipe import FeatureRecipe
from soccer_injury_analysis.data.splitter import DataSplit
from soccer_injury_analysis.models.families import ModelFamily, get_family
from soccer_injury_analysis.models.trainer import FittedModel, fit_model, predict_checked
from soccer_injury_analysis.utils.metrics import ModelEvaluator, rmse

logger = logging.getLogger(__name__)

TARGET = FEATURE_LISTS["y_variable"][0]


@dataclass(frozen=True)
class TestResult:
    """Score of one finalist on the untouched test set."""
    __test__ = False  # not a pytest class

    family: str
    params: dict
    test_rmse: float
    metrics: Dict[str, float]
    model: FittedModel


def evaluate(
    family: str | ModelFamily,
    selected_params: Mapping[str, Any],
    train: pd.DataFrame,
    test: pd.DataFrame,
    recipe: Optional[FeatureRecipe] = None,
    seed: int = config.RANDOM_STATE,
) -> float:
    """Refit on all of `train` and return the RMSE on `test`."""
    model = fit_model(family, selected_params, train, recipe=recipe, seed=seed)
    return rmse(test[TARGET].to_numpy(dtype=float), predict_checked(model, test))


class TestEvaluator:
    """One-shot scorer of finalists against the held-out test rows."""
    __test__ = False  # not a pytest class

    def __init__(
        self,
        data_split: DataSplit,
        recipe: Optional[FeatureRecipe] = None,
        seed: int = config.RANDOM_STATE,
    ):
        self._train = data_split.train
        self._test = data_split.test
        self.recipe = recipe
        self.seed = seed
        self.evaluator = ModelEvaluator()
        self.results: Dict[str, TestResult] = {}

    @property
    def n_test(self) -> int:
        return len(self._test)

    def evaluate(self, family: str | ModelFamily, params: Mapping[str, Any]) -> TestResult:
        """
        Refit `family` on the full training set and score it on test.

        Raises:
            ValueError: if `family` has already been scored
            ModelFitError: if the refit fails
        """
        fam = get_family(family)
        if fam.name in self.results:
            raise ValueError(f"'{fam.name}' was already scored on the test set")

        model = fit_model(fam, params, self._train, recipe=self.recipe, seed=self.seed)
        y_pred = predict_checked(model, self._test)
        metrics = self.evaluator.calculate_regression_metrics(self._test[TARGET], y_pred)
        test_rmse = metrics["rmse"]

        result = TestResult(family=fam.name, params=dict(params), test_rmse=test_rmse,
                            metrics=metrics, model=model)
        self.results[fam.name] = result
        logger.info("🎯 %s test RMSE %.3f (n=%d)", fam.name, test_rmse, self.n_test)
        return result

    def evaluate_finalists(self, finalists: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
        """
        Score each finalist record (`family`, `params`, optional `mean_rmse`).

        Returns:
            DataFrame of family, params, cv_rmse, test_rmse and extra metrics
        """
        rows = []
        for record in finalists:
            result = self.evaluate(record["family"], record["params"])
            rows.append({
                "family": result.family,
                "params": result.params,
                "cv_rmse": record.get("mean_rmse"),
                "test_rmse": result.test_rmse,
                **{k: v for k, v in result.metrics.items() if k != "rmse"},
            })
        return pd.DataFrame(rows)
