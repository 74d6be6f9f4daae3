"""
Model trainer: fit a family at one grid point and score it.

The recipe is always refit on the rows the model is trained on, so held-out
rows never contribute to centring, scaling or category statistics.
"""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning

from soccer_injury_analysis.config import config, FEATURE_LISTS
from soccer_injury_analysis.data.recipe import FeatureRecipe, FittedRecipe
from soccer_injury_analysis.exceptions import ModelFitError
from soccer_injury_analysis.models.families import ModelFamily, get_family
from soccer_injury_analysis.utils.metrics import rmse

logger = logging.getLogger(__name__)

TARGET = FEATURE_LISTS["y_variable"][0]


@dataclass(frozen=True)
class FittedModel:
    """A fitted recipe plus the estimator trained on its output."""
    family: str
    params: dict
    recipe: FittedRecipe
    estimator: Any

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        X = self.recipe.transform(df).to_numpy()
        return np.asarray(self.estimator.predict(X), dtype=float)


def fit_model(
    family: str | ModelFamily,
    params: Mapping[str, Any],
    train_subset: pd.DataFrame,
    recipe: Optional[FeatureRecipe] = None,
    seed: int = config.RANDOM_STATE,
) -> FittedModel:
    """
    Fit recipe and estimator on `train_subset`.

    Raises:
        ModelFitError: if the family rejects `params` or the fit fails
    """
    fam = get_family(family)
    params = dict(params)
    fitted_recipe = fam.recipe_for(params, recipe).fit(train_subset)
    X_train = fitted_recipe.transform(train_subset).to_numpy()
    y_train = train_subset[TARGET].to_numpy(dtype=float)

    estimator = fam.build(params, n_features=fitted_recipe.n_features, seed=seed)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", category=ConvergenceWarning)
            estimator.fit(X_train, y_train)
    except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
        raise ModelFitError(fam.name, params, f"fit failed: {e}") from e

    return FittedModel(family=fam.name, params=params, recipe=fitted_recipe, estimator=estimator)


def predict_checked(model: FittedModel, eval_subset: pd.DataFrame) -> np.ndarray:
    """Predictions of `model`; failures and non-finite values are fit errors."""
    try:
        y_pred = model.predict(eval_subset)
    except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
        raise ModelFitError(model.family, model.params, f"predict failed: {e}") from e

    if not np.all(np.isfinite(y_pred)):
        raise ModelFitError(model.family, model.params, "non-finite predictions")
    return y_pred


def score_model(model: FittedModel, eval_subset: pd.DataFrame) -> float:
    """RMSE of `model` on `eval_subset`."""
    y_pred = predict_checked(model, eval_subset)
    error = rmse(eval_subset[TARGET].to_numpy(dtype=float), y_pred)
    if not np.isfinite(error):
        raise ModelFitError(model.family, model.params, "non-finite error")
    return error


def fit_predict(
    family: str | ModelFamily,
    params: Mapping[str, Any],
    train_subset: pd.DataFrame,
    eval_subset: pd.DataFrame,
    recipe: Optional[FeatureRecipe] = None,
    seed: int = config.RANDOM_STATE,
) -> float:
    """
    Fit on `train_subset`, predict `eval_subset` and return the RMSE.

    Args:
        family: model family name or instance
        params: one grid point
        train_subset: rows used to fit both recipe and estimator
        eval_subset: held-out rows to score
        recipe: base recipe (the polynomial family derives its own variant)
        seed: seed threaded into stochastic estimators

    Raises:
        ModelFitError: when the point cannot be evaluated
    """
    model = fit_model(family, params, train_subset, recipe=recipe, seed=seed)
    return score_model(model, eval_subset)
