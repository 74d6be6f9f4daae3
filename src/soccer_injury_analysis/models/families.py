"""
Model families evaluated by the grid search.

Each family is one variant of `ModelFamily`: it knows its hyperparameter
names, how to build a seeded estimator for a grid point, which recipe the
point needs and which points count as "simpler" when errors tie.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

import xgboost as xgb
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import ElasticNet, LinearRegression
from sklearn.model_selection import ParameterGrid
from sklearn.neighbors import KNeighborsRegressor

from soccer_injury_analysis.config import config
from soccer_injury_analysis.data.recipe import FeatureRecipe
from soccer_injury_analysis.exceptions import ConfigurationError, ModelFitError


class ModelFamily:
    """Base class; subclasses set `name`, `param_names` and `_make_estimator`."""
    name: str = ""
    label: str = ""
    param_names: Tuple[str, ...] = ()

    @property
    def default_grid(self) -> Dict[str, List[Any]]:
        return dict(config.HYPERPARAMETER_GRIDS.get(self.name, {}))

    @property
    def simplicity(self) -> List[Tuple[str, bool]]:
        """(hyperparameter, ascending) pairs ordering simpler points first."""
        return list(config.TIE_BREAK.get(self.name, []))

    def expand_grid(self, grid: Optional[Mapping[str, List[Any]]] = None) -> List[Dict[str, Any]]:
        """Enumerate grid points in a deterministic order."""
        grid = self.default_grid if grid is None else dict(grid)
        unknown = set(grid) - set(self.param_names)
        if unknown:
            raise ConfigurationError(f"{self.name}: unknown hyperparameters {sorted(unknown)}")
        empty = [k for k, v in grid.items() if len(v) == 0]
        if empty:
            raise ConfigurationError(f"{self.name}: empty value list for {empty}")
        return [dict(p) for p in ParameterGrid(grid)]

    def recipe_for(self, params: Mapping[str, Any], base: Optional[FeatureRecipe] = None) -> FeatureRecipe:
        return base or FeatureRecipe()

    def build(self, params: Mapping[str, Any], n_features: int, seed: int):
        """Return an unfitted estimator for `params`.

        Raises:
            ModelFitError: if `params` cannot be honoured with `n_features`
        """
        missing = [p for p in self.param_names if p not in params]
        if missing:
            raise ModelFitError(self.name, dict(params), f"missing hyperparameters {missing}")
        return self._make_estimator(dict(params), n_features, int(seed))

    def _make_estimator(self, params: Dict[str, Any], n_features: int, seed: int):
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class NearestNeighborsFamily(ModelFamily):
    name = "nearest_neighbors"
    label = "k-nearest neighbours"
    param_names = ("n_neighbors",)

    def _make_estimator(self, params, n_features, seed):
        # deterministic; no seed needed
        return KNeighborsRegressor(n_neighbors=int(params["n_neighbors"]))


class LinearFamily(ModelFamily):
    name = "linear"
    label = "Linear regression"

    def _make_estimator(self, params, n_features, seed):
        return LinearRegression()


class ElasticNetFamily(ModelFamily):
    name = "elastic_net"
    label = "Elastic-net regression"
    param_names = ("alpha", "l1_ratio")

    def _make_estimator(self, params, n_features, seed):
        return ElasticNet(
            alpha=float(params["alpha"]),
            l1_ratio=float(params["l1_ratio"]),
            max_iter=10_000,
            random_state=seed,
        )


def _check_max_features(family: str, params: Dict[str, Any], n_features: int) -> int:
    mtry = int(params["max_features"])
    if not 1 <= mtry <= n_features:
        raise ModelFitError(
            family, params,
            f"max_features={mtry} outside [1, {n_features}] available features",
        )
    return mtry


class RandomForestFamily(ModelFamily):
    name = "random_forest"
    label = "Random forest"
    param_names = ("max_features", "n_estimators", "min_samples_leaf")

    def _make_estimator(self, params, n_features, seed):
        mtry = _check_max_features(self.name, params, n_features)
        return RandomForestRegressor(
            n_estimators=int(params["n_estimators"]),
            max_features=mtry,
            min_samples_leaf=int(params["min_samples_leaf"]),
            random_state=seed,
            n_jobs=1,
        )


class BoostedTreesFamily(ModelFamily):
    name = "boosted_trees"
    label = "Gradient-boosted trees"
    param_names = ("max_features", "n_estimators", "learning_rate")

    def _make_estimator(self, params, n_features, seed):
        mtry = _check_max_features(self.name, params, n_features)
        return xgb.XGBRegressor(
            n_estimators=int(params["n_estimators"]),
            learning_rate=float(params["learning_rate"]),
            # candidate-feature count expressed as a per-split column fraction
            colsample_bynode=mtry / n_features,
            objective="reg:squarederror",
            random_state=seed,
            n_jobs=1,
        )


class PolynomialFamily(ModelFamily):
    name = "polynomial"
    label = "Polynomial regression"
    param_names = ("degree",)

    def recipe_for(self, params, base=None):
        return (base or FeatureRecipe()).with_degree(int(params["degree"]))

    def _make_estimator(self, params, n_features, seed):
        return LinearRegression()


FAMILIES: Dict[str, ModelFamily] = {
    f.name: f for f in (
        NearestNeighborsFamily(),
        LinearFamily(),
        ElasticNetFamily(),
        RandomForestFamily(),
        BoostedTreesFamily(),
        PolynomialFamily(),
    )
}


def get_family(family: str | ModelFamily) -> ModelFamily:
    """Resolve a family by name (instances pass through)."""
    if isinstance(family, ModelFamily):
        return family
    try:
        return FAMILIES[family]
    except KeyError:
        raise ConfigurationError(f"Unknown model family '{family}'; choose from {list(FAMILIES)}")
