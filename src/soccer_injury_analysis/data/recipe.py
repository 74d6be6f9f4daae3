"""
Feature recipe: fit-once preprocessing derived from training rows only.

`FeatureRecipe` describes *what* to do (column roles, optional polynomial
expansion); `FeatureRecipe.fit` returns a `FittedRecipe`, an immutable value
holding the learnt statistics.  Applying a fitted recipe never looks at the
statistics of the frame being transformed, so the same value can be shared
across folds, grid points and worker processes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.compose import ColumnTransformer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from soccer_injury_analysis.config import config, FEATURE_LISTS
from soccer_injury_analysis.exceptions import ModelFitError

logger = logging.getLogger(__name__)


class OrthogonalPolynomial(BaseEstimator, TransformerMixin):
    """
    Orthogonal polynomial basis of each input column (degrees 1..degree).

    Coefficients of the three-term recurrence are learnt on the training
    column; new data is projected with the stored coefficients, so the basis
    is orthonormal on the training rows only.
    """

    def __init__(self, degree: int = 2):
        self.degree = degree

    def fit(self, X, y=None):
        names = list(X.columns) if hasattr(X, "columns") else None
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if self.degree < 1:
            raise ValueError(f"degree must be >= 1; got {self.degree}")

        self.n_features_in_ = X.shape[1]
        if names is not None:
            self.feature_names_in_ = np.asarray(names, dtype=object)
        self.mean_ = X.mean(axis=0)
        self.scale_ = X.std(axis=0)
        self.scale_[self.scale_ == 0] = 1.0

        self.alpha_: List[np.ndarray] = []
        self.norms_sq_: List[np.ndarray] = []
        for j in range(X.shape[1]):
            x = (X[:, j] - self.mean_[j]) / self.scale_[j]
            n_unique = len(np.unique(x))
            if self.degree >= n_unique:
                raise ValueError(
                    f"degree {self.degree} must be less than the number of unique "
                    f"points ({n_unique}) in column {j}"
                )
            alpha, norms_sq = [], [float(len(x))]
            prev, cur = np.zeros_like(x), np.ones_like(x)
            for d in range(self.degree):
                a = float(np.sum(x * cur ** 2) / norms_sq[d])
                nxt = (x - a) * cur
                if d > 0:
                    nxt -= (norms_sq[d] / norms_sq[d - 1]) * prev
                alpha.append(a)
                norms_sq.append(float(np.sum(nxt ** 2)))
                prev, cur = cur, nxt
            self.alpha_.append(np.asarray(alpha))
            self.norms_sq_.append(np.asarray(norms_sq))
        return self

    def transform(self, X):
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        blocks = []
        for j in range(X.shape[1]):
            x = (X[:, j] - self.mean_[j]) / self.scale_[j]
            alpha, norms_sq = self.alpha_[j], self.norms_sq_[j]
            basis = np.empty((len(x), self.degree))
            prev, cur = np.zeros_like(x), np.ones_like(x)
            for d in range(self.degree):
                nxt = (x - alpha[d]) * cur
                if d > 0:
                    nxt -= (norms_sq[d] / norms_sq[d - 1]) * prev
                basis[:, d] = nxt / np.sqrt(norms_sq[d + 1])
                prev, cur = cur, nxt
            blocks.append(basis)
        return np.hstack(blocks)

    def get_feature_names_out(self, input_features=None):
        if input_features is None:
            input_features = getattr(
                self, "feature_names_in_", [f"x{i}" for i in range(self.n_features_in_)]
            )
        return np.asarray(
            [f"{name}_poly_{d}" for name in input_features for d in range(1, self.degree + 1)],
            dtype=object,
        )


@dataclass(frozen=True)
class FittedRecipe:
    """Statistics learnt by `FeatureRecipe.fit`; apply with `transform`."""
    recipe: "FeatureRecipe"
    transformer: ColumnTransformer
    center: Dict[str, float]
    scale: Dict[str, float]
    categories: Tuple[str, ...]
    feature_names: Tuple[str, ...]
    n_rows: int

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Featurise any subset with the stored statistics."""
        X = self.transformer.transform(df[list(self.recipe.input_columns)])
        return pd.DataFrame(np.asarray(X, dtype=float), columns=list(self.feature_names), index=df.index)

    @property
    def n_features(self) -> int:
        return len(self.feature_names)


@dataclass(frozen=True)
class FeatureRecipe:
    """
    Centre/scale numeric predictors, one-hot encode the league and optionally
    expand `poly_features` into an orthogonal polynomial basis of `degree`.

    `year` and the club identifier are never features.
    """
    numerical: Tuple[str, ...] = tuple(FEATURE_LISTS["numerical"])
    nominal: Tuple[str, ...] = tuple(FEATURE_LISTS["nominal"])
    poly_features: Tuple[str, ...] = ()
    degree: Optional[int] = None

    @classmethod
    def polynomial(cls, degree: int, features: Optional[List[str]] = None) -> "FeatureRecipe":
        """Recipe variant expanding `features` (default config.POLY_FEATURES)."""
        features = config.POLY_FEATURES if features is None else features
        return cls(poly_features=tuple(features), degree=degree)

    def with_degree(self, degree: int) -> "FeatureRecipe":
        return replace(self, poly_features=self.poly_features or tuple(config.POLY_FEATURES), degree=degree)

    @property
    def input_columns(self) -> Tuple[str, ...]:
        return tuple(self.numerical) + tuple(self.nominal)

    @property
    def plain_numerical(self) -> List[str]:
        return [c for c in self.numerical if c not in self.poly_features]

    def _make_column_transformer(self) -> ColumnTransformer:
        transformers = []
        if self.plain_numerical:
            transformers.append(("num_scaled", StandardScaler(), self.plain_numerical))
        if self.poly_features:
            poly_pipe = Pipeline(steps=[
                ("poly", OrthogonalPolynomial(degree=self.degree or 1)),
                ("scale", StandardScaler()),
            ])
            transformers.append(("num_poly", poly_pipe, list(self.poly_features)))
        if self.nominal:
            transformers.append((
                "nominal_onehot",
                OneHotEncoder(handle_unknown="ignore", sparse_output=False),
                list(self.nominal),
            ))
        return ColumnTransformer(
            transformers=transformers,
            remainder="drop",
            verbose_feature_names_out=False,
        )

    def fit(self, train_subset: pd.DataFrame) -> FittedRecipe:
        """
        Learn centring, scaling, category order and polynomial coefficients.

        Raises:
            ModelFitError: if the polynomial degree cannot be honoured on
                these rows (too few distinct values)
        """
        ct = self._make_column_transformer()
        try:
            ct.fit(train_subset[list(self.input_columns)])
        except ValueError as e:
            if self.poly_features:
                raise ModelFitError("polynomial", {"degree": self.degree}, str(e)) from e
            raise

        center: Dict[str, float] = {}
        scale: Dict[str, float] = {}
        if self.plain_numerical:
            scaler = ct.named_transformers_["num_scaled"]
            center.update(zip(self.plain_numerical, map(float, scaler.mean_)))
            scale.update(zip(self.plain_numerical, map(float, scaler.scale_)))
        if self.poly_features:
            poly = ct.named_transformers_["num_poly"].named_steps["poly"]
            center.update(zip(self.poly_features, map(float, poly.mean_)))
            scale.update(zip(self.poly_features, map(float, poly.scale_)))

        categories: Tuple[str, ...] = ()
        if self.nominal:
            encoder = ct.named_transformers_["nominal_onehot"]
            categories = tuple(str(c) for cats in encoder.categories_ for c in cats)

        return FittedRecipe(
            recipe=self,
            transformer=ct,
            center=center,
            scale=scale,
            categories=categories,
            feature_names=tuple(ct.get_feature_names_out()),
            n_rows=len(train_subset),
        )

    def apply(self, fitted: FittedRecipe, subset: pd.DataFrame) -> pd.DataFrame:
        """Transform `subset` with statistics stored in `fitted`."""
        if fitted.recipe != self:
            raise ValueError("FittedRecipe was produced by a different recipe")
        return fitted.transform(subset)
