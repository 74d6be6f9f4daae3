"""
FeatureSchema – canonical column lists for validation & modelling.
"""
from dataclasses import dataclass, field
from typing import List

import pandas as pd

from soccer_injury_analysis.config import FEATURE_LISTS


@dataclass(frozen=True)
class FeatureSchema:
    """Container class listing every column by semantic type."""
    numerical: List[str] = field(default_factory=lambda: list(FEATURE_LISTS["numerical"]))
    nominal:   List[str] = field(default_factory=lambda: list(FEATURE_LISTS["nominal"]))
    excluded:  List[str] = field(default_factory=lambda: list(FEATURE_LISTS["excluded"]))
    identifier: str      = FEATURE_LISTS["identifier"][0]
    target:    str       = FEATURE_LISTS["y_variable"][0]

    # ───── convenience helpers ────────────────────────────────────
    @property
    def model_features(self) -> List[str]:
        """All predictors in modelling order."""
        return self.numerical + self.nominal

    @property
    def all_columns(self) -> List[str]:
        """Every column an observation must carry."""
        return [self.identifier] + self.model_features + self.excluded + [self.target]

    def missing_columns(self, df: pd.DataFrame) -> List[str]:
        """Declared columns absent from df.columns."""
        return [c for c in self.all_columns if c not in df.columns]
