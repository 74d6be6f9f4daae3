"""
Stratified train/test split and stratified k-fold assignment.

Both operations are pure functions of their inputs and seed; the returned
records are never mutated downstream.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from soccer_injury_analysis.config import config
from soccer_injury_analysis.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataSplit:
    """Disjoint train/test partition of the dataset."""
    train: pd.DataFrame
    test: pd.DataFrame


@dataclass(frozen=True)
class Fold:
    """One resample: `validation` is a single fold, `train` the union of the rest."""
    index: int
    train: pd.DataFrame
    validation: pd.DataFrame


def _check_stratum(df: pd.DataFrame, stratify_by: str) -> pd.Series:
    if stratify_by not in df.columns:
        raise ConfigurationError(f"Stratification field '{stratify_by}' not in columns {list(df.columns)}")
    strata = df[stratify_by]
    if strata.isna().any():
        raise ConfigurationError(f"Stratification field '{stratify_by}' has missing values")
    return strata


def split(
    dataset: pd.DataFrame,
    train_fraction: float = config.TRAIN_FRACTION,
    stratify_by: str = config.STRATIFY_BY,
    seed: int = config.RANDOM_STATE,
) -> DataSplit:
    """
    Split the dataset into train and test, stratified by a categorical column.

    Args:
        dataset: full observation table
        train_fraction: share of rows sent to train, strictly between 0 and 1
        stratify_by: categorical column whose proportions are preserved
        seed: random state for the shuffle

    Returns:
        DataSplit whose frames keep the original index, in original order
    """
    if not 0 < train_fraction < 1:
        raise ConfigurationError(f"train_fraction must be in (0, 1); got {train_fraction}")
    strata = _check_stratum(dataset, stratify_by)

    counts = strata.value_counts()
    too_small = counts[counts < 2]
    if len(too_small):
        raise ConfigurationError(
            f"Strata with fewer than 2 members cannot be split: {too_small.to_dict()}"
        )

    positions = np.arange(len(dataset))
    try:
        train_pos, test_pos = train_test_split(
            positions,
            train_size=train_fraction,
            stratify=strata.to_numpy(),
            random_state=seed,
        )
    except ValueError as e:
        # e.g. fewer test rows than strata
        raise ConfigurationError(f"Cannot build a stratified split: {e}") from e

    train = dataset.iloc[np.sort(train_pos)]
    test = dataset.iloc[np.sort(test_pos)]
    logger.info("Split %d rows → train %d / test %d (stratified by %s)",
                len(dataset), len(train), len(test), stratify_by)
    return DataSplit(train=train, test=test)


def make_folds(
    train: pd.DataFrame,
    k: int = config.CV_FOLDS,
    stratify_by: str = config.STRATIFY_BY,
    seed: int = config.RANDOM_STATE,
) -> Tuple[Fold, ...]:
    """
    Assign every training row to exactly one of k validation folds.

    Rows of each stratum are shuffled and dealt round-robin, continuing the
    fold counter across strata, so both per-stratum and overall fold sizes
    differ by at most one.

    Args:
        train: training subset
        k: number of folds, 2 <= k <= len(train)
        stratify_by: categorical column used for stratification
        seed: random state for the within-stratum shuffle

    Returns:
        Tuple of k Fold records
    """
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise ConfigurationError(f"k must be an integer; got {k!r}")
    if not 2 <= k <= len(train):
        raise ConfigurationError(f"k must be in [2, {len(train)}]; got {k}")
    _check_stratum(train, stratify_by)

    rng = np.random.default_rng(seed)
    fold_of = np.empty(len(train), dtype=int)
    offset = 0
    for _, idxs in sorted(train.groupby(stratify_by).indices.items()):
        idxs = rng.permutation(idxs)
        fold_of[idxs] = (offset + np.arange(len(idxs))) % k
        offset += len(idxs)

    folds = tuple(
        Fold(
            index=f,
            train=train.iloc[np.flatnonzero(fold_of != f)],
            validation=train.iloc[np.flatnonzero(fold_of == f)],
        )
        for f in range(k)
    )
    logger.info("Built %d stratified folds of sizes %s", k, sorted({len(f.validation) for f in folds}))
    return folds


def fold_signature(folds: Tuple[Fold, ...], id_col: str = "club") -> list:
    """Stable description of a fold assignment, used in cache keys."""
    return [sorted(map(str, f.validation[id_col])) for f in folds]
