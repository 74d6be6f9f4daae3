"""Tests for the stratified split and fold assignment."""
import sys
import os

import numpy as np
import pandas as pd
import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from soccer_injury_analysis.data.splitter import fold_signature, make_folds, split
from soccer_injury_analysis.data.synthetic import make_synthetic_injury_data
from soccer_injury_analysis.exceptions import ConfigurationError


@pytest.fixture(scope="module")
def dataset():
    return make_synthetic_injury_data()


@pytest.fixture(scope="module")
def data_split(dataset):
    return split(dataset, 0.9, "league", seed=2012)


def test_split_sizes(data_split):
    """116 rows at 0.9 give 104 training and 12 test rows."""
    assert len(data_split.train) == 104
    assert len(data_split.test) == 12


def test_split_is_a_partition(dataset, data_split):
    train_ids = set(data_split.train["club"])
    test_ids = set(data_split.test["club"])
    assert train_ids.isdisjoint(test_ids)
    assert train_ids | test_ids == set(dataset["club"])


def test_split_preserves_league_shares(dataset, data_split):
    full = dataset["league"].value_counts(normalize=True)
    train = data_split.train["league"].value_counts(normalize=True)
    test_counts = data_split.test["league"].value_counts()
    for league in full.index:
        assert abs(train[league] - full[league]) < 0.02
        assert test_counts[league] >= 1


def test_split_is_deterministic(dataset):
    a = split(dataset, 0.9, "league", seed=7)
    b = split(dataset, 0.9, "league", seed=7)
    c = split(dataset, 0.9, "league", seed=8)
    pd.testing.assert_frame_equal(a.test, b.test)
    assert set(a.test["club"]) != set(c.test["club"])


def test_split_keeps_original_index(dataset, data_split):
    pd.testing.assert_frame_equal(data_split.train, dataset.loc[data_split.train.index])


@pytest.mark.parametrize("fraction", [0.0, 1.0, -0.2, 1.5])
def test_split_rejects_bad_fraction(dataset, fraction):
    with pytest.raises(ConfigurationError):
        split(dataset, fraction, "league", seed=1)


def test_split_rejects_unknown_field(dataset):
    with pytest.raises(ConfigurationError):
        split(dataset, 0.9, "division", seed=1)


def test_split_rejects_singleton_stratum(dataset):
    df = dataset.copy()
    df.loc[df.index[0], "league"] = "Ligue1"
    with pytest.raises(ConfigurationError):
        split(df, 0.9, "league", seed=1)


def test_folds_cover_training_rows_once(data_split):
    folds = make_folds(data_split.train, 20, "league", seed=2012)
    assert len(folds) == 20

    held_out = pd.concat([f.validation for f in folds])
    assert sorted(held_out["club"]) == sorted(data_split.train["club"])
    for fold in folds:
        assert set(fold.train["club"]).isdisjoint(fold.validation["club"])
        assert len(fold.train) + len(fold.validation) == len(data_split.train)


def test_fold_sizes_differ_by_at_most_one(data_split):
    folds = make_folds(data_split.train, 20, "league", seed=2012)
    sizes = [len(f.validation) for f in folds]
    assert max(sizes) - min(sizes) <= 1
    assert sum(sizes) == 104

    for league in data_split.train["league"].unique():
        per_league = [(f.validation["league"] == league).sum() for f in folds]
        assert max(per_league) - min(per_league) <= 1


def test_folds_are_deterministic(data_split):
    a = make_folds(data_split.train, 5, "league", seed=3)
    b = make_folds(data_split.train, 5, "league", seed=3)
    assert fold_signature(a) == fold_signature(b)
    assert [f.index for f in a] == list(range(5))


def test_leave_one_out_folds(dataset):
    small = dataset.head(12)
    folds = make_folds(small, len(small), "league", seed=0)
    assert all(len(f.validation) == 1 for f in folds)


@pytest.mark.parametrize("k", [1, 0, 105, 2.5, True])
def test_make_folds_rejects_bad_k(data_split, k):
    with pytest.raises(ConfigurationError):
        make_folds(data_split.train, k, "league", seed=0)


def test_fold_indices_are_numpy_safe(data_split):
    folds = make_folds(data_split.train, np.int64(4), "league", seed=0)
    assert len(folds) == 4
