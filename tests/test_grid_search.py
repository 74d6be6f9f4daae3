"""Tests for the cross-validated grid search."""
import importlib
import sys
import os

import numpy as np
import pandas as pd
import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from soccer_injury_analysis.data.splitter import make_folds, split
from soccer_injury_analysis.data.synthetic import make_synthetic_injury_data
from soccer_injury_analysis.exceptions import ConfigurationError
grid_search_module = importlib.import_module("soccer_injury_analysis.models.grid_search")
from soccer_injury_analysis.models.grid_search import GridResultCache, grid_search, task_seed
from soccer_injury_analysis.models.trainer import fit_predict


@pytest.fixture(scope="module")
def folds():
    data_split = split(make_synthetic_injury_data(), 0.9, "league", seed=2012)
    return make_folds(data_split.train, 5, "league", seed=2012)


def test_singleton_grid_yields_mean_of_fold_errors(folds):
    result = grid_search("nearest_neighbors", {"n_neighbors": [5]}, folds, seed=3)
    assert len(result.table) == 1
    row = result.table.iloc[0]

    expected = [fit_predict("nearest_neighbors", {"n_neighbors": 5}, f.train, f.validation)
                for f in folds]
    assert row["n_folds"] == 5
    assert row["fold_errors"] == pytest.approx(expected)
    assert row["mean_rmse"] == pytest.approx(np.mean(expected))
    assert row["std_err"] == pytest.approx(np.std(expected, ddof=1) / np.sqrt(5))


def test_linear_family_has_one_point(folds):
    result = grid_search("linear", {}, folds)
    assert len(result.table) == 1
    assert result.table.iloc[0]["params"] == {}
    assert result.table.iloc[0]["rank"] == 1


def test_linear_family_with_twenty_folds():
    data_split = split(make_synthetic_injury_data(), 0.9, "league", seed=2012)
    folds20 = make_folds(data_split.train, 20, "league", seed=2012)
    result = grid_search("linear", {}, folds20)

    assert len(result.table) == 1
    row = result.table.iloc[0]
    assert row["n_folds"] == 20
    assert np.isfinite(row["mean_rmse"])
    assert np.isfinite(row["std_err"])


def test_table_is_ranked_best_first(folds):
    result = grid_search("nearest_neighbors", {"n_neighbors": [1, 4, 9]}, folds)
    table = result.table
    assert list(table["rank"]) == [1, 2, 3]
    assert table["mean_rmse"].is_monotonic_increasing
    assert set(table["n_neighbors"]) == {1, 4, 9}


def test_out_of_range_mtry_is_non_evaluable(folds):
    grid = {"max_features": [2, 20], "n_estimators": [10], "min_samples_leaf": [5]}
    result = grid_search("random_forest", grid, folds, seed=1)

    assert list(result.table["max_features"]) == [2]
    assert len(result.non_evaluable) == 1
    failed = result.non_evaluable.iloc[0]
    assert failed["max_features"] == 20
    assert "max_features" in failed["reason"]


def test_family_with_nothing_evaluable_gives_empty_table(folds):
    result = grid_search("polynomial", {"degree": [40]}, folds)
    assert result.table.empty
    assert result.n_evaluated == 0
    assert len(result.non_evaluable) == 1


def test_grid_search_rejects_bad_inputs(folds):
    with pytest.raises(ConfigurationError):
        grid_search("linear", {}, ())
    with pytest.raises(ConfigurationError):
        grid_search("nearest_neighbors", {"depth": [3]}, folds)
    with pytest.raises(ConfigurationError):
        grid_search("linear", {}, folds, checkpoint_every=0)


def test_task_seed_depends_on_point_and_fold():
    assert task_seed(1, 0, 0) == task_seed(1, 0, 0)
    assert len({task_seed(1, p, f) for p in range(3) for f in range(3)}) == 9
    assert task_seed(1, 0, 0) != task_seed(2, 0, 0)


def test_results_do_not_depend_on_n_jobs(folds):
    grid = {"max_features": [2, 4], "n_estimators": [15], "min_samples_leaf": [2]}
    serial = grid_search("random_forest", grid, folds, seed=21, n_jobs=1)
    parallel = grid_search("random_forest", grid, folds, seed=21, n_jobs=2)
    pd.testing.assert_frame_equal(
        serial.table.drop(columns=["params", "fold_errors"]),
        parallel.table.drop(columns=["params", "fold_errors"]),
    )


def test_cache_resumes_without_refitting(folds, tmp_path, monkeypatch):
    cache = GridResultCache(tmp_path)
    grid = {"n_neighbors": [3, 6]}
    first = grid_search("nearest_neighbors", grid, folds, cache=cache, checkpoint_every=1)
    assert len(list(tmp_path.glob("*.joblib"))) == 1

    def _fail(*args, **kwargs):
        raise AssertionError("cached points must not be refit")

    monkeypatch.setattr(grid_search_module, "fit_predict", _fail)
    second = grid_search("nearest_neighbors", grid, folds, cache=cache)
    pd.testing.assert_frame_equal(
        first.table.drop(columns=["params", "fold_errors"]),
        second.table.drop(columns=["params", "fold_errors"]),
    )


def test_cache_key_changes_with_grid_and_seed(folds, tmp_path):
    cache = GridResultCache(tmp_path)
    base = cache.key("nearest_neighbors", {"n_neighbors": [3]}, folds, seed=1)
    assert base == cache.key("nearest_neighbors", {"n_neighbors": [3]}, folds, seed=1)
    assert base != cache.key("nearest_neighbors", {"n_neighbors": [4]}, folds, seed=1)
    assert base != cache.key("nearest_neighbors", {"n_neighbors": [3]}, folds, seed=2)
    assert base.startswith("nearest_neighbors_")


def test_cache_misses_when_row_values_change(tmp_path):
    cache = GridResultCache(tmp_path)
    first = make_synthetic_injury_data(seed=1)
    second = make_synthetic_injury_data(seed=2)
    assert list(first["club"]) == list(second["club"])

    folds_a = make_folds(split(first, 0.9, "league", seed=0).train, 4, "league", seed=0)
    folds_b = make_folds(split(second, 0.9, "league", seed=0).train, 4, "league", seed=0)
    assert cache.key("linear", {}, folds_a, seed=0) != cache.key("linear", {}, folds_b, seed=0)

    grid_search("linear", {}, folds_a, cache=cache)
    cached = grid_search("linear", {}, folds_b, cache=cache)
    fresh = grid_search("linear", {}, folds_b)
    assert cached.table.iloc[0]["mean_rmse"] == pytest.approx(fresh.table.iloc[0]["mean_rmse"])
