"""Tests for best-point selection, the family leaderboard and finalists."""
import sys
import os

import pandas as pd
import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from soccer_injury_analysis.exceptions import ConfigurationError
from soccer_injury_analysis.models.selection import (
    choose_finalists,
    rank_families,
    rank_grid_points,
    select_best,
)


def _table(family, rows):
    df = pd.DataFrame(rows)
    df["family"] = family
    df["n_folds"] = 20
    param_cols = [c for c in df.columns if c not in {"family", "mean_rmse", "std_err", "n_folds"}]
    df["params"] = [{c: r[c] for c in param_cols} for r in df.to_dict("records")]
    df["point_index"] = range(len(df))
    return df


def test_select_best_minimises_mean_error():
    table = _table("nearest_neighbors", [
        {"n_neighbors": 3, "mean_rmse": 5.9, "std_err": 0.2},
        {"n_neighbors": 7, "mean_rmse": 5.4, "std_err": 0.3},
        {"n_neighbors": 11, "mean_rmse": 5.6, "std_err": 0.1},
    ])
    best = select_best(table)
    assert best["family"] == "nearest_neighbors"
    assert best["params"] == {"n_neighbors": 7}
    assert best["mean_rmse"] == pytest.approx(5.4)
    assert best["n_folds"] == 20


def test_tie_prefers_simpler_polynomial():
    table = _table("polynomial", [
        {"degree": 4, "mean_rmse": 5.21, "std_err": 0.1},
        {"degree": 2, "mean_rmse": 5.21, "std_err": 0.3},
    ])
    assert select_best(table)["params"] == {"degree": 2}


def test_tie_without_simplicity_order_prefers_smaller_std_err():
    table = _table("polynomial", [
        {"degree": 2, "mean_rmse": 5.21, "std_err": 0.3},
        {"degree": 4, "mean_rmse": 5.21, "std_err": 0.1},
    ])
    assert select_best(table, tie_break=[])["params"] == {"degree": 4}


def test_tie_prefers_more_neighbours():
    table = _table("nearest_neighbors", [
        {"n_neighbors": 3, "mean_rmse": 5.0, "std_err": 0.2},
        {"n_neighbors": 9, "mean_rmse": 5.0, "std_err": 0.2},
    ])
    assert select_best(table)["params"] == {"n_neighbors": 9}


def test_full_tie_falls_back_to_enumeration_order():
    table = _table("linear", [
        {"mean_rmse": 5.0, "std_err": 0.2},
        {"mean_rmse": 5.0, "std_err": 0.2},
    ])
    ranked = rank_grid_points(table, "linear")
    assert list(ranked["point_index"]) == [0, 1]
    assert list(ranked["rank"]) == [1, 2]


def test_select_best_rejects_empty_table():
    with pytest.raises(ValueError):
        select_best(pd.DataFrame(columns=["family", "params", "mean_rmse", "std_err", "n_folds"]), "linear")


def _best(family, mean_rmse, std_err=0.2):
    return {"family": family, "params": {}, "mean_rmse": mean_rmse, "std_err": std_err, "n_folds": 20}


def test_rank_families_orders_by_mean_error():
    board = rank_families({
        "linear": _best("linear", 5.6),
        "random_forest": _best("random_forest", 5.1),
        "polynomial": _best("polynomial", 5.3),
    })
    assert list(board["family"]) == ["random_forest", "polynomial", "linear"]
    assert list(board["rank"]) == [1, 2, 3]


def test_rank_families_breaks_ties_by_name():
    board = rank_families([_best("polynomial", 5.0), _best("linear", 5.0)])
    assert list(board["family"]) == ["linear", "polynomial"]


def test_rank_families_rounds_before_breaking_ties():
    board = rank_families([_best("polynomial", 5.21), _best("linear", 5.21 + 1e-15)])
    assert list(board["family"]) == ["linear", "polynomial"]


def test_rank_families_empty():
    board = rank_families({})
    assert board.empty
    assert "family" in board.columns


def test_choose_finalists_takes_top_n():
    board = rank_families([_best("a", 5.1), _best("b", 5.3), _best("c", 5.6)])
    assert choose_finalists(board, 2) == ["a", "b"]
    assert choose_finalists(board, 1) == ["a"]


def test_choose_finalists_more_than_ranked(caplog):
    board = rank_families([_best("a", 5.1)])
    with caplog.at_level("WARNING"):
        assert choose_finalists(board, 3) == ["a"]
    assert "only 1 families" in caplog.text


def test_choose_finalists_rejects_non_positive_cutoff():
    board = rank_families([_best("a", 5.1)])
    with pytest.raises(ConfigurationError):
        choose_finalists(board, 0)
