"""
Model selection: best grid point per family, family leaderboard, finalists.

Tie-break rule
--------------
Grid points are ordered by mean cross-validated RMSE (rounded to
`config.TIE_DECIMALS`).  Points sharing that mean are ordered by the family's
simplicity order (`config.TIE_BREAK`: fewer trees, lower degree, more
neighbours, stronger penalty, ...), then by the smaller standard error and
finally by enumeration order.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from soccer_injury_analysis.config import config
from soccer_injury_analysis.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def rank_grid_points(
    table: pd.DataFrame,
    family: str,
    tie_break: Optional[Sequence[Tuple[str, bool]]] = None,
    decimals: int = config.TIE_DECIMALS,
) -> pd.DataFrame:
    """Sort a CV result table best-first and add a 1-based `rank` column."""
    order = list(config.TIE_BREAK.get(family, []) if tie_break is None else tie_break)
    order = [(col, asc) for col, asc in order if col in table.columns]

    ranked = table.assign(_mean_key=table["mean_rmse"].round(decimals))
    if "point_index" not in ranked.columns:
        ranked = ranked.assign(point_index=range(len(ranked)))
    by = ["_mean_key"] + [c for c, _ in order] + ["std_err", "point_index"]
    ascending = [True] + [a for _, a in order] + [True, True]
    ranked = (ranked.sort_values(by, ascending=ascending, kind="mergesort", na_position="last")
                    .drop(columns="_mean_key")
                    .reset_index(drop=True))
    ranked["rank"] = ranked.index + 1
    return ranked


def select_best(
    table: pd.DataFrame,
    family: Optional[str] = None,
    tie_break: Optional[Sequence[Tuple[str, bool]]] = None,
) -> Dict[str, Any]:
    """
    Pick the grid point minimising mean CV error.

    Args:
        table: CV result table of one family
        family: family name; defaults to the table's `family` column
        tie_break: overrides the configured simplicity order

    Returns:
        dict with family, params, mean_rmse, std_err, n_folds
    """
    if table.empty:
        raise ValueError(f"No evaluable grid points for family '{family}'")
    family = family or str(table["family"].iloc[0])
    best = rank_grid_points(table, family, tie_break=tie_break).iloc[0]
    return {
        "family": family,
        "params": dict(best["params"]),
        "mean_rmse": float(best["mean_rmse"]),
        "std_err": float(best["std_err"]),
        "n_folds": int(best["n_folds"]),
    }


def rank_families(
    best_per_family: Mapping[str, Mapping[str, Any]] | Sequence[Mapping[str, Any]],
    decimals: int = config.TIE_DECIMALS,
) -> pd.DataFrame:
    """
    Leaderboard of families by their best mean CV error, ascending.

    Families whose errors are equal after rounding to `decimals` are
    ordered by name.
    """
    rows = list(best_per_family.values()) if isinstance(best_per_family, Mapping) else list(best_per_family)
    if not rows:
        return pd.DataFrame(columns=["rank", "family", "mean_rmse", "std_err", "params"])
    board = pd.DataFrame([{
                "family": r["family"],
                "mean_rmse": r["mean_rmse"],
                "std_err": r["std_err"],
                "params": dict(r["params"]),
            } for r in rows])
    board = (board.assign(_mean_key=board["mean_rmse"].round(decimals))
                  .sort_values(["_mean_key", "family"], kind="mergesort")
                  .drop(columns="_mean_key")
                  .reset_index(drop=True))
    board.insert(0, "rank", board.index + 1)
    return board


def choose_finalists(leaderboard: pd.DataFrame, n: int = config.N_FINALISTS) -> List[str]:
    """Top-`n` families of the leaderboard."""
    if n < 1:
        raise ConfigurationError(f"Number of finalists must be >= 1; got {n}")
    if n > len(leaderboard):
        logger.warning("Requested %d finalists but only %d families ranked", n, len(leaderboard))
    finalists = leaderboard["family"].head(n).tolist()
    logger.info("🏆 Finalists: %s", finalists)
    return finalists
