"""
Grid search over one model family with k-fold cross-validation.

Every (grid point, fold) pair is an independent task dispatched through
joblib with its own seed, so results do not depend on `n_jobs` or on the
order in which tasks finish.  Fold errors of finished grid points can be
persisted in a `GridResultCache` and a later call resumes from them.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import joblib
import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from soccer_injury_analysis.config import config
from soccer_injury_analysis.data.recipe import FeatureRecipe
from soccer_injury_analysis.data.splitter import Fold, fold_signature
from soccer_injury_analysis.exceptions import ConfigurationError, ModelFitError
from soccer_injury_analysis.models.families import ModelFamily, get_family
from soccer_injury_analysis.models.selection import rank_grid_points
from soccer_injury_analysis.models.trainer import fit_predict
from soccer_injury_analysis.utils.metrics import aggregate_fold_errors
from soccer_injury_analysis.utils.model_utils import hash_dict

logger = logging.getLogger(__name__)


def point_key(params: Mapping[str, Any]) -> str:
    """Canonical string for a grid point."""
    return json.dumps(dict(params), sort_keys=True, default=str)


def task_seed(seed: int, point_index: int, fold_index: int) -> int:
    """Independent seed for one (grid point, fold) evaluation."""
    return int(np.random.SeedSequence([seed, point_index, fold_index]).generate_state(1)[0])


class GridResultCache:
    """Write-through store of per-point fold errors, one joblib file per search."""

    def __init__(self, cache_dir: Path | str = config.CACHE_DIR):
        self.cache_dir = Path(cache_dir)

    def key(
        self,
        family: str,
        grid: Mapping[str, Sequence[Any]],
        folds: Sequence[Fold],
        seed: int,
        recipe: Optional[FeatureRecipe] = None,
    ) -> str:
        return f"{family}_" + hash_dict({
            "family": family,
            "grid": {k: list(v) for k, v in grid.items()},
            "folds": fold_signature(folds),
            # row values, so an edited table with the same clubs misses
            "rows": [int(pd.util.hash_pandas_object(f.validation, index=True).sum())
                     for f in folds],
            "seed": seed,
            "recipe": repr(recipe),
        })

    def path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.joblib"

    def load(self, key: str) -> Dict[str, Dict[str, Any]]:
        path = self.path(key)
        if not path.exists():
            return {}
        records = joblib.load(path)
        logger.info("♻️  Resuming %s with %d cached grid points", key, len(records))
        return records

    def save(self, key: str, records: Dict[str, Dict[str, Any]]) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self.path(key)
        tmp = path.with_suffix(".tmp")
        joblib.dump(records, tmp)
        os.replace(tmp, path)


@dataclass
class GridSearchResult:
    """Ranked CV table of one family plus the points that could not be evaluated."""
    family: str
    table: pd.DataFrame
    non_evaluable: pd.DataFrame = field(default_factory=pd.DataFrame)

    @property
    def n_evaluated(self) -> int:
        return len(self.table)


def _evaluate_task(
    family: str,
    params: Dict[str, Any],
    fold: Fold,
    recipe: Optional[FeatureRecipe],
    seed: int,
    point_index: int,
) -> Tuple[int, int, Optional[float], Optional[str]]:
    try:
        error = fit_predict(family, params, fold.train, fold.validation, recipe=recipe, seed=seed)
        return point_index, fold.index, error, None
    except ModelFitError as e:
        return point_index, fold.index, None, e.reason


def _chunks(items: List[Any], size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def grid_search(
    family: str | ModelFamily,
    grid: Optional[Mapping[str, Sequence[Any]]],
    folds: Sequence[Fold],
    recipe: Optional[FeatureRecipe] = None,
    seed: int = config.RANDOM_STATE,
    n_jobs: int = config.N_JOBS,
    cache: Optional[GridResultCache] = None,
    checkpoint_every: int = config.CHECKPOINT_EVERY,
    tie_break: Optional[Sequence[Tuple[str, bool]]] = None,
) -> GridSearchResult:
    """
    Cross-validate every point of `grid` and rank the results.

    Args:
        family: model family name or instance
        grid: hyperparameter name -> candidate values; None uses the
            configured grid for the family
        folds: output of `make_folds`
        recipe: base feature recipe
        seed: root seed; each task derives its own from (seed, point, fold)
        n_jobs: joblib workers
        cache: optional persistent store for resuming
        checkpoint_every: grid points evaluated between cache writes
        tie_break: overrides the family's configured simplicity order

    Returns:
        GridSearchResult whose `table` is sorted best-first
    """
    fam = get_family(family)
    if not folds:
        raise ConfigurationError("grid_search needs at least one fold")
    if checkpoint_every < 1:
        raise ConfigurationError(f"checkpoint_every must be >= 1; got {checkpoint_every}")
    grid = fam.default_grid if grid is None else dict(grid)
    points = fam.expand_grid(grid)

    key = cache.key(fam.name, grid, folds, seed, recipe) if cache is not None else None
    records: Dict[str, Dict[str, Any]] = cache.load(key) if cache is not None else {}
    pending = [(i, p) for i, p in enumerate(points) if point_key(p) not in records]

    logger.info("🔍 %s: %d grid points × %d folds (%d cached)",
                fam.name, len(points), len(folds), len(points) - len(pending))

    for chunk in _chunks(pending, checkpoint_every):
        outcomes = Parallel(n_jobs=n_jobs)(
            delayed(_evaluate_task)(fam.name, params, fold, recipe, task_seed(seed, i, fold.index), i)
            for i, params in chunk
            for fold in folds
        )
        by_point: Dict[int, List[Tuple[int, Optional[float], Optional[str]]]] = {}
        for i, fold_index, error, reason in outcomes:
            by_point.setdefault(i, []).append((fold_index, error, reason))
        for i, params in chunk:
            results = sorted(by_point[i])
            reasons = [r for _, _, r in results if r is not None]
            if reasons:
                records[point_key(params)] = {"errors": None, "reason": reasons[0]}
            else:
                records[point_key(params)] = {"errors": [e for _, e, _ in results], "reason": None}
        if cache is not None:
            cache.save(key, records)

    rows, failed = [], []
    for i, params in enumerate(points):
        record = records[point_key(params)]
        if record["errors"] is None:
            logger.warning("⚠️  %s %s not evaluable: %s", fam.name, params, record["reason"])
            failed.append({"family": fam.name, **params, "params": params, "reason": record["reason"]})
            continue
        mean, std_err = aggregate_fold_errors(record["errors"])
        rows.append({
            "family": fam.name,
            **params,
            "params": params,
            "mean_rmse": mean,
            "std_err": std_err,
            "n_folds": len(record["errors"]),
            "fold_errors": list(record["errors"]),
            "point_index": i,
        })

    columns = ["family", *grid.keys(), "params", "mean_rmse", "std_err", "n_folds", "fold_errors", "point_index"]
    table = pd.DataFrame(rows, columns=columns)
    if not table.empty:
        table = rank_grid_points(table, fam.name, tie_break=tie_break)
    non_evaluable = pd.DataFrame(failed, columns=["family", *grid.keys(), "params", "reason"])

    if not table.empty:
        best = table.iloc[0]
        logger.info("✅ %s best %s: RMSE %.3f ± %.3f",
                    fam.name, best["params"], best["mean_rmse"], best["std_err"])
    else:
        logger.warning("⚠️  %s: no evaluable grid points", fam.name)
    return GridSearchResult(family=fam.name, table=table, non_evaluable=non_evaluable)
