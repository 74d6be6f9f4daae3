"""
End-to-end model selection for seasonal muscle-injury counts.

split → folds of train → grid search per family → best point per family →
family leaderboard → finalists refit on train and scored once on test.

All state (dataset, settings, cache, tracker) is passed in explicitly, so
the pipeline can be rerun and tested in isolation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from soccer_injury_analysis.config import config
from soccer_injury_analysis.data.recipe import FeatureRecipe
from soccer_injury_analysis.data.splitter import make_folds, split
from soccer_injury_analysis.exceptions import ConfigurationError
from soccer_injury_analysis.models.evaluation import TestEvaluator
from soccer_injury_analysis.models.families import FAMILIES, get_family
from soccer_injury_analysis.models.grid_search import GridResultCache, GridSearchResult, grid_search
from soccer_injury_analysis.models.selection import choose_finalists, rank_families, select_best
from soccer_injury_analysis.tracking import ExperimentTracker
from soccer_injury_analysis.utils.model_utils import save_model

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineSettings:
    """Every recognised configuration option of a run."""
    train_fraction: float = config.TRAIN_FRACTION
    stratify_by: str = config.STRATIFY_BY
    k: int = config.CV_FOLDS
    n_finalists: int = config.N_FINALISTS
    seed: int = config.RANDOM_STATE
    n_jobs: int = config.N_JOBS
    families: Tuple[str, ...] = tuple(FAMILIES)
    grids: Mapping[str, Mapping[str, Sequence[Any]]] = field(
        default_factory=lambda: {k: dict(v) for k, v in config.HYPERPARAMETER_GRIDS.items()}
    )
    tie_break: Mapping[str, Sequence[Tuple[str, bool]]] = field(
        default_factory=lambda: dict(config.TIE_BREAK)
    )
    checkpoint_every: int = config.CHECKPOINT_EVERY

    def with_overrides(self, **overrides) -> "PipelineSettings":
        return replace(self, **overrides)

    def validate(self) -> None:
        if not 0 < self.train_fraction < 1:
            raise ConfigurationError(f"train_fraction must be in (0, 1); got {self.train_fraction}")
        if self.k < 2:
            raise ConfigurationError(f"k must be >= 2; got {self.k}")
        if self.n_finalists < 1:
            raise ConfigurationError(f"n_finalists must be >= 1; got {self.n_finalists}")
        for name in self.families:
            get_family(name)


@dataclass
class PipelineResult:
    """Every artefact of a run."""
    cv_results: Dict[str, GridSearchResult]
    best_per_family: Dict[str, Dict[str, Any]]
    leaderboard: pd.DataFrame
    finalists: List[str]
    test_results: pd.DataFrame
    train_size: int
    test_size: int

    def save(self, output_dir: Optional[Path] = None) -> Path:
        """Write CV tables, non-evaluable points, leaderboard and test table as CSV."""
        output_dir = Path(output_dir or config.OUTPUT_DIR)
        output_dir.mkdir(parents=True, exist_ok=True)
        for name, result in self.cv_results.items():
            result.table.drop(columns=["fold_errors"], errors="ignore").to_csv(
                output_dir / f"cv_{name}.csv", index=False)
            if len(result.non_evaluable):
                result.non_evaluable.to_csv(output_dir / f"non_evaluable_{name}.csv", index=False)
        self.leaderboard.to_csv(output_dir / "leaderboard.csv", index=False)
        self.test_results.to_csv(output_dir / "test_results.csv", index=False)
        logger.info("✅ Saved results to %s", output_dir)
        return output_dir


class InjuryModelingPipeline:
    """Runs the cross-validated model comparison on one dataset."""

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        recipe: Optional[FeatureRecipe] = None,
        cache: Optional[GridResultCache] = None,
        tracker: Optional[ExperimentTracker] = None,
        models_dir: Optional[Path] = None,
    ):
        self.settings = settings or PipelineSettings()
        self.settings.validate()
        self.recipe = recipe or FeatureRecipe()
        self.cache = cache
        self.tracker = tracker
        self.models_dir = models_dir

    def run(self, dataset: pd.DataFrame) -> PipelineResult:
        s = self.settings
        data_split = split(dataset, s.train_fraction, s.stratify_by, s.seed)
        folds = make_folds(data_split.train, s.k, s.stratify_by, s.seed)

        cv_results: Dict[str, GridSearchResult] = {}
        best_per_family: Dict[str, Dict[str, Any]] = {}
        for name in s.families:
            result = grid_search(
                name,
                s.grids.get(name),
                folds,
                recipe=self.recipe,
                seed=s.seed,
                n_jobs=s.n_jobs,
                cache=self.cache,
                checkpoint_every=s.checkpoint_every,
                tie_break=s.tie_break.get(name),
            )
            cv_results[name] = result
            if result.table.empty:
                logger.warning("⚠️  Dropping %s from the leaderboard: nothing evaluable", name)
                continue
            best_per_family[name] = select_best(result.table, name, tie_break=s.tie_break.get(name))
            if self.tracker is not None:
                self.tracker.log_grid_search(name, result.table, best_per_family[name])

        leaderboard = rank_families(best_per_family)
        logger.info("📊 Leaderboard:\n%s", leaderboard[["rank", "family", "mean_rmse", "std_err"]].to_string(index=False))
        finalists = choose_finalists(leaderboard, s.n_finalists)

        evaluator = TestEvaluator(data_split, recipe=self.recipe, seed=s.seed)
        test_results = evaluator.evaluate_finalists(best_per_family[name] for name in finalists)

        if self.tracker is not None and len(test_results):
            self.tracker.log_test_results(test_results)
        if self.models_dir is not None:
            for name, res in evaluator.results.items():
                save_model(res.model, name, metrics=res.metrics, meta={"params": res.params},
                           base_dir=self.models_dir)

        return PipelineResult(
            cv_results=cv_results,
            best_per_family=best_per_family,
            leaderboard=leaderboard,
            finalists=finalists,
            test_results=test_results,
            train_size=len(data_split.train),
            test_size=evaluator.n_test,
        )


if __name__ == "__main__":
    from soccer_injury_analysis.data.loader import DataLoader
    from soccer_injury_analysis.data.synthetic import make_synthetic_injury_data

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s │ %(levelname)s │ %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    config.ensure_directories()

    if config.RAW_DATA_FILE.exists():
        df = DataLoader().load()
    else:
        logger.warning("%s not found; using synthetic data", config.RAW_DATA_FILE)
        df = make_synthetic_injury_data()

    tracker = ExperimentTracker() if config.TRACK_WITH_MLFLOW else None
    pipeline = InjuryModelingPipeline(
        cache=GridResultCache(config.CACHE_DIR),
        tracker=tracker,
        models_dir=config.MODELS_DIR,
    )
    result = pipeline.run(df)
    result.save()

    print("\n📊 Leaderboard:")
    print(result.leaderboard.to_string(index=False))
    print("\n🎯 Test results:")
    print(result.test_results.to_string(index=False))
