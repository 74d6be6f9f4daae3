"""
MLflow logging helpers for grid-search and test results.
"""
from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import mlflow
import pandas as pd

from soccer_injury_analysis.config import config

logger = logging.getLogger(__name__)


def _local_uri(root: Path) -> str:
    """Local file store for tracking data."""
    root.mkdir(parents=True, exist_ok=True)
    return root.resolve().as_uri()


def setup_mlflow_experiment(
    experiment_name: Optional[str] = None,
    tracking_uri: Optional[str] = None,
) -> str:
    """
    Point MLflow at `tracking_uri` (default: local ./mlruns) and make sure
    the experiment exists.

    Returns:
        The experiment id
    """
    exp_name = experiment_name or config.MLFLOW_EXPERIMENT_NAME
    uri = tracking_uri or _local_uri(config.MLRUNS_DIR)
    mlflow.set_tracking_uri(uri)
    experiment = mlflow.set_experiment(exp_name)
    logger.info("🗂  Using MLflow experiment '%s' @ %s", exp_name, uri)
    return experiment.experiment_id


def _log_table(df: pd.DataFrame, artifact_name: str) -> None:
    """Log a DataFrame as a CSV artifact."""
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / artifact_name
        df.to_csv(path, index=False)
        mlflow.log_artifact(str(path))


class ExperimentTracker:
    """Logs one MLflow run per model family plus one run for the test stage."""

    def __init__(self, experiment_name: Optional[str] = None, tracking_uri: Optional[str] = None):
        self.experiment_id = setup_mlflow_experiment(experiment_name, tracking_uri)
        self.run_ids: Dict[str, str] = {}

    def log_grid_search(self, family: str, table: pd.DataFrame, best: Dict[str, Any]) -> str:
        """Log the best point's params and CV error, with the full table as artifact."""
        with mlflow.start_run(experiment_id=self.experiment_id, run_name=f"cv_{family}") as run:
            mlflow.set_tag("stage", "cross_validation")
            mlflow.set_tag("family", family)
            mlflow.log_params(best["params"])
            mlflow.log_metrics({
                "cv_mean_rmse": best["mean_rmse"],
                "cv_std_err": best["std_err"],
                "n_grid_points": float(len(table)),
            })
            _log_table(table.drop(columns=["fold_errors"], errors="ignore"), f"cv_{family}.csv")
            self.run_ids[family] = run.info.run_id
        return self.run_ids[family]

    def log_test_results(self, test_table: pd.DataFrame) -> str:
        """Log each finalist's test RMSE."""
        with mlflow.start_run(experiment_id=self.experiment_id, run_name="test_evaluation") as run:
            mlflow.set_tag("stage", "test")
            mlflow.log_metrics({
                f"test_rmse_{row.family}": float(row.test_rmse)
                for row in test_table.itertuples()
            })
            _log_table(test_table, "test_results.csv")
            self.run_ids["test"] = run.info.run_id
        return self.run_ids["test"]
