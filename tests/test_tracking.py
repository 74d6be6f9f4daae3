"""Tests for MLflow experiment tracking against a local file store."""
import sys
import os

import mlflow
import pandas as pd
import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from soccer_injury_analysis.tracking import ExperimentTracker, setup_mlflow_experiment


@pytest.fixture
def tracking_uri(tmp_path):
    return (tmp_path / "mlruns").as_uri()


def test_experiment_setup(tracking_uri):
    """Test that MLflow experiment setup works."""
    exp_id = setup_mlflow_experiment("test_experiment", tracking_uri)
    assert mlflow.get_experiment(exp_id).name == "test_experiment"


def test_grid_search_and_test_runs_are_logged(tracking_uri):
    tracker = ExperimentTracker("injuries_test", tracking_uri)
    table = pd.DataFrame({
        "family": ["nearest_neighbors"] * 2,
        "n_neighbors": [5, 9],
        "params": [{"n_neighbors": 5}, {"n_neighbors": 9}],
        "mean_rmse": [5.2, 5.4],
        "std_err": [0.3, 0.2],
        "n_folds": [20, 20],
        "fold_errors": [[5.0], [5.5]],
    })
    best = {"family": "nearest_neighbors", "params": {"n_neighbors": 5},
            "mean_rmse": 5.2, "std_err": 0.3, "n_folds": 20}
    run_id = tracker.log_grid_search("nearest_neighbors", table, best)

    run = mlflow.get_run(run_id)
    assert run.data.params["n_neighbors"] == "5"
    assert run.data.metrics["cv_mean_rmse"] == pytest.approx(5.2)
    assert run.data.metrics["n_grid_points"] == 2
    assert run.data.tags["family"] == "nearest_neighbors"

    test_table = pd.DataFrame({"family": ["nearest_neighbors"], "params": [{"n_neighbors": 5}],
                               "cv_rmse": [5.2], "test_rmse": [5.9]})
    test_run = mlflow.get_run(tracker.log_test_results(test_table))
    assert test_run.data.metrics["test_rmse_nearest_neighbors"] == pytest.approx(5.9)
    assert set(tracker.run_ids) == {"nearest_neighbors", "test"}
