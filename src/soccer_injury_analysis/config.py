"""
Configuration module for the Soccer Injury Analysis package.
Contains all constants, paths, hyperparameter grids and tie-break rules.
"""
from pathlib import Path
from typing import Dict, List, Tuple, Any

import numpy as np


class Config:
    """Main configuration class for the Soccer Injury Analysis package."""
    MLFLOW_EXPERIMENT_NAME = "soccer_muscle_injuries"

    # Base paths - resolved relative to the project root
    _CONFIG_DIR = Path(__file__).parent.parent.parent  # Go up to project root
    PROJECT_ROOT = _CONFIG_DIR.resolve()

    DATA_DIR = PROJECT_ROOT / "data"
    RAW_DATA_DIR = DATA_DIR / "raw"
    OUTPUT_DIR = PROJECT_ROOT / "output"
    CACHE_DIR = OUTPUT_DIR / "grid_cache"
    MODELS_DIR = PROJECT_ROOT / "models"
    MLRUNS_DIR = PROJECT_ROOT / "mlruns"

    # Raw data file (one row per club-season)
    RAW_DATA_FILE = RAW_DATA_DIR / "muscle_injuries.csv"

    # Domains of the categorical columns
    LEAGUES: Tuple[str, ...] = ("EPL", "LaLiga", "Bundesliga")
    YEARS: Tuple[str, ...] = ("2019", "2020")

    # Split / resampling
    TRAIN_FRACTION = 0.9
    STRATIFY_BY = "league"
    CV_FOLDS = 20
    RANDOM_STATE = 2012
    N_JOBS = 1
    CHECKPOINT_EVERY = 10  # grid points between cache writes

    # Model selection
    N_FINALISTS = 2
    TIE_DECIMALS = 10

    # Numeric predictors expanded by the polynomial recipe
    POLY_FEATURES: List[str] = ["squad_size", "squad_value", "avg_age", "ltinj", "match"]

    # ─── Hyperparameter grids (one entry per model family) ──────────
    HYPERPARAMETER_GRIDS: Dict[str, Dict[str, List[Any]]] = {
        "nearest_neighbors": {"n_neighbors": list(range(1, 16))},
        "linear": {},
        "elastic_net": {
            "alpha": [float(a) for a in np.logspace(-3, 0, 5)],
            "l1_ratio": [0.0, 0.25, 0.5, 0.75, 1.0],
        },
        "random_forest": {
            "max_features": [1, 3, 5, 8],
            "n_estimators": [50, 150, 300],
            "min_samples_leaf": [2, 5, 10],
        },
        "boosted_trees": {
            "max_features": [1, 3, 5, 8],
            "n_estimators": [50, 150, 300],
            "learning_rate": [0.01, 0.05, 0.1, 0.3],
        },
        "polynomial": {"degree": list(range(1, 11))},
    }

    # ─── Tie-break: simplicity order per family ─────────────────────
    # Applied only when two grid points share the same (rounded) mean error.
    # Each entry is (hyperparameter, ascending); the first point in that
    # order is the simpler one.
    TIE_BREAK: Dict[str, List[Tuple[str, bool]]] = {
        "nearest_neighbors": [("n_neighbors", False)],   # more neighbours = smoother
        "linear": [],
        "elastic_net": [("alpha", False), ("l1_ratio", False)],
        "random_forest": [("n_estimators", True), ("max_features", True), ("min_samples_leaf", False)],
        "boosted_trees": [("n_estimators", True), ("max_features", True), ("learning_rate", True)],
        "polynomial": [("degree", True)],
    }

    # Experiment tracking
    TRACK_WITH_MLFLOW = False

    # Visualization settings
    FIGURE_SIZE = (12, 8)
    DPI = 100

    @classmethod
    def ensure_directories(cls):
        """Create all required directories if they don't exist."""
        for dir_path in [cls.RAW_DATA_DIR, cls.OUTPUT_DIR,
                         cls.CACHE_DIR, cls.MODELS_DIR]:
            dir_path.mkdir(parents=True, exist_ok=True)


# Create global config instance
config = Config()

# ───────────────────────── Feature catalogue ─────────────────────────
# Single source of truth for column roles.
# `year` is deliberately absent from the predictors: the season is not known
# when the model is built.
FEATURE_LISTS: Dict[str, List[str]] = {
    "numerical": ["squad_size", "squad_value", "avg_age", "ltinj", "match"],
    "nominal": ["league"],
    "identifier": ["club"],
    "excluded": ["year"],
    "y_variable": ["muscle_inj"],
}

config.FEATURE_LISTS = FEATURE_LISTS

if __name__ == "__main__":
    print("Soccer Injury Analysis Configuration")
    print("=" * 40)
    print(f"Data file: {config.RAW_DATA_FILE}")
    print(f"Train fraction: {config.TRAIN_FRACTION}")
    print(f"CV folds: {config.CV_FOLDS}")
    print(f"Families: {list(config.HYPERPARAMETER_GRIDS)}")

    config.ensure_directories()
    print("******* Configuration loaded and directories created!")
