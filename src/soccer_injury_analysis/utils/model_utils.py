"""
Model persistence utilities for soccer muscle-injury analysis.

Fitted finalists (recipe + estimator) are saved with joblib into timestamped
version folders next to a metrics.json file.
"""
from __future__ import annotations

import datetime as _dt
import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Optional

import joblib  # fast, compressed persistence

from soccer_injury_analysis.config import config

logger = logging.getLogger(__name__)

DEFAULT_DIR = config.MODELS_DIR


def _timestamp() -> str:
    """Helper for version folders - returns current timestamp as string."""
    return _dt.datetime.now().strftime("%Y%m%d_%H%M%S_%f")


def hash_dict(d: dict) -> str:
    """Create stable 12-char SHA-1 hash of dict for cache keys."""
    raw = json.dumps(d, sort_keys=True, default=str).encode()
    return hashlib.sha1(raw).hexdigest()[:12]


def save_model(
    model: Any,
    name: str,
    metrics: dict[str, float],
    meta: dict | None = None,
    base_dir: Path = DEFAULT_DIR,
) -> Path:
    """
    Persist a fitted model with its metrics in a new version folder.

    Returns:
        Path of the written model.joblib
    """
    version_dir = Path(base_dir) / name / _timestamp()
    version_dir.mkdir(parents=True, exist_ok=True)

    with open(version_dir / "metrics.json", "w") as f:
        json.dump(metrics, f, indent=2)
    if meta:
        with open(version_dir / "meta.json", "w") as f:
            json.dump(meta, f, indent=2, default=str)

    path = version_dir / "model.joblib"
    joblib.dump(model, path)
    logger.info("✅ Saved %s to %s", name, path)
    return path


def list_saved_models(base_dir: Path = DEFAULT_DIR) -> dict[str, list[str]]:
    """
    List all saved models and their version subdirectories, newest first.
    """
    base_dir = Path(base_dir)
    if not base_dir.exists():
        return {}
    models = {}
    for d in base_dir.iterdir():
        if d.is_dir():
            versions = [v.name for v in d.iterdir() if v.is_dir()]
            if versions:
                models[d.name] = sorted(versions, reverse=True)
    return models


def _version_dir(name: str, version: Optional[str], base_dir: Path) -> Path:
    model_dir = Path(base_dir) / name
    if version in (None, "latest"):
        versions = list_saved_models(base_dir).get(name)
        if not versions:
            raise FileNotFoundError(f"No saved model found for '{name}' in {base_dir}")
        return model_dir / versions[0]
    return model_dir / version


def load_model(name: str, version: str | None = "latest", base_dir: Path = DEFAULT_DIR) -> Any:
    """Load a saved model (latest version by default)."""
    path = _version_dir(name, version, base_dir) / "model.joblib"
    if not path.exists():
        raise FileNotFoundError(f"No model file at {path}")
    return joblib.load(path)


def get_model_metrics(name: str, version: str | None = "latest", base_dir: Path = DEFAULT_DIR) -> dict:
    """Load metrics.json of a saved model without loading the model itself."""
    path = _version_dir(name, version, base_dir) / "metrics.json"
    if not path.exists():
        return {}
    with path.open("r") as fp:
        return json.load(fp)
