"""
Soccer Muscle-Injury EDA Utilities

Descriptive plots of the club-season table and of cross-validation results.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from soccer_injury_analysis.config import config, FEATURE_LISTS
from soccer_injury_analysis.models.families import FAMILIES

# ───────────────────── configuration ────────────────────────────
logger = logging.getLogger(__name__)

plt.rcParams.update({
    "figure.figsize": config.FIGURE_SIZE,
    "axes.spines.top": False,
    "axes.spines.right": False,
})
sns.set_palette("husl")

_TARGET = FEATURE_LISTS["y_variable"][0]
_NUMERIC = FEATURE_LISTS["numerical"]


def _save(fig: plt.Figure, savefig: Path | None) -> None:
    if savefig:
        Path(savefig).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(savefig, dpi=config.DPI, bbox_inches="tight")
        logger.info("Saved figure → %s", savefig)


# ──────────────────────── core helpers ──────────────────────────
def basic_overview(df: pd.DataFrame) -> pd.DataFrame:
    """Per-league and per-season summary of the label."""
    summary = (
        df.groupby(["league", "year"])[_TARGET]
        .agg(clubs="size", mean="mean", var="var", max="max")
        .reset_index()
    )
    logger.info("Rows: %d │ leagues: %s │ seasons: %s",
                len(df), sorted(df["league"].unique()), sorted(df["year"].unique()))
    overdispersed = summary["var"] > summary["mean"]
    if overdispersed.any():
        logger.info("Variance exceeds mean in %d of %d league-seasons",
                    int(overdispersed.sum()), len(summary))
    return summary


def label_distribution(
    df: pd.DataFrame,
    savefig: Path | None = None,
) -> Tuple[pd.Series, plt.Figure]:
    """Histogram of muscle-injury counts + box-plot by league and season."""
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 5))

    sns.histplot(df[_TARGET], bins=20, edgecolor="black", color="skyblue", ax=ax1)
    ax1.set_title("Distribution of Muscle Injuries per Club-Season")
    ax1.set_xlabel("Muscle injuries")

    sns.boxplot(x="league", y=_TARGET, hue="year", data=df, ax=ax2, palette="Set2")
    ax2.set_title("Muscle Injuries by League and Season")
    ax2.set_xlabel("")
    ax2.set_ylabel("Muscle injuries")

    plt.tight_layout()
    _save(fig, savefig)
    return df[_TARGET].describe(), fig


def predictor_scatter(
    df: pd.DataFrame,
    features: List[str] | None = None,
    savefig: Path | None = None,
) -> plt.Figure:
    """Scatter of each numeric predictor against the label, coloured by league."""
    features = features or _NUMERIC
    n_cols = 3
    n_rows = int(np.ceil(len(features) / n_cols))
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(15, 4.5 * n_rows), squeeze=False)

    for ax, feat in zip(axes.flat, features):
        sns.scatterplot(x=feat, y=_TARGET, hue="league", data=df, ax=ax, alpha=0.7)
        ax.set_title(f"Muscle injuries vs {feat}")
    for ax in list(axes.flat)[len(features):]:
        ax.set_visible(False)

    plt.tight_layout()
    _save(fig, savefig)
    return fig


def correlation_heatmap(
    df: pd.DataFrame,
    savefig: Path | None = None,
) -> Tuple[pd.DataFrame, plt.Figure]:
    """Pearson correlations among numeric predictors and the label."""
    corr = df[_NUMERIC + [_TARGET]].corr()
    fig, ax = plt.subplots(figsize=(8, 6))
    sns.heatmap(corr, annot=True, fmt=".2f", cmap="coolwarm", vmin=-1, vmax=1, ax=ax)
    ax.set_title("Correlation Matrix")
    plt.tight_layout()
    _save(fig, savefig)
    return corr, fig


def plot_cv_results(
    table: pd.DataFrame,
    family: str | None = None,
    savefig: Path | None = None,
) -> plt.Figure:
    """
    Mean CV RMSE with standard-error bars against each hyperparameter.

    Families without hyperparameters get a single error bar.
    """
    family = family or (str(table["family"].iloc[0]) if len(table) else "")
    params = [c for c in table.columns
              if c not in {"family", "params", "mean_rmse", "std_err", "n_folds",
                           "fold_errors", "point_index", "rank"}]
    n_panels = max(len(params), 1)
    fig, axes = plt.subplots(1, n_panels, figsize=(5 * n_panels, 4), squeeze=False)

    if not params:
        ax = axes[0, 0]
        ax.errorbar([0], table["mean_rmse"], yerr=table["std_err"], fmt="o", capsize=4)
        ax.set_xticks([0], [family])
    for ax, param in zip(axes.flat, params):
        others = [p for p in params if p != param]
        if others:
            # best value of the other knobs at each level
            view = table.sort_values("mean_rmse").drop_duplicates(param).sort_values(param)
        else:
            view = table.sort_values(param)
        ax.errorbar(view[param], view["mean_rmse"], yerr=view["std_err"],
                    fmt="o-", capsize=3, color="darkblue")
        ax.set_xlabel(param)
        ax.set_ylabel("CV RMSE")
        if param == "alpha":
            ax.set_xscale("log")

    title = FAMILIES[family].label if family in FAMILIES else family
    fig.suptitle(f"Cross-validated RMSE: {title}")
    plt.tight_layout()
    _save(fig, savefig)
    return fig


def run_full_eda(df: pd.DataFrame, output_dir: Path | None = None) -> dict:
    """Produce every descriptive figure; returns the summaries."""
    output_dir = Path(output_dir or config.OUTPUT_DIR / "figures")
    overview = basic_overview(df)
    label_stats, fig1 = label_distribution(df, output_dir / "label_distribution.png")
    fig2 = predictor_scatter(df, savefig=output_dir / "predictor_scatter.png")
    corr, fig3 = correlation_heatmap(df, output_dir / "correlation_heatmap.png")
    for fig in (fig1, fig2, fig3):
        plt.close(fig)
    return {"overview": overview, "label_stats": label_stats, "correlation": corr}


if __name__ == "__main__":
    from soccer_injury_analysis.data.synthetic import make_synthetic_injury_data

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s │ %(levelname)s │ %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    results = run_full_eda(make_synthetic_injury_data())
    print(results["overview"])
