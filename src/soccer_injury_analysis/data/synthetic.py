"""
Synthetic club-season table with the same schema as the real spreadsheet.

The league sizes mirror the reference data: 20 English, 20 Spanish and 18
German clubs, each observed over two seasons (116 rows).
"""
from __future__ import annotations

from typing import Dict, Optional

import numpy as np
import pandas as pd

from soccer_injury_analysis.config import config

CLUBS_PER_LEAGUE: Dict[str, int] = {"EPL": 20, "LaLiga": 20, "Bundesliga": 18}


def make_synthetic_injury_data(
    clubs_per_league: Optional[Dict[str, int]] = None,
    seed: int = config.RANDOM_STATE,
) -> pd.DataFrame:
    """
    Generate a reproducible club-season table.

    Args:
        clubs_per_league: number of clubs per league, observed in every year
        seed: seed for the numpy Generator

    Returns:
        DataFrame with the nine observation columns
    """
    clubs_per_league = clubs_per_league or CLUBS_PER_LEAGUE
    rng = np.random.default_rng(seed)
    league_effect = {"EPL": 1.15, "LaLiga": 0.9, "Bundesliga": 1.0}

    rows = []
    for league, n_clubs in clubs_per_league.items():
        for year in config.YEARS:
            for i in range(n_clubs):
                squad_size = int(rng.integers(22, 36))
                squad_value = float(np.round(rng.lognormal(5.2, 0.8), 1))
                avg_age = float(np.round(rng.normal(26.5, 1.2), 1))
                ltinj = int(rng.poisson(4))
                match = int(rng.integers(34, 60))
                rate = (
                    league_effect.get(league, 1.0)
                    * (0.12 * squad_size + 0.08 * match + 0.4 * ltinj
                       + 0.004 * squad_value + 0.3 * (avg_age - 26.5))
                )
                rows.append({
                    "club": f"{league}_{i + 1:02d}_{year}",
                    "squad_size": squad_size,
                    "squad_value": squad_value,
                    "avg_age": avg_age,
                    "ltinj": ltinj,
                    "league": league,
                    "year": year,
                    "muscle_inj": int(rng.poisson(max(rate, 0.5))),
                    "match": match,
                })

    return pd.DataFrame(rows)
