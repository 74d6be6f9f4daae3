"""
Data loading module for soccer muscle-injury analysis.
Reads the club-season table and validates it against the observation schema.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from soccer_injury_analysis.config import config
from soccer_injury_analysis.data.feature_schema import FeatureSchema
from soccer_injury_analysis.exceptions import DataIntegrityError

logger = logging.getLogger(__name__)

COUNT_COLUMNS = ["squad_size", "ltinj", "muscle_inj", "match"]


class DataLoader:
    """Handles loading and integrity checks of the injury dataset."""

    def __init__(self, schema: Optional[FeatureSchema] = None):
        self.schema = schema or FeatureSchema()
        self.df: pd.DataFrame | None = None

    def load(self, filepath: Optional[Path | str] = None) -> pd.DataFrame:
        """
        Load and validate the club-season table.

        Args:
            filepath: CSV or XLSX file; defaults to config.RAW_DATA_FILE

        Returns:
            Validated DataFrame, one row per club-season
        """
        filepath = Path(filepath) if filepath is not None else config.RAW_DATA_FILE

        try:
            if filepath.suffix in (".xlsx", ".xls"):
                raw = pd.read_excel(filepath)
            elif filepath.suffix == ".csv":
                raw = pd.read_csv(filepath)
            else:
                raise ValueError(f"Unsupported file format: {filepath.suffix}")
        except FileNotFoundError:
            raise FileNotFoundError(f"Injury data file not found: {filepath}")

        logger.info("Loaded %d rows from %s", len(raw), filepath)
        self.df = self.validate(raw)
        return self.df

    def validate(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Check the observation invariants and normalise dtypes.

        Raises:
            DataIntegrityError: on a missing column, missing value, duplicate
                identifier, category outside its domain or negative count.
        """
        s = self.schema
        missing = s.missing_columns(df)
        if missing:
            raise DataIntegrityError(f"Missing columns: {missing}")

        df = df[s.all_columns].copy()
        ids = df[s.identifier].astype(str)

        na_rows = df.isna().any(axis=1)
        if na_rows.any():
            raise DataIntegrityError("Missing values", ids[na_rows].tolist())

        dup = ids.duplicated(keep=False)
        if dup.any():
            raise DataIntegrityError("Duplicate identifiers", sorted(set(ids[dup])))

        df[s.identifier] = ids
        df["league"] = df["league"].astype(str)
        # years often arrive as integers
        df["year"] = df["year"].astype(str)

        for col, domain in (("league", config.LEAGUES), ("year", config.YEARS)):
            bad = ~df[col].isin(domain)
            if bad.any():
                raise DataIntegrityError(
                    f"Unexpected {col} values {sorted(df.loc[bad, col].unique())}, "
                    f"expected one of {list(domain)}",
                    ids[bad].tolist(),
                )

        for col in s.numerical + [s.target]:
            try:
                df[col] = pd.to_numeric(df[col])
            except (TypeError, ValueError) as e:
                raise DataIntegrityError(f"Non-numeric values in '{col}': {e}")

        for col in COUNT_COLUMNS:
            values = df[col].to_numpy(dtype=float)
            bad = (values < 0) | (values != np.floor(values))
            if bad.any():
                raise DataIntegrityError(
                    f"'{col}' must be a non-negative integer count", ids[bad].tolist()
                )
            df[col] = df[col].astype(int)

        if (df["squad_value"] < 0).any():
            bad = df["squad_value"] < 0
            raise DataIntegrityError("'squad_value' must be non-negative", ids[bad].tolist())
        if (df["avg_age"] <= 0).any():
            bad = df["avg_age"] <= 0
            raise DataIntegrityError("'avg_age' must be positive", ids[bad].tolist())

        return df.reset_index(drop=True)

    def get_data_summary(self) -> dict:
        """
        Get summary statistics of loaded data.

        Returns:
            Dictionary with data summary information
        """
        if self.df is None:
            raise ValueError("No data loaded. Call load() first.")

        target = self.df[self.schema.target]
        return {
            "n_rows": len(self.df),
            "league_counts": self.df["league"].value_counts().sort_index().to_dict(),
            "year_counts": self.df["year"].value_counts().sort_index().to_dict(),
            "label_mean": float(target.mean()),
            "label_var": float(target.var()),
            "label_range": (int(target.min()), int(target.max())),
        }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    loader = DataLoader()
    try:
        df = loader.load()
        print(df.head())
        print(loader.get_data_summary())
        print("******* DataLoader tests passed!")
    except FileNotFoundError as e:
        print(f"------------- {e}")
        print("Note: This is expected if data files are not present.")
