"""
Data Loader Module
Reads the four dispute-analysis inputs (billback, item reference, PPM, states)
into DataFrames with their headers exactly as written in the source files.
"""

import zipfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Union, IO

import pandas as pd

from .config import Config, default_config
from .coercion import as_table
from .error_codes import InputShapeError

DATASETS = ["billback", "item_ref", "ppm", "states"]

Source = Union[str, Path, IO]


class DataLoader:
    """Load dispute-analysis tables from Excel or CSV sources."""

    def __init__(self, config: Config = None):
        self.config = config or default_config
        self._cache: Dict[str, pd.DataFrame] = {}

    # =========================================================================
    # SINGLE TABLE
    # =========================================================================

    def load_table(self, source: Source, dataset: str = "table",
                   use_cache: bool = True) -> pd.DataFrame:
        """
        Parse one tabular source into a DataFrame.

        Excel sources use the first sheet. Column names are not stripped:
        "Posting Period " keeps its trailing space. The index is a fresh
        RangeIndex so each row's label is its position in the source.
        """
        cache_key = str(source) if isinstance(source, (str, Path)) else None
        if use_cache and cache_key and cache_key in self._cache:
            return self._cache[cache_key]

        try:
            df = self._read(source)
        except (OSError, ValueError, zipfile.BadZipFile) as e:
            raise InputShapeError("INP003", f"Could not read {dataset} file: {e}",
                                  dataset=dataset) from e

        df.columns = [str(c) for c in df.columns]
        df = df.dropna(how="all").reset_index(drop=True)
        df = as_table(df, dataset, self.config.get_required_columns(dataset))

        if cache_key:
            self._cache[cache_key] = df
        return df

    def _read(self, source: Source) -> pd.DataFrame:
        """Read CSV or Excel depending on the file name."""
        name = str(getattr(source, "name", source))
        if name.lower().endswith(".csv"):
            if not isinstance(source, (str, Path)):
                return pd.read_csv(source)
            # Try different encodings
            for encoding in ["utf-8", "latin1", "cp1252"]:
                try:
                    return pd.read_csv(source, encoding=encoding)
                except UnicodeDecodeError:
                    continue
            raise ValueError("Could not decode CSV with any encoding")
        return pd.read_excel(source, sheet_name=0)

    # =========================================================================
    # ALL INPUTS
    # =========================================================================

    def load_all(self, sources: Dict[str, Source]) -> Dict[str, pd.DataFrame]:
        """
        Load billback, item_ref, ppm and states concurrently.

        The reads are independent; this returns only after every one has
        finished, and re-raises the first failure.
        """
        missing = [name for name in DATASETS if name not in sources]
        if missing:
            raise InputShapeError("INP003", f"Missing file: {', '.join(missing)}",
                                  dataset=missing[0])

        if self.config.verbose:
            print(f"Loading {len(DATASETS)} input tables...")

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            futures = {
                name: pool.submit(self.load_table, sources[name], name)
                for name in DATASETS
            }
            tables = {name: future.result() for name, future in futures.items()}

        if self.config.verbose:
            for name, df in tables.items():
                print(f"  {name}: {len(df):,} rows")
        return tables

    def clear_cache(self):
        """Clear all cached data."""
        self._cache.clear()
