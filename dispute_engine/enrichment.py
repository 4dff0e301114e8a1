"""
Enrichment Module
=================
Adds the derived join columns the filter and reconciliation steps need:

- states:   Custom Abbreviation (market code)
- billback: Complete Date alias, Custom Abbreviation, Brand + Pk size
- ppm:      ppm_Brand+pk size

Every function returns a new DataFrame. Input columns are never changed or
dropped, and running a function twice gives the same derived values.
"""

from typing import Callable, Dict, Tuple

import pandas as pd

from .config import (
    COL_BILLBACK_BRAND_PK, COL_BRAND_DESC, COL_COMPLETE_DATE, COL_CUSTOM_ABBR,
    COL_MATERIAL, COL_PACKAGE_SIZE, COL_POSTING_PERIOD, COL_PPM_BRAND_PK,
    COL_STATE, COL_STATE_ABBR, COL_STATE_CODE, COL_STATE_NAME,
)
from .coercion import as_table, as_text, is_blank, join_brand_pack


# =============================================================================
# STATES
# =============================================================================

def _derive_abbreviation(row: pd.Series) -> str:
    """State Abbr if set, else first two letters of State Name, else ''."""
    abbr = row.get(COL_STATE_ABBR)
    if not is_blank(abbr):
        return as_text(abbr)

    name = row.get(COL_STATE_NAME)
    if not is_blank(name):
        name = as_text(name)
        if len(name) >= 2:
            return name[:2].upper()
    return ""


def add_custom_abbreviation(states) -> pd.DataFrame:
    """
    Populate Custom Abbreviation on every state reference row.

    Rows that already carry a non-empty Custom Abbreviation keep it.
    """
    df = as_table(states, "states").copy()
    derived = [_derive_abbreviation(row) for _, row in df.iterrows()]
    if COL_CUSTOM_ABBR in df.columns:
        existing = df[COL_CUSTOM_ABBR]
        df[COL_CUSTOM_ABBR] = [
            derived_value if is_blank(current) else current
            for current, derived_value in zip(existing, derived)
        ]
    else:
        df[COL_CUSTOM_ABBR] = derived
    return df


# =============================================================================
# LOOKUPS
# =============================================================================

def _first_match_index(df: pd.DataFrame, key_col: str,
                       value_fn: Callable[[pd.Series], object]) -> Dict[str, object]:
    """Map string-coerced key -> value, keeping the first row for duplicate keys."""
    index: Dict[str, object] = {}
    if df is None or key_col not in df.columns:
        return index

    for _, row in df.iterrows():
        key = row[key_col]
        if is_blank(key):
            continue
        key = as_text(key)
        if key not in index:
            index[key] = value_fn(row)
    return index


def _lookup_column(values: pd.Series, index: Dict[str, object]) -> pd.Series:
    """Look each value up in index; misses become None."""
    return values.map(lambda v: None if is_blank(v) else index.get(as_text(v)))


def _merge_derived(df: pd.DataFrame, column: str, derived: pd.Series):
    """Set column from derived, keeping existing values where derived has no match."""
    if column in df.columns:
        df[column] = derived.where(derived.notna(), df[column])
    else:
        df[column] = derived


# =============================================================================
# BILLBACK / PPM
# =============================================================================

def enrich_billback(billback, states, item_ref=None) -> pd.DataFrame:
    """
    Add Complete Date, Custom Abbreviation and Brand + Pk size to billback rows.

    Args:
        billback: Raw billback rows
        states: State reference rows (Custom Abbreviation is derived if absent)
        item_ref: Item reference rows (Material -> brand / package size)

    Returns:
        New DataFrame with the same rows and index, plus derived columns.
        Rows whose State or Material has no reference match keep NaN there.
    """
    df = as_table(billback, "billback").copy()

    if COL_COMPLETE_DATE not in df.columns and COL_POSTING_PERIOD in df.columns:
        df[COL_COMPLETE_DATE] = df[COL_POSTING_PERIOD]

    if COL_STATE in df.columns:
        states_df = add_custom_abbreviation(states)
        state_index = _first_match_index(
            states_df, COL_STATE_CODE, lambda row: row[COL_CUSTOM_ABBR]
        )
        _merge_derived(df, COL_CUSTOM_ABBR, _lookup_column(df[COL_STATE], state_index))

    if COL_MATERIAL in df.columns and item_ref is not None:
        item_df = as_table(item_ref, "item_ref")
        item_index = _first_match_index(
            item_df, COL_MATERIAL,
            lambda row: join_brand_pack(row.get(COL_BRAND_DESC), row.get(COL_PACKAGE_SIZE))
        )
        _merge_derived(df, COL_BILLBACK_BRAND_PK, _lookup_column(df[COL_MATERIAL], item_index))

    return df


def enrich_ppm(ppm) -> pd.DataFrame:
    """Add ppm_Brand+pk size when both brand and package size columns exist."""
    df = as_table(ppm, "ppm").copy()

    if COL_BRAND_DESC in df.columns and COL_PACKAGE_SIZE in df.columns:
        df[COL_PPM_BRAND_PK] = [
            join_brand_pack(brand, pack)
            for brand, pack in zip(df[COL_BRAND_DESC], df[COL_PACKAGE_SIZE])
        ]
    return df


def enrich(states, billback, item_ref=None) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Enrich states and billback together; returns (billback, states)."""
    enriched_states = add_custom_abbreviation(states)
    enriched_billback = enrich_billback(billback, enriched_states, item_ref)
    return enriched_billback, enriched_states
