"""
Aggregation Module
Summary statistics and chart-ready series over reconciliation results.
"""

from typing import Any, Dict, List

import pandas as pd

from .config import (
    CATEGORY_LABELS, COL_COMMENT, COL_MATERIAL, COL_QUANTITY, COL_REBATE,
    COL_UNIT_REBATE, COL_VAR, COMMENT_MISMATCH, COMMENT_MISSING_DEAL,
    COMMENT_PERFECT, COMMENT_PPM_ONLY, Config, default_config,
)
from .coercion import as_table, as_text, is_blank, numeric_column

STAT_KEYS = [
    "total_records", "perfect_matches", "mismatches", "missing_deals",
    "ppm_only", "total_variance", "absolute_variance", "percent_matched",
]


def _comments(df: pd.DataFrame) -> pd.Series:
    """Comment column with blanks normalised to ''."""
    if COL_COMMENT not in df.columns:
        return pd.Series([""] * len(df), index=df.index, dtype=object)
    return df[COL_COMMENT].map(lambda v: "" if is_blank(v) else as_text(v))


def aggregate(results) -> Dict[str, Any]:
    """
    Summary statistics for one reconciliation run.

    percent_matched is 0 for an empty result set.
    """
    df = as_table(results, "results")
    comments = _comments(df)
    variance = numeric_column(df, COL_VAR)

    total = len(df)
    perfect = int((comments == COMMENT_PERFECT).sum())

    return {
        "total_records": total,
        "perfect_matches": perfect,
        "mismatches": int((comments == COMMENT_MISMATCH).sum()),
        "missing_deals": int((comments == COMMENT_MISSING_DEAL).sum()),
        "ppm_only": int((comments == COMMENT_PPM_ONLY).sum()),
        "total_variance": float(variance.sum()),
        "absolute_variance": float(variance.abs().sum()),
        "percent_matched": (perfect / total * 100) if total > 0 else 0.0,
    }


# =============================================================================
# CHART SERIES
# =============================================================================

def expected_rebate(results) -> pd.Series:
    """Unit Rebate$ x Quantity per result row."""
    df = as_table(results, "results")
    return numeric_column(df, COL_UNIT_REBATE) * numeric_column(df, COL_QUANTITY)


def variance_by_category(results) -> pd.DataFrame:
    """Row count and absolute variance per outcome, in display order."""
    df = as_table(results, "results")
    comments = _comments(df)
    abs_variance = numeric_column(df, COL_VAR).abs()

    rows = []
    for comment, label in CATEGORY_LABELS.items():
        mask = comments == comment
        rows.append({
            "Match Type": label,
            "Count": int(mask.sum()),
            "Absolute Variance": float(abs_variance[mask].sum()),
        })
    return pd.DataFrame(rows, columns=["Match Type", "Count", "Absolute Variance"])


def top_variance_materials(results, n: int = None, config: Config = None) -> pd.DataFrame:
    """The n result rows with the largest absolute variance (ties keep input order)."""
    config = config or default_config
    n = n or config.top_n_materials
    df = as_table(results, "results")
    if df.empty:
        return df.copy()

    order = numeric_column(df, COL_VAR).abs().sort_values(ascending=False, kind="mergesort")
    return df.loc[order.index[:n]].reset_index(drop=True)


def billback_vs_ppm(results, n: int = None, config: Config = None) -> pd.DataFrame:
    """Claimed rebate vs PPM-expected rebate for the top variance materials."""
    top = top_variance_materials(results, n=n, config=config)
    if top.empty:
        return pd.DataFrame(columns=[COL_MATERIAL, "Bill Back", "PPM"])
    return pd.DataFrame({
        COL_MATERIAL: top[COL_MATERIAL].values,
        "Bill Back": numeric_column(top, COL_REBATE).values,
        "PPM": expected_rebate(top).values,
    })


def recommendations(stats: Dict[str, Any], config: Config = None) -> List[str]:
    """Follow-up actions suggested by the summary statistics."""
    config = config or default_config
    actions = []

    if stats.get("mismatches", 0) > 0:
        actions.append(f"Review the {stats['mismatches']} mismatched records "
                       "to identify pricing discrepancies")
    if stats.get("missing_deals", 0) > 0:
        actions.append(f"Follow up on the {stats['missing_deals']} missing deals")
    if abs(stats.get("total_variance", 0)) > config.variance_tolerance:
        actions.append(f"Address the total variance of ${stats['total_variance']:,.2f}")
    if stats.get("total_records", 0) > 0 and stats.get("percent_matched", 0) < config.percent_matched_target:
        actions.append(f"Investigate why only {stats['percent_matched']:.1f}% "
                       "of records matched perfectly")
    return actions
