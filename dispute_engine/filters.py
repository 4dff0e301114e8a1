"""
Filter Stage
============
Narrows enriched billback / PPM rows to one (market, brand + pack, year, month)
selection, and lists the selections available in a set of uploaded tables.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from .config import (
    COL_BILLBACK_BRAND_PK, COL_BRAND_DESC, COL_COMPLETE_DATE, COL_CUSTOM_ABBR,
    COL_DIST_NAME, COL_PACKAGE_SIZE, COL_POSTING_PERIOD, COL_PPM_BRAND_PK,
    COL_START, Config, default_config,
)
from .coercion import as_table, as_text, is_blank, join_brand_pack, parse_date
from .enrichment import add_custom_abbreviation
from .error_codes import STATUS_EMPTY, SelectionError, failure


@dataclass(frozen=True)
class Selection:
    """The filter tuple chosen by the analyst."""
    market: str
    brand_pk: str
    year: int
    month: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], config: Config = None) -> "Selection":
        """
        Build a selection from a request body.

        Accepts "brand", "brand_pk" or "brandPk" for the brand + pack value.
        Raises SelectionError for missing values, a non-integer year or an
        unknown month name.
        """
        brand = data.get("brand_pk", data.get("brandPk", data.get("brand")))
        values = [data.get("market"), brand, data.get("year"), data.get("month")]
        if any(is_blank(v) for v in values):
            raise SelectionError("SEL001", "Invalid selection. Please select all filter options.")

        try:
            year_value = float(str(data["year"]).strip())
        except ValueError:
            year_value = float("nan")
        if not year_value.is_integer():
            raise SelectionError("SEL003", f"Invalid year: {data['year']!r}")
        year = int(year_value)

        selection = cls(
            market=as_text(data["market"]),
            brand_pk=as_text(brand),
            year=year,
            month=as_text(data["month"]).strip(),
        )
        selection.month_number(config)
        return selection

    def month_number(self, config: Config = None) -> int:
        """1-12 for the selected month name."""
        config = config or default_config
        try:
            return config.get_month_number(self.month)
        except ValueError as e:
            raise SelectionError("SEL002", str(e)) from None

    def describe(self) -> str:
        return f"Market: {self.market}, Brand: {self.brand_pk}, Period: {self.month} {self.year}"


@dataclass
class FilterResult:
    """Filtered billback / PPM rows for one selection (original index kept)."""
    billback: pd.DataFrame
    ppm: pd.DataFrame
    selection: Selection

    @property
    def no_matches(self) -> bool:
        """True when either side is empty; reconciliation needs acknowledgment then."""
        return self.billback.empty or self.ppm.empty

    def warning(self) -> Optional[Dict[str, Any]]:
        """FLT001 descriptor when nothing matched, else None."""
        if not self.no_matches:
            return None
        return failure(
            STATUS_EMPTY, "FLT001",
            "No matching records found for the selected filters.",
            billback_count=len(self.billback),
            ppm_count=len(self.ppm),
        )


# =============================================================================
# PREDICATES
# =============================================================================

def _column(df: pd.DataFrame, column: str) -> pd.Series:
    """Column values, or all-None when the column is absent."""
    if column in df.columns:
        return df[column]
    return pd.Series([None] * len(df), index=df.index, dtype=object)


def _equals(values: pd.Series, target: str) -> List[bool]:
    return [not is_blank(v) and as_text(v) == target for v in values]


def _in_period(dates: List[Optional[datetime]], year: int, month: int) -> List[bool]:
    return [d is not None and d.year == year and d.month == month for d in dates]


def billback_dates(df: pd.DataFrame) -> List[Optional[datetime]]:
    """Complete Date per row, falling back to Posting Period when empty."""
    complete = _column(df, COL_COMPLETE_DATE)
    posting = _column(df, COL_POSTING_PERIOD)
    return [
        parse_date(posting_value if is_blank(complete_value) else complete_value)
        for complete_value, posting_value in zip(complete, posting)
    ]


def ppm_dates(df: pd.DataFrame) -> List[Optional[datetime]]:
    return [parse_date(v) for v in _column(df, COL_START)]


def _select(df: pd.DataFrame, checks: List[List[bool]]) -> pd.DataFrame:
    mask = pd.Series([all(flags) for flags in zip(*checks)] if len(df) else [],
                     index=df.index, dtype=bool)
    return df[mask]


def filter_records(billback, ppm, selection: Selection,
                   config: Config = None) -> FilterResult:
    """
    Keep rows matching the selection; order and index labels are preserved.

    Rows with unparseable dates are treated as non-matching.
    """
    config = config or default_config
    month = selection.month_number(config)
    bb = as_table(billback, "billback")
    pp = as_table(ppm, "ppm")

    filtered_billback = _select(bb, [
        _equals(_column(bb, COL_CUSTOM_ABBR), selection.market),
        _equals(_column(bb, COL_BILLBACK_BRAND_PK), selection.brand_pk),
        _in_period(billback_dates(bb), selection.year, month),
    ])
    filtered_ppm = _select(pp, [
        _equals(_column(pp, COL_DIST_NAME), selection.market),
        _equals(_column(pp, COL_PPM_BRAND_PK), selection.brand_pk),
        _in_period(ppm_dates(pp), selection.year, month),
    ])

    if config.verbose:
        print(f"  Filtered to {len(filtered_billback):,} billback / "
              f"{len(filtered_ppm):,} PPM rows ({selection.describe()})")

    return FilterResult(billback=filtered_billback, ppm=filtered_ppm, selection=selection)


# =============================================================================
# FILTER OPTIONS
# =============================================================================

def extract_filter_options(billback, item_ref, ppm, states,
                           config: Config = None) -> Dict[str, List]:
    """
    Markets, brand + pack values, years and months available for selection.

    Markets come from the state reference, brands from the item reference,
    years from billback posting / complete dates and PPM start dates.
    """
    config = config or default_config

    states_df = add_custom_abbreviation(states)
    markets = sorted({
        as_text(v) for v in _column(states_df, COL_CUSTOM_ABBR) if not is_blank(v)
    })

    item_df = as_table(item_ref, "item_ref")
    brands = {
        join_brand_pack(brand, pack)
        for brand, pack in zip(_column(item_df, COL_BRAND_DESC), _column(item_df, COL_PACKAGE_SIZE))
    }
    brands.discard("")

    years = set()
    for dates in (billback_dates(as_table(billback, "billback")),
                  ppm_dates(as_table(ppm, "ppm"))):
        years.update(d.year for d in dates if d is not None)

    return {
        "markets": markets,
        "brands_pk": sorted(brands),
        "years": sorted(years),
        "months": list(config.month_names),
    }
