"""
Value coercion helpers shared by enrichment, filtering and reconciliation.

Spreadsheet cells arrive as whatever the reader produced: str, int, float,
NaN, Timestamp. Everything the engine compares or adds goes through here.
"""

import math
from collections.abc import Mapping
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

import numpy as np
import pandas as pd
from dateutil import parser as date_parser

from .error_codes import InputShapeError

# Excel serial day 1 is 1900-01-01; the 1900 leap-year bug puts the epoch here
EXCEL_EPOCH = datetime(1899, 12, 30)

# Two fill-ins for fields dateutil finds missing; year or month taken from
# these means the text was a partial date. A missing day becomes the 1st.
_PARTIAL_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 1))


def is_blank(value) -> bool:
    """True for None, NaN/NaT and empty or whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_number(value, default: float = 0.0) -> float:
    """Parse a cell as float; missing, non-numeric or infinite values give default."""
    if is_blank(value):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def numeric_column(df: pd.DataFrame, column: str) -> pd.Series:
    """Column as floats with bad values zeroed; all zeros if the column is absent."""
    if column not in df.columns:
        return pd.Series(0.0, index=df.index)
    values = pd.to_numeric(df[column], errors="coerce")
    return values.replace([np.inf, -np.inf], np.nan).fillna(0.0).astype(float)


def as_text(value) -> str:
    """
    String form of a cell for exact-equality lookups.

    Integral floats lose their ".0" so a code read as 100234.0 from a numeric
    column still equals "100234" read from a text column.
    """
    if is_blank(value):
        return ""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, np.integer):
        return str(int(value))
    return str(value)


def normalize_key(value) -> str:
    """Trimmed string form used for material / item join keys."""
    return as_text(value).strip()


def join_brand_pack(brand, pack_size) -> str:
    """'<brand> <pack size>' with blanks treated as empty, trimmed."""
    return f"{as_text(brand)} {as_text(pack_size)}".strip()


def parse_date(value) -> Optional[datetime]:
    """
    Parse a date cell from various formats.

    Order: native datetimes, Excel serial numbers, dateutil on the text,
    then a plain M/D/Y split. Returns None when nothing works, and for text
    without a year or month ("5", "March"). A missing day defaults to the 1st.
    """
    if is_blank(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool):
        serial = float(value)
        if serial <= 0:
            return None
        try:
            return EXCEL_EPOCH + timedelta(days=serial)
        except OverflowError:
            return None

    text = str(value).strip()
    try:
        first, second = (date_parser.parse(text, default=d) for d in _PARTIAL_DATE_DEFAULTS)
        if (first.year, first.month) != (second.year, second.month):
            return None
        return first
    except (ValueError, OverflowError):
        pass

    parts = text.split('/')
    if len(parts) == 3:
        try:
            month, day, year = (int(p.strip()) for p in parts)
            return datetime(year, month, day)
        except ValueError:
            return None
    return None


def as_table(data, dataset: str, required_columns: Iterable[str] = ()) -> pd.DataFrame:
    """
    Accept a DataFrame or a list of row mappings; reject anything else.

    A non-empty table must carry every required column. Empty tables pass
    through so callers can decide what "nothing to reconcile" means.
    """
    if isinstance(data, pd.DataFrame):
        df = data
    elif isinstance(data, (list, tuple)) and all(isinstance(row, Mapping) for row in data):
        df = pd.DataFrame(list(data))
    else:
        raise InputShapeError(
            "INP001",
            f"{dataset} data must be a DataFrame or a list of rows, got {type(data).__name__}",
            dataset=dataset,
        )

    missing = [col for col in required_columns if col not in df.columns]
    if len(df) > 0 and missing:
        raise InputShapeError(
            "INP002",
            f"{dataset} data is missing required column(s): {', '.join(missing)}",
            dataset=dataset,
            missing_columns=missing,
        )
    return df
