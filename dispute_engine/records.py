"""
Typed billback / PPM records built from filtered DataFrame rows.

Each record holds the fields reconciliation reads, already coerced, plus the
row's origin id (its index label in the uploaded table) and every other
column in raw_data so nothing is lost for export.
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, List

import pandas as pd

from .config import (
    COL_AT_PRICE, COL_CASE_IN_PART, COL_DIST_ITEM, COL_EXTENDED_PART,
    COL_MATERIAL, COL_NET, COL_PART_AMOUNT, COL_QUANTITY, COL_REBATE,
    COL_UNIT_REBATE,
)
from .coercion import normalize_key, to_number

BILLBACK_FIELDS = [
    COL_MATERIAL, COL_AT_PRICE, COL_CASE_IN_PART, COL_PART_AMOUNT,
    COL_EXTENDED_PART, COL_NET, COL_QUANTITY, COL_REBATE,
]
PPM_FIELDS = [COL_DIST_ITEM, COL_UNIT_REBATE]


@dataclass
class BillbackRecord:
    """One rebate claim line."""
    row_id: Hashable
    material: str
    at_price: float = 0.0
    case_in_part: float = 0.0
    part_amount: float = 0.0
    extended_part: float = 0.0
    net: float = 0.0
    quantity: float = 0.0
    rebate: float = 0.0
    raw_data: Dict = field(default_factory=dict)

    @classmethod
    def from_row(cls, row_id: Hashable, row: pd.Series) -> "BillbackRecord":
        return cls(
            row_id=row_id,
            material=normalize_key(row.get(COL_MATERIAL)),
            at_price=to_number(row.get(COL_AT_PRICE)),
            case_in_part=to_number(row.get(COL_CASE_IN_PART)),
            part_amount=to_number(row.get(COL_PART_AMOUNT)),
            extended_part=to_number(row.get(COL_EXTENDED_PART)),
            net=to_number(row.get(COL_NET)),
            quantity=to_number(row.get(COL_QUANTITY)),
            rebate=to_number(row.get(COL_REBATE)),
            raw_data={k: v for k, v in row.items() if k not in BILLBACK_FIELDS},
        )


@dataclass
class PpmRecord:
    """One rebate agreement line."""
    row_id: Hashable
    item: str
    unit_rebate: float = 0.0
    raw_data: Dict = field(default_factory=dict)

    @classmethod
    def from_row(cls, row_id: Hashable, row: pd.Series) -> "PpmRecord":
        return cls(
            row_id=row_id,
            item=normalize_key(row.get(COL_DIST_ITEM)),
            unit_rebate=to_number(row.get(COL_UNIT_REBATE)),
            raw_data={k: v for k, v in row.items() if k not in PPM_FIELDS},
        )


def billback_records(df: pd.DataFrame) -> List[BillbackRecord]:
    """Records for every row, in frame order."""
    return [BillbackRecord.from_row(row_id, row) for row_id, row in df.iterrows()]


def ppm_records(df: pd.DataFrame) -> List[PpmRecord]:
    """Records for every row, in frame order."""
    return [PpmRecord.from_row(row_id, row) for row_id, row in df.iterrows()]
