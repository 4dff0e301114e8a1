"""
Reconciliation Module
=====================
Joins filtered billback claims to PPM rebate agreements by item code and
classifies every material into one outcome:

    ""                both sides present, claimed rebate within tolerance
    "Price mismatch"  both sides present, claimed rebate off by more than tolerance
    "Missing Deal"    claimed with no PPM agreement (whole rebate is variance)
    "PPM Only"        agreement with no claim

This module answers: "Do rebate claims match unit rebate x quantity, and which
claims are missing or orphaned?"
"""

from collections import OrderedDict
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

import pandas as pd

from .config import (
    COL_AT_PRICE, COL_CASE_IN_PART, COL_COMMENT, COL_DIST_ITEM,
    COL_EXTENDED_PART, COL_MATERIAL, COL_NET, COL_PART_AMOUNT, COL_QUANTITY,
    COL_REBATE, COL_UNIT_REBATE, COL_VAR, COMMENT_MISMATCH,
    COMMENT_MISSING_DEAL, COMMENT_PERFECT, COMMENT_PPM_ONLY, RESULT_COLUMNS,
    Config, default_config,
)
from .coercion import as_table
from .records import BillbackRecord, PpmRecord, billback_records, ppm_records


class ReconciliationEngine:
    """
    Compute expected vs claimed rebate per material.

    Workflow:
    1. Index PPM rows by Dist Item# (last row wins for a repeated item)
    2. Resolve each billback row to its agreement: the forced PPM row for an
       overridden row, otherwise the indexed row for its Material
    3. Group billback rows by Material and sum expected vs claimed per group
    4. Emit PPM Only rows for agreements nobody claimed
    """

    def __init__(self, config: Config = None, tolerance: float = None):
        self.config = config or default_config
        self.tolerance = self.config.variance_tolerance if tolerance is None else tolerance

    def reconcile(self, billback, ppm,
                  overrides: Iterable[Tuple[Hashable, Hashable]] = None) -> pd.DataFrame:
        """
        Reconcile filtered billback rows against filtered PPM rows.

        Args:
            billback: Filtered billback DataFrame (or list of row dicts)
            ppm: Filtered PPM DataFrame (or list of row dicts)
            overrides: (billback_id, ppm_id) pairs of index labels. The paired
                PPM row prices only that billback row's contribution; other
                rows keep their natural match, and the PPM row stays in the
                index. Pairs naming rows outside the given frames are ignored.

        Returns:
            DataFrame with RESULT_COLUMNS, one row per material key.

        Raises:
            InputShapeError: input is not tabular, or a non-empty frame lacks
                Material / Dist Item#.
        """
        bb_df = as_table(billback, "billback", [COL_MATERIAL])
        ppm_df = as_table(ppm, "ppm", [COL_DIST_ITEM])

        if self.config.verbose:
            print(f"  Reconciling {len(bb_df):,} billback rows against {len(ppm_df):,} PPM rows...")

        claims = [r for r in billback_records(bb_df) if r.material]
        agreements = ppm_records(ppm_df)

        forced = self._forced_pairs(claims, agreements, overrides or ())
        ppm_index = self._build_ppm_index(agreements)

        groups = self._group_by_material(claims)
        rows = []
        for material, group in groups.items():
            resolved = [forced.get(c.row_id, ppm_index.get(material)) for c in group]
            rows.append(self._result_row(material, group, resolved, ppm_index.get(material)))

        for item, agreement in ppm_index.items():
            if item not in groups:
                rows.append(self._ppm_only_row(item, agreement))

        if self.config.verbose and forced:
            print(f"  Applied {len(forced)} manual match override(s)")

        return pd.DataFrame(rows, columns=RESULT_COLUMNS)

    # =========================================================================
    # JOIN HELPERS
    # =========================================================================

    @staticmethod
    def _build_ppm_index(agreements: List[PpmRecord]) -> Dict[str, PpmRecord]:
        """Dist Item# -> PPM record; a later row with the same item replaces an earlier one."""
        index: Dict[str, PpmRecord] = {}
        for agreement in agreements:
            if agreement.item:
                index[agreement.item] = agreement
        return index

    @staticmethod
    def _forced_pairs(claims: List[BillbackRecord], agreements: List[PpmRecord],
                      overrides) -> Dict[Hashable, PpmRecord]:
        """billback row id -> forced PPM record; the first pair for a billback row wins."""
        claim_ids = {c.row_id for c in claims}
        by_id = {a.row_id: a for a in agreements}
        forced: Dict[Hashable, PpmRecord] = {}
        for billback_id, ppm_id in overrides:
            if billback_id in claim_ids and ppm_id in by_id and billback_id not in forced:
                forced[billback_id] = by_id[ppm_id]
        return forced

    @staticmethod
    def _group_by_material(claims: List[BillbackRecord]) -> "OrderedDict[str, List[BillbackRecord]]":
        groups: "OrderedDict[str, List[BillbackRecord]]" = OrderedDict()
        for claim in claims:
            groups.setdefault(claim.material, []).append(claim)
        return groups

    # =========================================================================
    # RESULT ROWS
    # =========================================================================

    def classify(self, variance: float) -> str:
        """Comment for a matched material given its variance."""
        return COMMENT_MISMATCH if abs(variance) > self.tolerance else COMMENT_PERFECT

    def _result_row(self, material: str, group: List[BillbackRecord],
                    resolved: List[Optional[PpmRecord]],
                    natural: Optional[PpmRecord] = None) -> Dict:
        """
        One row for a material group. resolved[i] is the agreement pricing
        group[i]; a row without one contributes its whole rebate to VAR.
        Unit Rebate$ shows the natural agreement when any row uses it.
        """
        quantity = sum(c.quantity for c in group)
        actual_rebate = sum(c.rebate for c in group)

        row = {
            COL_MATERIAL: material,
            COL_AT_PRICE: group[0].at_price,
            COL_CASE_IN_PART: sum(c.case_in_part for c in group),
            COL_PART_AMOUNT: sum(c.part_amount for c in group),
            COL_EXTENDED_PART: sum(c.extended_part for c in group),
            COL_NET: sum(c.net for c in group),
            COL_QUANTITY: quantity,
            COL_REBATE: actual_rebate,
        }

        matched = [a for a in resolved if a is not None]
        if not matched:
            row[COL_UNIT_REBATE] = 0.0
            row[COL_VAR] = actual_rebate
            row[COL_COMMENT] = COMMENT_MISSING_DEAL
            return row

        expected_rebate = sum(
            a.unit_rebate * c.quantity for c, a in zip(group, resolved) if a is not None
        )
        variance = actual_rebate - expected_rebate
        shown = natural if any(a is natural for a in matched) else matched[0]
        row[COL_UNIT_REBATE] = shown.unit_rebate
        row[COL_VAR] = variance
        row[COL_COMMENT] = self.classify(variance)
        return row

    @staticmethod
    def _ppm_only_row(item: str, agreement: PpmRecord) -> Dict:
        return {
            COL_MATERIAL: item,
            COL_AT_PRICE: 0.0,
            COL_CASE_IN_PART: 0.0,
            COL_PART_AMOUNT: 0.0,
            COL_EXTENDED_PART: 0.0,
            COL_NET: 0.0,
            COL_QUANTITY: 0.0,
            COL_UNIT_REBATE: agreement.unit_rebate,
            COL_REBATE: 0.0,
            COL_VAR: 0.0,
            COL_COMMENT: COMMENT_PPM_ONLY,
        }


def reconcile(billback, ppm, overrides: Iterable[Tuple[Hashable, Hashable]] = None,
              tolerance: float = None, config: Config = None) -> pd.DataFrame:
    """Functional shortcut for ReconciliationEngine(config, tolerance).reconcile(...)."""
    return ReconciliationEngine(config=config, tolerance=tolerance).reconcile(
        billback, ppm, overrides=overrides
    )
