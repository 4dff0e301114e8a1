"""
Dispute Session
===============
Holds everything one analyst's analysis needs between requests: the uploaded
tables, the current selection and its filtered rows, the manual match pairs,
and the latest results and statistics.

Every public method returns a result dict:

    {"status": "success", "data": [...], "stats": {...}, "matched_pairs": [...]}
    {"status": "error" | "empty" | "rejected", "code": "...", "message": "..."}
"""

from typing import Any, Dict, Hashable, List, Mapping, Optional, Union

import pandas as pd

from .aggregation import aggregate, recommendations
from .config import (
    COL_CASE_IN_PART, COL_DIST_ITEM, COL_EXTENDED_PART, COL_MATERIAL,
    COL_PART_AMOUNT, COL_UNIT_REBATE, Config, default_config,
)
from .coercion import as_table, normalize_key, to_number
from .data_loader import DATASETS, DataLoader
from .enrichment import enrich, enrich_ppm
from .error_codes import (
    STATUS_ERROR, STATUS_OK, STATUS_REJECTED, InputShapeError, SelectionError,
    failure,
)
from .filters import FilterResult, Selection, extract_filter_options, filter_records
from .manual_match import ManualMatchSet
from .reconciliation import ReconciliationEngine
from .report_generator import DisputeReportGenerator


class DisputeSession:
    """Analysis state for one analyst, replacing request-global variables."""

    def __init__(self, tables: Mapping[str, Any] = None, config: Config = None):
        self.config = config or default_config
        self.engine = ReconciliationEngine(config=self.config)
        self.tables: Dict[str, pd.DataFrame] = {}
        self.filter_options: Optional[Dict[str, List]] = None
        self.manual_matches = ManualMatchSet()
        self._reset_analysis()
        if tables is not None:
            self.set_tables(tables)

    @classmethod
    def from_sources(cls, sources: Mapping[str, Any], config: Config = None) -> "DisputeSession":
        """Load the four input files and return a ready session (raises InputShapeError)."""
        config = config or default_config
        tables = DataLoader(config=config).load_all(sources)
        return cls(tables=tables, config=config)

    def _reset_analysis(self):
        self.selection: Optional[Selection] = None
        self.filtered: Optional[FilterResult] = None
        self.results: Optional[pd.DataFrame] = None
        self.stats: Optional[Dict[str, Any]] = None
        self.manual_matches.clear()

    # =========================================================================
    # LOADING
    # =========================================================================

    def set_tables(self, tables: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Replace the session's input tables and recompute the filter options.

        Raises InputShapeError if a dataset is missing or malformed.
        """
        missing = [name for name in DATASETS if name not in tables]
        if missing:
            raise InputShapeError("INP003", f"Missing file: {', '.join(missing)}",
                                  dataset=missing[0])

        self.tables = {
            name: as_table(tables[name], name, self.config.get_required_columns(name))
            .reset_index(drop=True)
            for name in DATASETS
        }
        self.filter_options = extract_filter_options(
            self.tables["billback"], self.tables["item_ref"],
            self.tables["ppm"], self.tables["states"], config=self.config,
        )
        self._reset_analysis()

        return {
            "status": STATUS_OK,
            "message": "Files uploaded successfully",
            "filter_options": self.filter_options,
            "row_counts": {name: len(df) for name, df in self.tables.items()},
        }

    def load(self, sources: Mapping[str, Any]) -> Dict[str, Any]:
        """Read the four input files into this session."""
        try:
            tables = DataLoader(config=self.config).load_all(sources)
            return self.set_tables(tables)
        except InputShapeError as e:
            return e.to_dict()

    # =========================================================================
    # ANALYSIS
    # =========================================================================

    def analyze(self, selection: Union[Selection, Mapping[str, Any]],
                acknowledge_empty: bool = False) -> Dict[str, Any]:
        """
        Enrich, filter and reconcile for one selection.

        A selection different from the previous one discards the manual
        matches. When either side of the filter is empty the FLT001 warning
        is returned instead of results unless acknowledge_empty is set.
        """
        if not self.tables:
            return failure(STATUS_ERROR, "INP004", "No data loaded. Please upload files first.")

        try:
            if isinstance(selection, Selection):
                selection.month_number(self.config)
            else:
                selection = Selection.from_dict(selection, self.config)
        except SelectionError as e:
            return e.to_dict()

        if self.config.verbose:
            print(f"Running dispute analysis ({selection.describe()})...")

        try:
            billback, _ = enrich(self.tables["states"], self.tables["billback"],
                                 self.tables["item_ref"])
            ppm = enrich_ppm(self.tables["ppm"])
            filtered = filter_records(billback, ppm, selection, config=self.config)
        except InputShapeError as e:
            return e.to_dict()

        if selection != self.selection:
            self.manual_matches.clear()
        self.selection = selection
        self.filtered = filtered
        self.results = None
        self.stats = None

        if filtered.no_matches and not acknowledge_empty:
            if self.config.verbose:
                print("Warning: No matching records found for the selected filters")
            response = filtered.warning()
            response["matched_pairs"] = self.manual_matches.to_list()
            return response

        return self._reconcile()

    def recalculate(self) -> Dict[str, Any]:
        """Re-run reconciliation for the current selection and manual matches."""
        if self.results is None:
            return self._no_analysis()
        return self._reconcile()

    def _reconcile(self) -> Dict[str, Any]:
        try:
            results = self.engine.reconcile(self.filtered.billback, self.filtered.ppm,
                                            overrides=self.manual_matches)
        except InputShapeError as e:
            return e.to_dict()

        self.results = results
        self.stats = aggregate(results)
        return self._response()

    def _response(self) -> Dict[str, Any]:
        response = {
            "status": STATUS_OK,
            "selection": self.selection.describe(),
            "data": self.results.to_dict(orient="records"),
            "stats": dict(self.stats),
            "matched_pairs": self.manual_matches.to_list(),
        }
        warning = self.filtered.warning()
        if warning:
            response["warning"] = warning
        return response

    def _no_analysis(self) -> Dict[str, Any]:
        return failure(
            STATUS_ERROR, "MAN002",
            "Please run analysis with all filter options selected first.",
            matched_pairs=self.manual_matches.to_list(),
        )

    # =========================================================================
    # MANUAL MATCHING
    # =========================================================================

    def create_manual_match(self, billback_id: Hashable, ppm_id: Hashable) -> Dict[str, Any]:
        """Pair a billback row with a PPM row and recompute the results."""
        if self.results is None:
            return self._no_analysis()

        if billback_id not in self.filtered.billback.index or ppm_id not in self.filtered.ppm.index:
            return failure(
                STATUS_REJECTED, "MAN003",
                f"Row pair ({billback_id}, {ppm_id}) is not part of the current selection",
                matched_pairs=self.manual_matches.to_list(),
            )

        if not normalize_key(self.filtered.billback.at[billback_id, COL_MATERIAL]):
            return failure(
                STATUS_REJECTED, "MAN004",
                f"Billback row {billback_id} has no Material to reconcile",
                matched_pairs=self.manual_matches.to_list(),
            )

        self.manual_matches.add(billback_id, ppm_id)
        if self.config.verbose:
            print(f"  Manual match created: billback row {billback_id} -> PPM row {ppm_id}")
        return self._reconcile_with_message("Manual match created")

    def remove_manual_match(self, billback_id: Hashable, ppm_id: Hashable) -> Dict[str, Any]:
        """Drop a pair; the set is unchanged if the pair was not matched."""
        if self.results is None:
            return self._no_analysis()

        if not self.manual_matches.remove(billback_id, ppm_id):
            return failure(
                STATUS_REJECTED, "MAN001",
                "These records are not currently matched",
                matched_pairs=self.manual_matches.to_list(),
            )

        if self.config.verbose:
            print(f"  Manual match removed: billback row {billback_id} -> PPM row {ppm_id}")
        return self._reconcile_with_message("Manual match removed")

    def _reconcile_with_message(self, message: str) -> Dict[str, Any]:
        response = self._reconcile()
        if response["status"] == STATUS_OK:
            response["message"] = message
        return response

    def manual_match_view(self) -> Dict[str, Any]:
        """Filtered billback and PPM rows with their origin ids and match status."""
        if self.results is None:
            return self._no_analysis()

        def status(matched: bool) -> str:
            return "Matched" if matched else "Unmatched"

        billback_rows = [
            {
                "index": row_id,
                "material": normalize_key(row.get(COL_MATERIAL)),
                "case_in_part": to_number(row.get(COL_CASE_IN_PART)),
                "part_amount": to_number(row.get(COL_PART_AMOUNT)),
                "extended_part": to_number(row.get(COL_EXTENDED_PART)),
                "status": status(self.manual_matches.is_billback_matched(row_id)),
            }
            for row_id, row in self.filtered.billback.iterrows()
        ]
        ppm_rows = [
            {
                "index": row_id,
                "material": normalize_key(row.get(COL_DIST_ITEM)),
                "unit_rebate": to_number(row.get(COL_UNIT_REBATE)),
                "status": status(self.manual_matches.is_ppm_matched(row_id)),
            }
            for row_id, row in self.filtered.ppm.iterrows()
        ]

        return {
            "status": STATUS_OK,
            "billback_data": billback_rows,
            "ppm_data": ppm_rows,
            "matched_pairs": self.manual_matches.to_list(),
        }

    # =========================================================================
    # EXPORT
    # =========================================================================

    def analysis_summary(self) -> Dict[str, Any]:
        """Snapshot of the latest analysis for report generation."""
        if self.results is None:
            return self._no_analysis()

        matches = []
        for billback_id, ppm_id in self.manual_matches:
            matches.append({
                "Billback Row": billback_id,
                COL_MATERIAL: normalize_key(self.filtered.billback.at[billback_id, COL_MATERIAL]),
                "PPM Row": ppm_id,
                COL_DIST_ITEM: normalize_key(self.filtered.ppm.at[ppm_id, COL_DIST_ITEM]),
            })

        return {
            "status": STATUS_OK,
            "filters": {
                "Market": self.selection.market,
                "Brand + Pack": self.selection.brand_pk,
                "Year": self.selection.year,
                "Month": self.selection.month,
            },
            "stats": dict(self.stats),
            "results": self.results.copy(),
            "manual_matches": matches,
            "recommendations": recommendations(self.stats, self.config),
        }

    def export(self, filename: str = None) -> Dict[str, Any]:
        """Write the Excel report for the latest analysis."""
        summary = self.analysis_summary()
        if summary["status"] != STATUS_OK:
            return summary

        path = DisputeReportGenerator(config=self.config).generate_report(summary, filename)
        return {"status": STATUS_OK, "path": path}

    def clear(self):
        """Forget the uploaded tables and every analysis artefact."""
        self.tables = {}
        self.filter_options = None
        self._reset_analysis()
