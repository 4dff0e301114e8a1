"""
Report Generator Module
Outputs a dispute analysis to an Excel workbook with multiple tabs, and to a
plain-text summary for the console.
"""

import pandas as pd
from typing import Any, Dict
from datetime import datetime
import warnings

warnings.filterwarnings('ignore', category=UserWarning, module='openpyxl')

from .config import RESULT_COLUMNS, COL_DIST_ITEM, COL_MATERIAL, Config, default_config
from .aggregation import billback_vs_ppm, recommendations, variance_by_category


class DisputeReportGenerator:
    """Generate Excel reports from DisputeSession.analysis_summary() output."""

    def __init__(self, config: Config = None):
        self.config = config or default_config
        self.output_path = self.config.output_path

    def generate_report(self, analysis: Dict[str, Any], filename: str = None) -> str:
        """
        Generate the dispute analysis workbook.

        Args:
            analysis: Output from DisputeSession.analysis_summary()
            filename: Optional output filename (auto-generated if not provided)

        Returns:
            Path to generated Excel file
        """
        if analysis.get("status") != "success":
            raise ValueError(analysis.get("message", "No analysis available for export"))

        if not filename:
            filters = analysis.get("filters", {})
            market = str(filters.get("Market", "All")).replace(" ", "_")
            date_str = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"{self.config.report_prefix}_{market}_{date_str}.xlsx"

        self.output_path.mkdir(parents=True, exist_ok=True)
        output_file = self.output_path / filename

        with pd.ExcelWriter(output_file, engine='openpyxl') as writer:
            self._write_summary_tab(writer, analysis)
            self._write_results_tab(writer, analysis)
            self._write_variance_tab(writer, analysis)
            self._write_top_materials_tab(writer, analysis)
            self._write_manual_matches_tab(writer, analysis)

        if self.config.verbose:
            print(f"  Report saved to {output_file}")
        return str(output_file)

    def _write_summary_tab(self, writer: pd.ExcelWriter, analysis: Dict):
        """Write Summary tab: filters, statistics, recommended actions."""
        stats = analysis.get("stats", {})
        rows = []

        rows.append(["BILLBACK DISPUTE ANALYSIS REPORT", ""])
        rows.append(["Generated", datetime.now().strftime("%Y-%m-%d %H:%M")])
        rows.append(["", ""])

        rows.append(["FILTERS", ""])
        for name, value in analysis.get("filters", {}).items():
            rows.append([name, value])
        rows.append(["", ""])

        rows.append(["SUMMARY STATISTICS", ""])
        rows.append(["Total Records", stats.get("total_records", 0)])
        rows.append(["Perfect Matches", stats.get("perfect_matches", 0)])
        rows.append(["Price Mismatches", stats.get("mismatches", 0)])
        rows.append(["Missing Deals", stats.get("missing_deals", 0)])
        rows.append(["PPM Only", stats.get("ppm_only", 0)])
        rows.append(["Total Variance", f"${stats.get('total_variance', 0):,.2f}"])
        rows.append(["Absolute Variance", f"${stats.get('absolute_variance', 0):,.2f}"])
        rows.append(["Percent Matched", f"{stats.get('percent_matched', 0):.1f}%"])
        rows.append(["Manual Matches", len(analysis.get("manual_matches", []))])
        rows.append(["", ""])

        actions = analysis.get("recommendations")
        if actions is None:
            actions = recommendations(stats, self.config)
        rows.append(["RECOMMENDED ACTIONS", ""])
        if actions:
            for i, action in enumerate(actions, 1):
                rows.append([f"{i}.", action])
        else:
            rows.append(["", "No follow-up needed"])

        df = pd.DataFrame(rows, columns=["Item", "Value"])
        df.to_excel(writer, sheet_name="Summary", index=False)

    def _write_results_tab(self, writer: pd.ExcelWriter, analysis: Dict):
        """Write Analysis Results tab with the result columns in wire order."""
        results = analysis.get("results")
        if results is None or len(results) == 0:
            df = pd.DataFrame([["No records for the selected filters"]], columns=["Message"])
            df.to_excel(writer, sheet_name="Analysis Results", index=False)
            return

        df = pd.DataFrame(results)
        df = df[[c for c in RESULT_COLUMNS if c in df.columns]]
        df.to_excel(writer, sheet_name="Analysis Results", index=False)

    def _write_variance_tab(self, writer: pd.ExcelWriter, analysis: Dict):
        """Write Variance by Type tab."""
        df = variance_by_category(analysis.get("results", pd.DataFrame()))
        df.to_excel(writer, sheet_name="Variance by Type", index=False)

    def _write_top_materials_tab(self, writer: pd.ExcelWriter, analysis: Dict):
        """Write Top Materials tab: claimed vs expected rebate for the largest variances."""
        df = billback_vs_ppm(analysis.get("results", pd.DataFrame()), config=self.config)
        if df.empty:
            df = pd.DataFrame([["No variance to report"]], columns=["Message"])
        else:
            df["Difference"] = df["Bill Back"] - df["PPM"]
        df.to_excel(writer, sheet_name="Top Materials", index=False)

    def _write_manual_matches_tab(self, writer: pd.ExcelWriter, analysis: Dict):
        """Write Manual Matches tab listing analyst-forced pairs."""
        matches = analysis.get("manual_matches", [])
        if not matches:
            df = pd.DataFrame([["No manual matches"]], columns=["Message"])
        else:
            df = pd.DataFrame(matches, columns=["Billback Row", COL_MATERIAL, "PPM Row", COL_DIST_ITEM])
        df.to_excel(writer, sheet_name="Manual Matches", index=False)

    # =========================================================================
    # CONSOLE SUMMARY
    # =========================================================================

    def generate_quick_summary(self, analysis: Dict[str, Any]) -> str:
        """Generate a quick text summary of the analysis."""
        if analysis.get("status") != "success":
            return f"ERROR: {analysis.get('message', 'Unknown error')}"

        stats = analysis.get("stats", {})
        filters = analysis.get("filters", {})
        filter_str = ", ".join(f"{k}: {v}" for k, v in filters.items())

        text = f"""
BILLBACK DISPUTE ANALYSIS - QUICK SUMMARY
==========================================
{filter_str}

RESULTS:
- Total Records: {stats.get('total_records', 0):,}
- Perfect Matches: {stats.get('perfect_matches', 0):,}
- Price Mismatches: {stats.get('mismatches', 0):,}
- Missing Deals: {stats.get('missing_deals', 0):,}
- PPM Only: {stats.get('ppm_only', 0):,}
- Total Variance: ${stats.get('total_variance', 0):,.2f}
- Absolute Variance: ${stats.get('absolute_variance', 0):,.2f}
- Percent Matched: {stats.get('percent_matched', 0):.1f}%
"""
        actions = analysis.get("recommendations") or []
        if actions:
            text += "\nRECOMMENDED ACTIONS:\n"
            for i, action in enumerate(actions, 1):
                text += f"  {i}. {action}\n"

        return text
