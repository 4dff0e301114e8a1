"""
Tests for DisputeSession: the analyze / manual match / export workflow.
"""

import pandas as pd
import pytest

from dispute_engine.error_codes import InputShapeError
from dispute_engine.session import DisputeSession

SELECTION = {"market": "FL", "brand": "ACME 12PK", "year": 2024, "month": "March"}


@pytest.fixture()
def session(tables, config):
    return DisputeSession(tables=tables, config=config)


@pytest.fixture()
def analyzed(session):
    response = session.analyze(SELECTION)
    assert response["status"] == "success"
    return session


def by_material(response):
    return {row["Material"]: row for row in response["data"]}


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------
class TestLoading:
    """Table setup and filter options."""

    def test_filter_options_on_load(self, session):
        assert session.filter_options["markets"] == ["FL", "GA"]
        assert session.filter_options["years"] == [2024]

    def test_set_tables_response(self, tables, config):
        response = DisputeSession(config=config).set_tables(tables)
        assert response["status"] == "success"
        assert response["row_counts"]["billback"] == 3

    def test_tables_reindexed(self, tables, config):
        """Row ids are 0..n-1 even when the caller's frame repeats labels."""
        tables["billback"] = pd.concat([tables["billback"], tables["billback"]])
        session = DisputeSession(tables=tables, config=config)
        assert list(session.tables["billback"].index) == list(range(6))
        session.analyze(SELECTION)
        assert list(session.filtered.billback.index) == [0, 1, 3, 4]
        response = session.create_manual_match(4, 1)
        assert response["status"] == "success"
        assert session.analysis_summary()["manual_matches"][0]["Material"] == "B"

    def test_missing_dataset(self, tables, config):
        del tables["ppm"]
        with pytest.raises(InputShapeError) as excinfo:
            DisputeSession(tables=tables, config=config)
        assert excinfo.value.code == "INP003"

    def test_load_reports_unreadable_file(self, tmp_path, config):
        sources = {name: tmp_path / f"{name}.csv" for name in ("billback", "item_ref", "ppm", "states")}
        response = DisputeSession(config=config).load(sources)
        assert response["status"] == "error"
        assert response["code"] == "INP003"

    def test_analyze_before_load(self, config):
        response = DisputeSession(config=config).analyze(SELECTION)
        assert response["code"] == "INP004"


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------
class TestAnalyze:
    """Enrich, filter, reconcile, aggregate."""

    def test_results(self, session):
        response = session.analyze(SELECTION)
        rows = by_material(response)
        assert rows["A"]["Comment"] == ""
        assert rows["A"]["VAR"] == 0
        assert rows["B"]["Comment"] == "Missing Deal"
        assert rows["B"]["VAR"] == 30
        assert rows["C"]["Comment"] == "PPM Only"
        assert rows["C"]["Unit Rebate$"] == 2

    def test_stats(self, session):
        stats = session.analyze(SELECTION)["stats"]
        assert stats["total_records"] == 3
        assert stats["perfect_matches"] == 1
        assert stats["percent_matched"] == pytest.approx(100 / 3)

    def test_april_uses_april_agreement(self, session):
        response = session.analyze({**SELECTION, "month": "April"})
        row = by_material(response)["A"]
        assert row["Unit Rebate$"] == 7
        assert row["Comment"] == "Price mismatch"

    def test_invalid_selection(self, session):
        response = session.analyze({**SELECTION, "month": ""})
        assert response["status"] == "error"
        assert response["code"] == "SEL001"

    def test_empty_selection_needs_acknowledgment(self, session):
        response = session.analyze({**SELECTION, "market": "GA"})
        assert response["status"] == "empty"
        assert response["code"] == "FLT001"
        assert session.results is None

    def test_acknowledged_empty_selection(self, session):
        response = session.analyze({**SELECTION, "market": "GA"}, acknowledge_empty=True)
        assert response["status"] == "success"
        assert response["data"] == []
        assert response["stats"]["percent_matched"] == 0
        assert response["warning"]["code"] == "FLT001"

    def test_idempotent(self, session):
        first = session.analyze(SELECTION)
        second = session.analyze(SELECTION)
        assert first["data"] == second["data"]
        assert first["stats"] == second["stats"]

    def test_tables_not_mutated(self, session, tables):
        before = {name: df.copy() for name, df in tables.items()}
        session.analyze(SELECTION)
        for name, df in before.items():
            pd.testing.assert_frame_equal(session.tables[name], df)


# ---------------------------------------------------------------------------
# Manual matching
# ---------------------------------------------------------------------------
class TestManualMatching:
    """Forced pairs through the session."""

    def test_requires_analysis(self, session):
        response = session.create_manual_match(1, 1)
        assert response["code"] == "MAN002"
        assert session.recalculate()["code"] == "MAN002"
        assert session.manual_match_view()["code"] == "MAN002"

    def test_create_forces_matched_branch(self, analyzed):
        response = analyzed.create_manual_match(1, 1)
        assert response["status"] == "success"
        assert response["matched_pairs"] == [{"billback_id": 1, "ppm_id": 1}]
        rows = by_material(response)
        assert rows["B"]["Unit Rebate$"] == 2
        assert rows["B"]["VAR"] == pytest.approx(24)
        assert rows["B"]["Comment"] == "Price mismatch"
        assert rows["C"]["Comment"] == "PPM Only"
        assert rows["A"]["Comment"] == ""

    def test_remove_restores_original(self, analyzed):
        original = analyzed.recalculate()
        analyzed.create_manual_match(1, 1)
        restored = analyzed.remove_manual_match(1, 1)
        assert restored["status"] == "success"
        assert restored["matched_pairs"] == []
        assert restored["data"] == original["data"]

    def test_create_twice_is_noop(self, analyzed):
        analyzed.create_manual_match(1, 1)
        response = analyzed.create_manual_match(1, 1)
        assert len(response["matched_pairs"]) == 1

    def test_remove_unmatched_pair(self, analyzed):
        analyzed.create_manual_match(1, 1)
        response = analyzed.remove_manual_match(0, 0)
        assert response["status"] == "rejected"
        assert response["code"] == "MAN001"
        assert response["matched_pairs"] == [{"billback_id": 1, "ppm_id": 1}]

    def test_row_outside_selection_rejected(self, analyzed):
        response = analyzed.create_manual_match(2, 1)
        assert response["status"] == "rejected"
        assert response["code"] == "MAN003"
        assert len(analyzed.manual_matches) == 0

    def test_row_without_material_rejected(self, tables, config):
        """A blank-Material claim has no result row, so pairing it would change nothing."""
        unkeyed = {**tables["billback"].iloc[1].to_dict(), "Material": "  ",
                   "Brand + Pk size": "ACME 12PK"}
        tables["billback"] = pd.concat([tables["billback"], pd.DataFrame([unkeyed])],
                                       ignore_index=True)
        session = DisputeSession(tables=tables, config=config)
        session.analyze(SELECTION)
        assert 3 in session.filtered.billback.index
        response = session.create_manual_match(3, 1)
        assert response["status"] == "rejected"
        assert response["code"] == "MAN004"
        assert len(session.manual_matches) == 0

    def test_selection_change_clears_matches(self, analyzed):
        analyzed.create_manual_match(1, 1)
        analyzed.analyze({**SELECTION, "month": "April"})
        assert len(analyzed.manual_matches) == 0

    def test_same_selection_keeps_matches(self, analyzed):
        analyzed.create_manual_match(1, 1)
        response = analyzed.analyze(SELECTION)
        assert response["matched_pairs"] == [{"billback_id": 1, "ppm_id": 1}]
        assert by_material(response)["B"]["Unit Rebate$"] == 2

    def test_view(self, analyzed):
        analyzed.create_manual_match(1, 1)
        view = analyzed.manual_match_view()
        billback_status = {row["index"]: row["status"] for row in view["billback_data"]}
        ppm_status = {row["index"]: row["status"] for row in view["ppm_data"]}
        assert billback_status == {0: "Unmatched", 1: "Matched"}
        assert ppm_status == {0: "Unmatched", 1: "Matched"}
        assert view["ppm_data"][1]["material"] == "C"


# ---------------------------------------------------------------------------
# Export / clear
# ---------------------------------------------------------------------------
class TestExportAndClear:

    def test_summary(self, analyzed):
        analyzed.create_manual_match(1, 1)
        summary = analyzed.analysis_summary()
        assert summary["filters"]["Market"] == "FL"
        assert summary["manual_matches"] == [
            {"Billback Row": 1, "Material": "B", "PPM Row": 1, "Dist Item#": "C"}
        ]
        assert summary["recommendations"]

    def test_export_writes_workbook(self, analyzed, config):
        response = analyzed.export("report.xlsx")
        assert response["status"] == "success"
        assert response["path"] == str(config.output_path / "report.xlsx")
        assert (config.output_path / "report.xlsx").exists()

    def test_export_without_analysis(self, session):
        assert session.export()["code"] == "MAN002"

    def test_clear(self, analyzed):
        analyzed.create_manual_match(1, 1)
        analyzed.clear()
        assert analyzed.tables == {}
        assert analyzed.results is None
        assert len(analyzed.manual_matches) == 0
        assert analyzed.analyze(SELECTION)["code"] == "INP004"
