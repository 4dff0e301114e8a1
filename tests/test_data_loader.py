"""
Tests for reading input tables from CSV and Excel files.
"""

import pandas as pd
import pytest

from dispute_engine.data_loader import DATASETS, DataLoader
from dispute_engine.error_codes import InputShapeError


@pytest.fixture()
def loader(config):
    return DataLoader(config=config)


@pytest.fixture()
def source_files(tmp_path, tables):
    paths = {}
    for name, df in tables.items():
        path = tmp_path / f"{name}.csv"
        df.to_csv(path, index=False)
        paths[name] = path
    return paths


# ---------------------------------------------------------------------------
# Single table
# ---------------------------------------------------------------------------
class TestLoadTable:
    """One file into one DataFrame."""

    def test_csv_headers_kept_verbatim(self, loader, source_files):
        df = loader.load_table(source_files["billback"], "billback")
        assert "Posting Period " in df.columns
        assert len(df) == 3

    def test_blank_rows_dropped_and_index_reset(self, tmp_path, loader):
        path = tmp_path / "ppm.csv"
        path.write_text("Dist Item#,Unit Rebate$\nA,5\n,\nC,2\n", encoding="utf-8")
        df = loader.load_table(path, "ppm")
        assert list(df["Dist Item#"]) == ["A", "C"]
        assert list(df.index) == [0, 1]

    def test_latin1_fallback(self, tmp_path, loader):
        path = tmp_path / "states.csv"
        path.write_bytes("State Code,State Name\nQC,Qu\xe9bec\n".encode("latin1"))
        df = loader.load_table(path, "states")
        assert df.loc[0, "State Name"] == "Qu\xe9bec"

    def test_excel_first_sheet(self, tmp_path, loader, ppm):
        path = tmp_path / "ppm.xlsx"
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            ppm.to_excel(writer, sheet_name="Deals", index=False)
            pd.DataFrame({"Other": [1]}).to_excel(writer, sheet_name="Notes", index=False)
        df = loader.load_table(path, "ppm")
        assert list(df["Dist Item#"]) == ["A", "C", "A"]

    def test_missing_required_column(self, tmp_path, loader):
        path = tmp_path / "billback.csv"
        path.write_text("Quantity,Rebate\n1,2\n", encoding="utf-8")
        with pytest.raises(InputShapeError) as excinfo:
            loader.load_table(path, "billback")
        assert excinfo.value.code == "INP002"

    def test_unreadable_file(self, tmp_path, loader):
        with pytest.raises(InputShapeError) as excinfo:
            loader.load_table(tmp_path / "missing.xlsx", "item_ref")
        assert excinfo.value.code == "INP003"
        assert excinfo.value.dataset == "item_ref"

    def test_cache(self, loader, source_files):
        first = loader.load_table(source_files["ppm"], "ppm")
        assert loader.load_table(source_files["ppm"], "ppm") is first
        loader.clear_cache()
        assert loader.load_table(source_files["ppm"], "ppm") is not first


# ---------------------------------------------------------------------------
# All inputs
# ---------------------------------------------------------------------------
class TestLoadAll:
    """The four inputs together."""

    def test_load_all(self, loader, source_files):
        tables = loader.load_all(source_files)
        assert list(tables) == DATASETS
        assert len(tables["item_ref"]) == 4

    def test_missing_source(self, loader, source_files):
        del source_files["states"]
        with pytest.raises(InputShapeError) as excinfo:
            loader.load_all(source_files)
        assert excinfo.value.code == "INP003"

    def test_one_failure_fails_all(self, loader, source_files, tmp_path):
        source_files["ppm"] = tmp_path / "nope.csv"
        with pytest.raises(InputShapeError):
            loader.load_all(source_files)
