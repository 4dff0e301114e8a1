"""
Shared fixtures: a small, fully consistent set of the four input tables.

Selection FL / "ACME 12PK" / 2024 / March contains:
    billback row 0  Material A  qty 10  rebate 50   (PPM unit rebate 5 -> perfect)
    billback row 1  Material B  qty 3   rebate 30   (no PPM -> Missing Deal)
    ppm row 0       Dist Item# A  unit rebate 5
    ppm row 1       Dist Item# C  unit rebate 2      (no claim -> PPM Only)

Billback row 2 and PPM row 2 fall in April and are filtered out.
"""

import pandas as pd
import pytest

from dispute_engine.config import Config


@pytest.fixture()
def states():
    return pd.DataFrame([
        {"State Code": "Florida", "State Abbr": "", "State Name": "Florida"},
        {"State Code": "Georgia", "State Abbr": "GA", "State Name": "Georgia"},
    ])


@pytest.fixture()
def item_ref():
    return pd.DataFrame([
        {"Material": "A", "Supp. Brand Desc.": "ACME", "Package Size": "12PK"},
        {"Material": "B", "Supp. Brand Desc.": "ACME", "Package Size": "12PK"},
        {"Material": "C", "Supp. Brand Desc.": "ACME", "Package Size": "12PK"},
        {"Material": "D", "Supp. Brand Desc.": "ZENITH", "Package Size": "6PK"},
    ])


@pytest.fixture()
def billback():
    return pd.DataFrame([
        {"Material": "A", "State": "Florida", "Posting Period ": "2024-03-15",
         "At price": 12.5, "Case in Part": 1, "Part Amount": 4.0, "Extended Part": 40.0,
         "Net$": 125.0, "Quantity": 10, "Rebate": 50},
        {"Material": "B", "State": "Florida", "Posting Period ": "2024-03-20",
         "At price": 9.0, "Case in Part": 2, "Part Amount": 3.0, "Extended Part": 9.0,
         "Net$": 27.0, "Quantity": 3, "Rebate": 30},
        {"Material": "A", "State": "Florida", "Posting Period ": "2024-04-02",
         "At price": 12.5, "Case in Part": 1, "Part Amount": 4.0, "Extended Part": 40.0,
         "Net$": 125.0, "Quantity": 10, "Rebate": 50},
    ])


@pytest.fixture()
def ppm():
    return pd.DataFrame([
        {"Dist Item#": "A", "Dist Name.2": "FL", "Start": "2024-03-01",
         "Supp. Brand Desc.": "ACME", "Package Size": "12PK", "Unit Rebate$": 5.0},
        {"Dist Item#": "C", "Dist Name.2": "FL", "Start": "2024-03-01",
         "Supp. Brand Desc.": "ACME", "Package Size": "12PK", "Unit Rebate$": 2.0},
        {"Dist Item#": "A", "Dist Name.2": "FL", "Start": "2024-04-01",
         "Supp. Brand Desc.": "ACME", "Package Size": "12PK", "Unit Rebate$": 7.0},
    ])


@pytest.fixture()
def tables(billback, item_ref, ppm, states):
    return {"billback": billback, "item_ref": item_ref, "ppm": ppm, "states": states}


@pytest.fixture()
def config(tmp_path):
    return Config(output_path=tmp_path / "output")
