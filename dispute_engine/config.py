"""
Configuration for the Billback Dispute Analysis Engine.

CONFIGURATION OPTIONS:
----------------------
1. EASY WAY (Recommended): Edit settings.yaml next to analyze_disputes.py
   - Human-readable YAML format
   - Just edit values and save

2. PROGRAMMATIC WAY: Build a Config directly or use with_overrides()
   - For automation and tests

Column names used by the engine are fixed by the upstream spreadsheets and
are not configurable. Thresholds, paths and output options are.
"""

from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List
import yaml

# =============================================================================
# DEFAULT PATHS
# =============================================================================

PROJECT_PATH = Path(__file__).resolve().parent.parent
OUTPUT_PATH = PROJECT_PATH / "output"
SETTINGS_FILE = PROJECT_PATH / "settings.yaml"

# =============================================================================
# COLUMN NAMES (exactly as they appear in the source spreadsheets)
# =============================================================================

# Billback
COL_MATERIAL = "Material"
COL_STATE = "State"
COL_COMPLETE_DATE = "Complete Date"
COL_POSTING_PERIOD = "Posting Period "
COL_NET = "Net$"
COL_QUANTITY = "Quantity"
COL_REBATE = "Rebate"
COL_AT_PRICE = "At price"
COL_CASE_IN_PART = "Case in Part"
COL_PART_AMOUNT = "Part Amount"
COL_EXTENDED_PART = "Extended Part"
COL_BILLBACK_BRAND_PK = "Brand + Pk size"

# PPM
COL_DIST_ITEM = "Dist Item#"
COL_DIST_NAME = "Dist Name.2"
COL_START = "Start"
COL_UNIT_REBATE = "Unit Rebate$"
COL_PPM_BRAND_PK = "ppm_Brand+pk size"

# Item reference (also present on PPM rows)
COL_BRAND_DESC = "Supp. Brand Desc."
COL_PACKAGE_SIZE = "Package Size"

# States
COL_STATE_CODE = "State Code"
COL_STATE_ABBR = "State Abbr"
COL_STATE_NAME = "State Name"
COL_CUSTOM_ABBR = "Custom Abbreviation"

# Reconciliation output
COL_VAR = "VAR"
COL_COMMENT = "Comment"

RESULT_COLUMNS = [
    COL_MATERIAL, COL_AT_PRICE, COL_CASE_IN_PART, COL_PART_AMOUNT,
    COL_EXTENDED_PART, COL_NET, COL_QUANTITY, COL_UNIT_REBATE,
    COL_REBATE, COL_VAR, COL_COMMENT,
]

# =============================================================================
# OUTCOME CATEGORIES
# =============================================================================

COMMENT_PERFECT = ""
COMMENT_MISMATCH = "Price mismatch"
COMMENT_MISSING_DEAL = "Missing Deal"
COMMENT_PPM_ONLY = "PPM Only"

COMMENTS = [COMMENT_PERFECT, COMMENT_MISMATCH, COMMENT_MISSING_DEAL, COMMENT_PPM_ONLY]

# Chart / report labels for each outcome, in display order
CATEGORY_LABELS = {
    COMMENT_PERFECT: "Perfect Match",
    COMMENT_MISMATCH: "Mismatches",
    COMMENT_MISSING_DEAL: "Missing Deals",
    COMMENT_PPM_ONLY: "PPM Only",
}

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


@dataclass
class Config:
    """Configuration settings for the dispute analysis engine."""

    # =========================================================================
    # FILE PATHS
    # =========================================================================
    output_path: Path = OUTPUT_PATH
    report_prefix: str = "Dispute_Analysis"

    # =========================================================================
    # INPUT VALIDATION
    # =========================================================================
    # A non-empty table missing any of these columns is rejected outright
    required_columns: Dict[str, List[str]] = field(default_factory=lambda: {
        "billback": [COL_MATERIAL],
        "item_ref": [COL_MATERIAL],
        "ppm": [COL_DIST_ITEM],
        "states": [COL_STATE_CODE],
    })

    # =========================================================================
    # RECONCILIATION PARAMETERS
    # =========================================================================
    variance_tolerance: float = 0.01   # Currency rounding epsilon
    month_names: List[str] = field(default_factory=lambda: list(MONTH_NAMES))

    # =========================================================================
    # REPORT PARAMETERS
    # =========================================================================
    top_n_materials: int = 5           # Materials shown in top-variance views
    percent_matched_target: float = 90.0  # Below this, recommend investigation

    # =========================================================================
    # LOADING
    # =========================================================================
    max_workers: int = 4               # One reader per input table

    # Print progress lines while running
    verbose: bool = False

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def get_month_number(self, month_name: str) -> int:
        """Return 1-12 for a month name (case-insensitive), ValueError if unknown."""
        name = str(month_name).strip().lower()
        for i, candidate in enumerate(self.month_names, 1):
            if candidate.lower() == name:
                return i
        raise ValueError(f"Unknown month: {month_name!r}")

    def get_required_columns(self, dataset: str) -> List[str]:
        """Required columns for a dataset kind (billback, item_ref, ppm, states)."""
        return self.required_columns.get(dataset, [])

    def with_overrides(
        self,
        output_path: Path = None,
        variance_tolerance: float = None,
        top_n_materials: int = None,
        verbose: bool = None
    ) -> "Config":
        """Return a new config with the given values replaced."""
        from dataclasses import replace
        new_config = replace(self)
        if output_path:
            new_config.output_path = Path(output_path)
        if variance_tolerance is not None:
            new_config.variance_tolerance = variance_tolerance
        if top_n_materials:
            new_config.top_n_materials = top_n_materials
        if verbose is not None:
            new_config.verbose = verbose
        return new_config


# =============================================================================
# SETTINGS LOADER
# =============================================================================

def load_settings_from_yaml(yaml_path: Path = None) -> dict:
    """
    Load settings from YAML file.

    Args:
        yaml_path: Path to settings.yaml (uses default if not provided)

    Returns:
        Dictionary of settings, or empty dict if file not found
    """
    yaml_path = Path(yaml_path) if yaml_path else SETTINGS_FILE
    if not yaml_path.exists():
        return {}

    try:
        with open(yaml_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        print(f"Warning: Could not load settings from {yaml_path}: {e}")
        return {}


def _resolve_path(value, yaml_path: Path = None) -> Path:
    """Relative paths in the settings file are taken from the file's folder."""
    if not value:
        return OUTPUT_PATH
    path = Path(value)
    if path.is_absolute():
        return path
    base = Path(yaml_path).parent if yaml_path else PROJECT_PATH
    return base / path


def config_from_yaml(yaml_path: Path = None) -> "Config":
    """
    Create a Config object from settings.yaml.

    Args:
        yaml_path: Path to settings.yaml (uses default if not provided)

    Returns:
        Config object with settings applied
    """
    settings = load_settings_from_yaml(yaml_path)

    if not settings:
        return Config()

    paths = settings.get('paths') or {}
    recon = settings.get('reconciliation') or {}
    loading = settings.get('loading') or {}
    report = settings.get('report') or {}
    required = settings.get('required_columns') or {}

    defaults = Config()
    required_columns = dict(defaults.required_columns)
    for dataset, columns in required.items():
        if columns:
            required_columns[dataset] = list(columns)

    return Config(
        # Paths
        output_path=_resolve_path(paths.get('output'), yaml_path),
        report_prefix=report.get('prefix', defaults.report_prefix),

        # Validation
        required_columns=required_columns,

        # Reconciliation
        variance_tolerance=float(recon.get('variance_tolerance', defaults.variance_tolerance)),
        month_names=recon.get('month_names') or list(MONTH_NAMES),

        # Report
        top_n_materials=int(report.get('top_n_materials', defaults.top_n_materials)),
        percent_matched_target=float(report.get('percent_matched_target',
                                                defaults.percent_matched_target)),

        # Loading
        max_workers=int(loading.get('max_workers', defaults.max_workers)),
        verbose=bool(settings.get('verbose', defaults.verbose)),
    )


# Create default configuration instance
# First try to load from settings.yaml, fall back to defaults
try:
    default_config = config_from_yaml()
except (TypeError, ValueError):
    default_config = Config()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def print_current_settings():
    """Print current configuration settings for debugging."""
    config = default_config
    print("\n" + "="*60)
    print("CURRENT CONFIGURATION SETTINGS")
    print("="*60)
    print(f"\nOutput Path: {config.output_path}")
    print(f"Report Prefix: {config.report_prefix}")
    print(f"\nVariance Tolerance: {config.variance_tolerance}")
    print(f"Top Materials Shown: {config.top_n_materials}")
    print(f"Percent Matched Target: {config.percent_matched_target:.0f}%")
    print(f"\nLoader Workers: {config.max_workers}")
    for dataset, columns in config.required_columns.items():
        print(f"  - {dataset}: {', '.join(columns)}")
    print("="*60 + "\n")


def reload_settings():
    """Reload settings from YAML file."""
    global default_config
    default_config = config_from_yaml()
    return default_config
