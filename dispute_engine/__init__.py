"""
Billback Dispute Analysis Engine
================================

Reconciles distributor billback rebate claims against PPM rebate agreements
for one market, brand + pack size and month, and reports the variance.

Configuration:
- Edit settings.yaml next to analyze_disputes.py for easy configuration
- Or build a Config in code for programmatic control
"""

from .config import Config, default_config, config_from_yaml, reload_settings, print_current_settings
from .data_loader import DataLoader
from .enrichment import add_custom_abbreviation, enrich, enrich_billback, enrich_ppm
from .filters import Selection, FilterResult, filter_records, extract_filter_options
from .reconciliation import ReconciliationEngine, reconcile
from .aggregation import (
    aggregate, variance_by_category, top_variance_materials, billback_vs_ppm, recommendations,
)
from .manual_match import ManualMatchSet, MatchPair
from .records import BillbackRecord, PpmRecord
from .session import DisputeSession
from .report_generator import DisputeReportGenerator
from .error_codes import (
    ERROR_CODES, InputShapeError, SelectionError, get_error_description, get_error_category,
)

__version__ = "1.0.0"
__all__ = [
    "Config",
    "default_config",
    "config_from_yaml",
    "reload_settings",
    "print_current_settings",
    "DataLoader",
    "add_custom_abbreviation",
    "enrich",
    "enrich_billback",
    "enrich_ppm",
    "Selection",
    "FilterResult",
    "filter_records",
    "extract_filter_options",
    "ReconciliationEngine",
    "reconcile",
    "aggregate",
    "variance_by_category",
    "top_variance_materials",
    "billback_vs_ppm",
    "recommendations",
    "ManualMatchSet",
    "MatchPair",
    "BillbackRecord",
    "PpmRecord",
    "DisputeSession",
    "DisputeReportGenerator",
    "ERROR_CODES",
    "InputShapeError",
    "SelectionError",
    "get_error_description",
    "get_error_category",
]
