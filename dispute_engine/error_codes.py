"""
Error Codes
===========
Codes and result descriptors for conditions reported back to the caller.

Core functions raise InputShapeError for tables they cannot work with at all.
Everything else (empty filters, rejected manual matches, bad selections) is
reported as a plain dict so the caller decides how to present it:

    {"status": "error" | "empty" | "rejected", "code": "FLT001", "message": "..."}
"""

from typing import Any, Dict, List


# Error code definitions
ERROR_CODES = {
    # Input shape (INP) - fail fast, no partial result
    "INP001": "Input is not tabular",
    "INP002": "Required column missing",
    "INP003": "Source file could not be read",
    "INP004": "No input tables have been loaded",

    # Selection (SEL)
    "SEL001": "Incomplete selection",
    "SEL002": "Unknown month name",
    "SEL003": "Invalid year",

    # Filtering (FLT)
    "FLT001": "No matching records for the selected filters",

    # Manual matching (MAN)
    "MAN001": "Pair is not currently matched",
    "MAN002": "No analysis has been run in this session",
    "MAN003": "Row is not part of the current selection",
    "MAN004": "Billback row has no Material",
}

STATUS_OK = "success"
STATUS_ERROR = "error"
STATUS_EMPTY = "empty"
STATUS_REJECTED = "rejected"


class InputShapeError(ValueError):
    """Raised when a dataset is not tabular or lacks a required column."""

    def __init__(self, code: str, message: str, dataset: str = "",
                 missing_columns: List[str] = None):
        super().__init__(message)
        self.code = code
        self.dataset = dataset
        self.missing_columns = missing_columns or []

    def to_dict(self) -> Dict[str, Any]:
        result = failure(STATUS_ERROR, self.code, str(self))
        if self.dataset:
            result["dataset"] = self.dataset
        if self.missing_columns:
            result["missing_columns"] = list(self.missing_columns)
        return result


def failure(status: str, code: str, message: str = None, **extra) -> Dict[str, Any]:
    """Build a structured failure descriptor."""
    result = {
        "status": status,
        "code": code,
        "message": message or get_error_description(code),
    }
    result.update(extra)
    return result


def get_error_description(code: str) -> str:
    """Get human-readable description for an error code."""
    return ERROR_CODES.get(code, f"Unknown error code: {code}")


def get_error_category(code: str) -> str:
    """Get the category for an error code."""
    prefix = code[:3] if len(code) >= 3 else code
    categories = {
        "INP": "Input Shape",
        "SEL": "Selection",
        "FLT": "No Match",
        "MAN": "Manual Matching",
    }
    return categories.get(prefix, "Other")


class SelectionError(ValueError):
    """Raised when a filter selection is incomplete or cannot be interpreted."""

    def __init__(self, code: str, message: str = None):
        super().__init__(message or get_error_description(code))
        self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return failure(STATUS_ERROR, self.code, str(self))
