"""
Score Export Module

Reduces ScoreResults to one row per user for batch CSV export.
"""
from .score_export import (
    EXPORT_HEADERS,
    NO_DATA_MESSAGE,
    ExportRow,
    build_export_row,
    write_export_csv,
)

__all__ = [
    "EXPORT_HEADERS",
    "NO_DATA_MESSAGE",
    "ExportRow",
    "build_export_row",
    "write_export_csv",
]
