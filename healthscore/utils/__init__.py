"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    BaselineScoreError,
    CatalogError,
    HealthDataError,
    ExportError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "BaselineScoreError",
    "CatalogError",
    "HealthDataError",
    "ExportError",
]
