"""
Custom Exception Hierarchy

Provides specific exception types for the failure categories of the
baseline score service, with structured error information.

Data-quality variance in biomarker readings (missing values, unknown
rating labels, unparseable numbers) is never an exception: those cases
resolve to a missing rank inside the scoring engine.
"""
from typing import Optional, Dict, Any


class BaselineScoreError(Exception):
    """Base exception for all baseline score errors."""
    
    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class CatalogError(BaselineScoreError):
    """Inconsistent static reference data (tier catalog, rule or cap tables)."""
    
    def __init__(
        self,
        message: str,
        table: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="CATALOG_ERROR",
            details={"table": table, **(details or {})}
        )
        self.table = table


class HealthDataError(BaselineScoreError):
    """Upstream health-data payload does not have the expected shape."""
    
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="HEALTH_DATA_ERROR",
            details=details
        )


class ExportError(BaselineScoreError):
    """Errors while writing score exports."""
    
    def __init__(
        self,
        message: str,
        destination: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="EXPORT_ERROR",
            details={"destination": destination, **(details or {})}
        )
        self.destination = destination
