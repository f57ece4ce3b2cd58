"""
Pydantic models for the baseline score API.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str
    uptime_seconds: float
    catalog_size: int


class CatalogEntry(BaseModel):
    name: str
    tier: str
    target_score: int
    metric_id: Optional[str] = None
    related_metric_ids: List[str] = Field(default_factory=list)
    composition: str = "none"


class BaselineScoreRequest(BaseModel):
    """Upstream health-data payload plus the inputs needed for BMI."""
    health_data: Dict[str, Any] = Field(..., description="Body of the upstream health-data endpoint")
    bmi: Optional[float] = Field(default=None, description="Precomputed BMI (kg/m²)")
    height_cm: Optional[float] = Field(default=None, description="Height from PII, used when bmi is absent")
    weight_kg: Optional[float] = Field(default=None, description="Weight from PII, used when bmi is absent")


class BaselineScoreResponse(BaseModel):
    """Scored result: headline numbers, summary and the full breakdown."""
    pre_capped_percentage: float
    final_percentage: float
    is_capped_overall: bool
    summary: Dict[str, Any]
    result: Dict[str, Any]
