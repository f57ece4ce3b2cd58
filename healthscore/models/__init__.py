"""Request/response models for the baseline score service."""
from .score import BaselineScoreRequest, BaselineScoreResponse, CatalogEntry, HealthResponse

__all__ = [
    "BaselineScoreRequest",
    "BaselineScoreResponse",
    "CatalogEntry",
    "HealthResponse",
]
