"""
Baseline Scoring Layer

Turns one user's pre-rated biomarker readings into a normalized 0-100
baseline health score with a full audit trail.

Usage:
    from healthscore.core.scoring import BaselineScoreEngine, BiomarkerReading

    engine = BaselineScoreEngine()
    result = engine.calculate(readings, bmi=22.4)
"""
from .engine import BaselineScoreEngine
from .base import BiomarkerReading, RankEntry, Tier
from .catalog import CATALOG, BiomarkerCatalog
from .results import ScoreResult, BiomarkerAudit
from .audit import AuditStage

__all__ = [
    "BaselineScoreEngine",
    "BiomarkerReading",
    "RankEntry",
    "Tier",
    "CATALOG",
    "BiomarkerCatalog",
    "ScoreResult",
    "BiomarkerAudit",
    "AuditStage",
]
