"""
Scoring Engine — Result Types

Output contracts of the baseline score pipeline.  A ``ScoreResult`` is
built once per invocation and handed to the caller; every type here is
frozen and serialises to plain JSON-compatible dicts.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, TYPE_CHECKING

from .base import RuleActionType, Tier

if TYPE_CHECKING:
    from .audit import AuditEntry


@dataclass(frozen=True)
class RankResolution:
    """
    How the rank of one tier definition (or cap biomarker) was resolved.

    This is the partial audit produced by the rank resolver, before any
    context or capping rule has been applied.
    """
    rank: Optional[int]
    max_rank: int = 5
    metric_id_used: Optional[str] = None
    composition_applied: Optional[str] = None   # "substitute" | "lowest"
    is_substitute: bool = False
    substitute_value: Optional[float] = None
    value: Any = None
    unit: str = ""
    # White-cell composite only
    rank_source: Optional[str] = None           # "direct" | "ratio"
    direct_rank: Optional[int] = None
    ratio_rank: Optional[int] = None
    ratio_value: Optional[float] = None

    @property
    def is_missing(self) -> bool:
        return self.rank is None


@dataclass(frozen=True)
class BiomarkerAudit:
    """One record per tier definition describing its score contribution."""
    name: str
    metric_id: str
    tier: Optional[Tier]
    original_rank: Optional[int]
    capped_rank: Optional[int]
    max_rank: int
    target_score: int
    final_score: int
    is_missing: bool
    is_substitute: bool = False
    is_suppressed: bool = False
    is_capped: bool = False
    metric_id_used: Optional[str] = None
    rule_applied: Optional[str] = None           # composition rule used
    rule_title: Optional[str] = None             # context / capping rule that fired
    rule_action: Optional[RuleActionType] = None
    substitute_value: Optional[float] = None
    value: Any = None
    unit: str = ""
    rank_source: Optional[str] = None

    @property
    def contributes(self) -> bool:
        """Whether this biomarker counts towards its tier's achieved and total."""
        return not self.is_missing and not self.is_suppressed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "metric_id": self.metric_id,
            "tier": self.tier.value if self.tier else None,
            "metric_id_used": self.metric_id_used,
            "original_rank": self.original_rank,
            "capped_rank": self.capped_rank,
            "max_rank": self.max_rank,
            "target_score": self.target_score,
            "final_score": self.final_score,
            "rule_applied": self.rule_applied,
            "rule_title": self.rule_title,
            "rule_action": self.rule_action.value if self.rule_action else None,
            "is_missing": self.is_missing,
            "is_suppressed": self.is_suppressed,
            "is_capped": self.is_capped,
            "is_substitute": self.is_substitute,
            "substitute_value": self.substitute_value,
            "value": self.value,
            "unit": self.unit,
            "rank_source": self.rank_source,
        }


@dataclass(frozen=True)
class TierScore:
    """Achieved and available points of one tier after denominator reduction."""
    achieved: float = 0
    total: float = 0

    def to_dict(self) -> Dict[str, float]:
        return {"achieved": self.achieved, "total": self.total}


@dataclass(frozen=True)
class AppliedDashboardCap:
    metric_id: str
    name: str
    rank: int
    cap_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metric_id": self.metric_id,
            "name": self.name,
            "rank": self.rank,
            "cap_score": self.cap_score,
        }


@dataclass(frozen=True)
class DashboardCapResult:
    """Lowest applicable dashboard ceiling and every cap that matched."""
    lowest_cap: Optional[float] = None
    applied_rules: Tuple[AppliedDashboardCap, ...] = ()
    audits: Tuple[BiomarkerAudit, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lowest_cap": self.lowest_cap,
            "applied_rules": [r.to_dict() for r in self.applied_rules],
            "audits": [a.to_dict() for a in self.audits],
        }


@dataclass(frozen=True)
class ScoreResult:
    """Terminal output of one scoring invocation."""
    original_totals: Mapping[Tier, float]
    tier_scores: Mapping[Tier, TierScore]
    normalized_scores: Mapping[Tier, float]
    pre_capped_score: float
    final_score: float
    total_original_score: float
    dashboard_cap: DashboardCapResult
    is_capped_overall: bool
    biomarker_audits: Tuple[BiomarkerAudit, ...] = ()
    audit_trail: Tuple["AuditEntry", ...] = field(default=())

    @property
    def pre_capped_percentage(self) -> float:
        if not self.total_original_score:
            return 0.0
        return self.pre_capped_score / self.total_original_score * 100

    @property
    def final_percentage(self) -> float:
        if not self.total_original_score:
            return 0.0
        return self.final_score / self.total_original_score * 100

    def audits_for_tier(self, tier: Tier) -> Tuple[BiomarkerAudit, ...]:
        return tuple(a for a in self.biomarker_audits if a.tier == tier)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_totals": {t.value: v for t, v in self.original_totals.items()},
            "tier_scores": {t.value: s.to_dict() for t, s in self.tier_scores.items()},
            "normalized_scores": {t.value: v for t, v in self.normalized_scores.items()},
            "pre_capped_score": self.pre_capped_score,
            "final_score": self.final_score,
            "total_original_score": self.total_original_score,
            "pre_capped_percentage": self.pre_capped_percentage,
            "final_percentage": self.final_percentage,
            "is_capped_overall": self.is_capped_overall,
            "dashboard_cap": self.dashboard_cap.to_dict(),
            "biomarker_audits": [a.to_dict() for a in self.biomarker_audits],
            "audit_trail": [e.to_dict() for e in self.audit_trail],
        }
