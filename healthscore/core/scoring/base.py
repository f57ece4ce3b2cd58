"""
Scoring Engine — Base Types

Defines the input and reference-data contracts shared by every stage of
the baseline score pipeline: raw biomarker readings, tier definitions,
cross-biomarker rule definitions and dashboard cap rules.

All types are frozen: readings are fetched once per invocation and the
reference tables are loaded once per process, neither is ever mutated.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Optional, Tuple, Union


class Tier(str, Enum):
    """Weighted biomarker group."""
    A = "A"
    B = "B"
    C = "C"


class CompositionRule(str, Enum):
    """
    How a tier definition resolves its rank from several readings.

    NONE        – direct reading only
    SUBSTITUTE  – first available related reading, in declared order
    LOWEST      – worst rank among all available related readings
    """
    NONE       = "none"
    SUBSTITUTE = "substitute"
    LOWEST     = "lowest"


class RuleActionType(str, Enum):
    """Effect of a context or peer-capping rule on its target biomarker."""
    NONE     = "none"
    CAP      = "cap"
    SUPPRESS = "suppress"


class RuleSet(str, Enum):
    """The two independent cross-biomarker rule sets."""
    CONTEXT      = "context"
    PEER_CAPPING = "peer_capping"


# Map of metric id → rank (None when present but unresolvable).
RankSnapshot = Mapping[str, Optional[int]]


# ── Readings ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RankEntry:
    """One ``label → rank`` row of a biomarker's rank table."""
    label: str
    rank: Optional[int]


@dataclass(frozen=True)
class BiomarkerReading:
    """
    One measurement returned by the upstream source for a user.

    The rank of a reading is found by matching ``rating_label`` against the
    reading's own ``rank_table``; tables are biomarker specific and may use
    scales shorter than five.
    """
    metric_id: str
    display_name: str = ""
    value: Union[float, int, str, None] = None
    unit: str = ""
    rating_label: Optional[str] = None
    rank_table: Tuple[RankEntry, ...] = ()

    def __post_init__(self):
        if not isinstance(self.rank_table, tuple):
            object.__setattr__(self, "rank_table", tuple(self.rank_table))

    @property
    def has_value(self) -> bool:
        return self.value is not None

    @property
    def rank(self) -> Optional[int]:
        """Rank of ``rating_label`` in the rank table, None when unmatched."""
        if not self.rank_table or self.rating_label is None:
            return None
        for entry in self.rank_table:
            if entry.label == self.rating_label:
                return entry.rank
        return None

    @property
    def max_rank(self) -> Optional[int]:
        """Highest ordinal in the rank table (None for an empty table)."""
        ranks = [e.rank for e in self.rank_table if e.rank is not None]
        return max(ranks) if ranks else None

    def numeric_value(self) -> Optional[float]:
        """Value as a finite float, or None when absent or unparseable."""
        return to_float(self.value)


def to_float(value) -> Optional[float]:
    """Parse numbers and numeric strings; NaN, infinities and junk give None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


# ── Catalog ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DerivedRatio:
    """
    A ratio computed in-engine from two readings and ranked by its own table.

    ``bands`` are ``(lower_bound, rank)`` pairs sorted by descending bound;
    the first band whose bound is <= the rounded ratio gives the rank, and
    ``floor_rank`` applies below the last bound.
    """
    metric_id: str
    numerator_id: str
    denominator_id: str
    bands: Tuple[Tuple[float, int], ...]
    floor_rank: int
    decimals: int = 2


@dataclass(frozen=True)
class TierDefinition:
    """
    One scored concept of the static catalog.

    ``metric_id`` may be empty for pure composites, in which case the rank
    comes from ``related_metric_ids`` through ``composition``.
    """
    name: str
    tier: Tier
    target_score: int
    metric_id: str = ""
    related_metric_ids: Tuple[str, ...] = ()
    composition: CompositionRule = CompositionRule.NONE
    derived_ratio: Optional[DerivedRatio] = None

    @property
    def key(self) -> str:
        """Stable identifier used in audits: the metric id, else the name."""
        return self.metric_id or self.name

    @property
    def contributing_ids(self) -> Tuple[str, ...]:
        """Primary id (when present) followed by related ids."""
        primary = (self.metric_id,) if self.metric_id else ()
        return primary + tuple(self.related_metric_ids)


# ── Rules ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RuleOutcome:
    """Result of evaluating one rule against a rank snapshot."""
    action: RuleActionType = RuleActionType.NONE
    cap_value: Optional[int] = None

    @property
    def fired(self) -> bool:
        return self.action != RuleActionType.NONE

    @classmethod
    def none(cls) -> "RuleOutcome":
        return cls()

    @classmethod
    def cap(cls, cap_value: int) -> "RuleOutcome":
        return cls(RuleActionType.CAP, cap_value)

    @classmethod
    def suppress(cls) -> "RuleOutcome":
        return cls(RuleActionType.SUPPRESS)


@dataclass(frozen=True)
class RuleDefinition:
    """
    Declarative cross-biomarker heuristic.

    ``evaluate`` is a pure function of the snapshot passed to it; rules hold
    no state of their own.
    """
    title: str
    rule_set: RuleSet
    target_metric_id: str
    condition_metric_ids: Tuple[str, ...]
    evaluate: Callable[[RankSnapshot], RuleOutcome]


@dataclass(frozen=True)
class RuleAction:
    """A fired rule outcome bound to its target metric."""
    target_metric_id: str
    action: RuleActionType
    rule_title: str
    rule_set: RuleSet
    cap_value: Optional[int] = None

    def apply(self, rank: Optional[int]) -> Optional[int]:
        """
        Apply the action to a rank.

        Suppression always yields None; a cap only ever lowers a rank.
        """
        if self.action == RuleActionType.SUPPRESS:
            return None
        if self.action == RuleActionType.CAP and rank is not None and self.cap_value is not None:
            return min(rank, self.cap_value)
        return rank

    def to_dict(self) -> dict:
        return {
            "target_metric_id": self.target_metric_id,
            "action": self.action.value,
            "cap_value": self.cap_value,
            "rule_title": self.rule_title,
            "rule_set": self.rule_set.value,
        }


# ── Dashboard caps ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DashboardCapThreshold:
    """Ceiling on the aggregate percentage when a biomarker sits at ``rank``."""
    rank: int
    cap_score: float


@dataclass(frozen=True)
class DashboardCapRule:
    """One of the biomarkers that can cap the overall score."""
    metric_id: str
    caps: Tuple[DashboardCapThreshold, ...]

    def cap_for(self, rank: Optional[int]) -> Optional[float]:
        if rank is None:
            return None
        for threshold in self.caps:
            if threshold.rank == rank:
                return threshold.cap_score
        return None
