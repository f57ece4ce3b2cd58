"""
Tier Scorer & Normalizer

Turns resolved ranks and merged rule actions into per-biomarker points,
per-tier achieved/total sums and normalized tier scores.

Scoring semantics:
    points      = round_half_up(final_rank / 5 * target_score)
    tier total  = sum of target_score over biomarkers that contributed
                  (missing and suppressed biomarkers reduce the denominator
                  rather than scoring zero)
    normalized  = achieved / total * fixed tier denominator
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Tuple

from healthscore.utils import get_logger
from .base import RuleAction, RuleActionType, Tier, TierDefinition
from .catalog import ORIGINAL_TIER_TOTALS
from .ranks import AuxiliaryInputs, ReadingIndex, apply_ratio_action, resolve_rank
from .results import BiomarkerAudit, RankResolution, TierScore

logger = get_logger(__name__)

# Points are always a fraction of a five-point scale, whatever the
# biomarker's own rank table tops out at.
RANK_SCALE_DIVISOR = 5


@dataclass(frozen=True)
class TierScoring:
    """Output of ``score_tiers`` for one user."""
    tier_scores: Mapping[Tier, TierScore]
    normalized_scores: Mapping[Tier, float]
    audits: Tuple[BiomarkerAudit, ...]

    @property
    def aggregate_score(self) -> float:
        return sum(self.normalized_scores.values())


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def compute_final_score(rank: int, target_score: int, divisor: int = RANK_SCALE_DIVISOR) -> int:
    """
    Points earned by a biomarker at ``rank``.

    >>> compute_final_score(5, 60), compute_final_score(3, 60), compute_final_score(1, 5)
    (60, 36, 1)
    """
    points = round_half_up(rank / divisor * target_score)
    return max(0, min(points, target_score))


def normalize_tier_score(achieved: float, total: float, original_total: float) -> float:
    """Rescale achieved/total onto the fixed denominator; 0 for an empty tier."""
    if total <= 0:
        return 0.0
    return achieved / total * original_total


def aggregate_percentage(aggregate: float, total_original: float) -> float:
    if total_original <= 0:
        return 0.0
    return aggregate / total_original * 100


def score_definition(
    definition: TierDefinition,
    resolution: RankResolution,
    rule_actions: Mapping[str, RuleAction],
) -> BiomarkerAudit:
    """
    Apply rule actions to one resolved definition and compute its points.

    Actions aimed at a definition's derived ratio are applied to the ratio
    component before the definition's own action.
    """
    original_rank = resolution.rank
    applied: Optional[RuleAction] = None

    if definition.derived_ratio is not None:
        ratio_action = rule_actions.get(definition.derived_ratio.metric_id)
        if ratio_action is not None and resolution.ratio_rank is not None:
            resolution = apply_ratio_action(definition, resolution, ratio_action)
            applied = ratio_action

    action = rule_actions.get(definition.metric_id) if definition.metric_id else None
    if action is not None and resolution.rank is not None:
        applied = action

    rank = resolution.rank
    suppressed = False
    if rank is not None and action is not None:
        if action.action == RuleActionType.SUPPRESS:
            suppressed = True
            rank = None
        else:
            rank = action.apply(rank)

    if original_rank is not None and rank is None and not suppressed:
        # The derived ratio was dropped and nothing else is left to score.
        suppressed = True

    is_missing = original_rank is None
    final_score = 0 if rank is None else compute_final_score(rank, definition.target_score)
    is_capped = (
        applied is not None
        and applied.action == RuleActionType.CAP
        and rank is not None
        and original_rank is not None
        and rank < original_rank
    )

    audit = BiomarkerAudit(
        name=definition.name,
        metric_id=definition.key,
        tier=definition.tier,
        original_rank=original_rank,
        capped_rank=rank,
        max_rank=resolution.max_rank,
        target_score=definition.target_score,
        final_score=final_score,
        is_missing=is_missing,
        is_substitute=resolution.is_substitute,
        is_suppressed=suppressed,
        is_capped=is_capped,
        metric_id_used=resolution.metric_id_used,
        rule_applied=resolution.composition_applied,
        rule_title=applied.rule_title if applied else None,
        rule_action=applied.action if applied else None,
        substitute_value=resolution.substitute_value,
        value=resolution.value,
        unit=resolution.unit,
        rank_source=resolution.rank_source,
    )

    if is_missing:
        logger.debug(f"TierScorer: {definition.name} missing")
    elif suppressed:
        logger.debug(f"TierScorer: {definition.name} suppressed by '{applied.rule_title}'")
    else:
        logger.debug(
            f"TierScorer: {definition.name} rank {original_rank}"
            + (f"→{rank}" if rank != original_rank else "")
            + f" = {final_score}/{definition.target_score}"
        )
    return audit


def score_tiers(
    definitions: Sequence[TierDefinition],
    readings: ReadingIndex,
    rule_actions: Mapping[str, RuleAction],
    aux: Optional[AuxiliaryInputs] = None,
    original_totals: Mapping[Tier, int] = ORIGINAL_TIER_TOTALS,
) -> TierScoring:
    """
    Score every tier definition for one user.

    Args:
        definitions:     Catalog entries, in catalog order.
        readings:        Readings indexed by metric id.
        rule_actions:    Merged rule actions keyed by target metric id.
        aux:             Non-panel inputs for rank resolution.
        original_totals: Fixed per-tier denominators.

    Returns:
        TierScoring with achieved/total and normalized score per tier and
        one audit per definition.
    """
    achieved: Dict[Tier, float] = {tier: 0 for tier in original_totals}
    total: Dict[Tier, float] = {tier: 0 for tier in original_totals}
    audits = []

    for definition in definitions:
        resolution = resolve_rank(definition, readings, aux)
        audit = score_definition(definition, resolution, rule_actions)
        audits.append(audit)
        if audit.contributes:
            achieved[definition.tier] += audit.final_score
            total[definition.tier] += definition.target_score

    tier_scores = {tier: TierScore(achieved[tier], total[tier]) for tier in original_totals}
    normalized = {
        tier: normalize_tier_score(achieved[tier], total[tier], original_totals[tier])
        for tier in original_totals
    }
    for tier, score in tier_scores.items():
        logger.debug(
            f"TierScorer [{tier.value}]: {score.achieved}/{score.total} "
            f"→ {normalized[tier]:.2f}/{original_totals[tier]}"
        )
    return TierScoring(tier_scores=tier_scores, normalized_scores=normalized, audits=tuple(audits))
