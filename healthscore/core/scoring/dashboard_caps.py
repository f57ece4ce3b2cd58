"""
Dashboard Capping Evaluator

A poor result on any of sixteen headline biomarkers puts a ceiling on
the overall percentage, however well the rest of the panel scores.

Ranks are resolved before any context or peer-capping rule: a ceiling
reflects what the user's panel actually shows.  Biomarkers that own a
tier definition resolve through the tier resolver (so Body Fat % still
falls back to BMI); the rest are looked up directly.
"""
from __future__ import annotations

from typing import Optional, Sequence, Tuple

from healthscore.utils import CatalogError, get_logger
from .base import DashboardCapRule, DashboardCapThreshold
from .biomarker_ids import MetricId as M, display_name
from .catalog import CATALOG, BiomarkerCatalog, check_known_ids
from .ranks import AuxiliaryInputs, ReadingIndex, resolve_metric_rank
from .results import AppliedDashboardCap, BiomarkerAudit, DashboardCapResult

logger = get_logger(__name__)

EXPECTED_RULE_COUNT = 16
VALID_RANKS = range(1, 6)


def _caps(metric_id: str, *pairs: Tuple[int, float]) -> DashboardCapRule:
    return DashboardCapRule(
        metric_id=metric_id,
        caps=tuple(DashboardCapThreshold(rank, cap) for rank, cap in pairs),
    )


# ── Cap table: rank → ceiling on the overall percentage ──────────────────────
DASHBOARD_CAP_RULES: Tuple[DashboardCapRule, ...] = (
    _caps(M.HBA1C,           (1, 65), (2, 75), (3, 85)),
    _caps(M.FASTING_INSULIN, (1, 65), (2, 75)),
    _caps(M.BODY_FAT,        (1, 70), (2, 80)),
    _caps(M.VO2_MAX,         (1, 70), (2, 80)),
    _caps(M.NON_HDL,         (1, 70), (2, 80)),
    _caps(M.LPA,             (1, 75)),
    _caps(M.HS_CRP,          (1, 70), (2, 80)),
    _caps(M.GGT,             (1, 70), (2, 80)),
    _caps(M.TSH,             (1, 70), (2, 80)),
    _caps(M.VITAMIN_B12,     (1, 70), (2, 80)),
    _caps(M.FERRITIN,        (1, 75)),
    _caps(M.PHQ_2,           (1, 65), (2, 75)),
    _caps(M.GAD_2,           (1, 65), (2, 75)),
    _caps(M.VITAMIN_D,       (1, 65), (2, 75)),
    _caps(M.SGOT,            (1, 60), (2, 65)),
    _caps(M.SGPT,            (1, 60), (2, 65)),
)


def validate_cap_rules(rules: Sequence[DashboardCapRule]) -> None:
    """Raise CatalogError for a malformed cap table."""
    if len(rules) != EXPECTED_RULE_COUNT:
        raise CatalogError(
            f"Dashboard cap table has {len(rules)} entries, expected {EXPECTED_RULE_COUNT}",
            table="dashboard_caps",
        )
    seen = set()
    for rule in rules:
        if rule.metric_id in seen:
            raise CatalogError(f"Duplicate dashboard cap for {rule.metric_id}", table="dashboard_caps")
        seen.add(rule.metric_id)
        if not rule.caps:
            raise CatalogError(f"{rule.metric_id}: no cap thresholds", table="dashboard_caps")
        for threshold in rule.caps:
            if threshold.rank not in VALID_RANKS:
                raise CatalogError(
                    f"{rule.metric_id}: cap rank {threshold.rank} outside 1..5",
                    table="dashboard_caps",
                )
            if not 0 <= threshold.cap_score <= 100:
                raise CatalogError(
                    f"{rule.metric_id}: cap score {threshold.cap_score} is not a percentage",
                    table="dashboard_caps",
                )
    check_known_ids(seen, table="dashboard_caps", owner="dashboard cap table")


validate_cap_rules(DASHBOARD_CAP_RULES)


def evaluate_dashboard_cap(
    readings: ReadingIndex,
    catalog: BiomarkerCatalog = CATALOG,
    aux: Optional[AuxiliaryInputs] = None,
    rules: Sequence[DashboardCapRule] = DASHBOARD_CAP_RULES,
) -> DashboardCapResult:
    """
    Find the most restrictive ceiling the user's panel triggers.

    Returns:
        DashboardCapResult whose ``lowest_cap`` is None when no cap applies.
        Every matching rule is listed in ``applied_rules``; one audit per
        table entry records the resolved rank.
    """
    applied = []
    audits = []

    for rule in rules:
        definition = catalog.definition_for(rule.metric_id)
        resolution = resolve_metric_rank(rule.metric_id, readings, definition, aux)
        cap = rule.cap_for(resolution.rank)
        name = definition.name if definition is not None else display_name(rule.metric_id)

        audits.append(BiomarkerAudit(
            name=name,
            metric_id=rule.metric_id,
            tier=definition.tier if definition is not None else catalog.tier_of(rule.metric_id),
            original_rank=resolution.rank,
            capped_rank=resolution.rank,
            max_rank=resolution.max_rank,
            target_score=definition.target_score if definition is not None else 0,
            final_score=0,
            is_missing=resolution.is_missing,
            is_substitute=resolution.is_substitute,
            is_capped=cap is not None,
            metric_id_used=resolution.metric_id_used,
            rule_applied=resolution.composition_applied,
            substitute_value=resolution.substitute_value,
            value=resolution.value,
            unit=resolution.unit,
            rank_source=resolution.rank_source,
        ))

        if cap is None:
            continue
        applied.append(AppliedDashboardCap(
            metric_id=rule.metric_id,
            name=name,
            rank=resolution.rank,
            cap_score=cap,
        ))
        logger.debug(f"DashboardCap: {name} at rank {resolution.rank} → ceiling {cap}%")

    lowest = min((a.cap_score for a in applied), default=None)
    return DashboardCapResult(lowest_cap=lowest, applied_rules=tuple(applied), audits=tuple(audits))


def apply_dashboard_cap(
    pre_capped_score: float,
    total_original_score: float,
    lowest_cap: Optional[float],
) -> Tuple[float, bool]:
    """
    Clamp the aggregate to the lowest ceiling.

    Returns:
        (final_score, is_capped_overall); capped exactly when the pre-cap
        percentage exceeds ``lowest_cap``.
    """
    if lowest_cap is None or total_original_score <= 0:
        return pre_capped_score, False
    percentage = pre_capped_score / total_original_score * 100
    if percentage > lowest_cap:
        return lowest_cap / 100 * total_original_score, True
    return pre_capped_score, False
