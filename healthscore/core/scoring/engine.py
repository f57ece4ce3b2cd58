"""
Baseline Score Engine

Central pipeline.  Takes one user's biomarker readings (plus an optional
BMI) and returns a ScoreResult with per-tier scores, the dashboard cap
and the full audit trail.

Usage:
    from healthscore.core.scoring import BaselineScoreEngine

    engine = BaselineScoreEngine()
    result = engine.calculate(readings, bmi=22.4)
    print(result.pre_capped_percentage, result.final_percentage)

Pipeline:
    1. Index readings, resolve every tier definition   (mapping)
    2. Evaluate context and peer-capping rules         (rule processing)
    3. Apply actions, score and normalize each tier    (normalization)
    4. Evaluate the dashboard cap table                (dashboard capping)
    5. Clamp the aggregate to the lowest ceiling       (final result)
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Union

from healthscore.config import settings
from healthscore.utils import get_logger
from .audit import AuditRecorder, AuditStage
from .base import BiomarkerReading, RuleActionType
from .catalog import CATALOG, BiomarkerCatalog
from .dashboard_caps import apply_dashboard_cap, evaluate_dashboard_cap
from .ranks import AuxiliaryInputs, index_readings
from .results import ScoreResult
from .rule_engine import evaluate_rules
from .tiers import aggregate_percentage, score_tiers

logger = get_logger(__name__)

_UNSET = object()


class BaselineScoreEngine:
    """
    Computes the baseline health score for one user per call.

    Holds only read-only reference data, so a single instance can serve
    concurrent requests.
    """

    def __init__(
        self,
        catalog: BiomarkerCatalog = CATALOG,
        bmi_fallback: Union[float, None, object] = _UNSET,
    ):
        self.catalog = catalog
        self.bmi_fallback = settings.bmi_fallback if bmi_fallback is _UNSET else bmi_fallback

    def calculate(
        self,
        readings: Iterable[BiomarkerReading],
        bmi: Union[float, str, None] = None,
    ) -> ScoreResult:
        """
        Score one user.

        Args:
            readings: Biomarker readings from the upstream source.
            bmi:      Precomputed BMI, used only by the body-fat → BMI
                      substitution.

        Returns:
            ScoreResult.  Missing or unratable biomarkers never raise; they
            shrink their tier's denominator instead.
        """
        audit = AuditRecorder()
        aux = AuxiliaryInputs(bmi=bmi, bmi_fallback=self.bmi_fallback)
        index = index_readings(readings)

        evaluation = evaluate_rules(index, self.catalog)
        scoring = score_tiers(
            self.catalog.definitions,
            index,
            evaluation.merged,
            aux,
            self.catalog.original_totals,
        )

        # ── 1. Mapping ───────────────────────────────────────────────────
        referenced = self.catalog.referenced_ids()
        unscored = sorted(m for m in index if m not in referenced)
        audit.record(
            AuditStage.MAPPING,
            f"{len(index)} reading(s) received, {len(index) - len(unscored)} referenced by the catalog",
            readings=len(index),
            unscored=unscored,
        )
        for entry in scoring.audits:
            if entry.is_missing:
                message = f"{entry.name}: missing"
            else:
                message = f"{entry.name}: rank {entry.original_rank} via {entry.metric_id_used}"
            audit.record(
                AuditStage.MAPPING,
                message,
                metric_id=entry.metric_id,
                original_rank=entry.original_rank,
                max_rank=entry.max_rank,
                composition=entry.rule_applied,
                is_substitute=entry.is_substitute,
                rank_source=entry.rank_source,
            )

        # ── 2. Rule processing ───────────────────────────────────────────
        for metric_id, action in evaluation.merged.items():
            audit.record(
                AuditStage.RULE_PROCESSING,
                f"{action.rule_title}: {action.action.value}"
                + (f" at {action.cap_value}" if action.action == RuleActionType.CAP else ""),
                metric_id=metric_id,
                **action.to_dict(),
            )
        for action in evaluation.overridden:
            audit.record(
                AuditStage.RULE_PROCESSING,
                f"{action.rule_title}: overridden by a higher-precedence rule set",
                metric_id=action.target_metric_id,
                overridden=True,
                **action.to_dict(),
            )

        # ── 3. Normalization ─────────────────────────────────────────────
        for entry in scoring.audits:
            if entry.is_missing:
                continue
            if entry.is_suppressed:
                message = f"{entry.name}: suppressed, excluded from tier {entry.tier.value}"
            else:
                message = (
                    f"{entry.name}: rank {entry.capped_rank} "
                    f"= {entry.final_score}/{entry.target_score}"
                )
            audit.record(
                AuditStage.NORMALIZATION,
                message,
                metric_id=entry.metric_id,
                capped_rank=entry.capped_rank,
                final_score=entry.final_score,
                target_score=entry.target_score,
            )

        for tier, tier_score in scoring.tier_scores.items():
            original_total = self.catalog.original_totals[tier]
            normalized = scoring.normalized_scores[tier]
            audit.record(
                AuditStage.NORMALIZATION,
                f"Tier {tier.value}: {tier_score.achieved}/{tier_score.total} "
                f"→ {normalized:.2f}/{original_total}",
                tier=tier.value,
                achieved=tier_score.achieved,
                total=tier_score.total,
                normalized=normalized,
                original_total=original_total,
            )

        total_original = self.catalog.total_original_score
        pre_capped = scoring.aggregate_score

        # ── 4. Dashboard capping ─────────────────────────────────────────
        dashboard = evaluate_dashboard_cap(index, self.catalog, aux)
        for applied in dashboard.applied_rules:
            audit.record(
                AuditStage.DASHBOARD_CAPPING,
                f"{applied.name} at rank {applied.rank} caps the score at {applied.cap_score}%",
                metric_id=applied.metric_id,
                rank=applied.rank,
                cap_score=applied.cap_score,
            )
        audit.record(
            AuditStage.DASHBOARD_CAPPING,
            f"Lowest cap: {dashboard.lowest_cap}%" if dashboard.lowest_cap is not None
            else "No dashboard cap applies",
            lowest_cap=dashboard.lowest_cap,
        )

        # ── 5. Final result ──────────────────────────────────────────────
        final_score, is_capped = apply_dashboard_cap(pre_capped, total_original, dashboard.lowest_cap)
        pre_pct = aggregate_percentage(pre_capped, total_original)
        final_pct = aggregate_percentage(final_score, total_original)
        audit.record(
            AuditStage.FINAL_RESULT,
            f"{pre_pct:.2f}% before capping, {final_pct:.2f}% final"
            + (" (capped)" if is_capped else ""),
            pre_capped_score=pre_capped,
            final_score=final_score,
            is_capped_overall=is_capped,
        )

        result = ScoreResult(
            original_totals=dict(self.catalog.original_totals),
            tier_scores=dict(scoring.tier_scores),
            normalized_scores=dict(scoring.normalized_scores),
            pre_capped_score=pre_capped,
            final_score=final_score,
            total_original_score=total_original,
            dashboard_cap=dashboard,
            is_capped_overall=is_capped,
            biomarker_audits=scoring.audits,
            audit_trail=audit.entries,
        )

        logger.info(
            f"BaselineScoreEngine: {len(index)} reading(s), "
            f"{pre_pct:.2f}% → {final_pct:.2f}%"
            + (f" (capped at {dashboard.lowest_cap}%)" if is_capped else "")
        )
        return result

    def calculate_from_payload(
        self,
        payload: Dict[str, Any],
        bmi: Union[float, str, None] = None,
    ) -> Optional[ScoreResult]:
        """
        Score an upstream health-data payload.

        Returns None when the payload carries no blood readings.
        Raises HealthDataError when the payload is malformed.
        """
        from healthscore.core.ingestion import parse_health_data

        readings = parse_health_data(payload)
        if not readings:
            logger.info("BaselineScoreEngine: biomarker data not available")
            return None
        return self.calculate(readings, bmi=bmi)

    @staticmethod
    def summarise(result: ScoreResult) -> Dict[str, Any]:
        """
        Build a compact summary dict suitable for JSON API responses.

        Example output:
        {
            "pre_capped_percentage": 82.4,
            "final_percentage": 65.0,
            "is_capped_overall": true,
            "lowest_cap": 65,
            "normalized_scores": {"A": 512.0, "B": 201.6, "C": 110.4},
            "suppressed_count": 1,
            "capped_count": 2,
            "missing_count": 17
        }
        """
        audits = result.biomarker_audits
        return {
            "pre_capped_percentage": result.pre_capped_percentage,
            "final_percentage":      result.final_percentage,
            "is_capped_overall":     result.is_capped_overall,
            "lowest_cap":            result.dashboard_cap.lowest_cap,
            "normalized_scores":     {t.value: v for t, v in result.normalized_scores.items()},
            "suppressed_count":      sum(1 for a in audits if a.is_suppressed),
            "capped_count":          sum(1 for a in audits if a.is_capped),
            "missing_count":         sum(1 for a in audits if a.is_missing),
        }
