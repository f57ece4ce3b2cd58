"""
Unit Tests for the Tier Scorer & Normalizer
"""
import pytest

from healthscore.core.scoring.base import RuleAction, RuleActionType, RuleSet, Tier
from healthscore.core.scoring.biomarker_ids import MetricId as M
from healthscore.core.scoring.catalog import CATALOG
from healthscore.core.scoring.ranks import AuxiliaryInputs, index_readings
from healthscore.core.scoring.tiers import (
    RANK_SCALE_DIVISOR,
    aggregate_percentage,
    compute_final_score,
    normalize_tier_score,
    round_half_up,
    score_tiers,
)

NO_BMI = AuxiliaryInputs(bmi_fallback=None)


def suppress(metric_id):
    return RuleAction(metric_id, RuleActionType.SUPPRESS, f"suppress {metric_id}", RuleSet.CONTEXT)


def cap(metric_id, value=3):
    return RuleAction(metric_id, RuleActionType.CAP, f"cap {metric_id}", RuleSet.PEER_CAPPING, value)


def score(readings, actions=None):
    return score_tiers(CATALOG.definitions, index_readings(readings), actions or {}, NO_BMI)


def audit_for(scoring, metric_id):
    return next(a for a in scoring.audits if a.metric_id == metric_id)


class TestPointFormulas:

    def test_divisor_is_fixed(self):
        assert RANK_SCALE_DIVISOR == 5

    @pytest.mark.parametrize("rank,target,expected", [
        (5, 60, 60),
        (3, 60, 36),
        (1, 60, 12),
        (1, 5, 1),
        (3, 15, 9),
        (4, 15, 12),
        (2, 20, 8),
        (3, 0, 0),
        (7, 10, 10),
    ])
    def test_compute_final_score(self, rank, target, expected):
        assert compute_final_score(rank, target) == expected

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2

    @pytest.mark.parametrize("achieved,total,original,expected", [
        (60, 60, 600, 600.0),
        (30, 60, 600, 300.0),
        (0, 0, 600, 0.0),
        (0, 50, 160, 0.0),
    ])
    def test_normalize(self, achieved, total, original, expected):
        assert normalize_tier_score(achieved, total, original) == pytest.approx(expected)

    def test_aggregate_percentage(self):
        assert aggregate_percentage(650, 1000) == pytest.approx(65.0)
        assert aggregate_percentage(10, 0) == 0.0


class TestScoreTiers:

    def test_single_biomarker_earns_full_tier(self, make_reading):
        scoring = score([make_reading(M.HBA1C, 5)])
        assert scoring.tier_scores[Tier.A].achieved == 60
        assert scoring.tier_scores[Tier.A].total == 60
        assert scoring.normalized_scores[Tier.A] == pytest.approx(600)
        assert scoring.normalized_scores[Tier.B] == 0
        assert scoring.normalized_scores[Tier.C] == 0
        assert scoring.aggregate_score == pytest.approx(600)

    def test_one_audit_per_definition(self, make_reading):
        scoring = score([make_reading(M.HBA1C, 5)])
        assert len(scoring.audits) == len(CATALOG)
        missing = [a for a in scoring.audits if a.is_missing]
        assert len(missing) == len(CATALOG) - 1

    def test_suppression_reduces_denominator(self, make_reading):
        scoring = score(
            [make_reading(M.HBA1C, 5), make_reading(M.FERRITIN, 5)],
            {M.FERRITIN: suppress(M.FERRITIN)},
        )
        ferritin = audit_for(scoring, M.FERRITIN)
        assert ferritin.is_suppressed
        assert not ferritin.is_missing
        assert not ferritin.contributes
        assert ferritin.final_score == 0
        assert ferritin.capped_rank is None
        assert ferritin.rule_action == RuleActionType.SUPPRESS
        assert scoring.tier_scores[Tier.A].total == 60

    def test_missing_equals_suppressed_for_scoring(self, make_reading):
        suppressed = score(
            [make_reading(M.HBA1C, 3), make_reading(M.GGT, 5)],
            {M.GGT: suppress(M.GGT)},
        )
        missing = score([make_reading(M.HBA1C, 3)])
        assert suppressed.tier_scores == missing.tier_scores
        assert suppressed.normalized_scores == missing.normalized_scores
        assert audit_for(suppressed, M.GGT).is_suppressed
        assert audit_for(missing, M.GGT).is_missing

    def test_cap_lowers_rank(self, make_reading):
        scoring = score([make_reading(M.HDL, 5)], {M.HDL: cap(M.HDL)})
        hdl = audit_for(scoring, M.HDL)
        assert hdl.original_rank == 5
        assert hdl.capped_rank == 3
        assert hdl.final_score == 18
        assert hdl.is_capped
        assert hdl.rule_title == f"cap {M.HDL}"
        assert scoring.tier_scores[Tier.B].achieved == 18
        assert scoring.tier_scores[Tier.B].total == 30

    def test_cap_never_raises(self, make_reading):
        scoring = score([make_reading(M.HDL, 2)], {M.HDL: cap(M.HDL)})
        hdl = audit_for(scoring, M.HDL)
        assert hdl.capped_rank == 2
        assert not hdl.is_capped
        assert hdl.final_score == 12

    def test_action_on_missing_target(self):
        scoring = score([], {M.FERRITIN: suppress(M.FERRITIN)})
        ferritin = audit_for(scoring, M.FERRITIN)
        assert ferritin.is_missing
        assert not ferritin.is_suppressed
        assert ferritin.rule_title is None

    def test_ratio_suppression_keeps_direct_rank(self, make_reading):
        readings = [
            make_reading(M.WBC, 4),
            make_reading(M.NEUTROPHILS, 3, value=4.0),
            make_reading(M.LYMPHOCYTES, 3, value=1.0),
        ]
        unadjusted = audit_for(score(readings), M.WBC)
        assert unadjusted.capped_rank == 1
        assert unadjusted.final_score == 2

        adjusted = audit_for(score(readings, {M.NLR: suppress(M.NLR)}), M.WBC)
        assert adjusted.original_rank == 1
        assert adjusted.capped_rank == 4
        assert adjusted.final_score == 8
        assert adjusted.rank_source == "direct"
        assert adjusted.rule_title == f"suppress {M.NLR}"
        assert not adjusted.is_suppressed

    def test_ratio_only_white_cell_suppressed(self, make_reading):
        readings = [
            make_reading(M.NEUTROPHILS, 3, value=1.0),
            make_reading(M.LYMPHOCYTES, 3, value=2.0),
        ]
        scoring = score(readings, {M.NLR: suppress(M.NLR)})
        wbc = audit_for(scoring, M.WBC)
        assert wbc.is_suppressed
        assert not wbc.contributes
        assert scoring.tier_scores[Tier.C].total == 0

    def test_zero_weight_composite(self, make_reading):
        scoring = score([
            make_reading(M.HDL, 5),
            make_reading(M.SYSTOLIC_BP, 1),
            make_reading(M.DIASTOLIC_BP, 4),
        ])
        bp = audit_for(scoring, "Blood Pressure")
        assert bp.original_rank == 1
        assert bp.metric_id_used == M.SYSTOLIC_BP
        assert bp.final_score == 0
        assert scoring.normalized_scores[Tier.B] == pytest.approx(240)

    def test_normalized_within_fixed_denominators(self, make_reading):
        ids = [d.metric_id for d in CATALOG if d.metric_id]
        for rank in range(1, 6):
            scoring = score([make_reading(m, rank) for m in ids])
            for tier, total in CATALOG.original_totals.items():
                assert 0 <= scoring.normalized_scores[tier] <= total
