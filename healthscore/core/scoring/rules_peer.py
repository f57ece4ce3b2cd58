"""
Peer Capping Rules — pairwise guards

Each rule compares its target with exactly one peer biomarker and caps
or suppresses the target when its good rank is contradicted by that
peer.

Unlike the context set, these rules read the *unseeded* rank snapshot:
a biomarker the user never tested is absent, and every comparison
involving it is false.

When both sets act on the same target, the peer-capping action wins.
"""
from __future__ import annotations

from typing import Optional, Tuple

from .base import RankSnapshot, RuleDefinition, RuleOutcome, RuleSet
from .biomarker_ids import MetricId as M

POOR      = 2
NEUTRAL   = 3
GOOD      = 4
CAP_VALUE = 3


def _pair(snapshot: RankSnapshot, target: str, peer: str) -> Tuple[Optional[int], Optional[int]]:
    return snapshot.get(target), snapshot.get(peer)


def _good_target_poor_peer(
    snapshot: RankSnapshot, target: str, peer: str, peer_bound: int = POOR
) -> bool:
    target_rank, peer_rank = _pair(snapshot, target, peer)
    return (
        target_rank is not None and target_rank >= GOOD
        and peer_rank is not None and peer_rank <= peer_bound
    )


def _poor_target_good_peer(snapshot: RankSnapshot, target: str, peer: str) -> bool:
    target_rank, peer_rank = _pair(snapshot, target, peer)
    return (
        target_rank is not None and target_rank <= POOR
        and peer_rank is not None and peer_rank >= GOOD
    )


# ── Rule 1: ApoB vs LDL ───────────────────────────────────────────────────────

def rule_apo_b_ldl_cap(snapshot: RankSnapshot) -> RuleOutcome:
    """ApoB <= 2 with LDL >= 4 → cap ApoB at 3."""
    if _poor_target_good_peer(snapshot, M.APO_B, M.LDL):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


# ── Rule 2: Small LDL vs LDL ──────────────────────────────────────────────────

def rule_small_ldl_ldl_cap(snapshot: RankSnapshot) -> RuleOutcome:
    """Small dense LDL <= 2 with LDL >= 4 → cap Small LDL at 3."""
    if _poor_target_good_peer(snapshot, M.SMALL_LDL, M.LDL):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


# ── Rule 3: Ferritin vs hs-CRP ────────────────────────────────────────────────

def rule_ferritin_inflammation_suppression(snapshot: RankSnapshot) -> RuleOutcome:
    """Ferritin >= 4 with hs-CRP <= 3 → ferritin is inflammation-driven, suppress."""
    if _good_target_poor_peer(snapshot, M.FERRITIN, M.HS_CRP, peer_bound=NEUTRAL):
        return RuleOutcome.suppress()
    return RuleOutcome.none()


# ── Rule 4: HDL vs hs-CRP ─────────────────────────────────────────────────────

def rule_hdl_inflammation_cap(snapshot: RankSnapshot) -> RuleOutcome:
    if _good_target_poor_peer(snapshot, M.HDL, M.HS_CRP, peer_bound=NEUTRAL):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


# ── Rule 5: Free T3 vs TSH ────────────────────────────────────────────────────

def rule_free_t3_tsh_cap(snapshot: RankSnapshot) -> RuleOutcome:
    if _good_target_poor_peer(snapshot, M.FREE_T3, M.TSH):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


# ── Rule 6: Free T4 vs TSH ────────────────────────────────────────────────────

def rule_free_t4_tsh_cap(snapshot: RankSnapshot) -> RuleOutcome:
    if _good_target_poor_peer(snapshot, M.FREE_T4, M.TSH):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


# ── Rule 7: Triglycerides vs fasting insulin ──────────────────────────────────

def rule_tg_insulin_cap(snapshot: RankSnapshot) -> RuleOutcome:
    """Good triglycerides next to poor fasting insulin → cap TG at 3."""
    if _good_target_poor_peer(snapshot, M.TRIGLYCERIDES, M.FASTING_INSULIN):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


# ── Rule 8: HDL vs triglycerides ──────────────────────────────────────────────

def rule_hdl_tg_cap(snapshot: RankSnapshot) -> RuleOutcome:
    if _good_target_poor_peer(snapshot, M.HDL, M.TRIGLYCERIDES):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


# ── Rule 9: Homocysteine vs hs-CRP ────────────────────────────────────────────

def rule_homocysteine_inflammation_cap(snapshot: RankSnapshot) -> RuleOutcome:
    """Homocysteine >= 4 with hs-CRP <= 2 → cap at 3."""
    if _good_target_poor_peer(snapshot, M.HOMOCYSTEINE, M.HS_CRP):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


def _peer(title: str, target: str, peer: str, evaluate) -> RuleDefinition:
    return RuleDefinition(
        title=title,
        rule_set=RuleSet.PEER_CAPPING,
        target_metric_id=target,
        condition_metric_ids=(peer,),
        evaluate=evaluate,
    )


PEER_CAPPING_RULES: Tuple[RuleDefinition, ...] = (
    _peer("Apo B Capping (LDL check)", M.APO_B, M.LDL, rule_apo_b_ldl_cap),
    _peer("Small LDL Capping (LDL check)", M.SMALL_LDL, M.LDL, rule_small_ldl_ldl_cap),
    _peer("Ferritin Suppression (Inflammation check)", M.FERRITIN, M.HS_CRP,
          rule_ferritin_inflammation_suppression),
    _peer("HDL Capping (Inflammation check)", M.HDL, M.HS_CRP, rule_hdl_inflammation_cap),
    _peer("Free T3 Capping (TSH check)", M.FREE_T3, M.TSH, rule_free_t3_tsh_cap),
    _peer("Free T4 Capping (TSH check)", M.FREE_T4, M.TSH, rule_free_t4_tsh_cap),
    _peer("TG Capping (Insulin check)", M.TRIGLYCERIDES, M.FASTING_INSULIN, rule_tg_insulin_cap),
    _peer("HDL Capping (TG check)", M.HDL, M.TRIGLYCERIDES, rule_hdl_tg_cap),
    _peer("Homocysteine Capping (Inflammation check)", M.HOMOCYSTEINE, M.HS_CRP,
          rule_homocysteine_inflammation_cap),
)
