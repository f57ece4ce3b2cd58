"""
Context Rules

Cross-biomarker heuristics that suppress or cap a biomarker's rank when
the state of *other* biomarkers says its reading is misleading.

All comparisons are on ranks (5 best, 1 worst), never on raw values.
Each rule is a pure function of the rank snapshot it receives.  The
snapshot used for this set is pre-seeded at the neutral rank for every
catalog biomarker absent from the user's data, so a missing condition
biomarker counts as "average", not as absent.

Rules (declaration order is the tie-break order within this set):
    1. Ferritin suppression: low iron with inflammation
    2. HbA1c cap: insulin resistance hides behind good HbA1c
    3. HDL cap: metabolic / inflammatory context
    4. Free T3 cap: TSH / Free T4 feedback loop
    5. Non-HDL cap: LDL / small-LDL / ApoB particle coupling
    6. Cortisol cap: mood questionnaires
    7. Free testosterone cap: total testosterone / SHBG binding
    8. NLR suppression: IL-6 driven neutrophilia
    9. GGT cap: liver enzyme coupling
"""
from __future__ import annotations

from typing import Optional, Tuple

from .base import RankSnapshot, RuleDefinition, RuleOutcome, RuleSet
from .biomarker_ids import MetricId as M

# ── Rank thresholds ───────────────────────────────────────────────────────────
POOR      = 2   # at or below: clinically unfavourable
NEUTRAL   = 3
GOOD      = 4   # at or above: favourable
CAP_VALUE = 3


# ── Helpers ───────────────────────────────────────────────────────────────────

def _rank(snapshot: RankSnapshot, metric_id: str) -> Optional[int]:
    return snapshot.get(metric_id)


def _at_most(rank: Optional[int], bound: int) -> bool:
    return rank is not None and rank <= bound


def _at_least(rank: Optional[int], bound: int) -> bool:
    return rank is not None and rank >= bound


# ── Rule 1: Ferritin ──────────────────────────────────────────────────────────

def rule_ferritin_suppression(snapshot: RankSnapshot) -> RuleOutcome:
    """
    Ferritin is an acute-phase reactant: a good ferritin rank next to poor
    iron is not trustworthy when inflammation markers are off.

    Suppress when Iron <= 2 and Ferritin >= 4 and either
      - hs-CRP <= 2 or IL-6 <= 2, or
      - hs-CRP >= 4 and IL-6 >= 4.
    """
    ferritin = _rank(snapshot, M.FERRITIN)
    iron = _rank(snapshot, M.IRON)
    hs_crp = _rank(snapshot, M.HS_CRP)
    il6 = _rank(snapshot, M.IL_6)

    if not (_at_most(iron, POOR) and _at_least(ferritin, GOOD)):
        return RuleOutcome.none()

    if _at_most(hs_crp, POOR) or _at_most(il6, POOR):
        return RuleOutcome.suppress()

    if _at_least(hs_crp, GOOD) and _at_least(il6, GOOD):
        return RuleOutcome.suppress()

    return RuleOutcome.none()


# ── Rule 2: HbA1c ─────────────────────────────────────────────────────────────

def rule_hba1c_insulin_cap(snapshot: RankSnapshot) -> RuleOutcome:
    """HbA1c >= 4 while fasting or post-prandial insulin <= 2 → cap at 3."""
    hba1c = _rank(snapshot, M.HBA1C)
    fasting = _rank(snapshot, M.FASTING_INSULIN)
    pp = _rank(snapshot, M.PP_INSULIN)

    if _at_least(hba1c, GOOD) and (_at_most(fasting, POOR) or _at_most(pp, POOR)):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


# ── Rule 3: HDL ───────────────────────────────────────────────────────────────

def rule_hdl_metabolic_cap(snapshot: RankSnapshot) -> RuleOutcome:
    """
    High HDL is not protective in a poor metabolic or inflammatory context.

    HDL >= 4 and (Triglycerides <= 2 or either insulin <= 2) → cap at 3;
    otherwise HDL >= 4 and hs-CRP <= 3 → cap at 3.
    """
    hdl = _rank(snapshot, M.HDL)
    if not _at_least(hdl, GOOD):
        return RuleOutcome.none()

    tg = _rank(snapshot, M.TRIGLYCERIDES)
    fasting = _rank(snapshot, M.FASTING_INSULIN)
    pp = _rank(snapshot, M.PP_INSULIN)
    if _at_most(tg, POOR) or _at_most(fasting, POOR) or _at_most(pp, POOR):
        return RuleOutcome.cap(CAP_VALUE)

    if _at_most(_rank(snapshot, M.HS_CRP), NEUTRAL):
        return RuleOutcome.cap(CAP_VALUE)

    return RuleOutcome.none()


# ── Rule 4: Free T3 ───────────────────────────────────────────────────────────

def rule_free_t3_thyroid_cap(snapshot: RankSnapshot) -> RuleOutcome:
    """
    Free T3 >= 4 is capped at 3 when
      - TSH >= 4 and Free T4 <= 2, or
      - TSH <= 2.
    """
    free_t3 = _rank(snapshot, M.FREE_T3)
    tsh = _rank(snapshot, M.TSH)
    free_t4 = _rank(snapshot, M.FREE_T4)

    if not _at_least(free_t3, GOOD):
        return RuleOutcome.none()
    if _at_least(tsh, GOOD) and _at_most(free_t4, POOR):
        return RuleOutcome.cap(CAP_VALUE)
    if _at_most(tsh, POOR):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


# ── Rule 5: Non-HDL ───────────────────────────────────────────────────────────

def rule_non_hdl_particle_cap(snapshot: RankSnapshot) -> RuleOutcome:
    """
    Non-HDL cholesterol in the context of LDL and particle markers.

    Cap at 3 when LDL >= 4 and (Non-HDL <= 2 or Small LDL <= 2), or when
    LDL <= 2, Non-HDL < 3 and (Small LDL > 3 or ApoB > 3).
    """
    non_hdl = _rank(snapshot, M.NON_HDL)
    ldl = _rank(snapshot, M.LDL)
    small_ldl = _rank(snapshot, M.SMALL_LDL)
    apo_b = _rank(snapshot, M.APO_B)

    if _at_least(ldl, GOOD) and (_at_most(non_hdl, POOR) or _at_most(small_ldl, POOR)):
        return RuleOutcome.cap(CAP_VALUE)

    if (
        _at_most(ldl, POOR)
        and non_hdl is not None and non_hdl < NEUTRAL
        and ((small_ldl is not None and small_ldl > NEUTRAL)
             or (apo_b is not None and apo_b > NEUTRAL))
    ):
        return RuleOutcome.cap(CAP_VALUE)

    return RuleOutcome.none()


# ── Rule 6: Cortisol ──────────────────────────────────────────────────────────

def rule_cortisol_mood_cap(snapshot: RankSnapshot) -> RuleOutcome:
    """Cortisol >= 4 while PHQ-2 <= 3 or GAD-2 <= 3 → cap at 3."""
    cortisol = _rank(snapshot, M.CORTISOL)
    phq2 = _rank(snapshot, M.PHQ_2)
    gad2 = _rank(snapshot, M.GAD_2)

    if _at_least(cortisol, GOOD) and (_at_most(phq2, NEUTRAL) or _at_most(gad2, NEUTRAL)):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


# ── Rule 7: Free testosterone ─────────────────────────────────────────────────

def rule_free_testosterone_binding_cap(snapshot: RankSnapshot) -> RuleOutcome:
    """Free testosterone >= 4 is capped at 3 if Total T <= 2, else if SHBG <= 2."""
    free_t = _rank(snapshot, M.FREE_TESTOSTERONE)
    if not _at_least(free_t, GOOD):
        return RuleOutcome.none()

    if _at_most(_rank(snapshot, M.TOTAL_TESTOSTERONE), POOR):
        return RuleOutcome.cap(CAP_VALUE)
    if _at_most(_rank(snapshot, M.SHBG), POOR):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


# ── Rule 8: NLR ───────────────────────────────────────────────────────────────

def rule_nlr_il6_suppression(snapshot: RankSnapshot) -> RuleOutcome:
    """NLR < 3 with IL-6 <= 2 → drop the ratio from the white-cell composite."""
    nlr = _rank(snapshot, M.NLR)
    il6 = _rank(snapshot, M.IL_6)

    if nlr is not None and nlr < NEUTRAL and _at_most(il6, POOR):
        return RuleOutcome.suppress()
    return RuleOutcome.none()


# ── Rule 9: GGT ───────────────────────────────────────────────────────────────

def rule_ggt_liver_cap(snapshot: RankSnapshot) -> RuleOutcome:
    """GGT >= 3 while SGOT <= 2 or SGPT <= 2 → cap at 3."""
    ggt = _rank(snapshot, M.GGT)
    sgot = _rank(snapshot, M.SGOT)
    sgpt = _rank(snapshot, M.SGPT)

    if _at_least(ggt, NEUTRAL) and (_at_most(sgot, POOR) or _at_most(sgpt, POOR)):
        return RuleOutcome.cap(CAP_VALUE)
    return RuleOutcome.none()


def _context(title: str, target: str, conditions: Tuple[str, ...], evaluate) -> RuleDefinition:
    return RuleDefinition(
        title=title,
        rule_set=RuleSet.CONTEXT,
        target_metric_id=target,
        condition_metric_ids=conditions,
        evaluate=evaluate,
    )


CONTEXT_RULES: Tuple[RuleDefinition, ...] = (
    _context("Ferritin Suppression (Iron/Inflammation check)",
             M.FERRITIN, (M.IRON, M.HS_CRP, M.IL_6), rule_ferritin_suppression),
    _context("HbA1c Capping (Insulin context)",
             M.HBA1C, (M.FASTING_INSULIN, M.PP_INSULIN), rule_hba1c_insulin_cap),
    _context("HDL Capping (Metabolic context)",
             M.HDL, (M.TRIGLYCERIDES, M.FASTING_INSULIN, M.PP_INSULIN, M.HS_CRP),
             rule_hdl_metabolic_cap),
    _context("Free T3 Capping (Thyroid context)",
             M.FREE_T3, (M.TSH, M.FREE_T4), rule_free_t3_thyroid_cap),
    _context("Non-HDL Cholesterol Capping (LDL/ApoB context)",
             M.NON_HDL, (M.LDL, M.SMALL_LDL, M.APO_B), rule_non_hdl_particle_cap),
    _context("Cortisol Capping (Mood context)",
             M.CORTISOL, (M.PHQ_2, M.GAD_2), rule_cortisol_mood_cap),
    _context("Free Testosterone Capping (Total T/SHBG context)",
             M.FREE_TESTOSTERONE, (M.TOTAL_TESTOSTERONE, M.SHBG),
             rule_free_testosterone_binding_cap),
    _context("NLR Suppression (IL-6 context)",
             M.NLR, (M.IL_6,), rule_nlr_il6_suppression),
    _context("GGT Capping (Liver context)",
             M.GGT, (M.SGOT, M.SGPT), rule_ggt_liver_cap),
)
