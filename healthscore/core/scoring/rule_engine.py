"""
Context & Capping Rule Engine

Evaluates the two cross-biomarker rule sets against a user's rank
snapshot and merges their actions into one action per target metric.

Usage:
    snapshot = build_rank_snapshot(readings, CATALOG, seed_neutral=True)
    actions = apply_rules(CONTEXT_RULES, snapshot)

    evaluation = evaluate_rules(readings, CATALOG)
    evaluation.merged[MetricId.HDL]     # RuleAction that takes effect

Adding a rule:
    1. Write a pure ``rule_<name>(snapshot) -> RuleOutcome`` in
       rules_context.py or rules_peer.py.
    2. Append its RuleDefinition to CONTEXT_RULES / PEER_CAPPING_RULES.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple

from healthscore.utils import get_logger
from .base import RankSnapshot, RuleAction, RuleDefinition, RuleSet
from .catalog import CATALOG, BiomarkerCatalog, check_known_ids
from .ranks import ReadingIndex, derived_ratio_rank, reading_rank
from .rules_context import CONTEXT_RULES
from .rules_peer import PEER_CAPPING_RULES

logger = get_logger(__name__)

# Rank assumed for catalog biomarkers the user was never tested for,
# used when evaluating context rules.
NEUTRAL_CONTEXT_RANK = 3

# Later sets override earlier ones for the same target metric.
RULE_SET_PRECEDENCE: Tuple[RuleSet, ...] = (RuleSet.CONTEXT, RuleSet.PEER_CAPPING)

# ── Registry: rule set → rules ───────────────────────────────────────────────
_RULE_SETS: Mapping[RuleSet, Tuple[RuleDefinition, ...]] = {
    RuleSet.CONTEXT:      CONTEXT_RULES,
    RuleSet.PEER_CAPPING: PEER_CAPPING_RULES,
}

for _rule_set, _rules in _RULE_SETS.items():
    for _rule in _rules:
        check_known_ids(
            (_rule.target_metric_id,) + tuple(_rule.condition_metric_ids),
            table=_rule_set.value,
            owner=_rule.title,
        )


@dataclass(frozen=True)
class RuleEvaluation:
    """Actions of one invocation, per set and merged."""
    by_set: Mapping[RuleSet, Mapping[str, RuleAction]]
    merged: Mapping[str, RuleAction]
    overridden: Tuple[RuleAction, ...] = field(default=())
    # Fired only on a neutral seed: the target has no reading of its own.
    dormant: Tuple[RuleAction, ...] = field(default=())

    @property
    def context(self) -> Mapping[str, RuleAction]:
        return self.by_set.get(RuleSet.CONTEXT, {})

    @property
    def peer_capping(self) -> Mapping[str, RuleAction]:
        return self.by_set.get(RuleSet.PEER_CAPPING, {})

    def action_for(self, metric_id: str) -> Optional[RuleAction]:
        return self.merged.get(metric_id)


def build_rank_snapshot(
    readings: ReadingIndex,
    catalog: BiomarkerCatalog = CATALOG,
    seed_neutral: bool = False,
) -> Dict[str, Optional[int]]:
    """
    Map of metric id → rank for one user.

    Args:
        readings:     Readings indexed by metric id.
        catalog:      Catalog whose referenced ids are seeded.
        seed_neutral: Pre-seed every catalog-referenced id at the neutral
                      rank before overlaying the user's readings.

    A reading without a value counts as untested: it keeps the neutral
    seed, or stays out of an unseeded snapshot.  Readings whose label
    cannot be resolved map to None.  Derived ratios are added when
    computable.
    """
    snapshot: Dict[str, Optional[int]] = {}
    if seed_neutral:
        for metric_id in catalog.referenced_ids():
            snapshot[metric_id] = NEUTRAL_CONTEXT_RANK

    for metric_id, reading in readings.items():
        if not reading.has_value:
            continue
        snapshot[metric_id] = reading_rank(reading)

    for definition in catalog:
        derived = definition.derived_ratio
        if derived is None:
            continue
        rank = derived_ratio_rank(derived, readings)
        if rank is not None:
            snapshot[derived.metric_id] = rank

    return snapshot


def apply_rules(rules: Sequence[RuleDefinition], snapshot: RankSnapshot) -> Dict[str, RuleAction]:
    """
    Evaluate every rule in ``rules`` against ``snapshot``.

    Returns one action per target metric; when several rules of the set
    fire on the same target, the later-declared one wins.
    """
    actions: Dict[str, RuleAction] = {}
    for rule in rules:
        outcome = rule.evaluate(snapshot)
        if not outcome.fired:
            continue
        if rule.target_metric_id in actions:
            logger.debug(
                f"RuleEngine: '{rule.title}' replaces "
                f"'{actions[rule.target_metric_id].rule_title}' on {rule.target_metric_id}"
            )
        actions[rule.target_metric_id] = RuleAction(
            target_metric_id=rule.target_metric_id,
            action=outcome.action,
            rule_title=rule.title,
            rule_set=rule.rule_set,
            cap_value=outcome.cap_value,
        )
        logger.debug(
            f"RuleEngine [{rule.rule_set.value}]: {rule.title} → "
            f"{outcome.action.value}"
            + (f" {outcome.cap_value}" if outcome.cap_value is not None else "")
        )
    return actions


def merge_actions(
    by_set: Mapping[RuleSet, Mapping[str, RuleAction]],
    precedence: Sequence[RuleSet] = RULE_SET_PRECEDENCE,
) -> Tuple[Dict[str, RuleAction], Tuple[RuleAction, ...]]:
    """Merge per-set actions in precedence order; returns (merged, overridden)."""
    merged: Dict[str, RuleAction] = {}
    overridden = []
    for rule_set in precedence:
        for metric_id, action in by_set.get(rule_set, {}).items():
            if metric_id in merged:
                overridden.append(merged[metric_id])
            merged[metric_id] = action
    return merged, tuple(overridden)


def evaluate_rules(
    readings: ReadingIndex,
    catalog: BiomarkerCatalog = CATALOG,
) -> RuleEvaluation:
    """
    Run both rule sets for one user.

    Context rules see the neutral-seeded snapshot; peer capping rules see
    only what the user actually has.  Actions on targets the user has no
    reading for are set aside as dormant and never merged.
    """
    observed = build_rank_snapshot(readings, catalog, seed_neutral=False)
    snapshots = {
        RuleSet.CONTEXT:      build_rank_snapshot(readings, catalog, seed_neutral=True),
        RuleSet.PEER_CAPPING: observed,
    }

    by_set: Dict[RuleSet, Dict[str, RuleAction]] = {}
    dormant = []
    for rule_set in RULE_SET_PRECEDENCE:
        actions = apply_rules(_RULE_SETS[rule_set], snapshots[rule_set])
        for metric_id in [m for m in actions if m not in observed]:
            action = actions.pop(metric_id)
            logger.debug(
                f"RuleEngine: '{action.rule_title}' fired on untested {metric_id}, ignored"
            )
            dormant.append(action)
        by_set[rule_set] = actions
    merged, overridden = merge_actions(by_set)

    for action in overridden:
        logger.debug(
            f"RuleEngine: {action.rule_set.value} action '{action.rule_title}' "
            f"on {action.target_metric_id} overridden"
        )
    return RuleEvaluation(
        by_set=by_set,
        merged=merged,
        overridden=overridden,
        dormant=tuple(dormant),
    )


def rules_for(rule_set: RuleSet) -> Tuple[RuleDefinition, ...]:
    return _RULE_SETS[rule_set]
