"""
Rank Resolver

Derives the 1–5 ordinal rank of a tier definition from one user's raw
readings.  Handles direct lookup, ordered substitution (including the
body-fat → BMI fallback), worst-of-group composites, and the white-cell
composite that also ranks the neutrophil ÷ lymphocyte ratio.

The resolver never raises for data-quality problems: anything it cannot
resolve comes back as ``rank=None``, which callers treat as missing
(excluded from scoring, not scored as zero).
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from healthscore.utils import get_logger
from .base import (
    BiomarkerReading,
    CompositionRule,
    DerivedRatio,
    RuleAction,
    TierDefinition,
    to_float,
)
from .biomarker_ids import MetricId
from .results import RankResolution

logger = get_logger(__name__)

# Max rank reported when no contributing reading carries a rank table.
DEFAULT_MAX_RANK = 5

# ── BMI thresholds (upper bounds inclusive) ──────────────────────────────────
BMI_LOW          = 19.0   # below: underweight side, rank 3
BMI_OPTIMAL_HIGH = 23.0   # 19–23: rank 5
BMI_ELEVATED     = 25.0   # 23–25: rank 3
BMI_HIGH         = 28.0   # 25–28: rank 2, above: rank 1

ReadingIndex = Mapping[str, BiomarkerReading]


@dataclass(frozen=True)
class AuxiliaryInputs:
    """
    Inputs that do not come from the blood panel.

    bmi:          precomputed BMI for the user (float or numeric string)
    bmi_fallback: BMI assumed when neither ``bmi`` nor a BMI reading exists;
                  None disables the fallback.
    """
    bmi: Union[float, str, None] = None
    bmi_fallback: Optional[float] = None


# ── Helpers ───────────────────────────────────────────────────────────────────

def index_readings(readings: Iterable[BiomarkerReading]) -> Dict[str, BiomarkerReading]:
    """Index readings by metric id, keeping the first of any duplicates."""
    index: Dict[str, BiomarkerReading] = {}
    for reading in readings:
        if reading.metric_id in index:
            logger.warning(f"Duplicate reading for {reading.metric_id}, keeping the first")
            continue
        index[reading.metric_id] = reading
    return index


def reading_rank(reading: BiomarkerReading) -> Optional[int]:
    """Rank of a reading via its own rank table; None for unknown labels."""
    rank = reading.rank
    if rank is None and reading.rank_table:
        logger.warning(
            f"{reading.metric_id}: rating label {reading.rating_label!r} "
            f"not found in its rank table"
        )
    return rank


def bmi_rank(value) -> Optional[int]:
    """
    Piecewise rank of a BMI value.

    Both sides are penalised, peak desirability at 19–23.

    >>> [bmi_rank(v) for v in (18.5, 21.36, 24, 27, 31)]
    [3, 5, 3, 2, 1]
    """
    bmi = to_float(value)
    if bmi is None:
        return None
    if bmi < BMI_LOW:
        return 3
    if bmi <= BMI_OPTIMAL_HIGH:
        return 5
    if bmi <= BMI_ELEVATED:
        return 3
    if bmi <= BMI_HIGH:
        return 2
    return 1


def ratio_rank(ratio: float, derived: DerivedRatio) -> int:
    """Rank a ratio (rounded to ``derived.decimals``) through its band table."""
    rounded = round(ratio, derived.decimals)
    for lower_bound, rank in derived.bands:
        if rounded >= lower_bound:
            return rank
    return derived.floor_rank


def compute_ratio(derived: DerivedRatio, readings: ReadingIndex) -> Optional[float]:
    """Numerator ÷ denominator, None when either side is absent or unusable."""
    numerator = readings.get(derived.numerator_id)
    denominator = readings.get(derived.denominator_id)
    if numerator is None or denominator is None:
        return None
    top = numerator.numeric_value()
    bottom = denominator.numeric_value()
    if top is None or bottom is None or bottom <= 0 or top < 0:
        return None
    return top / bottom


def derived_ratio_rank(derived: DerivedRatio, readings: ReadingIndex) -> Optional[int]:
    ratio = compute_ratio(derived, readings)
    return ratio_rank(ratio, derived) if ratio is not None else None


def _max_rank(definition: TierDefinition, readings: ReadingIndex, ratio_used: bool = False) -> int:
    ranks: List[int] = []
    for metric_id in definition.contributing_ids:
        reading = readings.get(metric_id)
        if reading is not None and reading.max_rank is not None:
            ranks.append(reading.max_rank)
    if ratio_used and definition.derived_ratio is not None:
        derived = definition.derived_ratio
        ranks.append(max([r for _, r in derived.bands] + [derived.floor_rank]))
    return max(ranks) if ranks else DEFAULT_MAX_RANK


def _present_rank(reading: Optional[BiomarkerReading]) -> Optional[int]:
    if reading is None or not reading.has_value:
        return None
    return reading_rank(reading)


# ── BMI substitution ──────────────────────────────────────────────────────────

def _bmi_value(readings: ReadingIndex, aux: AuxiliaryInputs) -> Tuple[Optional[float], str]:
    """
    BMI for the substitution path and where it came from.

    An explicit but unparseable BMI makes the path unresolvable; no other
    source is consulted in that case.
    """
    if aux.bmi is not None:
        return to_float(aux.bmi), "input"
    reading = readings.get(MetricId.BMI)
    if reading is not None and reading.has_value:
        return reading.numeric_value(), "reading"
    if aux.bmi_fallback is not None:
        return to_float(aux.bmi_fallback), "fallback"
    return None, "none"


# ── Resolution ────────────────────────────────────────────────────────────────

def _combine_white_cell(
    definition: TierDefinition,
    resolution: RankResolution,
    ratio_rank_value: Optional[int],
    ratio_value: Optional[float],
) -> RankResolution:
    """Worse of the direct rank and the ratio rank; records which one won."""
    direct = resolution.direct_rank
    if direct is None and ratio_rank_value is None:
        return replace(resolution, rank=None, rank_source=None, metric_id_used=None,
                       ratio_rank=None, ratio_value=ratio_value)
    if ratio_rank_value is None or (direct is not None and direct <= ratio_rank_value):
        return replace(resolution, rank=direct, rank_source="direct",
                       metric_id_used=definition.metric_id,
                       ratio_rank=ratio_rank_value, ratio_value=ratio_value)
    return replace(resolution, rank=ratio_rank_value, rank_source="ratio",
                   metric_id_used=definition.derived_ratio.metric_id,
                   ratio_rank=ratio_rank_value, ratio_value=ratio_value)


def _resolve_white_cell(definition: TierDefinition, readings: ReadingIndex) -> RankResolution:
    derived = definition.derived_ratio
    reading = readings.get(definition.metric_id)
    direct = _present_rank(reading)
    ratio = compute_ratio(derived, readings)
    rank_of_ratio = ratio_rank(ratio, derived) if ratio is not None else None

    base = RankResolution(
        rank=None,
        max_rank=_max_rank(definition, readings, ratio_used=ratio is not None),
        value=reading.value if reading is not None else None,
        unit=reading.unit if reading is not None else "",
        direct_rank=direct,
    )
    return _combine_white_cell(definition, base, rank_of_ratio, ratio)


def _resolve_substitute(
    definition: TierDefinition,
    readings: ReadingIndex,
    aux: AuxiliaryInputs,
) -> RankResolution:
    for metric_id in definition.related_metric_ids:
        if metric_id == MetricId.BMI:
            value, source = _bmi_value(readings, aux)
            rank = bmi_rank(value)
            if rank is None:
                logger.debug(f"{definition.name}: BMI substitution unresolvable (source={source})")
                continue
            return RankResolution(
                rank=rank,
                max_rank=_max_rank(definition, readings),
                metric_id_used=MetricId.BMI,
                composition_applied=CompositionRule.SUBSTITUTE.value,
                is_substitute=True,
                substitute_value=value,
                value=value,
                unit="kg/m²",
            )

        reading = readings.get(metric_id)
        rank = _present_rank(reading)
        if rank is not None:
            return RankResolution(
                rank=rank,
                max_rank=_max_rank(definition, readings),
                metric_id_used=metric_id,
                composition_applied=CompositionRule.SUBSTITUTE.value,
                is_substitute=True,
                value=reading.value,
                unit=reading.unit,
            )

    return RankResolution(
        rank=None,
        max_rank=_max_rank(definition, readings),
        composition_applied=CompositionRule.SUBSTITUTE.value,
    )


def _resolve_lowest(definition: TierDefinition, readings: ReadingIndex) -> RankResolution:
    candidates = []
    for metric_id in definition.contributing_ids:
        reading = readings.get(metric_id)
        rank = _present_rank(reading)
        if rank is not None:
            candidates.append((rank, reading))

    if not candidates:
        return RankResolution(
            rank=None,
            max_rank=_max_rank(definition, readings),
            composition_applied=CompositionRule.LOWEST.value,
        )

    rank, worst = min(candidates, key=lambda c: c[0])
    return RankResolution(
        rank=rank,
        max_rank=_max_rank(definition, readings),
        metric_id_used=worst.metric_id,
        composition_applied=CompositionRule.LOWEST.value,
        value=worst.value,
        unit=worst.unit,
    )


def resolve_rank(
    definition: TierDefinition,
    readings: ReadingIndex,
    aux: Optional[AuxiliaryInputs] = None,
) -> RankResolution:
    """
    Resolve the rank of one tier definition.

    Args:
        definition: Catalog entry to resolve.
        readings:   Readings indexed by metric id (see ``index_readings``).
        aux:        Non-panel inputs (BMI and its fallback).

    Returns:
        RankResolution with ``rank=None`` when nothing is resolvable.
    """
    aux = aux or AuxiliaryInputs()

    if definition.derived_ratio is not None:
        return _resolve_white_cell(definition, readings)

    if definition.metric_id:
        reading = readings.get(definition.metric_id)
        rank = _present_rank(reading)
        if rank is not None:
            return RankResolution(
                rank=rank,
                max_rank=_max_rank(definition, readings),
                metric_id_used=reading.metric_id,
                value=reading.value,
                unit=reading.unit,
            )

    if definition.composition == CompositionRule.SUBSTITUTE:
        return _resolve_substitute(definition, readings, aux)
    if definition.composition == CompositionRule.LOWEST:
        return _resolve_lowest(definition, readings)

    return RankResolution(rank=None, max_rank=_max_rank(definition, readings))


def resolve_metric_rank(
    metric_id: str,
    readings: ReadingIndex,
    definition: Optional[TierDefinition] = None,
    aux: Optional[AuxiliaryInputs] = None,
) -> RankResolution:
    """
    Resolve the rank of a single metric.

    Goes through the tier resolver when ``definition`` (the catalog entry
    whose primary id is ``metric_id``) is given, else by direct lookup.
    """
    if definition is not None:
        return resolve_rank(definition, readings, aux)

    reading = readings.get(metric_id)
    rank = _present_rank(reading)
    if rank is None:
        return RankResolution(rank=None)
    return RankResolution(
        rank=rank,
        max_rank=reading.max_rank or DEFAULT_MAX_RANK,
        metric_id_used=metric_id,
        value=reading.value,
        unit=reading.unit,
    )


def apply_ratio_action(
    definition: TierDefinition,
    resolution: RankResolution,
    action: Optional[RuleAction],
) -> RankResolution:
    """
    Apply a rule action aimed at the derived ratio of a white-cell composite.

    Suppression drops the ratio from the composite; a cap lowers the ratio
    rank before the worse-of-two comparison is redone.
    """
    if action is None or definition.derived_ratio is None or resolution.ratio_rank is None:
        return resolution
    adjusted = action.apply(resolution.ratio_rank)
    return _combine_white_cell(definition, resolution, adjusted, resolution.ratio_value)
