"""
Upstream Health Data → BiomarkerReading

The upstream health-data endpoint returns::

    {"status": ..., "message": ...,
     "data": {"blood": {"data": [BloodBiomarker, ...]}}}

Each blood biomarker carries its own ``ranges``; their
``display_rating``/``rating_rank`` pairs become the reading's rank table
and the biomarker's own ``display_rating`` is the label looked up in it.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError

from healthscore.core.scoring.base import BiomarkerReading, RankEntry, to_float
from healthscore.utils import HealthDataError, get_logger

logger = get_logger(__name__)


class BloodRange(BaseModel):
    """One rating band of a blood biomarker."""
    display_rating: Optional[str] = None
    rating_rank: Optional[int] = None
    range: Optional[str] = None
    unit: Optional[str] = None


class BloodBiomarker(BaseModel):
    metric_id: str
    display_name: str = ""
    value: Union[float, str, None] = None
    unit: Optional[str] = ""
    display_rating: Optional[str] = None
    ranges: Optional[List[BloodRange]] = None


class BloodSection(BaseModel):
    data: Optional[List[BloodBiomarker]] = None


class HealthData(BaseModel):
    blood: Optional[BloodSection] = None


class HealthDataResponse(BaseModel):
    status: Optional[str] = None
    message: Optional[str] = None
    data: Optional[HealthData] = None


def _to_reading(biomarker: BloodBiomarker) -> BiomarkerReading:
    table = tuple(
        RankEntry(label=r.display_rating, rank=r.rating_rank)
        for r in biomarker.ranges or ()
        if r.display_rating is not None
    )
    return BiomarkerReading(
        metric_id=biomarker.metric_id,
        display_name=biomarker.display_name,
        value=biomarker.value,
        unit=biomarker.unit or "",
        rating_label=biomarker.display_rating,
        rank_table=table,
    )


def parse_health_data(payload: Dict[str, Any]) -> List[BiomarkerReading]:
    """
    Parse an upstream payload into readings.

    Args:
        payload: Decoded JSON body of the health-data endpoint.

    Returns:
        Readings in payload order, first occurrence of each metric id only.
        An empty list when the payload has no blood section.

    Raises:
        HealthDataError: payload does not have the expected shape.
    """
    try:
        response = HealthDataResponse.model_validate(payload)
    except ValidationError as exc:
        raise HealthDataError(
            "Malformed health data payload",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc

    if response.data is None or response.data.blood is None:
        logger.info("Health data payload carries no blood section")
        return []

    readings: List[BiomarkerReading] = []
    seen = set()
    for biomarker in response.data.blood.data or ():
        if biomarker.metric_id in seen:
            logger.warning(f"Duplicate metric id {biomarker.metric_id} in payload, keeping the first")
            continue
        seen.add(biomarker.metric_id)
        readings.append(_to_reading(biomarker))

    logger.debug(f"Parsed {len(readings)} blood biomarker(s)")
    return readings


def bmi_from_pii(height_cm, weight_kg) -> Optional[float]:
    """
    BMI from height (cm) and weight (kg), rounded to two decimals.

    >>> bmi_from_pii(175, 70)
    22.86
    """
    height = to_float(height_cm)
    weight = to_float(weight_kg)
    if height is None or weight is None or height <= 0 or weight <= 0:
        return None
    metres = height / 100
    return round(weight / (metres * metres), 2)
