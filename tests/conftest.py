"""
Pytest Configuration and Fixtures

Shared fixtures for baseline score tests.
"""
import pytest
from pathlib import Path
from typing import Any, Callable, Dict, Optional
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from healthscore.core.scoring.base import BiomarkerReading, RankEntry  # noqa: E402

# Rating labels of a standard five-level table, best first.
STANDARD_LABELS = {
    5: "Optimal",
    4: "Good",
    3: "Normal",
    2: "Borderline",
    1: "Poor",
}
STANDARD_TABLE = tuple(RankEntry(label, rank) for rank, label in STANDARD_LABELS.items())


def reading(
    metric_id: str,
    rank: Optional[int] = None,
    value: Any = 1.0,
    label: Optional[str] = None,
    table=STANDARD_TABLE,
    unit: str = "",
) -> BiomarkerReading:
    """Build a reading whose rating label resolves to ``rank``."""
    if label is None and rank is not None:
        label = next(e.label for e in table if e.rank == rank)
    return BiomarkerReading(
        metric_id=metric_id,
        display_name=metric_id,
        value=value,
        unit=unit,
        rating_label=label,
        rank_table=table,
    )


@pytest.fixture
def make_reading() -> Callable[..., BiomarkerReading]:
    """Factory for readings on the standard five-level rank table."""
    return reading


def blood_entry(metric_id: str, rank: int, value: Any = 1.0) -> Dict[str, Any]:
    """One upstream blood biomarker in the health-data payload shape."""
    return {
        "id": f"row-{metric_id}",
        "metric_id": metric_id,
        "display_name": metric_id,
        "value": value,
        "unit": "u",
        "display_rating": STANDARD_LABELS[rank],
        "group_name": "Blood",
        "ranges": [
            {"metric_id": metric_id, "display_rating": label, "rating_rank": r, "range": "", "unit": "u"}
            for r, label in STANDARD_LABELS.items()
        ],
        "causes": [],
    }


@pytest.fixture
def make_payload() -> Callable[..., Dict[str, Any]]:
    """Factory for upstream payloads: ``make_payload({metric_id: rank, ...})``."""
    def _build(ranks: Dict[str, int]) -> Dict[str, Any]:
        return {
            "status": "success",
            "message": "ok",
            "data": {"blood": {"data": [blood_entry(m, r) for m, r in ranks.items()]}},
        }
    return _build
