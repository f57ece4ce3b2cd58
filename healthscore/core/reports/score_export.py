"""
Batch Score Export

Each user becomes one CSV row with the score before and after dashboard
capping, as percentages with two decimals.  Users without blood data or
whose scoring failed still get a row, with the reason in both score
columns.
"""
import csv
from dataclasses import dataclass
from typing import IO, Iterable, List, Optional

from healthscore.core.scoring.results import ScoreResult
from healthscore.utils import ExportError, get_logger

logger = get_logger(__name__)

EXPORT_HEADERS = ["userName", "userId", "Score Before Capping", "Final Score (After Capping)"]
NO_DATA_MESSAGE = "Biomarker data not available"


@dataclass(frozen=True)
class ExportRow:
    user_name: str
    user_id: str
    score_before_capping: str
    final_score: str

    def as_list(self) -> List[str]:
        return [self.user_name, self.user_id, self.score_before_capping, self.final_score]


def _percent(value: float) -> str:
    return f"{value:.2f}"


def build_export_row(
    user_name: str,
    user_id: str,
    result: Optional[ScoreResult] = None,
    error: Optional[str] = None,
) -> ExportRow:
    """
    Reduce one user's outcome to an export row.

    ``error`` takes precedence over ``result``; with neither, the row says
    biomarker data was not available.
    """
    if error is not None:
        text = f"Error: {error}"
        return ExportRow(user_name, user_id, text, text)
    if result is None:
        return ExportRow(user_name, user_id, NO_DATA_MESSAGE, NO_DATA_MESSAGE)
    return ExportRow(
        user_name,
        user_id,
        _percent(result.pre_capped_percentage),
        _percent(result.final_percentage),
    )


def write_export_csv(rows: Iterable[ExportRow], stream: IO[str]) -> int:
    """
    Write the header and ``rows`` to ``stream`` with every field quoted.

    Returns:
        Number of data rows written.

    Raises:
        ExportError: the stream cannot be written to.
    """
    destination = getattr(stream, "name", type(stream).__name__)
    try:
        writer = csv.writer(stream, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(EXPORT_HEADERS)
        count = 0
        for row in rows:
            writer.writerow(row.as_list())
            count += 1
    except (OSError, ValueError, TypeError) as exc:
        raise ExportError(f"Failed to write score export: {exc}", destination=str(destination)) from exc

    logger.info(f"Score export: {count} row(s) written to {destination}")
    return count
