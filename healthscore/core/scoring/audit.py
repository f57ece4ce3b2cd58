"""
Audit Recorder

Collects the human-readable trail of one scoring invocation, grouped
into the five stages a reviewer walks through: mapping, rule
processing, normalization, dashboard capping and final result.

A recorder belongs to exactly one invocation; the engine freezes its
entries into the ScoreResult when scoring is done.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from healthscore.utils import get_logger

logger = get_logger(__name__)


class AuditStage(str, Enum):
    MAPPING           = "mapping"
    RULE_PROCESSING   = "rule_processing"
    NORMALIZATION     = "normalization"
    DASHBOARD_CAPPING = "dashboard_capping"
    FINAL_RESULT      = "final_result"


@dataclass(frozen=True)
class AuditEntry:
    stage: AuditStage
    message: str
    metric_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "message": self.message,
            "metric_id": self.metric_id,
            "details": dict(self.details),
        }


class AuditRecorder:
    """Ordered, append-only audit trail for one invocation."""

    def __init__(self):
        self._entries: List[AuditEntry] = []

    def record(
        self,
        stage: AuditStage,
        message: str,
        metric_id: Optional[str] = None,
        **details: Any,
    ) -> AuditEntry:
        entry = AuditEntry(stage=stage, message=message, metric_id=metric_id, details=details)
        self._entries.append(entry)
        logger.debug(f"Audit [{stage.value}] {message}", extra={"metric_id": metric_id})
        return entry

    @property
    def entries(self) -> Tuple[AuditEntry, ...]:
        return tuple(self._entries)

    def by_stage(self, stage: AuditStage) -> Tuple[AuditEntry, ...]:
        return tuple(e for e in self._entries if e.stage == stage)

    def __len__(self) -> int:
        return len(self._entries)
