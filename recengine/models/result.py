"""
Operation Result Models
Outcomes of long-running engine operations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Outcome(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    # Timed out: the server may still finish, re-query instead of retrying
    AMBIGUOUS = "ambiguous"


@dataclass
class OperationResult:
    outcome: Outcome
    message: Optional[str] = None
    payload: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCESS

    @property
    def is_ambiguous(self) -> bool:
        return self.outcome == Outcome.AMBIGUOUS


@dataclass
class BulkContentResult:
    recommendation_id: str
    success: bool
    content: Any = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BulkContentResult":
        return cls(
            recommendation_id=data.get("recommendationId") or "",
            success=bool(data.get("success")),
            content=data.get("content"),
            error=data.get("error"),
        )


@dataclass
class BulkContentSummary:
    total: int = 0
    successful: int = 0
    failed: int = 0
    results: List[BulkContentResult] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BulkContentSummary":
        return cls(
            total=int(data.get("total") or 0),
            successful=int(data.get("successful") or 0),
            failed=int(data.get("failed") or 0),
            results=[BulkContentResult.from_dict(r) for r in (data.get("results") or [])],
        )
