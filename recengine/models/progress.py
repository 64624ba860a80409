"""
Onboarding Progress Model
Status of a brand's background data-collection job.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class OnboardingProgress:
    queries_completed: int = 0
    queries_total: int = 0
    positions: bool = False
    sentiments: bool = False
    citations: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OnboardingProgress":
        queries = data.get("queries") or {}
        scoring = data.get("scoring") or {}
        return cls(
            queries_completed=int(queries.get("completed") or 0),
            queries_total=int(queries.get("total") or 0),
            positions=bool(scoring.get("positions")),
            sentiments=bool(scoring.get("sentiments")),
            citations=bool(scoring.get("citations")),
        )

    @property
    def is_complete(self) -> bool:
        """All queries collected and every scoring pass finished."""
        return (
            self.queries_completed >= self.queries_total
            and self.positions
            and self.sentiments
            and self.citations
        )
