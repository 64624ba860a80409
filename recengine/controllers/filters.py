"""
Stage 1 filter/sort pipeline.

Pure functions over the merged stage-1 list; the source list is never
mutated.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..models.recommendation import Effort, Priority, Recommendation, ReviewStatus

PRIORITY_RANK = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}
# Cheaper work first among equal priorities
EFFORT_RANK = {Effort.LOW: 3, Effort.MEDIUM: 2, Effort.HIGH: 1}


@dataclass(frozen=True)
class FilterState:
    """Active filters. ``None`` means "all"."""

    status: Optional[ReviewStatus] = None
    priority: Optional[Priority] = None
    effort: Optional[Effort] = None
    content_type: Optional[str] = None

    @property
    def is_default(self) -> bool:
        return self == FilterState()


def _matches(rec: Recommendation, state: FilterState) -> bool:
    if state.status is not None and (rec.review_status or ReviewStatus.PENDING_REVIEW) != state.status:
        return False
    if state.priority is not None and rec.priority != state.priority:
        return False
    if state.effort is not None and rec.effort != state.effort:
        return False
    if state.content_type is not None and rec.asset_type != state.content_type:
        return False
    return True


def sort_key(rec: Recommendation):
    return (-PRIORITY_RANK.get(rec.priority, 0), -EFFORT_RANK.get(rec.effort, 0))


def apply_filters(recs: Iterable[Recommendation], state: Optional[FilterState] = None) -> List[Recommendation]:
    """Filter (logical AND of exact matches) then sort by priority desc, effort asc."""
    state = state or FilterState()
    return sorted((r for r in recs if _matches(r, state)), key=sort_key)


def available_content_types(recs: Iterable[Recommendation]) -> List[str]:
    return sorted({r.asset_type for r in recs if r.asset_type})
