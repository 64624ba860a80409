"""
Optimistic status updates.

Local transitions applied before the server confirms. There is no rollback:
when the server rejects a change the engine reports the error and keeps the
optimistic state until the next authoritative fetch replaces it.
"""

from typing import List, Optional

from ..models.recommendation import Recommendation, ReviewStatus, Stage

REMOVING_STATUSES = (ReviewStatus.REJECTED, ReviewStatus.REMOVED)


def should_remove(status: ReviewStatus, stage: int) -> bool:
    """
    Whether a status change takes the item out of the current view.

    Sending an item back to review from any later stage removes it from
    that stage's list.
    """
    if status in REMOVING_STATUSES:
        return True
    return status == ReviewStatus.PENDING_REVIEW and stage > Stage.OPPORTUNITIES


def remove_from(recs: List[Recommendation], recommendation_id: str) -> List[Recommendation]:
    return [r for r in recs if r.id != recommendation_id]


def apply_status(
    recs: List[Recommendation], recommendation_id: str, status: ReviewStatus
) -> List[Recommendation]:
    """Set review status and keep the approval flag consistent with it."""
    return [
        r.with_changes(review_status=status, is_approved=status == ReviewStatus.APPROVED)
        if r.id == recommendation_id else r
        for r in recs
    ]


def mark_completed(rec: Recommendation, completed_at: Optional[str] = None) -> Recommendation:
    """Completion implies approval; stage 4 only holds approved items."""
    return rec.with_changes(
        is_completed=True,
        is_approved=True,
        review_status=ReviewStatus.APPROVED,
        completed_at=completed_at or rec.completed_at,
    )


def apply_completion(
    recs: List[Recommendation], recommendation_id: str, completed_at: Optional[str] = None
) -> List[Recommendation]:
    return [mark_completed(r, completed_at) if r.id == recommendation_id else r for r in recs]
