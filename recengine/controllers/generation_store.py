"""
Generation Store
Active generation id and its coarse metadata for the selected brand.
"""

from typing import Dict, Iterable, List, Optional

from ..models.recommendation import (
    KPI,
    DataMaturity,
    Generation,
    Recommendation,
    ReviewStatus,
    Stage,
)


def compute_step_counts(recs: Iterable[Recommendation]) -> Dict[int, int]:
    """Cheap per-stage counts over a full generation."""
    counts = {stage: 0 for stage in Stage}
    for rec in recs:
        if (rec.review_status or ReviewStatus.PENDING_REVIEW) == ReviewStatus.PENDING_REVIEW:
            counts[Stage.OPPORTUNITIES] += 1
        if rec.is_approved and not rec.is_content_generated:
            counts[Stage.STRATEGY] += 1
        if rec.is_content_generated and not rec.is_completed:
            counts[Stage.REFINE] += 1
        if rec.is_completed:
            counts[Stage.OUTCOME] += 1
    return {int(stage): count for stage, count in counts.items()}


class GenerationStore:
    """Leaf data holder; the workflow engine is its only writer."""

    def __init__(self):
        self.brand_id: Optional[str] = None
        self.generation_id: Optional[str] = None
        self.data_maturity: Optional[DataMaturity] = None
        self.brand_name: str = ""
        self.kpis: List[KPI] = []
        self.step_counts: Dict[int, int] = {}

    @property
    def is_cold_start(self) -> bool:
        return self.data_maturity == DataMaturity.COLD_START

    def clear(self, brand_id: Optional[str] = None) -> None:
        self.brand_id = brand_id
        self.generation_id = None
        self.data_maturity = None
        self.brand_name = ""
        self.kpis = []
        self.step_counts = {}

    def adopt(self, generation: Generation) -> bool:
        """Take over a generation. Returns True if the id changed."""
        changed = generation.generation_id != self.generation_id
        self.generation_id = generation.generation_id
        if generation.data_maturity is not None:
            self.data_maturity = generation.data_maturity
        if generation.brand_name:
            self.brand_name = generation.brand_name
        if changed or generation.kpis:
            self.kpis = list(generation.kpis)
        if generation.recommendations:
            self.step_counts = compute_step_counts(generation.recommendations)
        return changed

    def update_metadata(
        self,
        data_maturity: Optional[DataMaturity] = None,
        brand_name: Optional[str] = None,
    ) -> None:
        if data_maturity is not None:
            self.data_maturity = data_maturity
        if brand_name:
            self.brand_name = brand_name
