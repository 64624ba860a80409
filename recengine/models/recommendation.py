"""
Recommendation Models
Generations, KPIs and recommendations as exchanged with the backend.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Type, TypeVar

from .strategy_plan import ContextFile

E = TypeVar("E", bound=Enum)


class Stage(IntEnum):
    """The four workflow stages."""
    OPPORTUNITIES = 1
    STRATEGY = 2
    REFINE = 3
    OUTCOME = 4

    @property
    def label(self) -> str:
        return self.name.title()


class ReviewStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    REMOVED = "removed"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Effort(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class FocusArea(str, Enum):
    VISIBILITY = "visibility"
    SOA = "soa"
    SENTIMENT = "sentiment"


class DataMaturity(str, Enum):
    COLD_START = "cold_start"
    LOW_DATA = "low_data"
    NORMAL = "normal"


def coerce_enum(enum_cls: Type[E], value: Any, default: Optional[E] = None) -> Optional[E]:
    """Map a wire value onto an enum member, falling back to ``default``."""
    if value is None or value == "":
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return default


@dataclass
class KPI:
    """A KPI identified for a generation. Read-only for the engine."""

    name: str
    description: str = ""
    id: Optional[str] = None
    current_value: Optional[float] = None
    target_value: Optional[float] = None
    display_order: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KPI":
        return cls(
            id=data.get("id"),
            name=data.get("kpiName") or data.get("name") or "",
            description=data.get("kpiDescription") or data.get("description") or "",
            current_value=data.get("currentValue"),
            target_value=data.get("targetValue"),
            display_order=data.get("displayOrder") or 0,
        )


@dataclass
class Recommendation:
    """
    A single AI-generated improvement recommendation.

    Instances are treated as values: status changes produce a new object via
    :meth:`with_changes` instead of mutating shared state.
    """

    action: str
    id: Optional[str] = None
    priority: Optional[Priority] = None
    effort: Optional[Effort] = None
    focus_area: Optional[FocusArea] = None
    kpi_id: Optional[str] = None
    kpi: Optional[str] = None
    review_status: ReviewStatus = ReviewStatus.PENDING_REVIEW
    is_approved: bool = False
    is_content_generated: bool = False
    is_completed: bool = False
    asset_type: Optional[str] = None
    context_files: List[ContextFile] = field(default_factory=list)

    # Descriptive fields passed through for the presentation layer
    citation_source: Optional[str] = None
    reason: Optional[str] = None
    explanation: Optional[str] = None
    expected_boost: Optional[str] = None
    timeline: Optional[str] = None
    confidence: Optional[float] = None
    completed_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recommendation":
        """Build from the backend's camelCase representation."""
        return cls(
            id=data.get("id"),
            action=data.get("action") or "",
            priority=coerce_enum(Priority, data.get("priority")),
            effort=coerce_enum(Effort, data.get("effort")),
            focus_area=coerce_enum(FocusArea, data.get("focusArea")),
            kpi_id=data.get("kpiId"),
            kpi=data.get("kpi"),
            review_status=coerce_enum(
                ReviewStatus, data.get("reviewStatus"), ReviewStatus.PENDING_REVIEW
            ),
            is_approved=bool(data.get("isApproved", False)),
            is_content_generated=bool(data.get("isContentGenerated", False)),
            is_completed=bool(data.get("isCompleted", False)),
            asset_type=data.get("assetType"),
            context_files=[
                ContextFile.from_dict(f) for f in (data.get("contextFiles") or [])
            ],
            citation_source=data.get("citationSource"),
            reason=data.get("reason"),
            explanation=data.get("explanation"),
            expected_boost=data.get("expectedBoost"),
            timeline=data.get("timeline"),
            confidence=data.get("confidence"),
            completed_at=data.get("completedAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "priority": self.priority.value if self.priority else None,
            "effort": self.effort.value if self.effort else None,
            "focusArea": self.focus_area.value if self.focus_area else None,
            "kpiId": self.kpi_id,
            "kpi": self.kpi,
            "reviewStatus": self.review_status.value,
            "isApproved": self.is_approved,
            "isContentGenerated": self.is_content_generated,
            "isCompleted": self.is_completed,
            "assetType": self.asset_type,
            "contextFiles": [f.to_dict() for f in self.context_files],
        }

    def has_valid_id(self, min_length: int) -> bool:
        """Server-issued ids are long opaque strings; short ones are local placeholders."""
        return bool(self.id) and len(self.id) >= min_length

    @property
    def stage(self) -> Optional[Stage]:
        return derive_stage(self)

    def with_changes(self, **changes: Any) -> "Recommendation":
        return replace(self, **changes)


def derive_stage(rec: Recommendation) -> Optional[Stage]:
    """
    Workflow stage implied by a recommendation's flags and review status.

    Rejected and removed recommendations belong to no stage.
    """
    if rec.review_status in (ReviewStatus.REJECTED, ReviewStatus.REMOVED):
        return None
    if rec.is_completed:
        return Stage.OUTCOME
    if rec.is_content_generated:
        return Stage.REFINE
    if rec.is_approved or rec.review_status == ReviewStatus.APPROVED:
        return Stage.STRATEGY
    return Stage.OPPORTUNITIES


@dataclass
class Generation:
    """One generate-request/response cycle for a brand."""

    generation_id: str
    brand_id: Optional[str] = None
    data_maturity: Optional[DataMaturity] = None
    brand_name: str = ""
    kpis: List[KPI] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    generated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Generation":
        return cls(
            generation_id=data.get("generationId") or "",
            brand_id=data.get("brandId"),
            data_maturity=coerce_enum(DataMaturity, data.get("dataMaturity")),
            brand_name=data.get("brandName") or "",
            kpis=[KPI.from_dict(k) for k in (data.get("kpis") or [])],
            recommendations=[
                Recommendation.from_dict(r) for r in (data.get("recommendations") or []) if r
            ],
            generated_at=data.get("generatedAt"),
        )


@dataclass
class StagePage:
    """Result of a per-stage fetch."""

    stage: Stage
    recommendations: List[Recommendation] = field(default_factory=list)
    data_maturity: Optional[DataMaturity] = None
    brand_name: Optional[str] = None

    @classmethod
    def from_dict(cls, stage: int, data: Dict[str, Any]) -> "StagePage":
        return cls(
            stage=Stage(data.get("step") or stage),
            recommendations=[
                Recommendation.from_dict(r) for r in (data.get("recommendations") or []) if r
            ],
            data_maturity=coerce_enum(DataMaturity, data.get("dataMaturity")),
            brand_name=data.get("brandName"),
        )
