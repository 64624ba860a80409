"""
Engine Models Package
Contains data models and types.
"""

from .content import Content, RawContent, StructuredContent, parse_content
from .progress import OnboardingProgress
from .recommendation import (
    KPI,
    DataMaturity,
    Effort,
    FocusArea,
    Generation,
    Priority,
    Recommendation,
    ReviewStatus,
    Stage,
    StagePage,
    derive_stage,
)
from .result import BulkContentResult, BulkContentSummary, OperationResult, Outcome
from .strategy_plan import ContextFile, StrategyPlan, UploadFile

__all__ = [
    "Content",
    "RawContent",
    "StructuredContent",
    "parse_content",
    "OnboardingProgress",
    "KPI",
    "DataMaturity",
    "Effort",
    "FocusArea",
    "Generation",
    "Priority",
    "Recommendation",
    "ReviewStatus",
    "Stage",
    "StagePage",
    "derive_stage",
    "BulkContentResult",
    "BulkContentSummary",
    "OperationResult",
    "Outcome",
    "ContextFile",
    "StrategyPlan",
    "UploadFile",
]
