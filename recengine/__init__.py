"""
Recommendation Workflow Engine
Drives a brand's AI-generated recommendations through the four-stage
workflow (Opportunities → Strategy → Refine → Outcome).
"""

from .controllers.workflow_engine import WorkflowEngine
from .models.recommendation import Recommendation, ReviewStatus, Stage
from .services.api_client import APIClient

__version__ = "0.1.0"

__all__ = [
    "WorkflowEngine",
    "APIClient",
    "Recommendation",
    "ReviewStatus",
    "Stage",
]
