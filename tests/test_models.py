"""
Tests for recengine.models
==========================

Wire parsing, stage derivation and content parsing.
"""

import pytest

from recengine.models import (
    BulkContentSummary,
    DataMaturity,
    Effort,
    Generation,
    OnboardingProgress,
    Priority,
    RawContent,
    Recommendation,
    ReviewStatus,
    Stage,
    StagePage,
    StructuredContent,
    derive_stage,
    parse_content,
)
from recengine.models.recommendation import coerce_enum


class TestRecommendationFromDict:
    """Tests for Recommendation.from_dict."""

    def test_camel_case_fields(self):
        rec = Recommendation.from_dict({
            "id": "rec-0000001",
            "action": "Publish a comparison guide",
            "priority": "High",
            "effort": "Low",
            "focusArea": "visibility",
            "reviewStatus": "approved",
            "isApproved": True,
            "assetType": "article",
            "contextFiles": [{"id": "f1", "fileName": "brief.pdf", "size": 10}],
        })

        assert rec.priority == Priority.HIGH
        assert rec.effort == Effort.LOW
        assert rec.review_status == ReviewStatus.APPROVED
        assert rec.is_approved is True
        assert rec.asset_type == "article"
        assert rec.context_files[0].file_name == "brief.pdf"

    def test_missing_status_defaults_to_pending(self):
        rec = Recommendation.from_dict({"id": "rec-0000001", "action": "x"})
        assert rec.review_status == ReviewStatus.PENDING_REVIEW
        assert rec.is_completed is False

    def test_unknown_enum_values_become_none(self):
        rec = Recommendation.from_dict({"id": "rec-0000001", "priority": "Urgent"})
        assert rec.priority is None

    def test_to_dict_uses_wire_names(self):
        rec = Recommendation(action="x", id="rec-0000001", priority=Priority.MEDIUM)
        data = rec.to_dict()
        assert data["priority"] == "Medium"
        assert data["reviewStatus"] == "pending_review"
        assert "isContentGenerated" in data

    def test_with_changes_returns_new_object(self):
        rec = Recommendation(action="x", id="rec-0000001")
        changed = rec.with_changes(is_approved=True)
        assert changed is not rec
        assert rec.is_approved is False


class TestValidId:
    """Ids of ten characters or fewer are local placeholders."""

    @pytest.mark.parametrize("value,expected", [
        (None, False),
        ("", False),
        ("tmp-123", False),
        ("0123456789", False),
        ("01234567890", True),
    ])
    def test_has_valid_id(self, value, expected):
        assert Recommendation(action="x", id=value).has_valid_id(11) is expected


class TestDeriveStage:
    """Tests for derive_stage."""

    def test_pending_is_stage_one(self):
        assert derive_stage(Recommendation(action="x")) == Stage.OPPORTUNITIES

    def test_approved_is_stage_two(self):
        rec = Recommendation(action="x", review_status=ReviewStatus.APPROVED, is_approved=True)
        assert derive_stage(rec) == Stage.STRATEGY

    def test_content_generated_is_stage_three(self):
        rec = Recommendation(action="x", is_approved=True, is_content_generated=True)
        assert derive_stage(rec) == Stage.REFINE

    def test_completed_wins(self):
        rec = Recommendation(
            action="x", is_approved=True, is_content_generated=True, is_completed=True
        )
        assert derive_stage(rec) == Stage.OUTCOME

    @pytest.mark.parametrize("status", [ReviewStatus.REJECTED, ReviewStatus.REMOVED])
    def test_rejected_and_removed_have_no_stage(self, status):
        rec = Recommendation(action="x", review_status=status, is_completed=True)
        assert derive_stage(rec) is None

    def test_stage_label(self):
        assert Stage.REFINE.label == "Refine"


class TestParseContent:
    """Tests for parse_content."""

    def test_dict_is_structured(self):
        assert parse_content({"sections": []}) == StructuredContent({"sections": []})

    def test_json_string_is_structured(self):
        parsed = parse_content('  {"title": "Guide"}')
        assert isinstance(parsed, StructuredContent)
        assert parsed.data == {"title": "Guide"}

    def test_json_array_string_is_structured(self):
        assert parse_content("[1, 2]") == StructuredContent([1, 2])

    def test_plain_text_is_raw(self):
        assert parse_content("Just a draft") == RawContent("Just a draft")

    def test_broken_json_passes_through_verbatim(self):
        text = '{"title": "Guide"'
        assert parse_content(text) == RawContent(text)

    def test_record_wrapper_is_unwrapped(self):
        parsed = parse_content({"id": "c1", "content": '{"a": 1}'})
        assert parsed == StructuredContent({"a": 1})


class TestGenerationAndPages:
    """Tests for Generation / StagePage parsing."""

    def test_generation_from_dict(self):
        gen = Generation.from_dict({
            "generationId": "gen-1",
            "brandId": "brand-a",
            "dataMaturity": "cold_start",
            "kpis": [{"kpiName": "Visibility Index", "currentValue": 12.5}],
            "recommendations": [{"id": "rec-0000001", "action": "x"}, None],
        })
        assert gen.generation_id == "gen-1"
        assert gen.data_maturity == DataMaturity.COLD_START
        assert gen.kpis[0].name == "Visibility Index"
        assert len(gen.recommendations) == 1

    def test_stage_page_from_dict(self):
        page = StagePage.from_dict(3, {
            "step": 3,
            "dataMaturity": "normal",
            "brandName": "Acme",
            "recommendations": [{"id": "rec-0000001", "isContentGenerated": True}],
        })
        assert page.stage == Stage.REFINE
        assert page.brand_name == "Acme"
        assert page.recommendations[0].is_content_generated is True

    def test_coerce_enum_default(self):
        assert coerce_enum(ReviewStatus, None, ReviewStatus.PENDING_REVIEW) == ReviewStatus.PENDING_REVIEW
        assert coerce_enum(ReviewStatus, "approved") == ReviewStatus.APPROVED


class TestOnboardingProgress:
    """Tests for OnboardingProgress.is_complete."""

    def test_complete(self):
        progress = OnboardingProgress.from_dict({
            "queries": {"completed": 40, "total": 40},
            "scoring": {"positions": True, "sentiments": True, "citations": True},
        })
        assert progress.is_complete

    def test_scoring_pending(self):
        progress = OnboardingProgress.from_dict({
            "queries": {"completed": 40, "total": 40},
            "scoring": {"positions": True, "sentiments": False, "citations": True},
        })
        assert not progress.is_complete

    def test_queries_pending(self):
        progress = OnboardingProgress(
            queries_completed=10, queries_total=40,
            positions=True, sentiments=True, citations=True,
        )
        assert not progress.is_complete


def test_bulk_summary_from_dict():
    summary = BulkContentSummary.from_dict({
        "total": 2,
        "successful": 1,
        "failed": 1,
        "results": [
            {"recommendationId": "rec-0000001", "success": True, "content": "draft"},
            {"recommendationId": "rec-0000002", "success": False, "error": "LLM error"},
        ],
    })
    assert summary.successful == 1
    assert summary.results[1].error == "LLM error"
