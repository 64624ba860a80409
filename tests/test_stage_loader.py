"""
Tests for recengine.controllers.stage_loader
============================================

Load tokens, manual-load suppression, merge rules and error classification.
"""

from unittest.mock import AsyncMock

import pytest

from factories import approved, make_rec, with_content
from recengine.controllers.stage_loader import (
    INVALID_IDS_MESSAGE,
    LoadStatus,
    StageDataLoader,
    merge_stage_one,
    move_to_front,
    strip_invalid,
)
from recengine.exceptions import APIError, NotFoundError, RequestTimeoutError, TransportError
from recengine.models import DataMaturity, ReviewStatus, Stage, StagePage


def _loader(page=None, side_effect=None):
    fetch = AsyncMock(return_value=page, side_effect=side_effect)
    return StageDataLoader(fetch, min_id_length=11), fetch


class TestHelpers:
    """Tests for the pure list helpers."""

    def test_strip_invalid(self):
        recs = [make_rec("rec-0000001"), make_rec("tmp-1"), make_rec("")]
        assert [r.id for r in strip_invalid(recs, 11)] == ["rec-0000001"]

    def test_move_to_front(self):
        recs = [make_rec("rec-0000001"), make_rec("rec-0000002"), make_rec("rec-0000003")]
        moved = move_to_front(recs, "rec-0000003")
        assert [r.id for r in moved] == ["rec-0000003", "rec-0000001", "rec-0000002"]
        assert [r.id for r in recs] == ["rec-0000001", "rec-0000002", "rec-0000003"]

    def test_move_to_front_unknown_target(self):
        recs = [make_rec("rec-0000001"), make_rec("rec-0000002")]
        assert move_to_front(recs, "rec-missing00") == recs


class TestMergeStageOne:
    """A fresh fetch never downgrades a locally applied status."""

    def test_keeps_local_approval(self):
        previous = [approved("rec-0000001")]
        fresh = [make_rec("rec-0000001")]

        merged = merge_stage_one(fresh, previous)

        assert merged[0].review_status == ReviewStatus.APPROVED
        assert merged[0].is_approved is True

    def test_keeps_local_rejection(self):
        previous = [make_rec("rec-0000001", review_status=ReviewStatus.REJECTED)]
        merged = merge_stage_one([make_rec("rec-0000001")], previous)
        assert merged[0].review_status == ReviewStatus.REJECTED

    def test_fresh_items_pass_through(self):
        fresh = [make_rec("rec-0000001", action="Fresh text"), make_rec("rec-0000002")]
        merged = merge_stage_one(fresh, [])
        assert [r.action for r in merged][0] == "Fresh text"
        assert len(merged) == 2

    def test_fresh_fields_win_when_status_matches(self):
        previous = [make_rec("rec-0000001", action="Old")]
        merged = merge_stage_one([make_rec("rec-0000001", action="New")], previous)
        assert merged[0].action == "New"


class TestLoadTokens:
    """Tests for the token protocol."""

    def test_newer_token_supersedes(self):
        loader, _ = _loader()
        first = loader.begin()
        second = loader.begin()
        assert not loader.is_current(first)
        assert loader.is_current(second)

    def test_invalidate(self):
        loader, _ = _loader()
        token = loader.begin()
        loader.invalidate()
        assert not loader.is_current(token)

    @pytest.mark.asyncio
    async def test_canonical_load_suppressed_during_manual_load(self):
        loader, _ = _loader()
        async with loader.manual():
            assert loader.manual_in_progress
            assert loader.should_run(Stage.OPPORTUNITIES) is False
        assert loader.should_run(Stage.OPPORTUNITIES) is True

    @pytest.mark.asyncio
    async def test_marker_skips_next_trigger_once(self):
        loader, _ = _loader()
        async with loader.manual() as token:
            loader.mark_manually_loaded(Stage.REFINE, token)

        assert loader.should_run(Stage.REFINE) is False
        assert loader.should_run(Stage.REFINE) is True

    @pytest.mark.asyncio
    async def test_marker_ignored_after_newer_load(self):
        loader, _ = _loader()
        async with loader.manual() as token:
            loader.mark_manually_loaded(Stage.REFINE, token)
        loader.begin()

        assert loader.should_run(Stage.REFINE) is True

    @pytest.mark.asyncio
    async def test_marker_only_applies_to_its_stage(self):
        loader, _ = _loader()
        async with loader.manual() as token:
            loader.mark_manually_loaded(Stage.REFINE, token)

        assert loader.should_run(Stage.STRATEGY) is True
        # Consumed by the first trigger regardless of stage
        assert loader.should_run(Stage.REFINE) is True

    def test_stale_token_cannot_mark(self):
        loader, _ = _loader()
        token = loader.begin()
        loader.begin()
        loader.mark_manually_loaded(Stage.REFINE, token)
        assert loader.should_run(Stage.REFINE) is True

    def test_canonical_tracked_until_it_returns(self):
        loader, _ = _loader()
        first = loader.begin_canonical()
        second = loader.begin_canonical()

        loader.end_canonical(first)
        assert loader.canonical_in_flight

        loader.end_canonical(second)
        assert not loader.canonical_in_flight

    def test_invalidate_forgets_canonical(self):
        loader, _ = _loader()
        loader.begin_canonical()
        loader.invalidate()
        assert not loader.canonical_in_flight

    @pytest.mark.asyncio
    async def test_is_marked(self):
        loader, _ = _loader()
        async with loader.manual() as token:
            assert not loader.is_marked(token)
            loader.mark_manually_loaded(Stage.OUTCOME, token)
        assert loader.is_marked(token)


class TestFetch:
    """Tests for StageDataLoader.fetch."""

    @pytest.mark.asyncio
    async def test_loaded(self):
        page = StagePage(
            Stage.OPPORTUNITIES,
            [make_rec("rec-0000001"), make_rec("tmp-1"), make_rec("rec-0000002")],
            data_maturity=DataMaturity.LOW_DATA,
            brand_name="Acme",
        )
        loader, fetch = _loader(page)

        result = await loader.fetch("gen-1", 1, target_id="rec-0000002")

        fetch.assert_awaited_once_with("gen-1", Stage.OPPORTUNITIES)
        assert result.status == LoadStatus.LOADED
        assert [r.id for r in result.recommendations] == ["rec-0000002", "rec-0000001"]
        assert result.data_maturity == DataMaturity.LOW_DATA
        assert result.brand_name == "Acme"

    @pytest.mark.asyncio
    async def test_all_ids_invalid(self):
        page = StagePage(Stage.OPPORTUNITIES, [make_rec("tmp-1"), make_rec("tmp-2")])
        loader, _ = _loader(page)

        result = await loader.fetch("gen-1", 1)

        assert result.status == LoadStatus.INVALID_IDS
        assert result.error == INVALID_IDS_MESSAGE
        assert result.recommendations == []
        assert not result.replaces_list

    @pytest.mark.asyncio
    async def test_empty_page_is_loaded(self):
        loader, _ = _loader(StagePage(Stage.STRATEGY, []))
        result = await loader.fetch("gen-1", 2)
        assert result.status == LoadStatus.LOADED
        assert result.replaces_list

    @pytest.mark.asyncio
    async def test_not_found_is_empty(self):
        loader, _ = _loader(side_effect=NotFoundError("No recommendations found"))
        result = await loader.fetch("gen-1", 2)
        assert result.status == LoadStatus.EMPTY
        assert result.error is None
        assert result.replaces_list

    @pytest.mark.asyncio
    async def test_timeout_is_interrupted(self):
        loader, _ = _loader(side_effect=RequestTimeoutError("timed out"))
        result = await loader.fetch("gen-1", 2)
        assert result.status == LoadStatus.INTERRUPTED
        assert result.error is None

    @pytest.mark.asyncio
    async def test_api_error_is_failed(self):
        loader, _ = _loader(side_effect=APIError("Internal error", status=500))
        result = await loader.fetch("gen-1", 2)
        assert result.status == LoadStatus.FAILED
        assert result.error == "Internal error"

    @pytest.mark.asyncio
    async def test_connection_error_is_failed(self):
        loader, _ = _loader(side_effect=TransportError("Network error: refused"))
        result = await loader.fetch("gen-1", 2)
        assert result.status == LoadStatus.FAILED
        assert "refused" in result.error

    @pytest.mark.asyncio
    async def test_stage_three_loads_content(self):
        page = StagePage(Stage.REFINE, [with_content("rec-0000001"), with_content("rec-0000002")])
        loader, _ = _loader(page)
        fetcher = AsyncMock(side_effect=lambda rec_id: f"draft for {rec_id}")

        result = await loader.fetch("gen-1", 3, content_fetcher=fetcher)

        assert result.contents == {
            "rec-0000001": "draft for rec-0000001",
            "rec-0000002": "draft for rec-0000002",
        }

    @pytest.mark.asyncio
    async def test_other_stages_skip_content(self):
        page = StagePage(Stage.STRATEGY, [approved("rec-0000001")])
        loader, _ = _loader(page)
        fetcher = AsyncMock()

        await loader.fetch("gen-1", 2, content_fetcher=fetcher)

        fetcher.assert_not_awaited()
