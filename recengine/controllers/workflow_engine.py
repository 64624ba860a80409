"""
Workflow Engine
Single orchestrator for the four-stage recommendation workflow.

Owns every piece of per-brand state (generation, stage lists, filters,
content drafts, attachments, error slot) and exposes the actions the
presentation layer calls. All actions run on one asyncio event loop.
Network failures are caught here and never propagate to the caller.

Flow:
1. select_brand() clears per-brand state, then looks up the latest generation
2. the canonical stage load (refresh) fetches the active stage
3. user actions mutate state optimistically and re-fetch where needed
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Coroutine, Dict, List, Optional, Set

from ..exceptions import RecEngineError, RequestTimeoutError, ValidationError
from ..models.content import Content
from ..models.recommendation import (
    KPI,
    DataMaturity,
    Effort,
    Generation,
    Priority,
    Recommendation,
    ReviewStatus,
    Stage,
    coerce_enum,
    derive_stage,
)
from ..models.result import OperationResult, Outcome
from ..models.strategy_plan import StrategyPlan, UploadFile
from ..services.session_store import SessionStore
from .attachments import ContextAttachmentManager
from .content_cache import ContentDraftCache
from .filters import FilterState, apply_filters, available_content_types
from .generation_store import GenerationStore, compute_step_counts
from .recovery_poller import RecoveryPoller
from .stage_loader import LoadStatus, StageDataLoader, StageLoadResult, merge_stage_one, move_to_front
from .status_updater import apply_completion, apply_status, mark_completed, remove_from, should_remove

logger = logging.getLogger(__name__)

Listener = Callable[["WorkflowEngine"], None]

INVALID_ID_MESSAGE = "This recommendation has no valid ID yet. Please refresh the page."
GENERATE_TIMEOUT_MESSAGE = "Request timed out. The generation may have completed. Please wait a moment."
CONTENT_TIMEOUT_MESSAGE = (
    "Content generation is taking longer than expected. "
    "Some content may have been generated. Please check Step 3."
)

_UNSET = object()


class _ManualLoad:
    """State of one manual load, shared between its body and its exit."""

    def __init__(self, cut_off: bool):
        self.token = 0
        # A canonical load was in flight when this one began
        self.cut_off = cut_off
        # Run the canonical load for the new state once this one ends
        self.reload = False


class WorkflowEngine:
    """
    Orchestrator for recommendation generations of the selected brand.

    Manages:
    - Brand selection and generation lookup
    - Stage navigation and race-safe stage loads
    - Optimistic status changes (never rolled back)
    - Stage 1 filtering/sorting, content drafts, context attachments
    - The background data-collection watcher

    ``api`` is any object providing the APIClient coroutine methods.
    """

    def __init__(
        self,
        api,
        store: Optional[SessionStore] = None,
        min_id_length: Optional[int] = None,
        poll_interval: Optional[float] = None,
        max_file_bytes: Optional[int] = None,
    ):
        self._api = api
        self._store = store or SessionStore()

        self.generation = GenerationStore()
        self.loader = StageDataLoader(api.get_stage, min_id_length)
        self.content = ContentDraftCache()
        self.attachments = ContextAttachmentManager(
            api.upload_context_file,
            api.delete_context_file,
            max_file_bytes,
        )
        self.poller = RecoveryPoller(
            api.get_onboarding_progress,
            self._store,
            poll_interval,
            on_complete=self._on_collection_complete,
        )

        self.stage: Stage = Stage.OPPORTUNITIES
        self.all_recommendations: List[Recommendation] = []
        self._stage_recommendations: List[Recommendation] = []
        self.filters = FilterState()
        self.target_id: Optional[str] = None
        self.expanded_id: Optional[str] = None

        self.is_loading = False
        self.is_generating = False
        self.generating_content_ids: Set[str] = set()
        self.collection_in_progress = False
        self.error: Optional[str] = None

        # Optimistically removed ids of the active generation and the status sent
        self._removed_ids: Dict[str, ReviewStatus] = {}

        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[Listener] = []

    # =========================================================================
    # Exposed state
    # =========================================================================

    @property
    def brand_id(self) -> Optional[str]:
        return self.generation.brand_id

    @property
    def generation_id(self) -> Optional[str]:
        return self.generation.generation_id

    @property
    def data_maturity(self) -> Optional[DataMaturity]:
        return self.generation.data_maturity

    @property
    def brand_name(self) -> str:
        return self.generation.brand_name

    @property
    def kpis(self) -> List[KPI]:
        return self.generation.kpis

    @property
    def step_counts(self) -> Dict[int, int]:
        return self.generation.step_counts

    @property
    def is_cold_start(self) -> bool:
        return self.generation.is_cold_start

    @property
    def recommendations(self) -> List[Recommendation]:
        """The list the current stage displays (filtered and sorted on stage 1)."""
        if self.stage == Stage.OPPORTUNITIES:
            return move_to_front(apply_filters(self.all_recommendations, self.filters), self.target_id)
        return list(self._stage_recommendations)

    @property
    def available_content_types(self) -> List[str]:
        return available_content_types(self.all_recommendations)

    @property
    def contents(self) -> Dict[str, Any]:
        return self.content.contents

    @property
    def guides(self) -> Dict[str, Content]:
        return self.content.guides

    @property
    def strategy_plans(self) -> Dict[str, StrategyPlan]:
        return self.attachments.plans

    @property
    def uploading_id(self) -> Optional[str]:
        return self.attachments.uploading_id

    @property
    def removing_file_id(self) -> Optional[str]:
        return self.attachments.removing_file_id

    @property
    def min_id_length(self) -> int:
        return self.loader.min_id_length

    # =========================================================================
    # Listeners & task bookkeeping
    # =========================================================================

    def add_listener(self, listener: Listener) -> None:
        """Register a callback invoked after every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("State listener failed")

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def close(self) -> None:
        """Tear down: stop polling, drop in-flight loads, cancel pending tasks."""
        self.poller.stop()
        self.loader.invalidate()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def clear_error(self) -> None:
        self.error = None
        self._notify()

    # =========================================================================
    # Brand selection & generations
    # =========================================================================

    def select_brand(self, brand_id: str) -> asyncio.Task:
        """
        Switch to ``brand_id``.

        Every per-brand cache is cleared before this method returns; the
        latest-generation lookup then runs as a background task (returned).
        """
        logger.info(f"🔀 Selecting brand {brand_id}")
        self.loader.invalidate()

        self.generation.clear(brand_id)
        self.content.clear()
        self.content.reset_for(None)
        self.attachments.clear()
        self.all_recommendations = []
        self._stage_recommendations = []
        self.filters = FilterState()
        self.target_id = None
        self.expanded_id = None
        self._removed_ids = {}
        self.generating_content_ids = set()
        self.error = None
        self.is_loading = False
        self.stage = Stage(self._store.load_stage(brand_id))

        self.collection_in_progress = self._store.is_collection_in_progress(brand_id)
        self.poller.start(brand_id)

        self._notify()
        return self._spawn(self.load_latest_generation())

    async def load_latest_generation(self) -> OperationResult:
        """
        Adopt the brand's latest generation from the backend.

        Also the recovery path after an ambiguous ``generate`` timeout.
        When the brand has no generation, the engine returns to stage 1.
        """
        brand_id = self.brand_id
        if not brand_id:
            return OperationResult(Outcome.FAILED, "Please select a brand first")

        async with self._manual_load() as load:
            self.is_loading = True
            self.error = None
            self._notify()
            try:
                generation = await self._api.get_latest_generation(brand_id)
            except RequestTimeoutError as e:
                logger.warning(f"Latest generation lookup timed out for {brand_id}: {e}")
                return OperationResult(Outcome.AMBIGUOUS, str(e))
            except RecEngineError as e:
                logger.error(f"Error loading latest generation for {brand_id}: {e}")
                if self.loader.is_current(load.token):
                    self.error = str(e) or "Failed to load recommendations"
                return OperationResult(Outcome.FAILED, str(e))

            if not self.loader.is_current(load.token):
                return OperationResult(Outcome.FAILED, "Superseded by a newer load")

            if generation is None:
                logger.info(f"📭 No previous generation found for brand {brand_id}")
                self._reset_to_no_generation()
                return OperationResult(Outcome.SUCCESS, "No generation yet")

            changed = self._adopt(generation)
            load.reload = True

        if changed:
            await self._load_kpis()
        return OperationResult(Outcome.SUCCESS, payload=generation)

    async def generate(self) -> OperationResult:
        """
        Request a new generation for the selected brand.

        A timeout yields an AMBIGUOUS result: the backend may still finish, so
        the caller should re-query with :meth:`load_latest_generation`.
        """
        brand_id = self.brand_id
        if not brand_id:
            self.error = "Please select a brand first"
            self._notify()
            return OperationResult(Outcome.FAILED, self.error)
        if self.is_generating:
            return OperationResult(Outcome.FAILED, "Generation already in progress")

        self.is_generating = True
        self.error = None
        self._notify()
        try:
            async with self._manual_load() as load:
                logger.info(f"🚀 Starting generation for brand {brand_id}")
                try:
                    generation = await self._api.generate(brand_id)
                except RequestTimeoutError:
                    logger.warning(f"⚠️ Generate request for {brand_id} timed out; backend may have completed")
                    return OperationResult(Outcome.AMBIGUOUS, GENERATE_TIMEOUT_MESSAGE)
                except RecEngineError as e:
                    logger.error(f"Error generating recommendations: {e}")
                    if self.loader.is_current(load.token):
                        self.error = str(e) or "Failed to generate recommendations"
                    return OperationResult(Outcome.FAILED, str(e))

                if not self.loader.is_current(load.token):
                    return OperationResult(Outcome.SUCCESS, "Brand changed during generation", generation)

                self._adopt(generation)
                self.all_recommendations = []
                self._stage_recommendations = []
                self.target_id = None
                self.expanded_id = None
                self._set_stage(Stage.OPPORTUNITIES)
                load.reload = True
        finally:
            self.is_generating = False
            self._notify()

        await self._load_kpis()
        return OperationResult(Outcome.SUCCESS, payload=generation)

    def _adopt(self, generation: Generation) -> bool:
        changed = self.generation.adopt(generation)
        if changed:
            logger.info(f"🔄 Switching to generation {generation.generation_id}")
            self.content.reset_for(generation.generation_id)
            self._removed_ids = {}
        return changed

    def _reset_to_no_generation(self) -> None:
        self.generation.generation_id = None
        self.generation.kpis = []
        self.generation.step_counts = {}
        self.content.reset_for(None)
        self._removed_ids = {}
        self.all_recommendations = []
        self._stage_recommendations = []
        self.error = None
        self._set_stage(Stage.OPPORTUNITIES)

    async def _load_kpis(self) -> None:
        generation_id = self.generation_id
        if not generation_id:
            return
        try:
            kpis = await self._api.get_kpis(generation_id)
        except RecEngineError as e:
            logger.error(f"Error loading KPIs: {e}")
            return
        if generation_id == self.generation_id:
            self.generation.kpis = kpis
            self._notify()

    async def _refresh_step_counts(self) -> None:
        generation_id = self.generation_id
        if not generation_id:
            return
        try:
            generation = await self._api.get_generation(generation_id)
        except RecEngineError as e:
            logger.error(f"Error fetching generation counts: {e}")
            return
        if generation_id == self.generation_id:
            self.generation.step_counts = compute_step_counts(generation.recommendations)
            self._notify()

    def _on_collection_complete(self, brand_id: str) -> None:
        if brand_id == self.brand_id:
            self.collection_in_progress = False
            self._notify()

    # =========================================================================
    # Navigation & stage loading
    # =========================================================================

    def _set_stage(self, stage: Stage) -> None:
        self.stage = Stage(stage)
        self._store.save_stage(self.brand_id, self.stage)

    def navigate(self, stage: int, highlight_id: Optional[str] = None) -> asyncio.Task:
        """
        Change the active stage and schedule its load.

        ``highlight_id`` is moved to the front of the loaded list. Stage 3
        keeps it as its single expanded item.
        """
        stage = Stage(stage)
        self._set_stage(stage)
        if highlight_id:
            if stage == Stage.REFINE:
                self.expanded_id = highlight_id
            else:
                self.target_id = highlight_id
        else:
            self.target_id = None
            if stage == Stage.REFINE:
                self.expanded_id = None
        self.error = None
        self._notify()
        return self._spawn(self.refresh())

    async def refresh(self) -> Optional[StageLoadResult]:
        """
        Canonical load for the current (brand, generation, stage).

        Returns None when the load was suppressed or its result went stale.
        """
        generation_id = self.generation_id
        if not generation_id or not self.brand_id:
            return None
        stage = self.stage
        if not self.loader.should_run(stage):
            return None

        token = self.loader.begin_canonical()
        self.is_loading = True
        self.error = None
        self._notify()

        target_id = self.expanded_id if stage == Stage.REFINE else self.target_id
        try:
            result = await self.loader.fetch(
                generation_id,
                stage,
                target_id,
                content_fetcher=self._api.get_latest_content,
            )
        finally:
            self.loader.end_canonical(token)

        if not self.loader.is_current(token) or stage != self.stage:
            logger.debug(f"Discarding stale stage {int(stage)} result")
            return None

        self._commit(result)
        self.is_loading = False
        self._notify()

        await self._refresh_step_counts()
        return result

    @asynccontextmanager
    async def _manual_load(self) -> AsyncIterator["_ManualLoad"]:
        """
        Run a manual load, then settle the canonical path once it ends.

        A committed stage consumes its skip-once marker here. Otherwise the
        canonical load runs again when the body asked for it or when a
        canonical load was in flight and this one cut it off.
        """
        load = _ManualLoad(cut_off=self.loader.canonical_in_flight)
        async with self.loader.manual() as token:
            load.token = token
            yield load

        if self.loader.manual_in_progress or not self.loader.is_current(load.token):
            # A newer load owns the state
            return

        self.is_loading = False
        if self.loader.is_marked(load.token):
            await self.refresh()
        elif load.reload or load.cut_off:
            error = self.error
            await self.refresh()
            if error and self.error is None:
                self.error = error
        self._notify()

    async def _load_stage_manually(self, stage: Stage) -> Optional[StageLoadResult]:
        """
        Load ``stage`` outside the canonical path and move there if it has
        data. The canonical trigger that follows is skipped once.
        """
        generation_id = self.generation_id
        if not generation_id:
            return None

        moved = False
        async with self._manual_load() as load:
            result = await self.loader.fetch(
                generation_id,
                stage,
                content_fetcher=self._api.get_latest_content,
            )
            if not self.loader.is_current(load.token):
                return None
            if result.status == LoadStatus.LOADED and result.recommendations:
                self.target_id = None
                self.expanded_id = None
                self._set_stage(stage)
                self._commit(result)
                self.loader.mark_manually_loaded(stage, load.token)
                moved = True
                self._notify()

        if moved:
            await self._refresh_step_counts()
        return result

    def _commit(self, result: StageLoadResult) -> None:
        self.generation.update_metadata(result.data_maturity, result.brand_name)

        if result.status == LoadStatus.INTERRUPTED:
            # The server may still answer; keep current data, no error
            self.error = None
            return
        if not result.replaces_list:
            self.error = result.error or "Failed to load recommendations"
            return

        # A fetch issued before an optimistic removal still carries the item
        hidden = {
            rec_id for rec_id, status in self._removed_ids.items()
            if should_remove(status, result.stage)
        }
        fetched = [r for r in result.recommendations if r.id not in hidden]

        if result.stage == Stage.OPPORTUNITIES:
            self.all_recommendations = merge_stage_one(fetched, self.all_recommendations)
            self._stage_recommendations = []
        else:
            consistent = [r for r in fetched if derive_stage(r) == result.stage]
            if len(consistent) != len(fetched):
                logger.warning(
                    f"Dropped {len(fetched) - len(consistent)} recommendation(s) "
                    f"whose flags do not match stage {int(result.stage)}"
                )
            self.all_recommendations = []
            self._stage_recommendations = consistent

        if result.contents:
            self.content.store_many(result.contents, self.is_cold_start)
        self.error = None

    # =========================================================================
    # Filters
    # =========================================================================

    def set_filters(
        self,
        status: Any = _UNSET,
        priority: Any = _UNSET,
        effort: Any = _UNSET,
        content_type: Any = _UNSET,
    ) -> FilterState:
        """Update stage 1 filters. ``None`` or ``"all"`` clears a filter."""
        changes: Dict[str, Any] = {}
        if status is not _UNSET:
            changes["status"] = _filter_value(ReviewStatus, status)
        if priority is not _UNSET:
            changes["priority"] = _filter_value(Priority, priority)
        if effort is not _UNSET:
            changes["effort"] = _filter_value(Effort, effort)
        if content_type is not _UNSET:
            changes["content_type"] = None if content_type in (None, "all") else content_type
        self.filters = replace(self.filters, **changes)
        self._notify()
        return self.filters

    def reset_filters(self) -> None:
        self.filters = FilterState()
        self._notify()

    # =========================================================================
    # Recommendation actions
    # =========================================================================

    def _has_valid_id(self, recommendation_id: Optional[str]) -> bool:
        return bool(recommendation_id) and len(recommendation_id) >= self.min_id_length

    def _update_lists(self, update: Callable[[List[Recommendation]], List[Recommendation]]) -> None:
        self.all_recommendations = update(self.all_recommendations)
        self._stage_recommendations = update(self._stage_recommendations)

    def change_status(self, recommendation_id: str, status: ReviewStatus) -> Optional[asyncio.Task]:
        """
        Apply a review-status change optimistically and send it.

        Rejected/removed items (and items sent back to review from a later
        stage) leave every list at once; approvals update in place. The
        server call runs in the background and returns the task; a failure
        only sets the error slot.
        """
        status = ReviewStatus(status)
        if not self._has_valid_id(recommendation_id):
            logger.warning(f"Refusing status change for invalid id {recommendation_id!r}")
            self.error = INVALID_ID_MESSAGE
            self._notify()
            return None

        self.error = None
        if should_remove(status, self.stage):
            self._removed_ids[recommendation_id] = status
            self._update_lists(lambda recs: remove_from(recs, recommendation_id))
        else:
            self._removed_ids.pop(recommendation_id, None)
            self._update_lists(lambda recs: apply_status(recs, recommendation_id, status))
        self._notify()

        return self._spawn(self._send_status(recommendation_id, status))

    async def _send_status(self, recommendation_id: str, status: ReviewStatus) -> bool:
        brand_id = self.brand_id
        try:
            await self._api.change_status(recommendation_id, status)
        except RecEngineError as e:
            logger.error(f"Error updating recommendation status: {e}")
            if brand_id == self.brand_id:
                self.error = str(e) or "Failed to update status"
                self._notify()
            return False
        await self._refresh_step_counts()
        return True

    def _find(self, recommendation_id: str) -> Optional[Recommendation]:
        for rec in (*self._stage_recommendations, *self.all_recommendations):
            if rec.id == recommendation_id:
                return rec
        return None

    def complete(self, recommendation_id: str) -> Optional[asyncio.Task]:
        """
        Mark a recommendation completed and move to stage 4 with it.

        The item leaves the current list at once and is shown on stage 4,
        approved and completed, before the server has confirmed. If the
        server then refuses, the item is dropped from stage 4 and the error
        slot is set. Already completed items are ignored.
        """
        if not self._has_valid_id(recommendation_id):
            self.error = INVALID_ID_MESSAGE
            self._notify()
            return None
        if not self.generation_id:
            return None

        held = self._find(recommendation_id)
        if held is not None and held.is_completed:
            return None

        completed_at = datetime.now(timezone.utc).isoformat()
        completed = mark_completed(held, completed_at) if held is not None else None

        self.error = None
        if self.stage == Stage.OUTCOME:
            self._update_lists(lambda recs: apply_completion(recs, recommendation_id, completed_at))
        else:
            self._update_lists(lambda recs: remove_from(recs, recommendation_id))
        self._notify()

        return self._spawn(self._complete(recommendation_id, completed))

    async def _complete(self, recommendation_id: str, completed: Optional[Recommendation]) -> bool:
        generation_id = self.generation_id
        await self._show_outcome(completed)

        try:
            await self._api.complete_recommendation(recommendation_id)
        except RecEngineError as e:
            logger.error(f"Error completing recommendation: {e}")
            if generation_id == self.generation_id:
                self.error = str(e) or "Failed to complete recommendation"
                self._update_lists(lambda recs: remove_from(recs, recommendation_id))
                self._notify()
            return False

        logger.info(f"✅ Completed recommendation {recommendation_id}")
        if generation_id != self.generation_id:
            return True
        if self.stage == Stage.OUTCOME:
            # Picks up the server's completion timestamp and KPI baseline
            await self.refresh()
        else:
            await self._refresh_step_counts()
        return True

    async def _show_outcome(self, completed: Optional[Recommendation]) -> None:
        """Move to stage 4, keeping ``completed`` visible if the fetch lags."""
        generation_id = self.generation_id
        if not generation_id:
            return

        async with self._manual_load() as load:
            result = await self.loader.fetch(generation_id, Stage.OUTCOME)
            if not self.loader.is_current(load.token):
                return

            self.target_id = None
            self.expanded_id = None
            self._set_stage(Stage.OUTCOME)
            if result.replaces_list:
                self._commit(result)
            else:
                self.all_recommendations = []
                self._stage_recommendations = []
            if completed is not None and all(r.id != completed.id for r in self._stage_recommendations):
                self._stage_recommendations.append(completed)
            self.error = None
            self.loader.mark_manually_loaded(Stage.OUTCOME, load.token)
            self._notify()

    async def generate_content(self, recommendation_id: str) -> OperationResult:
        """Generate content for one approved recommendation, then open stage 3."""
        return await self._generate_single(recommendation_id, guide=False)

    async def generate_guide(self, recommendation_id: str) -> OperationResult:
        """Cold-start variant of :meth:`generate_content`: the body is an implementation guide."""
        return await self._generate_single(recommendation_id, guide=True)

    async def _generate_single(self, recommendation_id: str, guide: bool) -> OperationResult:
        kind = "guide" if guide else "content"
        if not self._has_valid_id(recommendation_id):
            self.error = INVALID_ID_MESSAGE
            self._notify()
            return OperationResult(Outcome.FAILED, self.error)
        if recommendation_id in self.generating_content_ids:
            return OperationResult(Outcome.FAILED, f"{kind.capitalize()} generation already in progress")

        generation_id = self.generation_id
        self.generating_content_ids.add(recommendation_id)
        self.error = None
        self._notify()
        try:
            logger.info(f"📝 Generating {kind} for recommendation {recommendation_id}")
            try:
                if guide:
                    raw = await self._api.generate_guide(recommendation_id)
                else:
                    raw = await self._api.generate_content(recommendation_id)
            except RecEngineError as e:
                logger.error(f"Error generating {kind}: {e}")
                if generation_id == self.generation_id:
                    self.error = str(e) or f"Failed to generate {kind}"
                return OperationResult(Outcome.FAILED, str(e))

            if generation_id != self.generation_id:
                return OperationResult(Outcome.SUCCESS, payload=raw)

            self.content.store(recommendation_id, raw, cold_start=guide)
            if not guide:
                self._update_lists(lambda recs: remove_from(recs, recommendation_id))
            self._notify()

            await self._load_stage_manually(Stage.REFINE)
            return OperationResult(Outcome.SUCCESS, payload=raw)
        finally:
            self.generating_content_ids.discard(recommendation_id)
            self._notify()

    async def generate_content_bulk(self) -> OperationResult:
        """
        Generate content for every approved recommendation, then move to
        stage 3 when anything was produced.
        """
        generation_id = self.generation_id
        if not generation_id:
            self.error = "No generation ID found"
            self._notify()
            return OperationResult(Outcome.FAILED, self.error)

        self.is_loading = True
        self.error = None
        self._notify()
        try:
            try:
                summary = await self._api.generate_content_bulk(generation_id)
            except RequestTimeoutError:
                logger.warning("⚠️ Bulk content generation timed out; backend may still be working")
                await self._load_stage_manually(Stage.REFINE)
                return OperationResult(Outcome.AMBIGUOUS, CONTENT_TIMEOUT_MESSAGE)
            except RecEngineError as e:
                logger.error(f"Error generating content: {e}")
                if generation_id == self.generation_id:
                    self.error = str(e) or "Failed to generate content"
                return OperationResult(Outcome.FAILED, str(e))

            if generation_id != self.generation_id:
                return OperationResult(Outcome.SUCCESS, payload=summary)

            logger.info(
                f"✅ Generated content: {summary.successful}/{summary.total} successful, "
                f"{summary.failed} failed"
            )
            self.content.store_bulk(summary)
            if summary.successful > 0:
                await self._load_stage_manually(Stage.REFINE)

            if summary.failed > 0 and summary.successful == 0:
                self.error = f"{summary.failed} recommendation(s) failed to generate content."
                return OperationResult(Outcome.FAILED, self.error, summary)
            self.error = None
            return OperationResult(Outcome.SUCCESS, payload=summary)
        finally:
            self.is_loading = False
            self._notify()

    # =========================================================================
    # Context attachments
    # =========================================================================

    async def upload_context(self, recommendation_id: str, file: UploadFile) -> OperationResult:
        brand_id = self.brand_id
        try:
            uploaded = await self.attachments.upload(recommendation_id, file, self.brand_name)
        except ValidationError as e:
            self.error = str(e)
            self._notify()
            return OperationResult(Outcome.FAILED, str(e))
        except RecEngineError as e:
            logger.error(f"Error uploading context file: {e}")
            if brand_id == self.brand_id:
                self.error = str(e) or "Failed to upload context file"
                self._notify()
            return OperationResult(Outcome.FAILED, str(e))

        if uploaded is None:
            return OperationResult(Outcome.FAILED, "Upload already in progress")
        self._notify()
        return OperationResult(Outcome.SUCCESS, payload=uploaded)

    async def remove_context(self, recommendation_id: str, file_id: str) -> OperationResult:
        brand_id = self.brand_id
        self.error = None
        try:
            removed = await self.attachments.remove(recommendation_id, file_id)
        except RecEngineError as e:
            logger.error(f"Error removing context file: {e}")
            if brand_id == self.brand_id:
                self.error = str(e) or "Failed to remove context file"
                self._notify()
            return OperationResult(Outcome.FAILED, str(e))

        if not removed:
            return OperationResult(Outcome.FAILED, "Removal already in progress")
        self._notify()
        return OperationResult(Outcome.SUCCESS)


def _filter_value(enum_cls, value):
    if value is None or value == "all":
        return None
    member = coerce_enum(enum_cls, value)
    if member is None:
        raise ValueError(f"Unknown {enum_cls.__name__} filter: {value!r}")
    return member
