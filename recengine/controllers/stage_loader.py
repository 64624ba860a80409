"""
Stage Data Loader
Fetches the recommendation set for the active stage of the active generation.

There is one canonical load path, triggered whenever the (brand, generation,
stage) context changes. Explicit user-triggered loads ("manual" loads) run
alongside it, and three rules keep the two paths from clobbering each other:

1. While any manual load is in progress the canonical load does nothing.
2. After a manual load commits a stage, the next canonical trigger for that
   same stage is skipped once, provided no newer load has been issued since.
3. A canonical load cut off by a manual load that committed nothing is
   issued again once the manual load ends.

Every load is stamped with a token from a monotonically increasing counter.
Results are committed only while their token is still the newest one, so a
slow response can never overwrite data from a later load or another brand.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

from ..config.settings import settings
from ..exceptions import APIError, NotFoundError, RequestTimeoutError, TransportError
from ..models.recommendation import DataMaturity, Recommendation, Stage, StagePage
from .content_cache import ContentDraftCache, ContentFetcher

logger = logging.getLogger(__name__)

StageFetcher = Callable[[str, int], Awaitable[StagePage]]

INVALID_IDS_MESSAGE = "Recommendations loaded but no valid IDs found. Please refresh the page."


class LoadStatus(Enum):
    LOADED = "loaded"
    # No data yet for this stage; not an error
    EMPTY = "empty"
    # Timed out; keep current data and clear stale errors
    INTERRUPTED = "interrupted"
    FAILED = "failed"
    # Every returned recommendation lacked a server-issued id
    INVALID_IDS = "invalid_ids"


@dataclass
class StageLoadResult:
    stage: Stage
    status: LoadStatus
    recommendations: List[Recommendation] = field(default_factory=list)
    data_maturity: Optional[DataMaturity] = None
    brand_name: Optional[str] = None
    contents: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def replaces_list(self) -> bool:
        return self.status in (LoadStatus.LOADED, LoadStatus.EMPTY)


def strip_invalid(recs: List[Recommendation], min_length: int) -> List[Recommendation]:
    return [r for r in recs if r.has_valid_id(min_length)]


def move_to_front(recs: List[Recommendation], target_id: Optional[str]) -> List[Recommendation]:
    """Return a copy with ``target_id`` (if present) at index 0."""
    if not target_id:
        return list(recs)
    for index, rec in enumerate(recs):
        if rec.id == target_id:
            if index == 0:
                return list(recs)
            return [rec, *recs[:index], *recs[index + 1:]]
    return list(recs)


def merge_stage_one(
    fresh: List[Recommendation], previous: List[Recommendation]
) -> List[Recommendation]:
    """
    Merge a fresh stage-1 fetch with the in-memory list by id.

    Where the previously held review status differs from the fetched one, the
    previous status and approval flag win: the fetch may have started before
    an optimistic update was sent.
    """
    existing = {r.id: r for r in previous if r.id}
    merged = []
    for rec in fresh:
        held = existing.get(rec.id)
        if held is not None and held.review_status and held.review_status != rec.review_status:
            rec = rec.with_changes(
                review_status=held.review_status,
                is_approved=held.is_approved,
            )
        merged.append(rec)
    return merged


class StageDataLoader:
    def __init__(self, fetch_stage: StageFetcher, min_id_length: Optional[int] = None):
        self._fetch_stage = fetch_stage
        self.min_id_length = min_id_length or settings.MIN_RECOMMENDATION_ID_LENGTH

        self._token = 0
        self._canonical: Optional[int] = None
        self._manual_depth = 0
        self._manual_marker: Optional[Tuple[int, int]] = None

    # =========================================================================
    # Load tokens
    # =========================================================================

    @property
    def token(self) -> int:
        return self._token

    def begin(self) -> int:
        """Stamp a new load; every older token stops being current."""
        self._token += 1
        return self._token

    def is_current(self, token: int) -> bool:
        return token == self._token

    def invalidate(self) -> None:
        """Discard whatever is in flight (brand switch, teardown)."""
        self._token += 1
        self._canonical = None
        self._manual_marker = None

    def begin_canonical(self) -> int:
        """Stamp a canonical load and track it until :meth:`end_canonical`."""
        self._canonical = self.begin()
        return self._canonical

    def end_canonical(self, token: int) -> None:
        if self._canonical == token:
            self._canonical = None

    @property
    def canonical_in_flight(self) -> bool:
        """A canonical load has been issued and has not returned yet."""
        return self._canonical is not None

    # =========================================================================
    # Manual-load suppression
    # =========================================================================

    @property
    def manual_in_progress(self) -> bool:
        return self._manual_depth > 0

    @asynccontextmanager
    async def manual(self) -> AsyncIterator[int]:
        """Run a user-triggered load; the canonical path no-ops meanwhile."""
        token = self.begin()
        self._manual_depth += 1
        try:
            yield token
        finally:
            self._manual_depth -= 1

    def mark_manually_loaded(self, stage: int, token: int) -> None:
        """Skip the next canonical trigger for ``stage`` while ``token`` is current."""
        if self.is_current(token):
            self._manual_marker = (int(stage), token)

    def is_marked(self, token: int) -> bool:
        """Whether the manual load stamped with ``token`` committed a stage."""
        return self._manual_marker is not None and self._manual_marker[1] == token

    def should_run(self, stage: int) -> bool:
        """Gate for the canonical load path."""
        if self.manual_in_progress:
            logger.debug(f"⏭️ Skipping stage {int(stage)} load - manual load in progress")
            return False

        marker, self._manual_marker = self._manual_marker, None
        if marker == (int(stage), self._token):
            logger.debug(f"⏭️ Skipping stage {int(stage)} load - already loaded manually")
            return False
        return True

    # =========================================================================
    # Fetch
    # =========================================================================

    async def fetch(
        self,
        generation_id: str,
        stage: int,
        target_id: Optional[str] = None,
        content_fetcher: Optional[ContentFetcher] = None,
    ) -> StageLoadResult:
        """
        Fetch and sanitise one stage. Never raises for backend failures; the
        outcome is described by the returned result's status.
        """
        stage = Stage(stage)
        logger.info(f"📥 Loading stage {int(stage)} data for generation {generation_id}")

        try:
            page = await self._fetch_stage(generation_id, stage)
        except NotFoundError:
            return StageLoadResult(stage, LoadStatus.EMPTY)
        except RequestTimeoutError as e:
            logger.warning(f"Stage {int(stage)} load interrupted: {e}")
            return StageLoadResult(stage, LoadStatus.INTERRUPTED)
        except TransportError as e:
            return StageLoadResult(stage, LoadStatus.FAILED, error=str(e))
        except APIError as e:
            logger.error(f"Error loading stage {int(stage)} data: {e.message}")
            return StageLoadResult(stage, LoadStatus.FAILED, error=e.message)

        valid = strip_invalid(page.recommendations, self.min_id_length)
        result = StageLoadResult(
            stage,
            LoadStatus.LOADED,
            data_maturity=page.data_maturity,
            brand_name=page.brand_name,
        )

        if not valid and page.recommendations:
            logger.error(
                f"Stage {int(stage)} returned {len(page.recommendations)} recommendations without valid ids"
            )
            result.status = LoadStatus.INVALID_IDS
            result.error = INVALID_IDS_MESSAGE
            return result

        result.recommendations = move_to_front(valid, target_id)

        if stage == Stage.REFINE and content_fetcher is not None:
            result.contents = await ContentDraftCache.fetch_for(result.recommendations, content_fetcher)

        return result
