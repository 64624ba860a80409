"""
Content Draft Cache
Generated content bodies per recommendation id, in two representations:
raw drafts for normal brands and parsed guides for cold-start brands.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from ..models.content import Content, parse_content
from ..models.recommendation import Recommendation
from ..models.result import BulkContentSummary

logger = logging.getLogger(__name__)

ContentFetcher = Callable[[str], Awaitable[Optional[Any]]]


class ContentDraftCache:
    def __init__(self):
        self.contents: Dict[str, Any] = {}
        self.guides: Dict[str, Content] = {}
        self._generation_id: Optional[str] = None

    def clear(self) -> None:
        self.contents = {}
        self.guides = {}

    def reset_for(self, generation_id: Optional[str]) -> bool:
        """Drop everything when the active generation changes."""
        if generation_id == self._generation_id:
            return False
        self._generation_id = generation_id
        self.clear()
        return True

    def store(self, recommendation_id: str, raw: Any, cold_start: bool) -> None:
        if cold_start:
            self.guides[recommendation_id] = parse_content(raw)
        else:
            self.contents[recommendation_id] = raw

    def store_many(self, results: Dict[str, Any], cold_start: bool) -> None:
        for recommendation_id, raw in results.items():
            self.store(recommendation_id, raw, cold_start)

    def store_bulk(self, summary: BulkContentSummary) -> int:
        """Keep the content returned by a bulk generation call."""
        stored = 0
        for result in summary.results:
            if result.success and result.content is not None and result.recommendation_id:
                self.contents[result.recommendation_id] = result.content
                stored += 1
        return stored

    @staticmethod
    async def fetch_for(
        recs: Iterable[Recommendation],
        fetcher: ContentFetcher,
    ) -> Dict[str, Any]:
        """
        Fetch the latest content for every content-generated recommendation.

        Requests run concurrently; each one fails on its own without
        affecting the rest.
        """
        targets = [r.id for r in recs if r.id and r.is_content_generated]
        if not targets:
            return {}

        responses = await asyncio.gather(
            *(fetcher(rec_id) for rec_id in targets),
            return_exceptions=True,
        )

        results: Dict[str, Any] = {}
        for rec_id, response in zip(targets, responses):
            if isinstance(response, asyncio.CancelledError):
                raise response
            if isinstance(response, Exception):
                logger.error(f"Error loading content for {rec_id}: {response}")
                continue
            if response:
                results[rec_id] = response
        logger.debug(f"📄 Loaded content for {len(results)}/{len(targets)} recommendations")
        return results
