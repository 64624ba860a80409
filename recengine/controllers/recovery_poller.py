"""
Recovery Poller
Watches a brand's background data-collection job until it finishes.

When a brand is selected and its persisted "collection in progress" flag is
set, the poller checks onboarding progress immediately and then on a fixed
interval. Once every query is collected and all scoring passes are done it
clears the flag and stops.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..config.settings import settings
from ..models.progress import OnboardingProgress
from ..services.session_store import SessionStore

logger = logging.getLogger(__name__)

ProgressFetcher = Callable[[str], Awaitable[OnboardingProgress]]


class RecoveryPoller:
    def __init__(
        self,
        fetch_progress: ProgressFetcher,
        store: SessionStore,
        interval: Optional[float] = None,
        on_complete: Optional[Callable[[str], None]] = None,
    ):
        self._fetch_progress = fetch_progress
        self._store = store
        self.interval = interval if interval is not None else settings.RECOVERY_POLL_INTERVAL
        self.on_complete = on_complete

        self._task: Optional[asyncio.Task] = None
        self._brand_id: Optional[str] = None

    @property
    def brand_id(self) -> Optional[str]:
        return self._brand_id

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, brand_id: str) -> Optional[asyncio.Task]:
        """
        Begin watching ``brand_id``. Any poll for a previous brand is torn
        down first. Returns None when the brand has no collection in progress.
        """
        self.stop()
        self._brand_id = brand_id
        if not self._store.is_collection_in_progress(brand_id):
            return None

        logger.info(f"🔄 Data collection in progress for brand {brand_id}, polling every {self.interval}s")
        self._task = asyncio.get_running_loop().create_task(self._run(brand_id))
        return self._task

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def check(self, brand_id: str) -> bool:
        """One progress check. Returns True once collection is complete."""
        try:
            progress = await self._fetch_progress(brand_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error checking data collection progress for {brand_id}: {e}")
            return False

        if not progress.is_complete:
            logger.debug(
                f"📊 Collection {progress.queries_completed}/{progress.queries_total} "
                f"for brand {brand_id}"
            )
            return False

        self._store.clear_collection_in_progress(brand_id)
        logger.info(f"✅ Data collection completed for brand {brand_id}")
        if self.on_complete:
            self.on_complete(brand_id)
        return True

    async def _run(self, brand_id: str) -> None:
        while True:
            if await self.check(brand_id):
                return
            await asyncio.sleep(self.interval)
