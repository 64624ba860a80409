"""
Context Attachment Manager
Upload/remove of small context files scoped to one recommendation.

Attachments are tracked in an in-memory strategy-plan cache that is only
updated after the backend confirms the change.
"""

import logging
from typing import Awaitable, Callable, Dict, Optional

from ..config.settings import settings
from ..exceptions import ValidationError
from ..models.strategy_plan import ContextFile, StrategyPlan, UploadFile

logger = logging.getLogger(__name__)

Uploader = Callable[[str, UploadFile], Awaitable[ContextFile]]
Deleter = Callable[[str, str], Awaitable[bool]]


class ContextAttachmentManager:
    """
    Single-flight per recommendation for uploads and per file for removals.
    A request arriving while the same one is in flight is ignored.
    """

    def __init__(
        self,
        uploader: Uploader,
        deleter: Deleter,
        max_file_bytes: Optional[int] = None,
    ):
        self._uploader = uploader
        self._deleter = deleter
        self.max_file_bytes = max_file_bytes or settings.MAX_CONTEXT_FILE_BYTES

        self.plans: Dict[str, StrategyPlan] = {}
        self.uploading_id: Optional[str] = None
        self.removing_file_id: Optional[str] = None
        # Bumped on clear(); confirmations from before a reset are dropped
        self._epoch = 0

    def clear(self) -> None:
        self.plans = {}
        self._epoch += 1
        self.uploading_id = None
        self.removing_file_id = None

    def validate(self, file: UploadFile) -> None:
        if file.size > self.max_file_bytes:
            limit_mb = self.max_file_bytes // (1024 * 1024)
            raise ValidationError(f"File size exceeds {limit_mb}MB limit")

    async def upload(
        self, recommendation_id: str, file: UploadFile, brand_name: str = ""
    ) -> Optional[ContextFile]:
        """
        Upload a context file. Returns None when the request was ignored
        because an upload for the same recommendation is already running.

        Raises ValidationError for oversize files before any network call;
        backend errors propagate to the caller.
        """
        if self.uploading_id == recommendation_id:
            logger.debug(f"Upload already in flight for {recommendation_id}, ignoring")
            return None
        self.validate(file)

        epoch = self._epoch
        self.uploading_id = recommendation_id
        try:
            uploaded = await self._uploader(recommendation_id, file)
        finally:
            if self.uploading_id == recommendation_id:
                self.uploading_id = None

        if epoch != self._epoch:
            return uploaded

        plan = self.plans.get(recommendation_id) or StrategyPlan(
            recommendation_id=recommendation_id,
            brand_name=brand_name,
        )
        plan.context_files = [*plan.context_files, uploaded]
        self.plans[recommendation_id] = plan
        logger.info(f"📎 Context file {uploaded.file_name} attached to {recommendation_id}")
        return uploaded

    async def remove(self, recommendation_id: str, file_id: str) -> bool:
        """Remove a context file. Returns False when the request was ignored."""
        if self.removing_file_id == file_id:
            return False

        epoch = self._epoch
        self.removing_file_id = file_id
        try:
            await self._deleter(recommendation_id, file_id)
        finally:
            if self.removing_file_id == file_id:
                self.removing_file_id = None

        if epoch != self._epoch:
            return True

        plan = self.plans.get(recommendation_id)
        if plan is not None:
            plan.context_files = [f for f in plan.context_files if f.id != file_id]
        return True
