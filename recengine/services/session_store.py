"""Per-brand session state persisted to a small JSON file.

Holds what a browser would keep in local/session storage: the last stage a
user viewed for each brand and the "background collection in progress" flag
the recovery poller watches.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..config.settings import settings

logger = logging.getLogger(__name__)

STAGE_KEY = "recommendations-v3-step-{brand_id}"
COLLECTION_KEY = "data_collection_in_progress_{brand_id}"


class SessionStore:
    """JSON-file key/value store. Unreadable files behave as empty."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path or settings.STATE_FILE_PATH)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Session state unreadable ({self.path}): {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Session state not saved ({self.path}): {e}")

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    # -- collection-in-progress flag ---------------------------------------

    def is_collection_in_progress(self, brand_id: str) -> bool:
        return self.get(COLLECTION_KEY.format(brand_id=brand_id)) is True

    def mark_collection_in_progress(self, brand_id: str) -> None:
        self.set(COLLECTION_KEY.format(brand_id=brand_id), True)

    def clear_collection_in_progress(self, brand_id: str) -> None:
        self.delete(COLLECTION_KEY.format(brand_id=brand_id))

    # -- last viewed stage --------------------------------------------------

    def load_stage(self, brand_id: Optional[str]) -> int:
        """Last persisted stage for a brand, 1 when absent or out of range."""
        if not brand_id:
            return 1
        value = self.get(STAGE_KEY.format(brand_id=brand_id))
        try:
            stage = int(value)
        except (TypeError, ValueError):
            return 1
        return stage if 1 <= stage <= 4 else 1

    def save_stage(self, brand_id: Optional[str], stage: int) -> None:
        if not brand_id or not 1 <= int(stage) <= 4:
            return
        self.set(STAGE_KEY.format(brand_id=brand_id), int(stage))
