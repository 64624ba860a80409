"""
Recommendations API Client
Async HTTP client for the recommendations backend.

Every endpoint answers with a ``{success, data, error}`` envelope. The client
unwraps it and raises from :mod:`recengine.exceptions` on failure; callers
decide how each failure is surfaced.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ..config.settings import settings
from ..exceptions import (
    APIError,
    NotFoundError,
    RequestTimeoutError,
    TransportError,
    is_not_found_message,
)
from ..models.progress import OnboardingProgress
from ..models.recommendation import KPI, Generation, ReviewStatus, StagePage
from ..models.result import BulkContentSummary
from ..models.strategy_plan import ContextFile, UploadFile

logger = logging.getLogger(__name__)


class APIClient:
    """
    HTTP client for backend API calls.

    Handles authentication, envelope unwrapping and per-call timeouts.
    ``generate`` and ``generate_content_bulk`` use their own, longer timeouts
    and raise :class:`RequestTimeoutError` when aborted.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        generate_timeout: Optional[float] = None,
        content_bulk_timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self.generate_timeout = generate_timeout or settings.GENERATE_TIMEOUT
        self.content_bulk_timeout = content_bulk_timeout or settings.CONTENT_BULK_TIMEOUT

        self._token: Optional[str] = token or settings.API_TOKEN
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def token(self) -> Optional[str]:
        """Get current authentication token."""
        return self._token

    def set_auth(self, token: str) -> None:
        """Set authentication credentials."""
        self._token = token

    def clear_auth(self) -> None:
        """Clear authentication credentials."""
        self._token = None

    def _get_headers(self) -> Dict[str, str]:
        """Get headers with authentication if available."""
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        data: Any = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a request and return the envelope's ``data`` member."""
        url = f"{self.base_url}{endpoint}"
        client_timeout = aiohttp.ClientTimeout(total=timeout or self.timeout)

        try:
            async with self._get_session().request(
                method,
                url,
                json=json,
                data=data,
                headers=self._get_headers(),
                timeout=client_timeout,
            ) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
                return self._unwrap(response.status, body)
        except asyncio.TimeoutError as e:
            logger.warning(f"⏱️ {method} {endpoint} timed out after {client_timeout.total}s")
            raise RequestTimeoutError(
                f"Request timed out after {client_timeout.total:.0f}s"
            ) from e
        except aiohttp.ClientError as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            raise TransportError(f"Network error: {e}") from e

    @staticmethod
    def _unwrap(status: int, body: Any) -> Any:
        envelope = body if isinstance(body, dict) else {}
        error = envelope.get("error") or envelope.get("message")

        if status == 404:
            raise NotFoundError(error or "Resource not found", status=status)
        if status >= 400:
            message = error or f"Request failed with status {status}"
            if is_not_found_message(message):
                raise NotFoundError(message, status=status)
            raise APIError(message, status=status)
        if envelope.get("success") is False:
            message = error or "Request failed"
            if is_not_found_message(message):
                raise NotFoundError(message, status=status)
            raise APIError(message, status=status)

        return envelope.get("data") if "data" in envelope else body

    # =========================================================================
    # Generations
    # =========================================================================

    async def generate(self, brand_id: str) -> Generation:
        """Generate a new recommendation set for a brand (long-running)."""
        data = await self._request(
            "POST",
            "/recommendations-v3/generate",
            json={"brandId": brand_id},
            timeout=self.generate_timeout,
        )
        generation = Generation.from_dict(data or {})
        if not generation.generation_id:
            raise APIError("Generate response carried no generation id")
        return generation

    async def get_latest_generation(self, brand_id: str) -> Optional[Generation]:
        """Latest generation for a brand, or None if the brand has none yet."""
        try:
            data = await self._request("GET", f"/recommendations-v3/brand/{brand_id}/latest")
        except NotFoundError:
            return None
        if not data or not data.get("generationId"):
            return None
        return Generation.from_dict(data)

    async def get_generation(self, generation_id: str) -> Generation:
        """Full generation with every recommendation (used for step counts)."""
        data = await self._request("GET", f"/recommendations-v3/{generation_id}")
        return Generation.from_dict(data or {})

    async def get_stage(self, generation_id: str, stage: int) -> StagePage:
        data = await self._request(
            "GET", f"/recommendations-v3/{generation_id}/steps/{int(stage)}"
        )
        return StagePage.from_dict(int(stage), data or {})

    async def get_kpis(self, generation_id: str) -> List[KPI]:
        data = await self._request("GET", f"/recommendations-v3/{generation_id}/kpis")
        return [KPI.from_dict(k) for k in ((data or {}).get("kpis") or [])]

    # =========================================================================
    # Recommendation actions
    # =========================================================================

    async def change_status(self, recommendation_id: str, status: ReviewStatus) -> bool:
        await self._request(
            "PATCH",
            f"/recommendations-v3/{recommendation_id}/status",
            json={"status": ReviewStatus(status).value},
        )
        return True

    async def complete_recommendation(self, recommendation_id: str) -> bool:
        await self._request("PATCH", f"/recommendations-v3/{recommendation_id}/complete")
        return True

    async def generate_content_bulk(self, generation_id: str) -> BulkContentSummary:
        """Generate content for every approved recommendation (long-running)."""
        data = await self._request(
            "POST",
            "/recommendations-v3/generate-content-bulk",
            json={"generationId": generation_id},
            timeout=self.content_bulk_timeout,
        )
        return BulkContentSummary.from_dict(data or {})

    async def generate_content(self, recommendation_id: str) -> Any:
        """Generate content for one recommendation; returns the stored content record."""
        data = await self._request(
            "POST",
            f"/recommendations-v3/{recommendation_id}/content",
            json={},
            timeout=self.generate_timeout,
        )
        return (data or {}).get("content")

    async def generate_guide(self, recommendation_id: str) -> Any:
        """Cold-start brands get an implementation guide instead of content."""
        data = await self._request(
            "POST",
            f"/recommendations-v3/{recommendation_id}/guide",
            json={},
            timeout=self.generate_timeout,
        )
        return (data or {}).get("content")

    async def get_latest_content(self, recommendation_id: str) -> Optional[Any]:
        """Latest generated content record for a recommendation, if any."""
        try:
            data = await self._request("GET", f"/recommendations-v3/{recommendation_id}/content")
        except NotFoundError:
            return None
        if not data:
            return None
        return data.get("content")

    # =========================================================================
    # Context files
    # =========================================================================

    async def upload_context_file(self, recommendation_id: str, file: UploadFile) -> ContextFile:
        form = aiohttp.FormData()
        form.add_field(
            "file",
            file.content,
            filename=file.file_name,
            content_type=file.mime_type,
        )
        data = await self._request(
            "POST",
            f"/recommendations-v3/{recommendation_id}/context-files",
            data=form,
        )
        if not data or not data.get("file"):
            raise APIError("Upload response carried no file")
        return ContextFile.from_dict(data["file"])

    async def delete_context_file(self, recommendation_id: str, file_id: str) -> bool:
        await self._request(
            "DELETE",
            f"/recommendations-v3/{recommendation_id}/context-files/{file_id}",
        )
        return True

    # =========================================================================
    # Onboarding
    # =========================================================================

    async def get_onboarding_progress(self, brand_id: str) -> OnboardingProgress:
        data = await self._request("GET", f"/brands/{brand_id}/onboarding-progress")
        return OnboardingProgress.from_dict(data or {})


__all__ = ["APIClient"]
