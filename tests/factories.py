"""
Test factories: recommendation builders and a scriptable in-memory backend.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from recengine.exceptions import NotFoundError
from recengine.models import (
    BulkContentSummary,
    ContextFile,
    DataMaturity,
    Generation,
    OnboardingProgress,
    Recommendation,
    ReviewStatus,
    Stage,
    StagePage,
)

_counter = {"n": 0}


def rec_id(n: int) -> str:
    """Server-style id (longer than 10 characters)."""
    return f"rec-{n:07d}"


def make_rec(id: Optional[str] = None, **changes: Any) -> Recommendation:
    if id is None:
        _counter["n"] += 1
        id = rec_id(_counter["n"])
    fields = {"action": f"Action for {id}"}
    fields.update(changes)
    return Recommendation(id=id, **fields)


def approved(id: str, **changes: Any) -> Recommendation:
    return make_rec(id, review_status=ReviewStatus.APPROVED, is_approved=True, **changes)


def with_content(id: str, **changes: Any) -> Recommendation:
    return approved(id, is_content_generated=True, **changes)


class FakeAPI:
    """
    Stand-in for APIClient.

    Every call is recorded in ``calls``. ``errors[name]`` makes the call
    raise; ``hold(name)`` makes it wait until ``release(name)``.
    """

    def __init__(self):
        self.calls: List[Tuple[str, tuple]] = []
        self.errors: Dict[str, Exception] = {}
        self._gates: Dict[str, asyncio.Event] = {}

        self.latest: Dict[str, Generation] = {}
        self.generations: Dict[str, Generation] = {}
        self.stages: Dict[Tuple[str, int], StagePage] = {}
        self.kpis: Dict[str, list] = {}
        self.contents: Dict[str, Any] = {}
        # Bodies returned by generate_content / generate_guide
        self.generated: Dict[str, Any] = {}
        self.progress: Dict[str, List[OnboardingProgress]] = {}
        self.generate_result: Optional[Generation] = None
        self.bulk_result = BulkContentSummary()
        self._file_seq = 0

    # -- scripting helpers ----------------------------------------------------

    def hold(self, name: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[name] = gate
        return gate

    def release(self, name: str) -> None:
        gate = self._gates.pop(name, None)
        if gate is not None:
            gate.set()

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    def set_stage(self, generation_id: str, stage: int, recs, maturity=None, brand_name=None):
        self.stages[(generation_id, int(stage))] = StagePage(
            Stage(stage), list(recs), data_maturity=maturity, brand_name=brand_name
        )

    async def _enter(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        gate = self._gates.get(name)
        if gate is not None:
            await gate.wait()
        error = self.errors.get(name)
        if error is not None:
            raise error

    # -- APIClient surface ------------------------------------------------------

    async def generate(self, brand_id):
        await self._enter("generate", brand_id)
        return self.generate_result

    async def get_latest_generation(self, brand_id):
        await self._enter("get_latest_generation", brand_id)
        return self.latest.get(brand_id)

    async def get_generation(self, generation_id):
        await self._enter("get_generation", generation_id)
        return self.generations.get(generation_id) or Generation(generation_id)

    async def get_stage(self, generation_id, stage):
        await self._enter("get_stage", generation_id, int(stage))
        page = self.stages.get((generation_id, int(stage)))
        if page is None:
            raise NotFoundError("No recommendations found", status=404)
        return page

    async def get_kpis(self, generation_id):
        await self._enter("get_kpis", generation_id)
        return self.kpis.get(generation_id, [])

    async def change_status(self, recommendation_id, status):
        await self._enter("change_status", recommendation_id, status)
        return True

    async def complete_recommendation(self, recommendation_id):
        await self._enter("complete_recommendation", recommendation_id)
        return True

    async def generate_content_bulk(self, generation_id):
        await self._enter("generate_content_bulk", generation_id)
        return self.bulk_result

    async def generate_content(self, recommendation_id):
        await self._enter("generate_content", recommendation_id)
        return self.generated.get(recommendation_id)

    async def generate_guide(self, recommendation_id):
        await self._enter("generate_guide", recommendation_id)
        return self.generated.get(recommendation_id)

    async def get_latest_content(self, recommendation_id):
        await self._enter("get_latest_content", recommendation_id)
        value = self.contents.get(recommendation_id)
        if isinstance(value, Exception):
            raise value
        return value

    async def upload_context_file(self, recommendation_id, file):
        await self._enter("upload_context_file", recommendation_id, file)
        self._file_seq += 1
        return ContextFile(id=f"file-{self._file_seq}", file_name=file.file_name, size=file.size)

    async def delete_context_file(self, recommendation_id, file_id):
        await self._enter("delete_context_file", recommendation_id, file_id)
        return True

    async def get_onboarding_progress(self, brand_id):
        await self._enter("get_onboarding_progress", brand_id)
        queue = self.progress.get(brand_id) or [OnboardingProgress()]
        if len(queue) > 1:
            return queue.pop(0)
        return queue[0]


def generation(generation_id: str, maturity: DataMaturity = DataMaturity.NORMAL, **kwargs) -> Generation:
    return Generation(generation_id=generation_id, data_maturity=maturity, **kwargs)
