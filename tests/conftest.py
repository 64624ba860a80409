"""
Shared fixtures: a scriptable in-memory backend and a throwaway session store.
"""

import pytest
import pytest_asyncio

from factories import FakeAPI
from recengine.controllers.workflow_engine import WorkflowEngine
from recengine.services.session_store import SessionStore


@pytest.fixture
def fake_api():
    return FakeAPI()


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "state.json")


@pytest_asyncio.fixture
async def engine(fake_api, store):
    eng = WorkflowEngine(fake_api, store, min_id_length=11, poll_interval=0.01)
    yield eng
    await eng.close()
