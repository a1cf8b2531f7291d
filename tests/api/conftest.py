"""API test fixtures - app wired to an in-memory JournalClient."""

import httpx
import pytest

from echo_journal.main import app
from tests.services.fakes import ScriptedTransport, build_harness, envelope_response

PROMPTS = ["What stood out?", "How did it feel?", "What comes next?"]


class FakeDatabase:
    def __init__(self, healthy: bool = True):
        self.healthy = healthy

    async def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
async def harness():
    harness = build_harness(transport=ScriptedTransport([envelope_response(PROMPTS)]))
    harness.client.start()
    await harness.client.auth.wait_until_ready()
    yield harness
    harness.client.close()


@pytest.fixture
async def api_client(harness):
    app.state.journal = harness.client
    app.state.db = FakeDatabase()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    del app.state.journal
    del app.state.db
