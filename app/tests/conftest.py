import os
import sys
import asyncio
import pytest
import pytest_asyncio
import httpx
from pathlib import Path

# Fix Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

# Configure before the app reads its settings
os.environ.setdefault("HOTLINE_DB_PATH", ":memory:")
os.environ.setdefault("INTERNAL_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPERVISOR_USER_IDS", "supervisor-1")

from app.main import app
from app.database.init_db import get_session, create_engine_for_url, create_session_factory
from app.dependencies import get_inference_client, get_analysis_runner
from app.inference.schemas import ScoringResult, AnalysisResult
from app.models.base import Base


class FakeInference:
    """In-process stand-in for the inference client.

    Set ``scoring_result`` / ``analysis_result`` to control what comes back,
    ``*_error`` to raise instead, and ``score_delay`` to widen race windows.
    """

    def __init__(self):
        self.scoring_result = ScoringResult(
            score=82,
            grade="B",
            strengths=["Warm opening", "Asked directly about safety"],
            areas_to_improve=["Summarize the caller's plan before closing"],
            narrative="The counselor built rapport quickly and assessed risk.",
            flags=[],
        )
        self.analysis_result = AnalysisResult(findings=[], consistency_score=None, summary="No issues found.")
        self.score_error = None
        self.classify_error = None
        self.score_delay = 0.0
        self.classify_delay = 0.0
        self.score_calls = []
        self.classify_calls = []

    async def score_transcript(self, turns, scenario=None):
        self.score_calls.append((list(turns), scenario))
        if self.score_delay:
            await asyncio.sleep(self.score_delay)
        if self.score_error is not None:
            raise self.score_error
        return self.scoring_result.model_copy(deep=True)

    async def classify_transcript(self, turns, scenario=None):
        self.classify_calls.append((list(turns), scenario))
        if self.classify_delay:
            await asyncio.sleep(self.classify_delay)
        if self.classify_error is not None:
            raise self.classify_error
        return self.analysis_result.model_copy(deep=True)


class RecordingRunner:
    """Records scheduled analysis runs instead of starting them."""

    def __init__(self):
        self.scheduled = []

    def schedule(self, background_tasks, session_id):
        self.scheduled.append(session_id)


# File-backed database per test; concurrent writers need real SQLite locking
@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'hotline_test.db'}")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    """A session for arranging and checking state directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def inference():
    return FakeInference()


@pytest.fixture
def analysis_runner():
    return RecordingRunner()


@pytest_asyncio.fixture
async def client(session_factory, inference, analysis_runner):
    """httpx client bound to the app with the test database and fakes wired in."""

    async def _override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[get_inference_client] = lambda: inference
    app.dependency_overrides[get_analysis_runner] = lambda: analysis_runner

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    # Clean up
    app.dependency_overrides.clear()
