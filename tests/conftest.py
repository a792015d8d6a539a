import pytest
import pytest_asyncio

from agents.actions import UnknownAction
from browser.models import SearchOutcome, Source
from browser.primitives import StepTimings
from browser.session import BrowserSession
from core import observability


class ScriptedClassifier:
    """Hands out queued results in order; exceptions in the queue are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    async def classify(self, command, context):
        self.calls.append((command, context))
        result = self.results.pop(0) if self.results else UnknownAction(narration="")
        if isinstance(result, BaseException):
            raise result
        return result


class StaticSearch:
    def __init__(self, outcome=None, error=None):
        self.outcome = outcome or SearchOutcome(
            narrative_summary="AI keeps trending.",
            sources=[
                Source(title="AI Trends 2026", uri="https://example.com/ai", hostname="example.com"),
                Source(title="More trends", uri="https://news.example.org/trends", hostname="news.example.org"),
            ],
        )
        self.error = error
        self.terms = []

    async def search(self, term):
        self.terms.append(term)
        if self.error is not None:
            raise self.error
        return self.outcome


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("OBSERVABILITY_LOG_PATH", str(tmp_path / "observability.jsonl"))
    monkeypatch.setenv("OBSERVABILITY_ENABLED", "true")
    monkeypatch.setenv("SIM_TIME_SCALE", "0")
    monkeypatch.delenv("CLASSIFIER_TIMEOUT_S", raising=False)


@pytest.fixture
def events():
    """Collect every observability event emitted during the test."""
    captured = []
    sink = captured.append
    observability.register_sink(sink)
    yield captured
    observability.unregister_sink(sink)


@pytest_asyncio.fixture
async def session():
    s = BrowserSession(seed=7, timings=StepTimings(time_scale=0))
    await s.initialize()
    yield s
    await s.shutdown()


@pytest.fixture
def classifier_factory():
    return ScriptedClassifier


@pytest.fixture
def search_factory():
    return StaticSearch
