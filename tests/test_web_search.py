import pytest

from agents import web_search
from agents.web_search import WebSearchGrounding, build_sources, build_summary

HITS = [
    {"title": "AI Trends", "href": "https://example.com/ai", "body": "AI is everywhere."},
    {"title": "AI Trends (dup)", "href": "https://example.com/ai", "body": "Duplicate."},
    {"title": "", "href": "https://news.example.org/x", "body": "Agents are next."},
    {"title": "Broken", "href": "", "body": "No link."},
    {"title": "Odd", "href": "not a url", "body": ""},
]


def test_build_sources_dedupes_and_fills_gaps():
    sources = build_sources(HITS)
    assert [s.uri for s in sources] == ["https://example.com/ai", "https://news.example.org/x", "not a url"]
    assert sources[0].hostname == "example.com"
    # Missing title falls back to the URI
    assert sources[1].title == "https://news.example.org/x"
    # Unparseable host falls back to "Web"
    assert sources[2].hostname == "Web"


def test_build_summary_joins_top_snippets():
    assert build_summary(HITS) == "AI is everywhere. Duplicate. Agents are next."
    long = [{"body": "x" * 1000}]
    summary = build_summary(long, max_chars=50)
    assert len(summary) == 50
    assert summary.endswith("...")


@pytest.mark.parametrize("raw,expected", [("3", 3), ("0", 1), ("99", 10), ("abc", 5), (None, 5)])
def test_max_results_is_clamped(raw, expected):
    assert web_search._resolve_max_results(raw) == expected


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("SEARCH_MAX_RESULTS", "7")
    monkeypatch.setenv("SEARCH_REGION", "DE-de")
    grounding = WebSearchGrounding()
    assert grounding.max_results == 7
    assert grounding.region == "de-de"


@pytest.mark.asyncio
async def test_search_builds_outcome(monkeypatch, events):
    monkeypatch.setattr(WebSearchGrounding, "_fetch", lambda self, term: HITS)

    outcome = await WebSearchGrounding().search("  ai trends ")

    assert len(outcome.sources) == 3
    assert outcome.narrative_summary.startswith("AI is everywhere.")
    assert [e["message"] for e in events if e["type"] == "search"] == ["ai trends"]


@pytest.mark.asyncio
async def test_blank_term_skips_the_network(monkeypatch):
    def _boom(self, term):
        raise AssertionError("should not search")

    monkeypatch.setattr(WebSearchGrounding, "_fetch", _boom)
    outcome = await WebSearchGrounding().search("   ")
    assert outcome.sources == []
    assert outcome.narrative_summary == ""


class FakeDDGS:
    calls = []
    failing = set()
    results = {}

    def text(self, query, *, region, safesearch, backend, max_results):
        FakeDDGS.calls.append(backend)
        if backend in FakeDDGS.failing:
            raise RuntimeError(f"{backend} down")
        return FakeDDGS.results.get(backend, [])


@pytest.fixture
def fake_ddgs(monkeypatch):
    FakeDDGS.calls = []
    FakeDDGS.failing = set()
    FakeDDGS.results = {}
    monkeypatch.setattr(web_search, "DDGS", FakeDDGS)
    return FakeDDGS


def test_fetch_falls_through_backends(fake_ddgs):
    fake_ddgs.failing = {"auto"}
    fake_ddgs.results = {"html": HITS[:1]}

    hits = WebSearchGrounding()._fetch("ai")

    assert hits == HITS[:1]
    assert fake_ddgs.calls == ["auto", "html"]


def test_fetch_raises_only_when_every_backend_fails(fake_ddgs):
    fake_ddgs.failing = {"auto", "html", "lite"}
    with pytest.raises(RuntimeError, match="All search backends failed"):
        WebSearchGrounding()._fetch("ai")


def test_fetch_with_no_hits_is_empty(fake_ddgs):
    assert WebSearchGrounding()._fetch("ai") == []
    assert fake_ddgs.calls == ["auto", "html", "lite"]
