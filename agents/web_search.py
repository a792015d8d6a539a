"""
Web search grounding — DuckDuckGo results for the simulated Google page.

``WebSearchGrounding.search(term)`` returns a ``SearchOutcome`` with
deduplicated sources and a short narrative summary built from the top
snippets. Failures propagate; the orchestrator decides how to absorb them.
"""

from __future__ import annotations

import asyncio
import os
import warnings
from typing import Any
from urllib.parse import urlparse

from ddgs import DDGS
from pydantic import BaseModel, Field

from browser.models import SearchOutcome, Source
from core import observability
from core.logging_core import log_info, log_warning

warnings.filterwarnings(
    "ignore",
    message=r"This package .* has been renamed to `ddgs`!.*",
    category=RuntimeWarning,
)

_BACKENDS = ("auto", "html", "lite")


def _resolve_max_results(raw: Any, default: int = 5) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = default
    return min(max(1, value), 10)


def _hostname(uri: str) -> str:
    try:
        host = urlparse(uri).hostname
    except ValueError:
        host = None
    return host or "Web"


def build_sources(hits: list[dict[str, Any]]) -> list[Source]:
    """Map raw hits to ``Source`` objects, first occurrence of each URI wins."""
    sources: list[Source] = []
    seen: set[str] = set()
    for hit in hits:
        uri = str(hit.get("href") or hit.get("url") or "").strip()
        if not uri or uri in seen:
            continue
        seen.add(uri)
        title = str(hit.get("title") or "").strip() or uri
        sources.append(Source(title=title, uri=uri, hostname=_hostname(uri)))
    return sources


def build_summary(hits: list[dict[str, Any]], *, limit: int = 3, max_chars: int = 600) -> str:
    snippets = [str(hit.get("body") or hit.get("snippet") or "").strip() for hit in hits[:limit]]
    summary = " ".join(s for s in snippets if s)
    if len(summary) > max_chars:
        summary = summary[: max_chars - 3].rstrip() + "..."
    return summary


class WebSearchGrounding(BaseModel):
    """Search collaborator backed by the ``ddgs`` metasearch client."""

    max_results: int = Field(default_factory=lambda: _resolve_max_results(os.getenv("SEARCH_MAX_RESULTS", "5")))
    region: str = Field(default_factory=lambda: os.getenv("SEARCH_REGION", "us-en").strip().lower() or "us-en")
    safesearch: str = "moderate"

    def _fetch(self, term: str) -> list[dict[str, Any]]:
        backend_errors: list[str] = []
        for backend in _BACKENDS:
            try:
                with warnings.catch_warnings():
                    warnings.simplefilter("ignore")
                    hits = DDGS().text(
                        term,
                        region=self.region,
                        safesearch=self.safesearch,
                        backend=backend,
                        max_results=self.max_results,
                    )
                if hits:
                    return list(hits)
            except Exception as exc:
                backend_errors.append(f"{backend}: {exc}")

        if len(backend_errors) == len(_BACKENDS):
            raise RuntimeError(f"All search backends failed for {term!r}: {' | '.join(backend_errors[:2])}")
        return []

    async def search(self, term: str) -> SearchOutcome:
        term = term.strip()
        if not term:
            return SearchOutcome()

        hits = await asyncio.to_thread(self._fetch, term)
        outcome = SearchOutcome(narrative_summary=build_summary(hits), sources=build_sources(hits))
        if not outcome.sources:
            log_warning(__name__, "No results for %r", term)
        log_info(__name__, "Search %r -> %d sources", term, len(outcome.sources))
        observability.log_event("search", message=term, source="web_search", meta={"sources": len(outcome.sources)})
        return outcome
