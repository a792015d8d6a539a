"""
Application state — the registry of live browser sessions.

One ``BrowserSession`` (plus its ``ActionOrchestrator``) per WebSocket
connection. The classifier and search collaborators are shared by every
session and built on first use, so tests can install fakes before connecting.

Import the global singleton:
    from app.state import session_registry
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from agents.intent_classifier import IntentClassifier
from agents.orchestrator import ActionOrchestrator
from agents.web_search import WebSearchGrounding
from browser.session import BrowserSession
from core.logging_core import log_info


class SessionHandle(BaseModel):
    """A mounted session and the orchestrator that drives it."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session: BrowserSession
    orchestrator: ActionOrchestrator

    @property
    def session_id(self) -> str:
        return self.session.session_id


class SessionRegistry(BaseModel):
    """Creates, tracks and tears down per-connection sessions."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    classifier: Any = None
    search_provider: Any = None
    session_options: dict[str, Any] = Field(default_factory=dict)

    _handles: dict[str, SessionHandle] = PrivateAttr(default_factory=dict)
    _history: list[dict] = PrivateAttr(default_factory=list)

    def configure(self, *, classifier: Any = None, search_provider: Any = None, **session_options: Any) -> None:
        """Install collaborators (and ``BrowserSession`` options) for new sessions."""
        if classifier is not None:
            self.classifier = classifier
        if search_provider is not None:
            self.search_provider = search_provider
        self.session_options.update(session_options)

    def _ensure_collaborators(self) -> None:
        if self.classifier is None:
            self.classifier = IntentClassifier()
        if self.search_provider is None:
            self.search_provider = WebSearchGrounding()

    # ── lifecycle ────────────────────────────────────────────────────────

    async def open(self) -> SessionHandle:
        self._ensure_collaborators()
        session = BrowserSession(**self.session_options)
        await session.initialize()
        orchestrator = ActionOrchestrator(
            session=session,
            classifier=self.classifier,
            search_provider=self.search_provider,
        )
        handle = SessionHandle(session=session, orchestrator=orchestrator)
        self._handles[session.session_id] = handle
        log_info(__name__, "Session opened: %s (%d live)", session.session_id, len(self._handles))
        return handle

    async def close(self, session_id: str) -> None:
        handle = self._handles.pop(session_id, None)
        if handle is None:
            return
        await handle.session.shutdown()
        self._history.append(handle.session.export_history())
        if len(self._history) > 50:
            self._history = self._history[-50:]
        log_info(__name__, "Session closed: %s (%d live)", session_id, len(self._handles))

    async def close_all(self) -> None:
        for session_id in list(self._handles):
            await self.close(session_id)

    # ── lookups ──────────────────────────────────────────────────────────

    @property
    def live_count(self) -> int:
        return len(self._handles)

    def history(self) -> list[dict]:
        """Exported conversations of closed sessions, oldest first."""
        return list(self._history)


# ── global singleton ────────────────────────────────────────────────────────

session_registry = SessionRegistry()
