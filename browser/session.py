"""
Browser session — single owner of one mounted simulator's state.

Holds the conversation log, surface + booking machines, cursor and the
step primitives, and wires them to one liveness guard: the session's
``RuntimeObject`` lifecycle. ``initialize()`` mounts the session,
``shutdown()`` unmounts it, cancels pending background work and turns every
later mutation into a silent no-op.

Renderers subscribe with ``subscribe(listener)`` and receive
``(kind, snapshot)`` on every change.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine
from uuid import uuid4

from pydantic import Field, PrivateAttr

from core.engine import RuntimeObject
from core.logging_core import log_info, log_warning
from core.responses import ConversationTurn

from .booking import BookingFlow
from .models import Surface
from .primitives import StepPrimitives, StepTimings
from .surface import BrowserSurface

GREETING = "I'm your agentic companion. I can browse these supported apps for you. Where should we go?"

Listener = Callable[[str, dict], None]


class ConversationLog:
    """Append-only ordered list of turns."""

    def __init__(self) -> None:
        self._turns: list[ConversationTurn] = []

    def append(self, role: str, text: str) -> ConversationTurn:
        turn = ConversationTurn(role=role, text=text)
        self._turns.append(turn)
        return turn

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def to_list(self) -> list[dict]:
        return [turn.model_dump() for turn in self._turns]


class BrowserSession(RuntimeObject):
    """One simulated browser + chat, as seen by one hosting view."""

    name: str = "browser_session"
    session_id: str = Field(default_factory=lambda: f"ses_{uuid4().hex[:12]}")
    timings: StepTimings = Field(default_factory=StepTimings)
    seed: int | None = None
    greet: bool = True

    is_processing: bool = False

    _conversation: ConversationLog = PrivateAttr(default_factory=ConversationLog)
    _surface: BrowserSurface = PrivateAttr(default_factory=BrowserSurface)
    _booking: BookingFlow = PrivateAttr(default_factory=BookingFlow)
    _primitives: StepPrimitives = PrivateAttr(default=None)
    _rng: random.Random = PrivateAttr(default=None)
    _listeners: list[Listener] = PrivateAttr(default_factory=list)
    _tasks: set[asyncio.Task] = PrivateAttr(default_factory=set)
    _created_at: str = PrivateAttr(default="")
    _in_flight: int = PrivateAttr(default=0)

    def model_post_init(self, __context: Any) -> None:
        self._created_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self._rng = random.Random(self.seed)
        self._primitives = StepPrimitives(timings=self.timings, rng=self._rng)

        guard = lambda: self.is_alive  # noqa: E731
        self._booking.bind(guard, lambda: self._surface.current is Surface.UBER, self._notify)
        self._surface.bind(guard, self._notify, self._booking)
        self._primitives.bind(guard, self._notify)

        if self.greet:
            self._conversation.append("assistant", GREETING)

    # ── accessors ────────────────────────────────────────────────────────

    @property
    def surface(self) -> BrowserSurface:
        return self._surface

    @property
    def booking(self) -> BookingFlow:
        return self._booking

    @property
    def primitives(self) -> StepPrimitives:
        return self._primitives

    @property
    def rng(self) -> random.Random:
        return self._rng

    @property
    def conversation(self) -> ConversationLog:
        return self._conversation

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        return self._conversation.turns

    # ── lifecycle ────────────────────────────────────────────────────────

    def _initialize_impl(self) -> None:
        log_info(__name__, "Session %s mounted", self.session_id)

    async def _shutdown_impl(self) -> None:
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
        self._listeners.clear()
        log_info(__name__, "Session %s unmounted (%d pending tasks cancelled)", self.session_id, len(pending))

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task | None:
        """Run background work owned by this session; cancelled on shutdown."""
        if not self.is_alive:
            coro.close()
            return None
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending_tasks(self) -> tuple[asyncio.Task, ...]:
        return tuple(task for task in self._tasks if not task.done())

    # ── conversation ─────────────────────────────────────────────────────

    def add_turn(self, role: str, text: str) -> ConversationTurn | None:
        if not self.is_alive:
            return None
        turn = self._conversation.append(role, text)
        self._notify("conversation")
        return turn

    def export_history(self) -> dict:
        """Archive-ready record of this session's conversation."""
        return {
            "session_id": self.session_id,
            "created_at": self._created_at,
            "exported_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "turns": self._conversation.to_list(),
        }

    # ── change fan-out ───────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, kind: str) -> None:
        if not self._listeners:
            return
        snapshot = self.get_full_state()
        for listener in list(self._listeners):
            try:
                listener(kind, snapshot)
            except Exception as exc:
                log_warning(__name__, "Session listener failed: %s", exc)

    def begin_processing(self) -> None:
        self._in_flight += 1
        self._set_processing(True)

    def end_processing(self) -> None:
        self._in_flight = max(0, self._in_flight - 1)
        if self._in_flight == 0:
            self._set_processing(False)

    def _set_processing(self, value: bool) -> None:
        if not self.is_alive or self.is_processing == value:
            return
        self.is_processing = value
        self._notify("status")

    # ── snapshot ─────────────────────────────────────────────────────────

    def get_full_state(self) -> dict:
        return {
            "session_id": self.session_id,
            "surface": self._surface.state.to_dict(),
            "booking": self._booking.state.to_dict(),
            "cursor": self._primitives.cursor.to_dict(),
            "messages": self._conversation.to_list(),
            "is_processing": self.is_processing,
        }
