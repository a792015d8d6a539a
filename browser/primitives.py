"""
Step primitives — atomic, timed UI effects the orchestrator chains together.

Each primitive resolves only after its nominal duration and never raises.
Once the owning session is torn down every call becomes a no-op that
returns immediately, so an abandoned choreography goes inert.

Durations are nominal milliseconds scaled by ``StepTimings.time_scale``
(``SIM_TIME_SCALE``); a scale of 0 plays a choreography instantly.
"""

from __future__ import annotations

import asyncio
import os
import random
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from core import observability
from core.logging_core import log_debug

from .models import CursorState, RipplePoint


def _always_alive() -> bool:
    return True


def _ignore(_kind: str) -> None:
    return None


class StepTimings(BaseModel):
    """Nominal durations (ms) of every timed effect in a choreography."""

    time_scale: float = Field(default_factory=lambda: float(os.getenv("SIM_TIME_SCALE", "1.0")))
    move_ms: int = 1000
    click_ripple_ms: int = 400
    click_settle_ms: int = 400
    type_min_ms: int = 30
    type_max_ms: int = 80
    type_tail_ms: int = 500
    page_load_ms: int = 1500
    matching_ms: int = 3000

    def seconds(self, ms: float) -> float:
        return max(0.0, float(ms) * self.time_scale / 1000.0)


class StepPrimitives(BaseModel):
    """Move / click / type / wait against one session's cursor."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    cursor: CursorState = Field(default_factory=CursorState)
    timings: StepTimings = Field(default_factory=StepTimings)
    rng: random.Random = Field(default_factory=random.Random)

    _guard: Callable[[], bool] = PrivateAttr(default_factory=lambda: _always_alive)
    _on_change: Callable[[str], None] = PrivateAttr(default_factory=lambda: _ignore)

    def bind(self, guard: Callable[[], bool], on_change: Callable[[str], None]) -> None:
        self._guard = guard
        self._on_change = on_change

    @property
    def alive(self) -> bool:
        return self._guard()

    async def _sleep(self, ms: float) -> None:
        await asyncio.sleep(self.timings.seconds(ms))

    # ── primitives ───────────────────────────────────────────────────────

    async def move_cursor(self, x: float, y: float, duration_ms: int | None = None) -> None:
        """Show the cursor and retarget it; the renderer animates the glide."""
        if not self.alive:
            return
        duration = self.timings.move_ms if duration_ms is None else duration_ms
        self.cursor.visible = True
        self.cursor.x = min(100.0, max(0.0, float(x)))
        self.cursor.y = min(100.0, max(0.0, float(y)))
        self._on_change("cursor")
        observability.log_event(
            "move_cursor",
            source="primitives",
            meta={"x": self.cursor.x, "y": self.cursor.y, "duration_ms": duration},
        )
        await self._sleep(duration)

    async def click(self) -> None:
        """Ripple at the cursor; the ripple clears on its own timer."""
        if not self.alive:
            return
        ripple = RipplePoint(x=self.cursor.x, y=self.cursor.y)
        self.cursor.ripple = ripple
        self._on_change("cursor")
        observability.log_event("click", source="primitives", meta={"x": ripple.x, "y": ripple.y})

        loop = asyncio.get_running_loop()
        loop.call_later(self.timings.seconds(self.timings.click_ripple_ms), self._clear_ripple, ripple)
        await self._sleep(self.timings.click_settle_ms)

    def _clear_ripple(self, ripple: RipplePoint) -> None:
        # A newer click owns the ripple now.
        if not self.alive or self.cursor.ripple is not ripple:
            return
        self.cursor.ripple = None
        self._on_change("cursor")

    async def type_text(
        self,
        text: str,
        on_char: Callable[[str], None],
        on_clear: Callable[[], None] | None = None,
    ) -> None:
        """Type ``text`` one character at a time into a target.

        ``on_clear`` empties the target first; ``on_char`` then receives the
        accumulated string once per character, in order.
        """
        if not self.alive:
            return
        if on_clear is not None:
            on_clear()
        observability.log_event("type_text", source="primitives", meta={"text": text, "chars": len(text)})

        typed = ""
        for index, char in enumerate(text):
            if not self.alive:
                return
            typed += char
            on_char(typed)
            if index < len(text) - 1:
                await self._sleep(self.rng.randint(self.timings.type_min_ms, self.timings.type_max_ms))
        log_debug(__name__, "typed %d chars", len(typed))
        await self._sleep(self.timings.type_tail_ms)

    async def wait(self, duration_ms: int) -> None:
        if not self.alive:
            return
        observability.log_event("wait", source="primitives", meta={"duration_ms": duration_ms})
        await self._sleep(duration_ms)
