"""
Browser surface — which page the simulated viewport renders.

    home | search_results | iframe | uber

Exactly one is active. Transitions are explicit method calls; there is no
back-stack. Auxiliary fields are cleared when the state that owns them is
left, so ``search_results`` and ``embed_url`` are only ever populated in their
own state.
"""

from __future__ import annotations

from typing import Callable

from pydantic import BaseModel, Field, PrivateAttr

from core import observability

from .booking import BookingFlow
from .errors import BrowserSimError, InvalidTransitionError
from .models import BrowserSurfaceState, SearchOutcome, Source, Surface
from .sites import HOME_ADDRESS, UBER_ADDRESS, search_address


def _always_true() -> bool:
    return True


def _ignore(_kind: str) -> None:
    return None


class BrowserSurface(BaseModel):
    """Owns ``BrowserSurfaceState``; the booking flow is reset on uber re-entry."""

    state: BrowserSurfaceState = Field(default_factory=BrowserSurfaceState)

    _guard: Callable[[], bool] = PrivateAttr(default_factory=lambda: _always_true)
    _on_change: Callable[[str], None] = PrivateAttr(default_factory=lambda: _ignore)
    _booking: BookingFlow | None = PrivateAttr(default=None)

    def bind(
        self,
        guard: Callable[[], bool],
        on_change: Callable[[str], None],
        booking: BookingFlow,
    ) -> None:
        self._guard = guard
        self._on_change = on_change
        self._booking = booking

    @property
    def current(self) -> Surface:
        return self.state.surface

    def _enter(self, target: Surface, **fields: object) -> bool:
        if not self._guard():
            return False
        previous = self.state.surface
        if target is not Surface.SEARCH_RESULTS:
            self.state.search_results = []
            self.state.search_summary = ""
        if target is not Surface.IFRAME:
            self.state.embed_url = ""
        for name, value in fields.items():
            setattr(self.state, name, value)
        self.state.surface = target
        observability.log_event(
            "transition",
            source="surface",
            meta={"from": previous.value, "to": target.value, "address": self.state.address_bar_text},
        )
        self._on_change("surface")
        return True

    # ── buffers ──────────────────────────────────────────────────────────

    def type_search_query(self, text: str) -> bool:
        """Typing target for the simulated search field."""
        if not self._guard():
            return False
        self.state.search_query = text
        self._on_change("surface")
        return True

    # ── transitions ──────────────────────────────────────────────────────

    def go_home(self, address: str = HOME_ADDRESS) -> bool:
        return self._enter(Surface.HOME, address_bar_text=address)

    def reset_home(self) -> bool:
        """Chrome reset control: force ``* → home`` with an empty search field."""
        return self._enter(Surface.HOME, address_bar_text=HOME_ADDRESS, search_query="")

    def show_search_results(self, term: str, outcome: SearchOutcome) -> bool:
        return self._enter(
            Surface.SEARCH_RESULTS,
            address_bar_text=search_address(term),
            search_query=term,
            search_results=list(outcome.sources),
            search_summary=outcome.narrative_summary,
        )

    def open_embed(self, url: str, address: str | None = None) -> bool:
        return self._enter(Surface.IFRAME, address_bar_text=address or url, embed_url=url)

    def open_result(self, index: int) -> Source:
        """User clicked a rendered result: ``search_results → iframe``."""
        if self.state.surface is not Surface.SEARCH_RESULTS:
            raise InvalidTransitionError("surface", self.state.surface.value, Surface.IFRAME.value)
        results = self.state.search_results
        if not 0 <= index < len(results):
            raise BrowserSimError(f"No search result at index {index}")
        source = results[index]
        self.open_embed(source.uri)
        return source

    def enter_uber(self) -> bool:
        """``* → uber``. Returns True only when entered from another surface.

        Entering from a different surface always restarts the booking flow.
        """
        if self.state.surface is Surface.UBER or not self._guard():
            return False
        entered = self._enter(Surface.UBER, address_bar_text=UBER_ADDRESS)
        if entered and self._booking is not None:
            self._booking.reset()
        return entered
