"""
Booking flow — the ride-request state machine nested inside the ``uber`` surface.

    home → selection → finding → confirmed

Strictly forward and one-shot. ``reset()`` is the only way back to ``home``
and is invoked by the surface machine whenever it re-enters ``uber``; every
reset bumps ``generation`` so work scheduled against an older booking can
tell it has been discarded.
"""

from __future__ import annotations

import math
import random
from typing import Callable

from pydantic import BaseModel, Field, PrivateAttr

from core import observability

from .errors import InvalidTransitionError
from .models import DEFAULT_PICKUP, BookingState, BookingStep

PRICE_BAND = (14.0, 19.0)
DEFAULT_RIDE = "UberX"


def _always_true() -> bool:
    return True


def _ignore(_kind: str) -> None:
    return None


def quote_price(rng: random.Random, band: tuple[float, float] = PRICE_BAND) -> float:
    """Pseudo-random fare in ``[low, high)``, truncated to cents."""
    low, high = band
    raw = low + rng.random() * (high - low)
    return min(math.floor(raw * 100) / 100, math.nextafter(high, low))


class BookingFlow(BaseModel):
    """Owns ``BookingState``; all writes go through the transition methods."""

    state: BookingState = Field(default_factory=BookingState)
    generation: int = 0

    _guard: Callable[[], bool] = PrivateAttr(default_factory=lambda: _always_true)
    _active: Callable[[], bool] = PrivateAttr(default_factory=lambda: _always_true)
    _on_change: Callable[[str], None] = PrivateAttr(default_factory=lambda: _ignore)

    def bind(
        self,
        guard: Callable[[], bool],
        active: Callable[[], bool],
        on_change: Callable[[str], None],
    ) -> None:
        self._guard = guard
        self._active = active
        self._on_change = on_change

    @property
    def step(self) -> BookingStep:
        return self.state.step

    def _require(self, expected: BookingStep, target: BookingStep) -> None:
        if not self._active():
            raise InvalidTransitionError("booking", f"{self.state.step.value} (inactive)", target.value)
        if self.state.step is not expected:
            raise InvalidTransitionError("booking", self.state.step.value, target.value)

    def _emit(self, previous: BookingStep) -> None:
        observability.log_event(
            "transition",
            source="booking",
            meta={"from": previous.value, "to": self.state.step.value, "generation": self.generation},
        )
        self._on_change("booking")

    # ── transitions ──────────────────────────────────────────────────────

    def reset(self) -> bool:
        """Discard any booking in progress; no resume semantics."""
        if not self._guard():
            return False
        previous = self.state.step
        self.state = BookingState(pickup=DEFAULT_PICKUP)
        self.generation += 1
        self._emit(previous)
        return True

    def type_destination(self, text: str) -> bool:
        """Typing target for the destination field; only editable at ``home``."""
        if not self._guard() or self.state.step is not BookingStep.HOME:
            return False
        self.state.destination = text
        self._on_change("booking")
        return True

    def select_destination(self, destination: str, rng: random.Random) -> bool:
        """``home → selection``: fix the destination and quote the fare once."""
        if not self._guard():
            return False
        self._require(BookingStep.HOME, BookingStep.SELECTION)
        if not destination.strip():
            raise InvalidTransitionError("booking", "home (no destination)", BookingStep.SELECTION.value)
        previous = self.state.step
        self.state.destination = destination
        self.state.price = quote_price(rng)
        self.state.step = BookingStep.SELECTION
        self._emit(previous)
        return True

    def choose_ride(self, ride: str = DEFAULT_RIDE) -> bool:
        if not self._guard() or self.state.step is not BookingStep.SELECTION:
            return False
        self.state.selected_ride = ride
        self._on_change("booking")
        return True

    def start_finding(self) -> bool:
        """``selection → finding``."""
        if not self._guard():
            return False
        self._require(BookingStep.SELECTION, BookingStep.FINDING)
        previous = self.state.step
        if not self.state.selected_ride:
            self.state.selected_ride = DEFAULT_RIDE
        self.state.step = BookingStep.FINDING
        self._emit(previous)
        return True

    def confirm(self) -> bool:
        """``finding → confirmed``; fired by the matching timer."""
        if not self._guard():
            return False
        self._require(BookingStep.FINDING, BookingStep.CONFIRMED)
        previous = self.state.step
        self.state.step = BookingStep.CONFIRMED
        self._emit(previous)
        return True
