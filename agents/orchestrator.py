"""
Action Orchestrator — the central coordinator of one browser session.

``handle(command)`` appends the user turn, asks the intent classifier for one
action, narrates it, then plays that action's choreography: a strictly
sequential await chain of step primitives and state-machine transitions.

Routines:
    SEARCH_GOOGLE            → (address bar →) search field → type → search button → results
    UBER_INIT / ENTER_DEST   → (address bar → uber → load) → destination → suggestion → selection
    UBER_CONFIRM             → ride class → confirm → finding (→ confirmed after matching delay)
    NAVIGATE                 → address bar → home | uber | iframe
    UNKNOWN                  → narration only
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from browser.models import BookingStep, SearchOutcome, Source, Surface
from browser.session import BrowserSession
from browser.sites import SiteKind, resolve_site, site_keys
from core import observability
from core.logging_core import log_exception, log_info, log_warning

from .actions import (
    ClassifiedAction,
    NavigateAction,
    SearchGoogleAction,
    UberAction,
    UberConfirmAction,
)
from .intent_classifier import ClassifierContext

# ── simulated page layout (percent of viewport) ─────────────────────────────

ADDRESS_BAR = (20.0, 10.0)
SEARCH_FIELD = (50.0, 40.0)
SEARCH_BUTTON = (50.0, 52.0)
DESTINATION_FIELD = (30.0, 32.0)
DESTINATION_SUGGESTION = (30.0, 45.0)
RIDE_SELECTOR = (50.0, 60.0)
CONFIRM_BUTTON = (50.0, 88.0)

CLASSIFIER_FAILURE_TEXT = "I'm having trouble connecting to the agent brain."
DRIVER_ASSIGNED_TEXT = "Your driver Michael is on the way in a white Toyota Camry (7XYZ123). Arriving in 4 minutes."


@runtime_checkable
class IntentClassifierLike(Protocol):
    async def classify(self, command: str, context: ClassifierContext) -> ClassifiedAction: ...


@runtime_checkable
class SearchProviderLike(Protocol):
    async def search(self, term: str) -> SearchOutcome: ...


def fallback_narration(action: ClassifiedAction) -> str:
    """What to say when the model left ``narration`` empty."""
    if isinstance(action, NavigateAction):
        return f"Navigating to {action.target}..."
    if isinstance(action, SearchGoogleAction):
        return f'Searching Google for "{action.search_term}"...'
    if isinstance(action, UberAction):
        if action.destination.strip():
            return f"Getting you a ride to {action.destination.strip()}..."
        return "Opening Uber..."
    if isinstance(action, UberConfirmAction):
        return "Confirming your ride..."
    return "I can help you browse specific apps."


class ActionOrchestrator(BaseModel):
    """Owns every mutation of its session's surface, booking, cursor and log."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session: BrowserSession
    classifier: IntentClassifierLike
    search_provider: SearchProviderLike
    name: str = Field(default="orchestrator")

    # ── entrypoint ───────────────────────────────────────────────────────

    async def handle(self, command: str) -> None:
        text = command.strip()
        session = self.session
        if not text or session.add_turn("user", text) is None:
            return

        with observability.trace_scope(self.name, text, session_id=session.session_id):
            session.begin_processing()
            try:
                action = await self._classify(text)
                if action is None:
                    return
                session.add_turn("assistant", action.narration.strip() or fallback_narration(action))
                await self._dispatch(action)
            finally:
                session.end_processing()

    async def _classify(self, command: str) -> ClassifiedAction | None:
        session = self.session
        context = ClassifierContext(
            surface=session.surface.current.value,
            booking_step=session.booking.step.value,
            known_targets=site_keys(),
        )
        try:
            return await self.classifier.classify(command, context)
        except Exception as exc:
            log_exception(__name__, "Classification failed for %r: %s", command[:80], exc)
            observability.log_event("classification_error", source=self.name, status="error", meta={"error": str(exc)})
            session.add_turn("assistant", CLASSIFIER_FAILURE_TEXT)
            return None

    async def _dispatch(self, action: ClassifiedAction) -> None:
        observability.log_event("choreography_start", source=self.name, meta={"action": action.action})
        if isinstance(action, SearchGoogleAction):
            await self._search_google(action)
        elif isinstance(action, UberAction):
            await self._uber_request(action)
        elif isinstance(action, UberConfirmAction):
            await self._uber_confirm()
        elif isinstance(action, NavigateAction):
            await self._navigate(action)
        observability.log_event("choreography_end", source=self.name, meta={"action": action.action})

    # ── shared steps ─────────────────────────────────────────────────────

    async def _click_at(self, point: tuple[float, float]) -> None:
        primitives = self.session.primitives
        await primitives.move_cursor(*point)
        await primitives.click()

    # ── routines ─────────────────────────────────────────────────────────

    async def _search_google(self, action: SearchGoogleAction) -> None:
        session = self.session
        surface = session.surface
        term = action.search_term.strip()

        if surface.current is not Surface.HOME:
            await self._click_at(ADDRESS_BAR)
            surface.go_home()

        await self._click_at(SEARCH_FIELD)
        await session.primitives.type_text(
            term,
            surface.type_search_query,
            on_clear=lambda: surface.type_search_query(""),
        )
        await self._click_at(SEARCH_BUTTON)

        if not session.is_alive:
            return
        outcome = await self._fetch_results(term)
        surface.show_search_results(term, outcome)

    async def _fetch_results(self, term: str) -> SearchOutcome:
        if not term:
            return SearchOutcome()
        try:
            return await self.search_provider.search(term)
        except Exception as exc:
            # Narration already promised results; show an empty page instead of an error turn.
            log_warning(__name__, "Search failed for %r: %s", term, exc)
            observability.log_event("search_error", source=self.name, status="error", meta={"error": str(exc)})
            return SearchOutcome()

    async def _uber_request(self, action: UberAction) -> None:
        session = self.session
        surface, booking, primitives = session.surface, session.booking, session.primitives

        if surface.current is not Surface.UBER:
            await self._click_at(ADDRESS_BAR)
            surface.enter_uber()
            await primitives.wait(primitives.timings.page_load_ms)

        destination = action.destination.strip()
        if not destination:
            return
        if booking.step is not BookingStep.HOME:
            log_info(__name__, "Booking already at %s; ignoring destination %r", booking.step.value, destination)
            return

        await self._click_at(DESTINATION_FIELD)
        await primitives.type_text(
            destination,
            booking.type_destination,
            on_clear=lambda: booking.type_destination(""),
        )
        await self._click_at(DESTINATION_SUGGESTION)

        # An overlapping command may have moved the session on meanwhile.
        if not session.is_alive or surface.current is not Surface.UBER or booking.step is not BookingStep.HOME:
            return
        booking.select_destination(destination, session.rng)

    async def _uber_confirm(self) -> None:
        session = self.session
        surface, booking = session.surface, session.booking
        if surface.current is not Surface.UBER or booking.step is not BookingStep.SELECTION:
            log_info(__name__, "Ignoring ride confirmation at surface=%s step=%s", surface.current.value, booking.step.value)
            return

        await self._click_at(RIDE_SELECTOR)
        booking.choose_ride()
        await self._click_at(CONFIRM_BUTTON)

        if not session.is_alive or surface.current is not Surface.UBER or booking.step is not BookingStep.SELECTION:
            return
        if booking.start_finding():
            session.spawn(self._complete_matching(booking.generation), name=f"matching-{session.session_id}")

    async def _complete_matching(self, generation: int) -> None:
        session = self.session
        booking = session.booking
        await session.primitives.wait(session.primitives.timings.matching_ms)

        if (
            not session.is_alive
            or booking.generation != generation
            or booking.step is not BookingStep.FINDING
            or session.surface.current is not Surface.UBER
        ):
            return
        if booking.confirm():
            session.add_turn("assistant", DRIVER_ASSIGNED_TEXT)

    async def _navigate(self, action: NavigateAction) -> None:
        site = resolve_site(action.target)
        if site is None:
            log_warning(__name__, "Ignoring navigation to unknown target %r", action.target)
            return

        await self._click_at(ADDRESS_BAR)
        surface = self.session.surface
        if site.kind is SiteKind.HOME:
            surface.go_home(site.display)
        elif site.kind is SiteKind.UBER:
            surface.enter_uber()
        else:
            surface.open_embed(site.url, site.display)

    # ── direct chrome interactions ───────────────────────────────────────

    def open_result(self, index: int) -> Source:
        """The user clicked a rendered search result."""
        source = self.session.surface.open_result(index)
        log_info(__name__, "Opened result %d: %s", index, source.uri)
        return source

    def reset_to_home(self) -> None:
        """The chrome's home button: force the surface back to home."""
        self.session.surface.reset_home()
