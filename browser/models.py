"""
Session state models — what the rendering layer reads.

All of these are mutated only by the owning ``BrowserSession`` machinery;
``to_dict()`` snapshots are what get pushed to clients.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .sites import HOME_ADDRESS

# ═════════════════════════════════════════════════════════════════════════════
# Enums
# ═════════════════════════════════════════════════════════════════════════════


class Surface(str, Enum):
    HOME = "home"
    SEARCH_RESULTS = "search_results"
    IFRAME = "iframe"
    UBER = "uber"


class BookingStep(str, Enum):
    HOME = "home"
    SELECTION = "selection"
    FINDING = "finding"
    CONFIRMED = "confirmed"


# ═════════════════════════════════════════════════════════════════════════════
# Search data
# ═════════════════════════════════════════════════════════════════════════════


class Source(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    uri: str
    hostname: str = "Web"


class SearchOutcome(BaseModel):
    narrative_summary: str = ""
    sources: list[Source] = Field(default_factory=list)


# ═════════════════════════════════════════════════════════════════════════════
# State objects
# ═════════════════════════════════════════════════════════════════════════════


class BrowserSurfaceState(BaseModel):
    surface: Surface = Surface.HOME
    address_bar_text: str = HOME_ADDRESS
    # Typed-text buffer of the simulated search field
    search_query: str = ""
    # Valid only while surface == SEARCH_RESULTS
    search_results: list[Source] = Field(default_factory=list)
    search_summary: str = ""
    # Valid only while surface == IFRAME
    embed_url: str = ""

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


DEFAULT_PICKUP = "Current location"


class BookingState(BaseModel):
    step: BookingStep = BookingStep.HOME
    pickup: str = DEFAULT_PICKUP
    destination: str = ""
    selected_ride: str = ""
    # Meaningful only once step >= SELECTION
    price: float = 0.0

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class RipplePoint(BaseModel):
    x: float
    y: float


class CursorState(BaseModel):
    x: float = 50.0
    y: float = 50.0
    visible: bool = False
    ripple: RipplePoint | None = None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
