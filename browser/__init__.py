"""
Simulated browser — state machines, step primitives and the owning session.
"""

from .booking import BookingFlow
from .errors import BrowserSimError, InvalidTransitionError
from .models import BookingState, BookingStep, BrowserSurfaceState, CursorState, SearchOutcome, Source, Surface
from .primitives import StepPrimitives, StepTimings
from .session import BrowserSession, ConversationLog
from .sites import SITES, SiteKind, SiteTarget, resolve_site, site_keys
from .surface import BrowserSurface

__all__ = [
    "BookingFlow",
    "BookingState",
    "BookingStep",
    "BrowserSession",
    "BrowserSimError",
    "BrowserSurface",
    "BrowserSurfaceState",
    "ConversationLog",
    "CursorState",
    "InvalidTransitionError",
    "SITES",
    "SearchOutcome",
    "SiteKind",
    "SiteTarget",
    "Source",
    "StepPrimitives",
    "StepTimings",
    "Surface",
    "resolve_site",
    "site_keys",
]
