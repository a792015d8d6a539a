"""
Static site map — the navigable targets the classifier may name.

A target is either a sentinel for a built-in simulated page or a concrete URL
embedded in the viewport iframe.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class SiteKind(str, Enum):
    HOME = "home"
    UBER = "uber"
    EMBED = "embed"


class SiteTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: SiteKind
    display: str
    url: str = ""


HOME_ADDRESS = "google.com"
UBER_ADDRESS = "m.uber.com"

SITES: dict[str, SiteTarget] = {
    "google": SiteTarget(kind=SiteKind.HOME, display=HOME_ADDRESS),
    "uber": SiteTarget(kind=SiteKind.UBER, display=UBER_ADDRESS),
    "maxilinks": SiteTarget(
        kind=SiteKind.EMBED,
        display="https://maxilinks.vercel.app/",
        url="https://maxilinks.vercel.app/",
    ),
    "infinity": SiteTarget(
        kind=SiteKind.EMBED,
        display="https://infinitysearch-ai.vercel.app/",
        url="https://infinitysearch-ai.vercel.app/",
    ),
    "emanuel": SiteTarget(
        kind=SiteKind.EMBED,
        display="https://emanuelmartinez.vercel.app/",
        url="https://emanuelmartinez.vercel.app/",
    ),
    "hotel": SiteTarget(
        kind=SiteKind.EMBED,
        display="https://hotelnochistlan.vercel.app/",
        url="https://hotelnochistlan.vercel.app/",
    ),
}


def site_keys() -> list[str]:
    return list(SITES)


def resolve_site(key: str | None) -> SiteTarget | None:
    """Look up a site key case-insensitively; ``None`` for unknown keys."""
    if not key:
        return None
    return SITES.get(key.strip().lower())


def quick_actions() -> list[str]:
    """Canned commands offered by the chat chrome, one per external site."""
    return [f"Go to {key}" for key in SITES if key != "google"]


def search_address(term: str) -> str:
    """Canonical address-bar text for a simulated search."""
    return f"{HOME_ADDRESS}/search?q={term}"
