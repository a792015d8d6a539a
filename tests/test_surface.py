import random

import pytest

from browser.booking import BookingFlow
from browser.errors import BrowserSimError, InvalidTransitionError
from browser.models import BookingStep, SearchOutcome, Source, Surface
from browser.surface import BrowserSurface


def _surface(alive=True):
    booking = BookingFlow()
    surface = BrowserSurface()
    changes = []
    booking.bind(lambda: alive, lambda: surface.current is Surface.UBER, changes.append)
    surface.bind(lambda: alive, changes.append, booking)
    return surface, booking, changes


def _outcome():
    return SearchOutcome(
        narrative_summary="summary",
        sources=[
            Source(title="One", uri="https://one.example.com/a", hostname="one.example.com"),
            Source(title="Two", uri="https://two.example.com/b", hostname="two.example.com"),
        ],
    )


def test_initial_state_is_home():
    surface, _, _ = _surface()
    assert surface.current is Surface.HOME
    assert surface.state.address_bar_text == "google.com"
    assert surface.state.search_results == []


def test_search_results_carry_term_in_address_bar():
    surface, _, changes = _surface()
    assert surface.show_search_results("ai trends", _outcome())

    assert surface.current is Surface.SEARCH_RESULTS
    assert "ai trends" in surface.state.address_bar_text
    assert surface.state.address_bar_text.startswith("google.com/search")
    assert surface.state.search_query == "ai trends"
    assert [s.title for s in surface.state.search_results] == ["One", "Two"]
    assert surface.state.search_summary == "summary"
    assert changes == ["surface"]


def test_leaving_search_results_clears_them():
    surface, _, _ = _surface()
    surface.show_search_results("ai trends", _outcome())
    surface.go_home()

    assert surface.current is Surface.HOME
    assert surface.state.search_results == []
    assert surface.state.search_summary == ""
    # Typed buffer survives a plain address-bar trip home
    assert surface.state.search_query == "ai trends"


def test_reset_home_also_clears_search_field():
    surface, _, _ = _surface()
    surface.show_search_results("ai trends", _outcome())
    surface.reset_home()
    assert surface.current is Surface.HOME
    assert surface.state.search_query == ""
    assert surface.state.address_bar_text == "google.com"


def test_open_result_embeds_its_uri():
    surface, _, _ = _surface()
    surface.show_search_results("ai trends", _outcome())

    source = surface.open_result(1)

    assert source.uri == "https://two.example.com/b"
    assert surface.current is Surface.IFRAME
    assert surface.state.embed_url == "https://two.example.com/b"
    assert surface.state.address_bar_text == "https://two.example.com/b"
    assert surface.state.search_results == []


def test_open_result_outside_search_results_is_rejected():
    surface, _, _ = _surface()
    with pytest.raises(InvalidTransitionError):
        surface.open_result(0)


def test_open_result_with_bad_index_is_rejected():
    surface, _, _ = _surface()
    surface.show_search_results("ai trends", _outcome())
    with pytest.raises(BrowserSimError):
        surface.open_result(5)
    assert surface.current is Surface.SEARCH_RESULTS


def test_embed_url_only_valid_in_iframe():
    surface, _, _ = _surface()
    surface.open_embed("https://hotel.example.com/", "hotel.example.com")
    assert surface.state.embed_url == "https://hotel.example.com/"
    assert surface.state.address_bar_text == "hotel.example.com"

    surface.enter_uber()
    assert surface.state.embed_url == ""
    assert surface.state.address_bar_text == "m.uber.com"


@pytest.mark.parametrize("start", ["home", "search_results", "iframe"])
def test_entering_uber_always_restarts_booking(start):
    surface, booking, _ = _surface()
    surface.enter_uber()
    booking.select_destination("the airport", random.Random(3))
    booking.start_finding()
    assert booking.step is BookingStep.FINDING

    if start == "home":
        surface.go_home()
    elif start == "search_results":
        surface.show_search_results("x", _outcome())
    else:
        surface.open_embed("https://example.com")

    assert surface.enter_uber() is True
    assert booking.state.step is BookingStep.HOME
    assert booking.state.destination == ""
    assert booking.state.price == 0
    assert booking.state.selected_ride == ""


def test_enter_uber_while_on_uber_keeps_booking():
    surface, booking, _ = _surface()
    surface.enter_uber()
    booking.select_destination("the airport", random.Random(3))
    generation = booking.generation

    assert surface.enter_uber() is False
    assert booking.step is BookingStep.SELECTION
    assert booking.generation == generation


def test_dead_surface_ignores_transitions():
    surface, _, changes = _surface(alive=False)
    assert surface.go_home("elsewhere") is False
    assert surface.enter_uber() is False
    assert surface.type_search_query("abc") is False
    assert surface.current is Surface.HOME
    assert surface.state.search_query == ""
    assert changes == []


def test_unbound_surface_runs_transitions_until_bound():
    surface = BrowserSurface()

    assert surface.show_search_results("ai trends", _outcome()) is True
    assert surface.enter_uber() is True
    assert surface.current is Surface.UBER

    surface.bind(lambda: False, lambda _kind: None, BookingFlow())
    assert surface.go_home() is False
    assert surface.current is Surface.UBER
