import random

import pytest

from browser.booking import DEFAULT_RIDE, BookingFlow, quote_price
from browser.errors import InvalidTransitionError
from browser.models import BookingStep


def _flow(active=True, alive=True):
    flow = BookingFlow()
    flow.bind(lambda: alive, lambda: active, lambda _kind: None)
    return flow


@pytest.mark.parametrize("seed", range(50))
def test_quote_price_stays_in_band(seed):
    price = quote_price(random.Random(seed))
    assert 14 <= price < 19
    assert round(price, 2) == price


def test_quote_price_never_reaches_upper_bound():
    class TopRandom(random.Random):
        def random(self):
            return 0.9999999999999999

    assert quote_price(TopRandom()) < 19


def test_full_forward_walk():
    flow = _flow()
    assert flow.type_destination("the air")
    assert flow.select_destination("the airport", random.Random(1))
    price = flow.state.price

    assert flow.step is BookingStep.SELECTION
    assert flow.state.destination == "the airport"
    assert 14 <= price < 19

    assert flow.start_finding()
    assert flow.step is BookingStep.FINDING
    assert flow.state.selected_ride == DEFAULT_RIDE

    assert flow.confirm()
    assert flow.step is BookingStep.CONFIRMED
    # Fare is quoted once and never recomputed
    assert flow.state.price == price


def test_choose_ride_only_in_selection():
    flow = _flow()
    assert flow.choose_ride("Comfort") is False
    flow.select_destination("home", random.Random(1))
    assert flow.choose_ride("Comfort") is True
    flow.start_finding()
    assert flow.state.selected_ride == "Comfort"


def test_destination_is_read_only_after_home():
    flow = _flow()
    flow.select_destination("the airport", random.Random(1))
    assert flow.type_destination("somewhere else") is False
    assert flow.state.destination == "the airport"


@pytest.mark.parametrize(
    "walk,method",
    [
        ([], "start_finding"),
        ([], "confirm"),
        (["select"], "confirm"),
        (["select", "find"], "start_finding"),
        (["select", "find", "confirm"], "confirm"),
    ],
)
def test_out_of_order_transitions_raise(walk, method):
    flow = _flow()
    steps = {
        "select": lambda: flow.select_destination("x", random.Random(1)),
        "find": flow.start_finding,
        "confirm": flow.confirm,
    }
    for name in walk:
        steps[name]()
    with pytest.raises(InvalidTransitionError):
        getattr(flow, method)()


def test_select_destination_twice_raises():
    flow = _flow()
    flow.select_destination("x", random.Random(1))
    with pytest.raises(InvalidTransitionError):
        flow.select_destination("y", random.Random(1))


def test_blank_destination_cannot_be_selected():
    flow = _flow()
    with pytest.raises(InvalidTransitionError):
        flow.select_destination("   ", random.Random(1))
    assert flow.step is BookingStep.HOME


def test_transitions_require_uber_surface():
    flow = _flow(active=False)
    with pytest.raises(InvalidTransitionError):
        flow.select_destination("the airport", random.Random(1))


def test_reset_discards_progress_and_bumps_generation():
    flow = _flow()
    flow.select_destination("the airport", random.Random(1))
    flow.start_finding()

    assert flow.reset()
    assert flow.generation == 1
    assert flow.state.step is BookingStep.HOME
    assert flow.state.destination == ""
    assert flow.state.price == 0
    assert flow.state.pickup == "Current location"


def test_dead_session_drops_every_transition():
    flow = _flow(alive=False)
    assert flow.reset() is False
    assert flow.select_destination("x", random.Random(1)) is False
    assert flow.start_finding() is False
    assert flow.confirm() is False
    assert flow.generation == 0
    assert flow.step is BookingStep.HOME


def test_transitions_are_logged(events):
    flow = _flow()
    flow.select_destination("the airport", random.Random(1))
    transitions = [e for e in events if e["type"] == "transition"]
    assert transitions[-1]["meta"] == {"from": "home", "to": "selection", "generation": 0}


def test_unbound_flow_runs_transitions_until_bound():
    flow = BookingFlow()

    assert flow.select_destination("the airport", random.Random(1)) is True
    assert flow.start_finding() is True
    assert flow.confirm() is True
    assert flow.step is BookingStep.CONFIRMED

    flow.bind(lambda: False, lambda: True, lambda _kind: None)
    assert flow.reset() is False
    assert flow.step is BookingStep.CONFIRMED
