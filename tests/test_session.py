import asyncio

import pytest

from browser.session import GREETING, BrowserSession, ConversationLog


def test_conversation_log_is_append_only():
    log = ConversationLog()
    log.append("user", "hi")
    log.append("assistant", "hello")

    turns = log.turns
    assert [(t.role, t.text) for t in turns] == [("user", "hi"), ("assistant", "hello")]
    assert len(log) == 2
    with pytest.raises(Exception):
        turns[0].text = "edited"
    assert isinstance(turns, tuple)


def test_new_session_is_seeded_with_greeting():
    session = BrowserSession()
    assert [(t.role, t.text) for t in session.turns] == [("assistant", GREETING)]
    assert BrowserSession(greet=False).turns == ()


def test_session_ids_are_unique():
    assert BrowserSession().session_id != BrowserSession().session_id


@pytest.mark.asyncio
async def test_unmounted_session_drops_turns(session):
    assert session.add_turn("user", "hi") is not None
    await session.shutdown()

    assert session.add_turn("user", "ignored") is None
    assert [t.text for t in session.turns][-1] == "hi"
    assert session.is_alive is False


@pytest.mark.asyncio
async def test_listeners_receive_kind_and_snapshot(session):
    seen = []
    unsubscribe = session.subscribe(lambda kind, snap: seen.append((kind, snap)))

    session.add_turn("user", "hi")
    session.surface.go_home("google.com")
    unsubscribe()
    session.add_turn("user", "after")

    assert [kind for kind, _ in seen] == ["conversation", "surface"]
    kind, snap = seen[0]
    assert snap["messages"][-1] == {"role": "user", "text": "hi"}
    assert set(snap) == {"session_id", "surface", "booking", "cursor", "messages", "is_processing"}


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_others(session):
    seen = []

    def _bad(kind, snap):
        raise RuntimeError("renderer crashed")

    session.subscribe(_bad)
    session.subscribe(lambda kind, snap: seen.append(kind))

    session.add_turn("user", "hi")

    assert seen == ["conversation"]


@pytest.mark.asyncio
async def test_shutdown_cancels_background_work(session):
    started = asyncio.Event()

    async def _forever():
        started.set()
        await asyncio.sleep(3600)

    task = session.spawn(_forever(), name="forever")
    await started.wait()
    assert session.pending_tasks == (task,)

    await session.shutdown()

    assert task.cancelled()
    assert session.pending_tasks == ()


@pytest.mark.asyncio
async def test_spawn_on_dead_session_is_refused(session):
    await session.shutdown()

    async def _work():
        return 1

    assert session.spawn(_work()) is None


@pytest.mark.asyncio
async def test_overlapping_processing_is_counted(session):
    session.begin_processing()
    session.begin_processing()
    session.end_processing()
    assert session.is_processing is True
    session.end_processing()
    assert session.is_processing is False


@pytest.mark.asyncio
async def test_export_history(session):
    session.add_turn("user", "go to uber")
    record = session.export_history()

    assert record["session_id"] == session.session_id
    assert record["turns"][-1] == {"role": "user", "text": "go to uber"}
    assert record["created_at"].endswith("Z")


@pytest.mark.asyncio
async def test_seeded_sessions_quote_the_same_price():
    prices = []
    for _ in range(2):
        s = BrowserSession(seed=42)
        await s.initialize()
        s.surface.enter_uber()
        s.booking.select_destination("the airport", s.rng)
        prices.append(s.booking.state.price)
        await s.shutdown()
    assert prices[0] == prices[1]
