# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import json

from session.connection_status import ConnectionStatus
from session.participant import ParticipantSession
from session.registry import SessionRegistry


def test_ids_are_monotonic_and_never_reused():
    registry = SessionRegistry()

    a = registry.open()
    b = registry.open()
    registry.close(a.session_id)
    c = registry.open()

    assert (a.session_id, b.session_id, c.session_id) == (1, 2, 3)
    assert len(registry) == 2


def test_broadcast_reaches_every_open_session_including_originator():
    registry = SessionRegistry()
    a = registry.open()
    b = registry.open()

    delivered = registry.broadcast_all({"type": "x"})

    assert delivered == 2
    assert a.drain_control() == ({"type": "x"},)
    assert b.drain_control() == ({"type": "x"},)


def test_broadcast_exclude_skips_one_session():
    registry = SessionRegistry()
    a = registry.open()
    b = registry.open()

    registry.broadcast_all({"type": "x"}, exclude=a.session_id)

    assert a.drain_control() == ()
    assert b.drain_control() == ({"type": "x"},)


def test_unicast_to_closing_or_unknown_session_is_dropped():
    registry = SessionRegistry()
    a = registry.open()
    a.mark_closing()

    assert registry.unicast(a.session_id, {"type": "x"}) is False
    assert registry.unicast(999, {"type": "x"}) is False
    assert a.pending() == 0


def test_close_marks_down_and_discards_pending():
    registry = SessionRegistry()
    a = registry.open()
    a.enqueue_control({"type": "x"})

    closed = registry.close(a.session_id)

    assert closed is a
    assert a.connection_status is ConnectionStatus.DOWN
    assert a.pending() == 0
    assert registry.get(a.session_id) is None
    assert registry.close(a.session_id) is None


# ---------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------

def test_writer_flushes_in_fifo_order():
    sent: list[str] = []

    async def scenario() -> None:
        session = ParticipantSession(session_id=1)

        async def send_text(text: str) -> None:
            sent.append(text)

        writer = asyncio.create_task(session.run_writer(send_text))
        session.enqueue_control({"type": "state"})
        session.enqueue_control({"type": "clientCount", "count": 1})
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        writer.cancel()
        await asyncio.gather(writer, return_exceptions=True)

    asyncio.run(scenario())

    assert [json.loads(t)["type"] for t in sent] == ["state", "clientCount"]


def test_writer_send_failure_marks_closing_and_stops():
    async def scenario() -> ParticipantSession:
        session = ParticipantSession(session_id=1)

        async def send_text(_text: str) -> None:
            raise ConnectionError("gone")

        session.enqueue_control({"type": "x"})
        await session.run_writer(send_text)
        return session

    session = asyncio.run(scenario())

    assert session.connection_status is ConnectionStatus.CLOSING
    assert session.enqueue_control({"type": "y"}) is False
