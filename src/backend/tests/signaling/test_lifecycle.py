# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from collections.abc import Callable

import pytest

from relay_helpers import create_session, disconnect, join_session, send, transport_of
from signaling.connection import Connection, Role
from signaling.relay import SignalingRelay

OpenConnection = Callable[..., Connection]


@pytest.mark.asyncio
async def test_viewer_close_notifies_broadcaster_once(
    relay: SignalingRelay, open_connection: OpenConnection
) -> None:
    """Scenario: B's transport closes and A learns about it."""
    a, b, c = open_connection(), open_connection(), open_connection()
    session_id = await create_session(relay, a)
    await join_session(relay, b, session_id)
    await join_session(relay, c, session_id)

    await disconnect(relay, b)
    await disconnect(relay, b)

    assert transport_of(a).of_type("viewer-left") == [
        {"type": "viewer-left", "viewerId": b.id}
    ]
    session = await relay.store.lookup_session(session_id)
    assert session is not None
    assert session.viewers == (c,)
    assert b.id not in relay.connections


@pytest.mark.asyncio
async def test_broadcaster_close_destroys_session(
    relay: SignalingRelay, open_connection: OpenConnection
) -> None:
    """Scenario: A drops without close-session; the session disappears."""
    a, b, c = open_connection(), open_connection(), open_connection()
    session_id = await create_session(relay, a)
    await join_session(relay, b, session_id)
    await join_session(relay, c, session_id)

    await disconnect(relay, a)

    assert await relay.store.lookup_session(session_id) is None
    for viewer in (b, c):
        assert transport_of(viewer).of_type("session-closed") == [
            {"type": "session-closed"}
        ]
        assert transport_of(viewer).close_calls == 1
    # a is gone, nothing is sent to it any more
    assert transport_of(a).of_type("session-closed") == []


@pytest.mark.asyncio
async def test_dismissed_viewers_cleanup_is_silent(
    relay: SignalingRelay, open_connection: OpenConnection
) -> None:
    a, b = open_connection(), open_connection()
    session_id = await create_session(relay, a)
    await join_session(relay, b, session_id)
    await disconnect(relay, a)

    # the viewer's own endpoint notices the forced close afterwards
    await disconnect(relay, b)

    assert transport_of(a).of_type("viewer-left") == []
    assert transport_of(b).of_type("session-closed") == [{"type": "session-closed"}]
    assert relay.connections == {}


@pytest.mark.asyncio
async def test_close_session_then_disconnect_notifies_once(
    relay: SignalingRelay, open_connection: OpenConnection
) -> None:
    a, b = open_connection(), open_connection()
    session_id = await create_session(relay, a)
    await join_session(relay, b, session_id)

    await send(relay, a, {"type": "close-session", "sessionId": session_id})
    await disconnect(relay, a)
    await disconnect(relay, b)

    assert transport_of(b).of_type("session-closed") == [{"type": "session-closed"}]
    assert transport_of(b).close_calls == 1
    assert len(relay.store) == 0


@pytest.mark.asyncio
async def test_unassigned_close_touches_nothing(
    relay: SignalingRelay, open_connection: OpenConnection
) -> None:
    a, idle = open_connection(), open_connection()
    session_id = await create_session(relay, a)

    await disconnect(relay, idle)

    assert idle.role is Role.UNASSIGNED
    assert await relay.store.lookup_session(session_id) is not None
    assert transport_of(a).sent == [{"type": "session-created", "sessionId": session_id}]


@pytest.mark.asyncio
async def test_viewer_left_skipped_when_broadcaster_transport_closed(
    relay: SignalingRelay, open_connection: OpenConnection
) -> None:
    a, b = open_connection(), open_connection()
    session_id = await create_session(relay, a)
    await join_session(relay, b, session_id)
    a.closed = True
    sent_before = len(transport_of(a).sent)

    await disconnect(relay, b)

    assert len(transport_of(a).sent) == sent_before
    session = await relay.store.lookup_session(session_id)
    assert session is not None and session.viewers == ()


@pytest.mark.asyncio
async def test_viewers_stay_consistent_through_churn(
    relay: SignalingRelay, open_connection: OpenConnection
) -> None:
    a = open_connection()
    session_id = await create_session(relay, a)
    viewers = [open_connection() for _ in range(6)]
    for viewer in viewers:
        await join_session(relay, viewer, session_id)
    for viewer in viewers[::2]:
        await disconnect(relay, viewer)

    session = await relay.store.lookup_session(session_id)
    assert session is not None
    assert set(session.viewers) == set(viewers[1::2])
    for viewer in session.viewers:
        assert viewer.role is Role.VIEWER
        assert viewer.session_id == session_id
    assert len(transport_of(a).of_type("viewer-left")) == 3


@pytest.mark.asyncio
async def test_shutdown_closes_everything(
    relay: SignalingRelay, open_connection: OpenConnection
) -> None:
    a, b, idle = open_connection(), open_connection(), open_connection()
    session_id = await create_session(relay, a)
    await join_session(relay, b, session_id)

    await relay.shutdown()

    assert len(relay.store) == 0
    for conn in (a, b):
        assert transport_of(conn).last == {"type": "session-closed"}
    for conn in (a, b, idle):
        assert transport_of(conn).close_code == 1001
