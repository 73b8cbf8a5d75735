# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import logging
from typing import Optional

from common.metrics import SignalingMetrics
from signaling import messages
from signaling.connection import Connection, Role
from signaling.dispatcher import Dispatcher
from signaling.store import SessionSnapshot, SessionStore

logger = logging.getLogger("signaling.lifecycle")


class LifecycleManager:
    """Applies session teardown when broadcasters or viewers go away."""

    def __init__(
        self,
        store: SessionStore,
        dispatcher: Dispatcher,
        metrics: SignalingMetrics,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._metrics = metrics

    async def close_session(
        self, session_id: str, reason: str
    ) -> Optional[list[Connection]]:
        """Destroy a session and dismiss every viewer it still had.

        Each viewer is told ``session-closed`` and then force-closed, since no
        broadcaster remains to negotiate with. Returns the dismissed viewers,
        or None when the session was already gone.
        """
        session = await self._store.destroy_session(session_id)
        if session is None:
            return None

        self._session_closed(session, reason)
        viewers = list(session.viewers)
        self._dispatcher.send_many(viewers, messages.session_closed())
        for viewer in viewers:
            self._dispatcher.close(viewer)
        return viewers

    async def close_all(self, reason: str) -> int:
        """Destroy every session, telling broadcasters and viewers alike."""
        sessions = await self._store.destroy_all()
        for session in sessions:
            self._session_closed(session, reason)
            self._dispatcher.send_many(session.members, messages.session_closed())
        return len(sessions)

    async def connection_closed(self, connection: Connection) -> None:
        """Run cleanup for a connection whose transport closed.

        Safe to call more than once; only the first call has an effect.
        """
        if connection.released:
            return
        connection.released = True
        connection.closed = True

        if connection.session_id is None:
            logger.debug(
                "Unassigned connection closed", extra={"connection_id": connection.id}
            )
        elif connection.role is Role.BROADCASTER:
            # no-op when close-session already destroyed it
            await self.close_session(connection.session_id, "broadcaster-disconnected")
        elif connection.role is Role.VIEWER:
            await self._viewer_left(connection, connection.session_id)

    def _session_closed(self, session: SessionSnapshot, reason: str) -> None:
        self._metrics.sessions_closed.add(1, {"reason": reason})
        self._metrics.active_sessions.add(-1)
        logger.info(
            "Session closed",
            extra={
                "session_id": session.id,
                "reason": reason,
                "viewers": len(session.viewers),
            },
        )

    async def _viewer_left(self, connection: Connection, session_id: str) -> None:
        session = await self._store.remove_viewer(session_id, connection)
        if session is None:
            return
        self._metrics.viewers_left.add(1)
        logger.info(
            "Viewer left",
            extra={"session_id": session_id, "connection_id": connection.id},
        )
        if session.broadcaster.is_open:
            self._dispatcher.send(
                session.broadcaster, messages.viewer_left(connection.id)
            )
