# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Registry of live signaling sessions."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field

from signaling.connection import Connection, Role
from signaling.errors import SessionNotFound

logger = logging.getLogger("signaling.store")


@dataclass
class Session:
    """One broadcaster and the viewers currently attached to it."""

    id: str
    broadcaster: Connection
    viewers: dict[str, Connection] = field(default_factory=dict)

    def snapshot(self) -> "SessionSnapshot":
        return SessionSnapshot(
            id=self.id,
            broadcaster=self.broadcaster,
            viewers=tuple(self.viewers.values()),
        )


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of a session used to send outside the registry lock."""

    id: str
    broadcaster: Connection
    viewers: tuple[Connection, ...]

    @property
    def members(self) -> tuple[Connection, ...]:
        return (self.broadcaster, *self.viewers)

    def find_viewer(self, connection_id: str) -> Connection | None:
        return next((v for v in self.viewers if v.id == connection_id), None)

    def find_member(self, connection_id: str) -> Connection | None:
        return next((c for c in self.members if c.id == connection_id), None)


class SessionStore:
    """Holds every live session behind a single lock.

    Each public coroutine is atomic with respect to all others, so a join
    racing a destroy either sees ``SessionNotFound`` or ends up in the set the
    destroy returns.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def _new_id(self) -> str:
        while True:
            session_id = str(uuid.uuid4())
            if session_id not in self._sessions:
                return session_id

    async def create_session(self, connection: Connection) -> str:
        """Register a new session with ``connection`` as its broadcaster."""
        async with self._lock:
            session_id = self._new_id()
            connection.assign(Role.BROADCASTER, session_id)
            self._sessions[session_id] = Session(id=session_id, broadcaster=connection)
        logger.info(
            "Session created",
            extra={"session_id": session_id, "connection_id": connection.id},
        )
        return session_id

    async def lookup_session(self, session_id: str | None) -> SessionSnapshot | None:
        """Return a snapshot of the session, or None when it does not exist."""
        async with self._lock:
            session = self._sessions.get(session_id) if session_id else None
            return session.snapshot() if session is not None else None

    async def add_viewer(self, session_id: str, connection: Connection) -> SessionSnapshot:
        """Attach ``connection`` to the session as a viewer.

        Raises:
            SessionNotFound: If the session does not exist; nothing is mutated.
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            connection.assign(Role.VIEWER, session_id)
            session.viewers[connection.id] = connection
            return session.snapshot()

    async def remove_viewer(
        self, session_id: str, connection: Connection
    ) -> SessionSnapshot | None:
        """Detach a viewer.

        Returns the remaining session, or None when the session is gone or the
        viewer was not part of it; repeated calls are no-ops.
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.viewers.pop(connection.id, None) is None:
                return None
            return session.snapshot()

    async def destroy_session(self, session_id: str) -> SessionSnapshot | None:
        """Remove the session atomically.

        Returns the removed session with the viewers it still had, or None
        when it was already gone.
        """
        async with self._lock:
            session = self._sessions.pop(session_id, None)
            return session.snapshot() if session is not None else None

    async def destroy_all(self) -> list[SessionSnapshot]:
        """Drop every session, e.g. on shutdown."""
        async with self._lock:
            sessions = [s.snapshot() for s in self._sessions.values()]
            self._sessions.clear()
        return sessions
