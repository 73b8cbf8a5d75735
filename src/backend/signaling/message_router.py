# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Role-aware routing of inbound signaling envelopes."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from common.metrics import SignalingMetrics
from signaling import messages
from signaling.connection import Connection, Role
from signaling.dispatcher import Dispatcher
from signaling.errors import ProtocolError, RoleViolation, SessionNotFound
from signaling.lifecycle import LifecycleManager
from signaling.messages import (
    AnswerMessage,
    CloseSessionMessage,
    CreateSessionMessage,
    IceCandidateMessage,
    InboundMessage,
    JoinSessionMessage,
    OfferMessage,
    RequestScreenshotMessage,
    ScreenshotMessage,
)
from signaling.store import SessionSnapshot, SessionStore

logger = logging.getLogger("signaling.router")

# Which roles may send each inbound type
ALLOWED_ROLES: dict[str, frozenset[Role]] = {
    "create-session": frozenset({Role.UNASSIGNED}),
    "join-session": frozenset({Role.UNASSIGNED}),
    "offer": frozenset({Role.BROADCASTER}),
    "answer": frozenset({Role.VIEWER}),
    "ice-candidate": frozenset({Role.BROADCASTER, Role.VIEWER}),
    "request-screenshot": frozenset({Role.VIEWER}),
    "screenshot": frozenset({Role.BROADCASTER}),
    "close-session": frozenset({Role.BROADCASTER}),
}

_Handler = Callable[[Connection, SessionSnapshot, Any], Awaitable[None]]


class MessageRouter:
    """Validates envelopes from one connection and forwards them within its session."""

    def __init__(
        self,
        store: SessionStore,
        lifecycle: LifecycleManager,
        dispatcher: Dispatcher,
        metrics: SignalingMetrics,
    ) -> None:
        self._store = store
        self._lifecycle = lifecycle
        self._dispatcher = dispatcher
        self._metrics = metrics
        self._handlers: dict[str, _Handler] = {
            "join-session": self._on_join,
            "offer": self._on_offer,
            "answer": self._on_answer,
            "ice-candidate": self._on_ice_candidate,
            "request-screenshot": self._on_request_screenshot,
            "screenshot": self._on_screenshot,
            "close-session": self._on_close,
        }

    async def handle(self, connection: Connection, raw: str | bytes) -> None:
        """Process one inbound frame from ``connection``.

        Malformed frames are dropped without a reply. Unknown sessions and
        role violations are answered with an ``error`` to the sender only.
        """
        try:
            message = messages.parse_envelope(raw)
        except ProtocolError as exc:
            self._metrics.messages_dropped.add(1)
            logger.warning(
                "Dropped malformed envelope",
                extra={"connection_id": connection.id, "error": str(exc)},
            )
            return

        try:
            await self.route(connection, message)
        except SessionNotFound as exc:
            self._reject(connection, message.type, "session-not-found", str(exc))
        except RoleViolation as exc:
            self._reject(connection, message.type, "role-violation", str(exc))

    async def route(self, connection: Connection, message: InboundMessage) -> None:
        """Dispatch an already validated message."""
        if isinstance(message, CreateSessionMessage):
            self._require_role(connection, message.type)
            await self._on_create(connection)
        else:
            session = await self._store.lookup_session(message.session_id)
            if session is None:
                raise SessionNotFound(message.session_id)
            self._require_role(connection, message.type)
            if connection.session_id is not None and connection.session_id != session.id:
                raise RoleViolation(
                    message.type,
                    connection.role.value,
                    "Not a member of this session",
                )
            await self._handlers[message.type](connection, session, message)

        self._metrics.messages_routed.add(1, {"type": message.type})

    def _require_role(self, connection: Connection, message_type: str) -> None:
        if connection.role not in ALLOWED_ROLES[message_type]:
            raise RoleViolation(message_type, connection.role.value)

    def _reject(
        self, connection: Connection, message_type: str, reason: str, detail: str
    ) -> None:
        self._metrics.messages_rejected.add(1, {"reason": reason, "type": message_type})
        logger.info(
            "Rejected message",
            extra={
                "connection_id": connection.id,
                "message_type": message_type,
                "reason": reason,
            },
        )
        self._dispatcher.send(connection, messages.error(detail))

    def _forward(
        self,
        sender: Connection,
        recipients: Sequence[Connection],
        message: dict[str, Any],
    ) -> None:
        if not recipients:
            logger.debug(
                "No recipient for message",
                extra={"connection_id": sender.id, "message_type": message["type"]},
            )
            return
        queued = self._dispatcher.send_many(recipients, message)
        logger.debug(
            "Forwarded message",
            extra={
                "connection_id": sender.id,
                "message_type": message["type"],
                "recipients": [r.id for r in recipients],
                "queued": queued,
            },
        )

    async def _on_create(self, connection: Connection) -> None:
        session_id = await self._store.create_session(connection)
        self._metrics.sessions_created.add(1)
        self._metrics.active_sessions.add(1)
        self._dispatcher.send(connection, messages.session_created(session_id))

    async def _on_join(
        self, connection: Connection, session: SessionSnapshot, message: JoinSessionMessage
    ) -> None:
        # may still raise SessionNotFound if the broadcaster left meanwhile
        session = await self._store.add_viewer(session.id, connection)
        self._metrics.viewers_joined.add(1)
        logger.info(
            "Viewer joined",
            extra={"session_id": session.id, "connection_id": connection.id},
        )
        self._dispatcher.send(connection, messages.joined(session.id))
        self._dispatcher.send(
            session.broadcaster,
            messages.viewer_joined(connection.id, message.payload.is_mobile),
        )

    async def _on_offer(
        self, connection: Connection, session: SessionSnapshot, message: OfferMessage
    ) -> None:
        target = message.payload.target
        if target:
            viewer = session.find_viewer(target)
            recipients: Sequence[Connection] = (viewer,) if viewer else ()
        else:
            recipients = session.viewers
        self._forward(
            connection,
            recipients,
            messages.description("offer", message.payload, connection.id),
        )

    async def _on_answer(
        self, connection: Connection, session: SessionSnapshot, message: AnswerMessage
    ) -> None:
        self._forward(
            connection,
            (session.broadcaster,),
            messages.description("answer", message.payload, connection.id),
        )

    async def _on_ice_candidate(
        self,
        connection: Connection,
        session: SessionSnapshot,
        message: IceCandidateMessage,
    ) -> None:
        target = message.payload.target
        recipients: Sequence[Connection]
        if target:
            member = session.find_member(target)
            recipients = (member,) if member else ()
        elif connection.role is Role.BROADCASTER:
            recipients = session.viewers
        else:
            recipients = (session.broadcaster,)
        self._forward(
            connection,
            recipients,
            messages.ice_candidate(message.payload, connection.id),
        )

    async def _on_request_screenshot(
        self,
        connection: Connection,
        session: SessionSnapshot,
        message: RequestScreenshotMessage,
    ) -> None:
        self._forward(
            connection,
            (session.broadcaster,),
            messages.request_screenshot(connection.id),
        )

    async def _on_screenshot(
        self, connection: Connection, session: SessionSnapshot, message: ScreenshotMessage
    ) -> None:
        viewer = session.find_viewer(message.payload.target)
        self._forward(
            connection,
            (viewer,) if viewer else (),
            messages.screenshot(message.payload, connection.id),
        )

    async def _on_close(
        self, connection: Connection, session: SessionSnapshot, message: CloseSessionMessage
    ) -> None:
        await self._lifecycle.close_session(session.id, "closed-by-broadcaster")
        self._dispatcher.send(connection, messages.closed())
