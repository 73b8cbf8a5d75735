# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import asyncio
import logging

from common.metrics import SignalingMetrics
from common.protocols import SignalingTransport
from signaling.connection import Connection
from signaling.dispatcher import Dispatcher
from signaling.lifecycle import LifecycleManager
from signaling.message_router import MessageRouter
from signaling.store import SessionStore

logger = logging.getLogger("signaling.relay")


class SignalingRelay:
    """Owns the session registry and wires the router and lifecycle around it.

    One instance lives for the lifetime of the application; every WebSocket
    endpoint receives it explicitly and drives it through ``open``,
    ``receive`` and ``close``.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        metrics: SignalingMetrics | None = None,
        send_timeout: float = 5.0,
    ) -> None:
        self.store = store or SessionStore()
        self.metrics = metrics or SignalingMetrics()
        self.dispatcher = Dispatcher(self.metrics, send_timeout=send_timeout)
        self.lifecycle = LifecycleManager(self.store, self.dispatcher, self.metrics)
        self.router = MessageRouter(
            self.store, self.lifecycle, self.dispatcher, self.metrics
        )
        self._connections: dict[str, Connection] = {}

    @property
    def connections(self) -> dict[str, Connection]:
        return dict(self._connections)

    def open(self, transport: SignalingTransport) -> Connection:
        """Register a freshly accepted transport."""
        connection = Connection(transport=transport)
        self._connections[connection.id] = connection
        self.dispatcher.start(connection)
        logger.info("Client connected", extra={"connection_id": connection.id})
        return connection

    async def receive(self, connection: Connection, raw: str | bytes) -> None:
        await self.router.handle(connection, raw)

    async def close(self, connection: Connection) -> None:
        """Clean up after a transport closed; runs once per connection."""
        try:
            await self.lifecycle.connection_closed(connection)
        finally:
            self._connections.pop(connection.id, None)
            await self.dispatcher.stop(connection)
        logger.info(
            "Client disconnected",
            extra={
                "connection_id": connection.id,
                "role": connection.role.value,
                "session_id": connection.session_id,
            },
        )

    async def shutdown(self) -> None:
        """Dismiss every session and close every remaining transport."""
        await self.lifecycle.close_all("shutdown")
        connections = list(self._connections.values())
        for connection in connections:
            self.dispatcher.close(connection, code=1001)
        await asyncio.gather(*(self.dispatcher.stop(c) for c in connections))
