# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Best-effort delivery of outbound envelopes to connections."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from common.metrics import SignalingMetrics
from signaling.connection import Connection
from signaling.errors import TransportError

logger = logging.getLogger("signaling.dispatcher")


@dataclass(frozen=True)
class _CloseRequest:
    code: int


class Dispatcher:
    """Queues envelopes without letting one recipient affect another.

    Every connection owns a FIFO outbox drained by its own writer task, so
    routing never waits on a transport and a slow recipient only delays its
    own frames. Each transport call is bounded by ``send_timeout``. A failed
    or slow send is logged and counted; the recipient stays registered until
    its own close event reaps it.
    """

    def __init__(self, metrics: SignalingMetrics, send_timeout: float = 5.0) -> None:
        self._metrics = metrics
        self._send_timeout = send_timeout

    def start(self, connection: Connection) -> None:
        """Spawn the writer task for a freshly opened connection."""
        if connection.writer is None:
            connection.writer = asyncio.create_task(
                self._drain(connection), name=f"signaling-writer-{connection.id}"
            )

    async def stop(self, connection: Connection) -> None:
        """Stop the writer of a connection that is going away.

        A close the relay already requested gets up to two send timeouts to
        finish writing before the writer is cancelled.
        """
        writer = connection.writer
        if writer is None:
            return
        if connection.close_code is not None and not writer.done():
            await asyncio.wait([writer], timeout=2 * self._send_timeout)
        writer.cancel()
        await asyncio.wait([writer])
        if not writer.cancelled() and writer.exception() is not None:
            logger.error(
                "Writer task failed",
                exc_info=writer.exception(),
                extra={"connection_id": connection.id},
            )

    def send(self, connection: Connection, message: dict[str, Any]) -> bool:
        """Queue one envelope; returns False when the connection is closed."""
        if connection.closed:
            return False
        connection.outbox.put_nowait(message)
        return True

    def send_many(
        self, connections: Iterable[Connection], message: dict[str, Any]
    ) -> int:
        """Fan out one envelope; returns how many recipients accepted it."""
        return sum(self.send(connection, message) for connection in connections)

    def close(self, connection: Connection, code: int = 1000) -> None:
        """Force-close a transport once the frames already queued are written."""
        if connection.closed:
            return
        connection.closed = True
        connection.close_code = code
        connection.outbox.put_nowait(_CloseRequest(code))

    async def _drain(self, connection: Connection) -> None:
        outbox = connection.outbox
        while True:
            item = await outbox.get()
            try:
                if isinstance(item, _CloseRequest):
                    await self._close_transport(connection, item.code)
                    return
                await self._deliver(connection, item)
            except TransportError as exc:
                self._send_failed(exc, item)
            finally:
                outbox.task_done()

    async def _deliver(self, connection: Connection, message: dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(
                connection.transport.send_json(message),
                timeout=self._send_timeout,
            )
        except Exception as exc:
            raise TransportError(connection.id, exc) from exc

    def _send_failed(self, exc: TransportError, message: dict[str, Any]) -> None:
        self._metrics.send_failures.add(1, {"type": message.get("type", "")})
        logger.warning(
            "Send failed",
            extra={
                "connection_id": exc.connection_id,
                "message_type": message.get("type"),
                "error": repr(exc.cause),
            },
        )

    async def _close_transport(self, connection: Connection, code: int) -> None:
        try:
            await asyncio.wait_for(
                connection.transport.close(code=code), timeout=self._send_timeout
            )
        except Exception as exc:
            logger.warning(
                "Close failed",
                extra={
                    "connection_id": connection.id,
                    "code": code,
                    "error": repr(exc),
                },
            )
            return
        logger.debug(
            "Connection closed by relay",
            extra={"connection_id": connection.id, "code": code},
        )
