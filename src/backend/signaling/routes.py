# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""HTTP side-channel and WebSocket signaling endpoint."""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket
from fastapi.requests import HTTPConnection

from signaling.ice import IceServersResponse, configured_ice_servers
from signaling.relay import SignalingRelay

logger = logging.getLogger("signaling")
router = APIRouter()


def get_relay(conn: HTTPConnection) -> SignalingRelay:
    """Relay owned by the running application."""
    return conn.app.state.relay


@router.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@router.get(
    "/iceServers",
    response_model=IceServersResponse,
    response_model_exclude_none=True,
)
def ice_servers() -> IceServersResponse:
    """STUN/TURN configuration for the browsers' peer connections."""
    return IceServersResponse(iceServers=configured_ice_servers())


# Browsers open the socket on the page origin itself
@router.websocket("/")
@router.websocket("/ws")
async def signaling_endpoint(
    websocket: WebSocket, relay: SignalingRelay = Depends(get_relay)
) -> None:
    """One coroutine per client: read frames in order until the socket closes."""
    await websocket.accept()
    connection = relay.open(websocket)

    try:
        while not connection.closed:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue
            try:
                await relay.receive(connection, raw)
            except Exception:
                logger.exception(
                    "Unhandled error while routing message",
                    extra={"connection_id": connection.id},
                )
    finally:
        # registry cleanup has to complete even when this task is cancelled
        await asyncio.shield(relay.close(connection))
