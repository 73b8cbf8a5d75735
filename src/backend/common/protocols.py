# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class SignalingTransport(Protocol):
    """Bidirectional message channel of a single signaling client.

    ``fastapi.WebSocket`` satisfies this interface directly; the relay only
    ever sends JSON documents and closes, reading is left to the endpoint.
    """

    async def send_json(self, data: Any, mode: str = "text") -> None:
        """Serialize ``data`` and send it as one frame."""
        ...

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        """Close the channel from the server side."""
        ...
