# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import asyncio
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from common.protocols import SignalingTransport


class Role(str, Enum):
    """Role a connection plays inside a session."""

    UNASSIGNED = "unassigned"
    BROADCASTER = "broadcaster"
    VIEWER = "viewer"


@dataclass(eq=False)
class Connection:
    """Per-connection state for one signaling client.

    ``role`` and ``session_id`` are written once by ``assign`` and never
    revert. The transport is borrowed from the endpoint that accepted it and
    is only written by the ``writer`` task draining ``outbox``.
    """

    transport: SignalingTransport
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    role: Role = Role.UNASSIGNED
    session_id: Optional[str] = None
    closed: bool = False
    """Transport is gone or closing; nothing more is sent to it."""
    released: bool = False
    """Lifecycle cleanup already ran for this connection."""
    close_code: Optional[int] = None
    """Set when the relay asked for a server-side close."""
    outbox: "asyncio.Queue[Any]" = field(default_factory=asyncio.Queue, repr=False)
    writer: Optional["asyncio.Task[None]"] = field(default=None, repr=False)

    def assign(self, role: Role, session_id: str) -> None:
        """Bind the connection to a session with its role."""
        if self.role is not Role.UNASSIGNED or self.session_id is not None:
            raise RuntimeError(
                f"connection {self.id} already bound to {self.session_id} as {self.role.value}"
            )
        if role is Role.UNASSIGNED:
            raise ValueError("cannot assign the unassigned role")
        self.role = role
        self.session_id = session_id

    @property
    def is_open(self) -> bool:
        return not self.closed
