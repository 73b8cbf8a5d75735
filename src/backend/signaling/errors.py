# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Error taxonomy of the signaling relay.

Only ``SessionNotFound`` and ``RoleViolation`` are reported back to the
client; the other errors are logged and otherwise confined to the connection
that caused them.
"""


class SignalingError(Exception):
    """Base class for relay errors."""


class ProtocolError(SignalingError):
    """Inbound frame is not a valid envelope; it is dropped without a reply."""


class SessionNotFound(SignalingError):
    """Referenced session id does not resolve to a live session."""

    def __init__(self, session_id: str | None) -> None:
        super().__init__("Session not found")
        self.session_id = session_id


class RoleViolation(SignalingError):
    """Message type is not permitted for the sender's current role."""

    def __init__(self, message_type: str, role: str, detail: str | None = None) -> None:
        super().__init__(detail or f"'{message_type}' is not allowed for role {role}")
        self.message_type = message_type
        self.role = role


class TransportError(SignalingError):
    """Sending to a recipient failed or timed out."""

    def __init__(self, connection_id: str, cause: BaseException | None = None) -> None:
        super().__init__(f"Send to {connection_id} failed")
        self.connection_id = connection_id
        self.cause = cause
