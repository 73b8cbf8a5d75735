# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Signaling envelopes exchanged with browser clients.

Inbound frames are validated once into one of the ``*Message`` models below;
anything that does not fit becomes a ``ProtocolError`` before routing starts.
Negotiation and candidate contents stay opaque (``Any``) and are forwarded
verbatim.
"""

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from signaling.errors import ProtocolError


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class JoinPayload(_Payload):
    is_mobile: Any = Field(default=None, alias="isMobile")


class DescriptionPayload(_Payload):
    """Offer/answer payload; ``target`` is only meaningful for offers."""

    target: Optional[str] = None
    sdp: Any = None
    sdp_type: Any = Field(default=None, alias="sdpType")


class CandidatePayload(_Payload):
    target: Optional[str] = None
    candidate: Any = None


class ScreenshotPayload(_Payload):
    target: str
    data_url: Any = Field(default=None, alias="dataUrl")
    meta: Any = None


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _SessionEnvelope(_Envelope):
    session_id: str = Field(alias="sessionId", min_length=1)


class CreateSessionMessage(_Envelope):
    type: Literal["create-session"]


class JoinSessionMessage(_SessionEnvelope):
    type: Literal["join-session"]
    payload: JoinPayload = Field(default_factory=JoinPayload)


class OfferMessage(_SessionEnvelope):
    type: Literal["offer"]
    payload: DescriptionPayload = Field(default_factory=DescriptionPayload)


class AnswerMessage(_SessionEnvelope):
    type: Literal["answer"]
    payload: DescriptionPayload = Field(default_factory=DescriptionPayload)


class IceCandidateMessage(_SessionEnvelope):
    type: Literal["ice-candidate"]
    payload: CandidatePayload = Field(default_factory=CandidatePayload)


class RequestScreenshotMessage(_SessionEnvelope):
    type: Literal["request-screenshot"]


class ScreenshotMessage(_SessionEnvelope):
    type: Literal["screenshot"]
    payload: ScreenshotPayload


class CloseSessionMessage(_SessionEnvelope):
    type: Literal["close-session"]


InboundMessage = Annotated[
    Union[
        CreateSessionMessage,
        JoinSessionMessage,
        OfferMessage,
        AnswerMessage,
        IceCandidateMessage,
        RequestScreenshotMessage,
        ScreenshotMessage,
        CloseSessionMessage,
    ],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)


def parse_envelope(raw: str | bytes) -> InboundMessage:
    """Decode one transport frame into a typed inbound message.

    Raises:
        ProtocolError: If the frame is not JSON, not an object, has no or an
            unknown ``type``, or does not carry the fields its type requires.
    """
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError and UnicodeDecodeError are ValueErrors; deep nesting
        # exhausts the decoder stack
        raise ProtocolError(f"invalid json: {exc}") from exc

    if not isinstance(data, dict):
        raise ProtocolError("envelope must be a JSON object")
    if not isinstance(data.get("type"), str):
        raise ProtocolError("envelope has no type")

    try:
        return _inbound_adapter.validate_python(data)
    except ValidationError as exc:
        raise ProtocolError(
            f"invalid '{data['type']}' envelope: {exc.error_count()} error(s)"
        ) from exc


def _compact(**fields: Any) -> dict[str, Any]:
    """Drop absent optional fields instead of sending them as null."""
    return {key: value for key, value in fields.items() if value is not None}


def session_created(session_id: str) -> dict[str, Any]:
    return {"type": "session-created", "sessionId": session_id}


def joined(session_id: str) -> dict[str, Any]:
    return {"type": "joined", "sessionId": session_id}


def viewer_joined(viewer_id: str, is_mobile: Any = None) -> dict[str, Any]:
    return _compact(type="viewer-joined", viewerId=viewer_id, isMobile=is_mobile)


def viewer_left(viewer_id: str) -> dict[str, Any]:
    return {"type": "viewer-left", "viewerId": viewer_id}


def session_closed() -> dict[str, Any]:
    return {"type": "session-closed"}


def closed() -> dict[str, Any]:
    return {"type": "closed"}


def error(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}


def description(kind: str, payload: DescriptionPayload, sender_id: str) -> dict[str, Any]:
    """Forwarded ``offer`` or ``answer``."""
    return _compact(
        type=kind, sdp=payload.sdp, sdpType=payload.sdp_type, **{"from": sender_id}
    )


def ice_candidate(payload: CandidatePayload, sender_id: str) -> dict[str, Any]:
    return _compact(
        type="ice-candidate", candidate=payload.candidate, **{"from": sender_id}
    )


def request_screenshot(sender_id: str) -> dict[str, Any]:
    return {"type": "request-screenshot", "from": sender_id}


def screenshot(payload: ScreenshotPayload, sender_id: str) -> dict[str, Any]:
    return _compact(
        type="screenshot",
        dataUrl=payload.data_url,
        meta=payload.meta,
        **{"from": sender_id},
    )
