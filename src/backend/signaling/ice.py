# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from typing import Optional

from pydantic import BaseModel, ConfigDict

from common.config import config


class IceServer(BaseModel):
    """One RTCIceServer entry as consumed by browsers."""

    model_config = ConfigDict(extra="forbid")

    urls: str | list[str]
    username: Optional[str] = None
    credential: Optional[str] = None


class IceServersResponse(BaseModel):
    iceServers: list[IceServer]


def build_ice_servers(
    stun_server: Optional[str] = None,
    turn_url: Optional[str] = None,
    turn_user: Optional[str] = None,
    turn_pass: Optional[str] = None,
) -> list[IceServer]:
    """STUN entry plus a TURN entry when url, user and password are all given."""
    servers: list[IceServer] = []
    if stun_server:
        servers.append(IceServer(urls=stun_server))
    if turn_url and turn_user and turn_pass:
        servers.append(
            IceServer(urls=turn_url, username=turn_user, credential=turn_pass)
        )
    return servers


def configured_ice_servers() -> list[IceServer]:
    """ICE servers from the current configuration."""
    return build_ice_servers(
        stun_server=config.STUN_SERVER,
        turn_url=config.TURN_URL,
        turn_user=config.TURN_USER,
        turn_pass=config.TURN_PASS,
    )
