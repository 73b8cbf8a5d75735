# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import os
from pathlib import Path
from typing import Optional


def _optional_path(value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    return Path(value).resolve()


class Config:
    """Application configuration."""

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))
    RELOAD: bool = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")

    # ICE side-channel; a TURN entry is only handed out when all three are set
    STUN_SERVER: str = os.getenv("STUN_SERVER", "stun:stun.l.google.com:19302")
    TURN_URL: Optional[str] = os.getenv("TURN_URL")
    TURN_USER: Optional[str] = os.getenv("TURN_USER")
    TURN_PASS: Optional[str] = os.getenv("TURN_PASS")

    # Signaling settings
    SEND_TIMEOUT: float = float(
        os.getenv("SEND_TIMEOUT", "5.0")
    )  # seconds before a single outbound send is abandoned

    # CORS settings
    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")

    # Browser client served from the page origin (disabled when unset)
    STATIC_DIR: Optional[Path] = _optional_path(os.getenv("STATIC_DIR"))


config = Config()
