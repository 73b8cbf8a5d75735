# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT

"""Signaling service main entrypoint."""

# Necessary for running stuff before other imports
# ruff: noqa: E402

from common import __version__
from common.logging_config import configure_logging
from common.metrics import configure_metrics

# Initialize logging early
configure_logging(service_name="signaling", service_version=__version__)

configure_metrics(service_name="signaling", service_version=__version__)

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from common.config import config
from signaling.relay import SignalingRelay
from signaling.routes import router

logger = logging.getLogger("signaling")


def create_app(
    relay: Optional[SignalingRelay] = None,
    static_dir: Optional[Path] = None,
) -> FastAPI:
    """FastAPI factory for the signaling relay.

    Args:
        relay: Relay to serve; a fresh one (with an empty session registry)
            is created when omitted.
        static_dir: Directory with the browser client. Falls back to
            ``config.STATIC_DIR``; nothing is mounted when neither is set.
    """
    relay = relay or SignalingRelay(send_timeout=config.SEND_TIMEOUT)
    static_dir = static_dir or config.STATIC_DIR

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Close every remaining session when the server stops."""
        yield
        try:
            await relay.shutdown()
        except Exception:
            logger.exception("Error while shutting down signaling relay")

    app = FastAPI(
        title="Signaling Relay",
        version=__version__,
        description=(
            "WebSocket relay that pairs one screen-sharing broadcaster with its "
            "viewers and forwards their WebRTC negotiation messages"
        ),
        lifespan=lifespan,
    )
    app.state.relay = relay

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(router)

    # Mounted last so the API and WebSocket routes take precedence
    if static_dir is not None:
        if static_dir.is_dir():
            app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        else:
            logger.warning(
                "Static directory not found; browser client not served",
                extra={"static_dir": str(static_dir)},
            )
    return app


app = create_app()
