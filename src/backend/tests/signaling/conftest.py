# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from collections.abc import Callable

import pytest

from relay_helpers import FakeTransport
from signaling.connection import Connection
from signaling.relay import SignalingRelay


@pytest.fixture
def relay() -> SignalingRelay:
    return SignalingRelay(send_timeout=1.0)


@pytest.fixture
def open_connection(relay: SignalingRelay) -> Callable[..., Connection]:
    """Factory opening a connection backed by a ``FakeTransport``."""

    def _open(**options: bool) -> Connection:
        return relay.open(FakeTransport(**options))

    return _open
