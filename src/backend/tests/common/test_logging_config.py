# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import json
import logging

from common.logging_config import JsonFormatter, PrettyFormatter


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="signaling.router",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Rejected message from %s",
        args=("abc",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_service_and_extras() -> None:
    formatter = JsonFormatter("signaling", "test")

    payload = json.loads(
        formatter.format(_record(connection_id="abc", reason="role-violation"))
    )

    assert payload["message"] == "Rejected message from abc"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "signaling.router"
    assert payload["service"] == "signaling"
    assert payload["environment"] == "test"
    assert payload["connection_id"] == "abc"
    assert payload["reason"] == "role-violation"
    assert "lineno" not in payload


def test_json_formatter_serializes_non_json_extras() -> None:
    formatter = JsonFormatter("signaling", "test")

    payload = json.loads(formatter.format(_record(recipients={"b"})))

    assert payload["recipients"] == "{'b'}"


def test_pretty_formatter_is_single_line() -> None:
    formatter = PrettyFormatter("signaling", "dev")

    line = formatter.format(_record(session_id="S1"))

    assert "\n" not in line
    assert "[signaling.router] Rejected message from abc" in line
    assert "session_id=S1" in line
    assert "service=signaling" in line
