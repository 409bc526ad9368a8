from __future__ import annotations

import threading
import time

import pytest

from fsapi.core.errors import ChannelError, RemoteError, ValidationError
from fsapi.esl.session import Command, ESLSession, RawReply


def test_command_line_rendering() -> None:
    assert Command("status").line == "api status"
    assert Command("uuid_kill", "abc NORMAL_CLEARING").line == "api uuid_kill abc NORMAL_CLEARING"


def test_reply_payload_prefers_body() -> None:
    assert RawReply(reply_text="+OK", body="UP 0 years").payload == "UP 0 years"
    assert RawReply(reply_text="+OK accepted", body="").payload == "+OK accepted"


def test_connects_lazily_and_reuses_connection(switch) -> None:
    session = ESLSession(switch, command_timeout=3.0)
    assert switch.connects == 0

    session.send("status")
    session.send("uuid_answer", "abc")

    assert switch.connects == 1
    assert switch.lines == ["api status", "api uuid_answer abc"]
    assert switch.timeouts == [3.0, 3.0]
    assert session.connected is True


def test_remote_error_keeps_connection(switch) -> None:
    session = ESLSession(switch)
    switch.reply("api uuid_kill", "-ERR No such channel!\n")

    with pytest.raises(RemoteError, match="ESL error: -ERR No such channel!"):
        session.send("uuid_kill", "abc")
    session.send("status")

    assert switch.connects == 1


def test_reply_text_error_is_remote_error(switch) -> None:
    session = ESLSession(switch)
    switch.reply("api bogus", "", reply_text="-ERR command not found")

    with pytest.raises(RemoteError, match="-ERR command not found"):
        session.send("bogus")


def test_timeout_invalidates_connection_and_next_send_reconnects(switch) -> None:
    session = ESLSession(switch, command_timeout=0.5)
    switch.fail("api status", TimeoutError("no reply"))

    with pytest.raises(ChannelError, match="ESL command timed out after 0.5s"):
        session.send("status")
    assert switch.closed == 1
    assert session.connected is False

    switch.reply("api status", "UP")
    assert session.send("status") == "UP"
    assert switch.connects == 2


def test_transport_failure_becomes_channel_error(switch) -> None:
    session = ESLSession(switch)
    switch.fail("api status", OSError("broken pipe"))

    with pytest.raises(ChannelError, match="ESL command failed: broken pipe"):
        session.send("status")
    assert session.connected is False


def test_connect_failure_is_channel_error_and_retried_on_next_send(switch) -> None:
    session = ESLSession(switch)
    switch.connect_error = ConnectionRefusedError("refused")

    with pytest.raises(ChannelError, match="ESL connection failed: refused"):
        session.send("status")

    switch.connect_error = None
    session.send("status")
    assert switch.connects == 1


def test_dropped_connection_is_replaced_before_send(switch) -> None:
    session = ESLSession(switch)
    session.send("status")
    switch.connections[0].connected = False

    session.send("status")

    assert switch.connects == 2
    assert switch.closed == 1


def test_rejects_commands_that_would_break_framing(switch) -> None:
    session = ESLSession(switch)

    with pytest.raises(ValidationError):
        session.send("uuid kill")
    with pytest.raises(ValidationError):
        session.send("status", "x\nevent plain ALL")
    assert switch.lines == []


def test_commands_are_serialized(switch) -> None:
    session = ESLSession(switch)
    in_flight = {"current": 0, "max": 0}
    guard = threading.Lock()
    original = switch.reply_for

    def slow_reply(line: str):
        with guard:
            in_flight["current"] += 1
            in_flight["max"] = max(in_flight["max"], in_flight["current"])
        time.sleep(0.01)
        with guard:
            in_flight["current"] -= 1
        return original(line)

    switch.reply_for = slow_reply
    threads = [threading.Thread(target=session.send, args=("status",)) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert in_flight["max"] == 1
    assert len(switch.lines) == 8
    assert switch.connects == 1


def test_close_drops_connection(switch) -> None:
    session = ESLSession(switch)
    session.send("status")

    session.close()

    assert session.connected is False
    assert switch.closed == 1


def test_rejects_non_positive_timeout(switch) -> None:
    with pytest.raises(ValueError):
        ESLSession(switch, command_timeout=0)
