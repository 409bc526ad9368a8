from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple, Union

from fastapi.testclient import TestClient
import pytest

import fsapi.api.main as api_main
from fsapi.api.dependencies import get_esl_session
from fsapi.core.metrics import reset_metrics_for_tests
from fsapi.esl.session import ESLSession, RawReply


DEFAULT_REPLY = RawReply(reply_text="", body="+OK\n")

Scripted = Union[RawReply, BaseException]


class FakeConnection:
    def __init__(self, switch: "FakeSwitch") -> None:
        self._switch = switch
        self.connected = True

    def send(self, line: str, *, timeout: float) -> RawReply:
        self._switch.lines.append(line)
        self._switch.timeouts.append(timeout)
        reply = self._switch.reply_for(line)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def close(self) -> None:
        self.connected = False
        self._switch.closed += 1


class FakeSwitch:
    """Scripted stand-in for the event-socket connector.

    Replies are matched by command-line prefix, latest registration first.
    Unmatched commands get a bare ``+OK``.
    """

    def __init__(self) -> None:
        self.lines: List[str] = []
        self.timeouts: List[float] = []
        self.connects = 0
        self.closed = 0
        self.connect_error: Optional[BaseException] = None
        self.connections: List[FakeConnection] = []
        self._script: List[Tuple[str, Scripted]] = []

    def reply(self, prefix: str, body: str = "", *, reply_text: str = "") -> None:
        self._script.append((prefix, RawReply(reply_text=reply_text, body=body)))

    def reply_json(self, prefix: str, payload: Dict[str, Any]) -> None:
        self.reply(prefix, json.dumps(payload))

    def fail(self, prefix: str, exc: BaseException) -> None:
        self._script.append((prefix, exc))

    def reply_for(self, line: str) -> Scripted:
        for prefix, reply in reversed(self._script):
            if line.startswith(prefix):
                return reply
        return DEFAULT_REPLY

    def connect(self) -> FakeConnection:
        if self.connect_error is not None:
            raise self.connect_error
        self.connects += 1
        connection = FakeConnection(self)
        self.connections.append(connection)
        return connection

    def commands(self, prefix: str = "api ") -> List[str]:
        return [line for line in self.lines if line.startswith(prefix)]


def calls_payload(*rows: Dict[str, str]) -> Dict[str, Any]:
    if not rows:
        return {"row_count": 0}
    return {"row_count": len(rows), "rows": list(rows)}


@pytest.fixture
def switch() -> FakeSwitch:
    return FakeSwitch()


@pytest.fixture
def esl_session(switch: FakeSwitch) -> ESLSession:
    return ESLSession(switch, command_timeout=2.0)


@pytest.fixture
def client(esl_session: ESLSession):
    reset_metrics_for_tests()
    api_main.app.dependency_overrides[get_esl_session] = lambda: esl_session
    try:
        yield TestClient(api_main.app)
    finally:
        api_main.app.dependency_overrides.pop(get_esl_session, None)
