"""greenswitch-backed implementation of the connector used by ``ESLSession``."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import gevent
import greenswitch

from fsapi.core.config import Settings
from fsapi.esl.session import RawReply


class GreenswitchConnection:
    """One authenticated inbound event-socket connection.

    greenswitch runs its reader greenlets on the gevent hub of the thread that
    connected, so every call is funnelled through the connector's single
    worker thread.
    """

    def __init__(self, client: greenswitch.InboundESL, executor: ThreadPoolExecutor) -> None:
        self._client = client
        self._executor = executor

    @property
    def connected(self) -> bool:
        return bool(getattr(self._client, "connected", False))

    def send(self, line: str, *, timeout: float) -> RawReply:
        return self._executor.submit(self._send, line, timeout).result()

    def close(self) -> None:
        self._executor.submit(self._client.stop).result()

    def _send(self, line: str, timeout: float) -> RawReply:
        with gevent.Timeout(timeout, TimeoutError(f"no reply within {timeout:g}s")):
            event = self._client.send(line)
        headers = getattr(event, "headers", None) or {}
        return RawReply(
            reply_text=str(headers.get("Reply-Text", "") or ""),
            body=str(getattr(event, "data", "") or ""),
        )


class GreenswitchConnector:
    def __init__(self, *, host: str, port: int, password: str, connect_timeout: float = 5.0) -> None:
        self.host = host
        self.port = port
        self.password = password
        self.connect_timeout = connect_timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="esl")

    def connect(self) -> GreenswitchConnection:
        return self._executor.submit(self._connect).result()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    def _connect(self) -> GreenswitchConnection:
        client = greenswitch.InboundESL(
            host=self.host,
            port=self.port,
            password=self.password,
            timeout=self.connect_timeout,
        )
        client.connect()
        return GreenswitchConnection(client, self._executor)


def build_connector(settings: Settings) -> GreenswitchConnector:
    return GreenswitchConnector(
        host=settings.esl_host,
        port=settings.esl_port,
        password=settings.esl_password,
        connect_timeout=settings.esl_connect_timeout_seconds,
    )
