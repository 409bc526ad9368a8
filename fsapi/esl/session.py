"""Owned, lock-guarded session over the single control connection to the switch."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Optional, Protocol

from fsapi.core.errors import ChannelError, RemoteError, ValidationError
from fsapi.core.logger import get_logger
from fsapi.core.metrics import record_esl_command, record_esl_connection


ERROR_PREFIX = "-ERR"
DEFAULT_COMMAND_TIMEOUT_SECONDS = 10.0

logger = get_logger("fsapi.esl.session")


@dataclass(frozen=True)
class Command:
    name: str
    arguments: str = ""
    timeout: float = DEFAULT_COMMAND_TIMEOUT_SECONDS

    @property
    def line(self) -> str:
        if self.arguments:
            return f"api {self.name} {self.arguments}"
        return f"api {self.name}"


@dataclass(frozen=True)
class RawReply:
    """Reply as delivered by the client: the ``Reply-Text`` header and the body."""

    reply_text: str = ""
    body: str = ""

    @property
    def payload(self) -> str:
        return self.body if self.body else self.reply_text

    @property
    def is_error(self) -> bool:
        return self.reply_text.startswith(ERROR_PREFIX) or self.body.lstrip().startswith(ERROR_PREFIX)

    @property
    def error_message(self) -> str:
        if self.reply_text.startswith(ERROR_PREFIX):
            return self.reply_text.strip()
        return self.body.strip()


class ESLConnection(Protocol):
    @property
    def connected(self) -> bool:
        """Whether the underlying socket is still believed to be open."""

    def send(self, line: str, *, timeout: float) -> RawReply:
        """Send one command line and block until its reply or ``TimeoutError``."""

    def close(self) -> None:
        """Release the connection."""


class ESLConnector(Protocol):
    def connect(self) -> ESLConnection:
        """Open and authenticate a new connection."""


class ESLSession:
    """Serializes every command over one lazily established connection.

    A transport failure or timeout drops the cached connection so the next
    ``send`` dials a fresh one. An explicit ``-ERR`` reply is a ``RemoteError``
    and leaves the connection in place. Nothing is retried here.
    """

    def __init__(self, connector: ESLConnector, *, command_timeout: float = DEFAULT_COMMAND_TIMEOUT_SECONDS) -> None:
        if command_timeout <= 0:
            raise ValueError("command_timeout must be positive")
        self._connector = connector
        self._command_timeout = command_timeout
        self._lock = threading.Lock()
        self._connection: Optional[ESLConnection] = None

    @property
    def command_timeout(self) -> float:
        return self._command_timeout

    @property
    def connected(self) -> bool:
        with self._lock:
            return self._connection is not None and self._connection.connected

    def command(self, name: str, arguments: str = "") -> Command:
        return Command(name=name, arguments=arguments, timeout=self._command_timeout)

    def send(self, name: str, arguments: str = "") -> str:
        """Send ``api <name> <arguments>`` and return the normalized reply payload."""

        return self.execute(self.command(name, arguments))

    def execute(self, command: Command) -> str:
        if not command.name or any(char.isspace() for char in command.name):
            raise ValidationError(f"invalid command name: {command.name!r}")
        if "\n" in command.arguments or "\r" in command.arguments:
            raise ValidationError("command arguments must not contain line breaks")

        with self._lock:
            connection = self._acquire()
            logger.debug("esl_command", command=command.line)
            try:
                reply = connection.send(command.line, timeout=command.timeout)
            except TimeoutError as exc:
                self._invalidate()
                record_esl_command(command=command.name, outcome="channel_error")
                logger.warning("esl_command_timeout", command=command.name, timeout=command.timeout)
                raise ChannelError(f"ESL command timed out after {command.timeout:g}s") from exc
            except Exception as exc:
                self._invalidate()
                record_esl_command(command=command.name, outcome="channel_error")
                logger.warning("esl_command_failed", command=command.name, error=str(exc))
                raise ChannelError(f"ESL command failed: {exc}") from exc

        if reply.is_error:
            record_esl_command(command=command.name, outcome="remote_error")
            logger.info("esl_remote_error", command=command.name, reply=reply.error_message)
            raise RemoteError(f"ESL error: {reply.error_message}")

        record_esl_command(command=command.name, outcome="ok")
        return reply.payload

    def close(self) -> None:
        with self._lock:
            self._invalidate()

    def _acquire(self) -> ESLConnection:
        # Caller holds self._lock.
        if self._connection is not None and not self._connection.connected:
            logger.info("esl_connection_lost")
            self._invalidate()
        if self._connection is not None:
            return self._connection
        try:
            self._connection = self._connector.connect()
        except Exception as exc:
            record_esl_connection(outcome="failed")
            logger.error("esl_connection_failed", error=str(exc))
            raise ChannelError(f"ESL connection failed: {exc}") from exc
        record_esl_connection(outcome="established")
        logger.info("esl_connection_established")
        return self._connection

    def _invalidate(self) -> None:
        # Caller holds self._lock.
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            connection.close()
        except Exception as exc:
            logger.warning("esl_connection_close_failed", error=str(exc))
