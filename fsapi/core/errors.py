"""Error taxonomy shared by the switch session, the authorization engine and the handlers.

Each error carries the HTTP status it maps to at the API boundary and a
human-readable message that is returned verbatim in the error envelope.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator


class FSAPIError(Exception):
    """Base class for every failure surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def with_prefix(self, prefix: str) -> "FSAPIError":
        """Return a copy of this error whose message starts with ``prefix``."""

        return type(self)(f"{prefix}: {self.message}")


class ValidationError(FSAPIError):
    """Bad input shape. Raised before anything is sent to the switch."""

    status_code = 400


class AuthenticationError(FSAPIError):
    status_code = 401


class AuthorizationError(FSAPIError):
    """The resolved tenant is outside the caller's scope."""

    status_code = 403


class NotFoundError(FSAPIError):
    status_code = 404


class RemoteError(FSAPIError):
    """The switch answered a well-formed command with an explicit ``-ERR``."""

    status_code = 502


class ChannelError(FSAPIError):
    """The control connection could not be established, broke or timed out."""

    status_code = 503


class UpstreamFormatError(FSAPIError):
    """A reply did not have the shape the command is documented to return."""

    status_code = 500


class ParseError(UpstreamFormatError):
    pass


@contextmanager
def failure_prefix(prefix: str) -> Iterator[None]:
    """Prefix channel, remote and format failures raised inside the block.

    Validation, authorization and not-found errors pass through untouched.
    """

    try:
        yield
    except (ChannelError, RemoteError, UpstreamFormatError) as exc:
        raise exc.with_prefix(prefix) from exc
