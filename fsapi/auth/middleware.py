"""Request authentication and tenant-scope helpers used by the HTTP middleware."""

from __future__ import annotations

import secrets
from typing import Optional, Sequence

from fastapi import Request

from fsapi.auth.scope import ALLOWED_CONTEXTS_HEADER, RequestContext, parse_scope
from fsapi.core.errors import AuthenticationError


REQUEST_CONTEXT_KEY = "request_context"
LOOPBACK_HOSTS = frozenset({"127.0.0.1", "::1", "localhost"})


def _extract_bearer_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization")
    if not authorization:
        raise AuthenticationError("Missing Authorization header")

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0] != "Bearer":
        raise AuthenticationError("Invalid Authorization header format. Expected: Bearer <token>")
    return parts[1].strip() or None


def is_loopback(request: Request) -> bool:
    return bool(request.client and request.client.host in LOOPBACK_HOSTS)


def authenticate_request(request: Request, allowed_tokens: Sequence[str]) -> None:
    """Raise ``AuthenticationError`` unless the request may proceed.

    Loopback callers and deployments without configured tokens are let through.
    """

    if is_loopback(request) or not allowed_tokens:
        return

    token = _extract_bearer_token(request)
    if token and any(secrets.compare_digest(token.encode(), allowed.encode()) for allowed in allowed_tokens):
        return
    raise AuthenticationError("Invalid authentication token")


def resolve_request_context(request: Request, request_id: str) -> RequestContext:
    return RequestContext(
        request_id=request_id,
        scope=parse_scope(request.headers.get(ALLOWED_CONTEXTS_HEADER)),
    )
