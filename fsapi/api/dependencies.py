"""FastAPI dependencies that hand handlers their explicit collaborators."""

from __future__ import annotations

from fastapi import Request

from fsapi.auth.middleware import REQUEST_CONTEXT_KEY, resolve_request_context
from fsapi.auth.scope import RequestContext
from fsapi.esl.session import ESLSession


ESL_SESSION_KEY = "esl_session"


def get_request_context(request: Request) -> RequestContext:
    context = getattr(request.state, REQUEST_CONTEXT_KEY, None)
    if context is None:
        context = resolve_request_context(request, request.headers.get("x-request-id", "unknown"))
    return context


def get_esl_session(request: Request) -> ESLSession:
    return getattr(request.app.state, ESL_SESSION_KEY)
