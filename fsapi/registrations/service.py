"""SIP registration listing, scoped by realm."""

from __future__ import annotations

from typing import Any, Dict

from fsapi.auth import resolvers
from fsapi.auth.scope import RequestContext, filter_rows
from fsapi.core.errors import failure_prefix
from fsapi.esl.parsers import parse_json_rows_or_raise
from fsapi.esl.session import ESLSession
from fsapi.schemas.common import list_payload


def list_registrations(session: ESLSession, ctx: RequestContext) -> Dict[str, Any]:
    with failure_prefix("Failed to list registrations"):
        raw = session.send("show", "registrations as json")
        rows = parse_json_rows_or_raise(raw, context="registrations data")
    return list_payload(filter_rows(ctx.scope, rows, resolvers.REGISTRATIONS))
