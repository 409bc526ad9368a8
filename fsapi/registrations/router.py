"""Registration API routes."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from fsapi.api.dependencies import get_esl_session, get_request_context
from fsapi.auth.scope import RequestContext
from fsapi.esl.session import ESLSession
from fsapi.registrations.service import list_registrations
from fsapi.schemas.common import ListResponse


router = APIRouter(prefix="/v1", tags=["registrations"])


@router.get("/registrations", response_model=ListResponse)
def list_registrations_endpoint(
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return list_registrations(session, ctx)
