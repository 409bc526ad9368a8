"""Call-control API routes."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from fsapi.api.dependencies import get_esl_session, get_request_context
from fsapi.auth.scope import RequestContext
from fsapi.calls import service
from fsapi.esl.session import ESLSession
from fsapi.schemas.calls import (
    BridgeRequest,
    DTMFRequest,
    HangupRequest,
    HoldRequest,
    OriginateRequest,
    RecordRequest,
    TransferRequest,
)
from fsapi.schemas.common import ListResponse, MessageResponse


router = APIRouter(prefix="/v1", tags=["calls"])


@router.get("/status")
def status_endpoint(session: ESLSession = Depends(get_esl_session)) -> Dict[str, Any]:
    return service.get_status(session)


@router.get("/calls", response_model=ListResponse)
def list_calls_endpoint(
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.list_calls(session, ctx)


# Registered before the ``/calls/{call_uuid}`` routes so the literal paths win.
@router.post("/calls/bridge", response_model=MessageResponse)
def bridge_endpoint(
    payload: BridgeRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.bridge_calls(session, ctx, payload.uuid_a, payload.uuid_b)


@router.post("/calls/originate")
def originate_endpoint(
    payload: OriginateRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.originate_call(session, ctx, payload)


@router.get("/calls/{call_uuid}")
def call_details_endpoint(
    call_uuid: str,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.get_call_details(session, ctx, call_uuid)


@router.post("/calls/{call_uuid}/hangup", response_model=MessageResponse)
def hangup_endpoint(
    call_uuid: str,
    payload: Optional[HangupRequest] = None,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.hangup_call(session, ctx, call_uuid, payload.cause if payload else "")


@router.post("/calls/{call_uuid}/transfer", response_model=MessageResponse)
def transfer_endpoint(
    call_uuid: str,
    payload: TransferRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.transfer_call(session, ctx, call_uuid, payload)


@router.post("/calls/{call_uuid}/answer", response_model=MessageResponse)
def answer_endpoint(
    call_uuid: str,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.answer_call(session, ctx, call_uuid)


@router.post("/calls/{call_uuid}/hold", response_model=MessageResponse)
def hold_endpoint(
    call_uuid: str,
    payload: HoldRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.control_hold(session, ctx, call_uuid, payload)


@router.post("/calls/{call_uuid}/record", response_model=MessageResponse)
def record_endpoint(
    call_uuid: str,
    payload: RecordRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.control_recording(session, ctx, call_uuid, payload)


@router.post("/calls/{call_uuid}/dtmf", response_model=MessageResponse)
def dtmf_endpoint(
    call_uuid: str,
    payload: DTMFRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.send_dtmf(session, ctx, call_uuid, payload)


@router.post("/calls/{call_uuid}/park", response_model=MessageResponse)
def park_endpoint(
    call_uuid: str,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.park_call(session, ctx, call_uuid)
