"""Call-center (mod_callcenter) API routes."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from fsapi.api.dependencies import get_esl_session, get_request_context
from fsapi.auth.scope import RequestContext
from fsapi.callcenter import service
from fsapi.esl.session import ESLSession
from fsapi.schemas.callcenter import (
    AgentAddRequest,
    AgentDeleteRequest,
    AgentSetRequest,
    TierAddRequest,
    TierDeleteRequest,
    TierSetRequest,
)
from fsapi.schemas.common import CountResponse, ListResponse, MessageResponse


router = APIRouter(prefix="/v1/callcenter", tags=["callcenter"])


@router.get("/queues", response_model=ListResponse)
def list_queues_endpoint(
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.list_queues(session, ctx)


@router.get("/queues/count", response_model=CountResponse)
def count_queues_endpoint(
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.count_queues(session, ctx)


@router.get("/queues/{queue}/agents", response_model=ListResponse)
def list_queue_agents_endpoint(
    queue: str,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.list_queue_entries(session, ctx, queue, "agents")


@router.get("/queues/{queue}/agents/count", response_model=CountResponse)
def count_queue_agents_endpoint(
    queue: str,
    status: Optional[str] = Query(default=None),
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.count_queue_entries(session, ctx, queue, "agents", status=status)


@router.get("/queues/{queue}/members", response_model=ListResponse)
def list_queue_members_endpoint(
    queue: str,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.list_queue_entries(session, ctx, queue, "members")


@router.get("/queues/{queue}/members/count", response_model=CountResponse)
def count_queue_members_endpoint(
    queue: str,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.count_queue_entries(session, ctx, queue, "members")


@router.get("/queues/{queue}/tiers", response_model=ListResponse)
def list_queue_tiers_endpoint(
    queue: str,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.list_queue_entries(session, ctx, queue, "tiers")


@router.get("/queues/{queue}/tiers/count", response_model=CountResponse)
def count_queue_tiers_endpoint(
    queue: str,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.count_queue_entries(session, ctx, queue, "tiers")


@router.post("/queues/{queue}/load", response_model=MessageResponse)
def load_queue_endpoint(
    queue: str,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.change_queue_state(session, ctx, queue, "load")


@router.post("/queues/{queue}/unload", response_model=MessageResponse)
def unload_queue_endpoint(
    queue: str,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.change_queue_state(session, ctx, queue, "unload")


@router.post("/queues/{queue}/reload", response_model=MessageResponse)
def reload_queue_endpoint(
    queue: str,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.change_queue_state(session, ctx, queue, "reload")


@router.get("/agents", response_model=ListResponse)
def list_agents_endpoint(
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.list_agents(session, ctx)


@router.post("/agents", response_model=MessageResponse)
def add_agent_endpoint(
    payload: AgentAddRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.add_agent(session, ctx, payload)


@router.put("/agents/{agent}", response_model=MessageResponse)
def set_agent_endpoint(
    agent: str,
    payload: AgentSetRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.set_agent(session, ctx, agent, payload)


@router.delete("/agents/{agent}", response_model=MessageResponse)
def delete_agent_endpoint(
    agent: str,
    payload: Optional[AgentDeleteRequest] = None,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.delete_agent(session, ctx, agent, payload)


@router.get("/tiers", response_model=ListResponse)
def list_tiers_endpoint(
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, Any]:
    return service.list_tiers(session, ctx)


@router.post("/tiers", response_model=MessageResponse)
def add_tier_endpoint(
    payload: TierAddRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.add_tier(session, ctx, payload)


@router.put("/tiers", response_model=MessageResponse)
def set_tier_endpoint(
    payload: TierSetRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.set_tier(session, ctx, payload)


@router.delete("/tiers", response_model=MessageResponse)
def delete_tier_endpoint(
    payload: TierDeleteRequest,
    ctx: RequestContext = Depends(get_request_context),
    session: ESLSession = Depends(get_esl_session),
) -> Dict[str, str]:
    return service.delete_tier(session, ctx, payload)
