"""mod_callcenter management: queues, agents and tiers over ``callcenter_config``."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fsapi.auth import resolvers
from fsapi.auth.scope import RequestContext, filter_rows, require_allowed
from fsapi.core.errors import ParseError, ValidationError, failure_prefix
from fsapi.core.logger import get_logger
from fsapi.core.validation import validate_choice, validate_quoted, validate_token
from fsapi.esl.parsers import Row, parse_count_or_raise, parse_table
from fsapi.esl.session import ESLSession
from fsapi.schemas.callcenter import (
    VALID_AGENT_SET_KEYS,
    VALID_AGENT_TYPES,
    VALID_TIER_SET_KEYS,
    AgentAddRequest,
    AgentDeleteRequest,
    AgentSetRequest,
    TierAddRequest,
    TierDeleteRequest,
    TierSetRequest,
)
from fsapi.schemas.common import list_payload


CALLCENTER_COMMAND = "callcenter_config"
QUEUE_MEMBER_KINDS = ("agents", "members", "tiers")
QUEUE_LIFECYCLE_ACTIONS = {"load": "loaded", "unload": "unloaded", "reload": "reloaded"}

logger = get_logger("fsapi.callcenter")


def _send(session: ESLSession, arguments: str) -> str:
    return session.send(CALLCENTER_COMMAND, arguments)


def _message(text: str) -> Dict[str, str]:
    logger.info("callcenter_command_succeeded", detail=text)
    return {"status": "success", "message": text}


def _count(raw: str, what: str) -> Dict[str, Any]:
    try:
        value = parse_count_or_raise(raw)
    except ParseError as exc:
        raise exc.with_prefix(f"Failed to parse {what} count") from exc
    return {"status": "success", "count": value}


def _invalid_key(key: str, choices) -> ValidationError:
    return ValidationError(f"invalid key '{key}': must be one of: {', '.join(choices)}")


def authorize_queue(ctx: RequestContext, queue: str) -> None:
    """Queue and tier writes carry their tenant in the queue's ``@`` suffix."""

    require_allowed(
        ctx.scope,
        resolvers.QUEUES.derive(queue),
        entity=resolvers.QUEUES.entity,
        describe=lambda tenant, allowed: (
            f"Queue '{queue}' belongs to domain '{tenant}' which is not in your allowed contexts: [{allowed}]"
        ),
    )


def authorize_agent_domain(ctx: RequestContext, domain: str) -> None:
    """Agent names carry no tenant, so restricted callers must name the domain."""

    if not domain:
        if ctx.unrestricted:
            return
        raise ValidationError("domain is required for authorization")
    validate_token(domain, "domain")
    require_allowed(
        ctx.scope,
        domain,
        entity=resolvers.AGENT_WRITE.entity,
        describe=lambda tenant, allowed: f"Agent domain '{tenant}' is not in your allowed contexts: [{allowed}]",
    )


# Queues


def list_queues(session: ESLSession, ctx: RequestContext) -> Dict[str, Any]:
    with failure_prefix("Failed to list queues"):
        rows = parse_table(_send(session, "queue list")).rows
    return list_payload(filter_rows(ctx.scope, rows, resolvers.QUEUES))


def count_queues(session: ESLSession, ctx: RequestContext) -> Dict[str, Any]:
    if ctx.unrestricted:
        with failure_prefix("Failed to count queues"):
            raw = _send(session, "queue count")
        return _count(raw, "queue")

    # The native count cannot be scoped, so count the filtered listing instead.
    with failure_prefix("Failed to list queues"):
        rows = parse_table(_send(session, "queue list")).rows
    return {"status": "success", "count": len(filter_rows(ctx.scope, rows, resolvers.QUEUES))}


def list_queue_entries(session: ESLSession, ctx: RequestContext, queue: str, kind: str) -> Dict[str, Any]:
    """List the agents, members or tiers attached to one queue."""

    validate_choice(kind, "kind", QUEUE_MEMBER_KINDS)
    validate_token(queue, "queue")
    authorize_queue(ctx, queue)

    with failure_prefix(f"Failed to list queue {kind}"):
        rows: List[Row] = parse_table(_send(session, f"queue list {kind} {queue}")).rows
    return list_payload(rows)


def count_queue_entries(
    session: ESLSession,
    ctx: RequestContext,
    queue: str,
    kind: str,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    validate_choice(kind, "kind", QUEUE_MEMBER_KINDS)
    validate_token(queue, "queue")
    arguments = f"queue count {kind} {queue}"
    if status:
        if kind != "agents":
            raise ValidationError("status filter is only supported when counting agents")
        validate_token(status, "status")
        arguments += f" {status}"
    authorize_queue(ctx, queue)

    with failure_prefix(f"Failed to count queue {kind}"):
        raw = _send(session, arguments)
    return _count(raw, kind.rstrip("s"))


def change_queue_state(session: ESLSession, ctx: RequestContext, queue: str, action: str) -> Dict[str, str]:
    if action not in QUEUE_LIFECYCLE_ACTIONS:
        raise ValidationError("action must be 'load', 'unload', or 'reload'")
    validate_token(queue, "queue")
    authorize_queue(ctx, queue)

    with failure_prefix(f"Failed to {action} queue"):
        _send(session, f"queue {action} {queue}")
    return _message(f"Queue {queue} {QUEUE_LIFECYCLE_ACTIONS[action]}")


# Agents


def list_agents(session: ESLSession, ctx: RequestContext) -> Dict[str, Any]:
    with failure_prefix("Failed to list agents"):
        rows = parse_table(_send(session, "agent list")).rows
    return list_payload(filter_rows(ctx.scope, rows, resolvers.AGENT_LIST))


def add_agent(session: ESLSession, ctx: RequestContext, request: AgentAddRequest) -> Dict[str, str]:
    validate_token(request.name, "name")
    if not request.type:
        raise ValidationError("type is required")
    if request.type not in VALID_AGENT_TYPES:
        raise ValidationError("type must be 'callback' or 'uuid-standby'")
    authorize_agent_domain(ctx, request.domain)

    with failure_prefix("Failed to add agent"):
        _send(session, f"agent add {request.name} {request.type}")
    return _message(f"Agent {request.name} added with type {request.type}")


def delete_agent(
    session: ESLSession,
    ctx: RequestContext,
    agent: str,
    request: Optional[AgentDeleteRequest] = None,
) -> Dict[str, str]:
    validate_token(agent, "agent")
    authorize_agent_domain(ctx, request.domain if request else "")

    with failure_prefix("Failed to delete agent"):
        _send(session, f"agent del {agent}")
    return _message(f"Agent {agent} deleted")


def set_agent(session: ESLSession, ctx: RequestContext, agent: str, request: AgentSetRequest) -> Dict[str, str]:
    validate_token(agent, "agent")
    if not request.key:
        raise ValidationError("key is required")
    if request.key not in VALID_AGENT_SET_KEYS:
        raise _invalid_key(request.key, VALID_AGENT_SET_KEYS)
    validate_quoted(request.value, "value")
    authorize_agent_domain(ctx, request.domain)

    with failure_prefix(f"Failed to set agent {request.key}"):
        _send(session, f"agent set {request.key} {agent} '{request.value}'")
    return _message(f"Agent {agent} {request.key} set to '{request.value}'")


# Tiers


def _validate_tier_target(queue: str, agent: str) -> None:
    validate_token(queue, "queue")
    validate_token(agent, "agent")


def list_tiers(session: ESLSession, ctx: RequestContext) -> Dict[str, Any]:
    with failure_prefix("Failed to list tiers"):
        rows = parse_table(_send(session, "tier list")).rows
    return list_payload(filter_rows(ctx.scope, rows, resolvers.TIERS))


def add_tier(session: ESLSession, ctx: RequestContext, request: TierAddRequest) -> Dict[str, str]:
    _validate_tier_target(request.queue, request.agent)
    validate_token(request.level, "level", required=False)
    validate_token(request.position, "position", required=False)
    authorize_queue(ctx, request.queue)

    arguments = f"tier add {request.queue} {request.agent}"
    if request.level:
        arguments += f" {request.level}"
    if request.position:
        arguments += f" {request.position}"

    with failure_prefix("Failed to add tier"):
        _send(session, arguments)
    return _message(f"Tier added: agent {request.agent} to queue {request.queue}")


def delete_tier(session: ESLSession, ctx: RequestContext, request: TierDeleteRequest) -> Dict[str, str]:
    _validate_tier_target(request.queue, request.agent)
    authorize_queue(ctx, request.queue)

    with failure_prefix("Failed to delete tier"):
        _send(session, f"tier del {request.queue} {request.agent}")
    return _message(f"Tier deleted: agent {request.agent} from queue {request.queue}")


def set_tier(session: ESLSession, ctx: RequestContext, request: TierSetRequest) -> Dict[str, str]:
    _validate_tier_target(request.queue, request.agent)
    if not request.key:
        raise ValidationError("key is required")
    if request.key not in VALID_TIER_SET_KEYS:
        raise _invalid_key(request.key, VALID_TIER_SET_KEYS)
    validate_quoted(request.value, "value")
    authorize_queue(ctx, request.queue)

    with failure_prefix(f"Failed to set tier {request.key}"):
        _send(session, f"tier set {request.key} {request.queue} {request.agent} '{request.value}'")
    return _message(
        f"Tier {request.key} set to '{request.value}' for agent {request.agent} in queue {request.queue}"
    )
