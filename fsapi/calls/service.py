"""Call-control handlers: validate, resolve the call's tenant, build the command, send it."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any, Dict, List, Optional, Tuple

from fsapi.auth import resolvers
from fsapi.auth.scope import RequestContext, filter_rows, require_allowed
from fsapi.core.errors import (
    FSAPIError,
    NotFoundError,
    UpstreamFormatError,
    ValidationError,
    failure_prefix,
)
from fsapi.core.logger import get_logger
from fsapi.core.validation import (
    validate_dtmf,
    validate_file_path,
    validate_non_negative,
    validate_quoted,
    validate_token,
    validate_uuid,
    validate_variable_value,
)
from fsapi.esl.parsers import parse_json_object_or_raise, parse_json_rows_or_raise, parse_text
from fsapi.esl.session import ESLSession
from fsapi.schemas.calls import (
    DTMFRequest,
    HoldRequest,
    OriginateRequest,
    RecordRequest,
    TransferRequest,
)
from fsapi.schemas.common import list_payload


DEFAULT_HANGUP_CAUSE = "NORMAL_CLEARING"
DEFAULT_TRANSFER_DIALPLAN = "XML"
DEFAULT_DTMF_DURATION_MS = 100
PARK_DESTINATION = "&park()"
STATUS_COMMAND_ARGUMENTS = json.dumps({"command": "status", "data": ""}, separators=(",", ":"))

TRANSFER_LEGS = {"aleg": ("", "A-leg"), "bleg": ("-bleg ", "B-leg"), "both": ("-both ", "both legs")}

logger = get_logger("fsapi.calls")


@dataclass(frozen=True)
class CallRecord:
    """One row of ``show calls``, located by either of its legs."""

    requested_uuid: str
    a_leg: str
    b_leg: str
    accountcode: str
    info: Dict[str, Any] = field(default_factory=dict)


def _message(text: str) -> Dict[str, str]:
    logger.info("call_command_succeeded", detail=text)
    return {"status": "success", "message": text}


def find_call(session: ESLSession, call_uuid: str) -> Optional[CallRecord]:
    raw = session.send("show", "calls as json")
    payload = parse_json_object_or_raise(raw, context="calls data")
    rows = payload.get("rows") or []
    if not isinstance(rows, list):
        raise UpstreamFormatError("Failed to parse calls data: 'rows' is not a list")

    for row in rows:
        if not isinstance(row, dict):
            continue
        a_leg = str(row.get("uuid") or "")
        b_leg = str(row.get("b_uuid") or "")
        if call_uuid in (a_leg, b_leg):
            return CallRecord(
                requested_uuid=call_uuid,
                a_leg=a_leg,
                b_leg=b_leg,
                accountcode=resolvers.CALLS.tenant_of(row),
                info=row,
            )
    return None


def authorize_call(session: ESLSession, ctx: RequestContext, call_uuid: str) -> CallRecord:
    """Look the call up (even when unrestricted, to tell 404 from 403) and check its tenant."""

    with failure_prefix("Failed to verify call"):
        record = find_call(session, call_uuid)
    if record is None:
        raise NotFoundError(f"Call {call_uuid} not found")

    require_allowed(
        ctx.scope,
        record.accountcode,
        entity=resolvers.CALLS.entity,
        describe=lambda tenant, allowed: (
            f"Call {call_uuid} belongs to context '{tenant}' which is not in your allowed contexts: [{allowed}]"
        ),
    )
    return record


def list_calls(session: ESLSession, ctx: RequestContext) -> Dict[str, Any]:
    with failure_prefix("Failed to list calls"):
        rows = parse_json_rows_or_raise(session.send("show", "calls as json"), context="calls data")
    return list_payload(filter_rows(ctx.scope, rows, resolvers.CALLS))


def hangup_call(session: ESLSession, ctx: RequestContext, call_uuid: str, cause: str = "") -> Dict[str, str]:
    validate_uuid(call_uuid)
    cause = cause or DEFAULT_HANGUP_CAUSE
    validate_token(cause, "cause")
    authorize_call(session, ctx, call_uuid)

    with failure_prefix("Failed to hangup call"):
        session.send("uuid_kill", f"{call_uuid} {cause}")
    return _message(f"Call {call_uuid} hung up with cause {cause}")


def build_transfer_arguments(call_uuid: str, request: TransferRequest) -> Tuple[str, str]:
    """Return ``(arguments, leg description)`` for ``uuid_transfer``."""

    validate_token(request.destination, "destination")
    validate_token(request.dialplan, "dialplan", required=False)
    validate_token(request.context, "context", required=False)
    leg = (request.leg or "aleg").lower()
    if leg not in TRANSFER_LEGS:
        raise ValidationError("leg must be 'aleg', 'bleg', or 'both'")
    flag, description = TRANSFER_LEGS[leg]

    arguments = f"{call_uuid} {flag}{request.destination}"
    # Dialplan and context travel as a pair, and only when a context is given.
    if request.context:
        arguments += f" {request.dialplan or DEFAULT_TRANSFER_DIALPLAN} {request.context}"
    return arguments, description


def transfer_call(session: ESLSession, ctx: RequestContext, call_uuid: str, request: TransferRequest) -> Dict[str, str]:
    validate_uuid(call_uuid)
    arguments, description = build_transfer_arguments(call_uuid, request)
    authorize_call(session, ctx, call_uuid)

    with failure_prefix("Failed to transfer call"):
        session.send("uuid_transfer", arguments)

    message = f"Call {call_uuid} ({description}) transferred to {request.destination}"
    if request.dialplan:
        message += f" dialplan {request.dialplan}"
    if request.context:
        message += f" context {request.context}"
    return _message(message)


def bridge_calls(session: ESLSession, ctx: RequestContext, uuid_a: str, uuid_b: str) -> Dict[str, str]:
    if not uuid_a or not uuid_b:
        raise ValidationError("uuid_a and uuid_b are required")
    for name, value in (("uuid_a", uuid_a), ("uuid_b", uuid_b)):
        try:
            validate_uuid(value)
        except ValidationError as exc:
            raise ValidationError(f"{name}: {exc.message}") from None

    authorize_call(session, ctx, uuid_a)
    authorize_call(session, ctx, uuid_b)

    with failure_prefix("Failed to bridge calls"):
        session.send("uuid_bridge", f"{uuid_a} {uuid_b}")
    return _message(f"Calls {uuid_a} and {uuid_b} bridged")


def answer_call(session: ESLSession, ctx: RequestContext, call_uuid: str) -> Dict[str, str]:
    validate_uuid(call_uuid)
    authorize_call(session, ctx, call_uuid)

    with failure_prefix("Failed to answer call"):
        session.send("uuid_answer", call_uuid)
    return _message(f"Call {call_uuid} answered")


def park_call(session: ESLSession, ctx: RequestContext, call_uuid: str) -> Dict[str, str]:
    validate_uuid(call_uuid)
    authorize_call(session, ctx, call_uuid)

    with failure_prefix("Failed to park call"):
        session.send("uuid_park", call_uuid)
    return _message(f"Call {call_uuid} parked")


def control_hold(session: ESLSession, ctx: RequestContext, call_uuid: str, request: HoldRequest) -> Dict[str, str]:
    validate_uuid(call_uuid)
    if request.action not in ("hold", "unhold"):
        raise ValidationError("action must be 'hold' or 'unhold'")
    authorize_call(session, ctx, call_uuid)

    arguments = call_uuid if request.action == "hold" else f"off {call_uuid}"
    with failure_prefix(f"Failed to {request.action} call"):
        session.send("uuid_hold", arguments)
    return _message(f"Call {call_uuid} {request.action}")


def control_recording(session: ESLSession, ctx: RequestContext, call_uuid: str, request: RecordRequest) -> Dict[str, str]:
    validate_uuid(call_uuid)
    if request.action not in ("start", "stop"):
        raise ValidationError("action must be 'start' or 'stop'")
    if request.action == "start":
        if not request.filename:
            raise ValidationError("filename is required for start action")
        try:
            validate_file_path(request.filename)
        except ValidationError as exc:
            raise ValidationError(f"Invalid filename: {exc.message}") from None
        arguments = f"{call_uuid} start {request.filename}"
    else:
        arguments = f"{call_uuid} stop all"
    authorize_call(session, ctx, call_uuid)

    with failure_prefix(f"Failed to {request.action} recording"):
        session.send("uuid_record", arguments)
    return _message(f"Recording {request.action} for call {call_uuid}")


def send_dtmf(session: ESLSession, ctx: RequestContext, call_uuid: str, request: DTMFRequest) -> Dict[str, str]:
    validate_uuid(call_uuid)
    validate_dtmf(request.digits)
    validate_non_negative(request.duration, "duration")
    duration = request.duration or DEFAULT_DTMF_DURATION_MS
    authorize_call(session, ctx, call_uuid)

    with failure_prefix("Failed to send DTMF"):
        session.send("uuid_send_dtmf", f"{call_uuid} {request.digits}@{duration}")
    return _message(f"DTMF {request.digits} sent to call {call_uuid}")


def _format_variable(key: str, value: Any) -> str:
    validate_token(key, "channel variable name")
    if any(char in key for char in "=,{}'"):
        raise ValidationError(f"channel variable name '{key}' must not contain '=', ',', braces or quotes")
    if isinstance(value, bool):
        rendered = "true" if value else "false"
    elif isinstance(value, float) and value.is_integer():
        rendered = str(int(value))
    elif isinstance(value, (str, int, float)):
        rendered = str(value)
    else:
        raise ValidationError(f"channel variable '{key}' must be a string, number or boolean")
    validate_variable_value(rendered, f"channel variable '{key}'")
    return f"{key}={rendered}"


def build_originate_arguments(request: OriginateRequest) -> str:
    """``[{vars}]<aleg> <bleg> [dialplan] [context] [cid_name] [cid_num] [timeout]``."""

    validate_token(request.aleg, "aleg")
    validate_token(request.bleg, "bleg", required=False)
    validate_token(request.dialplan, "dialplan", required=False)
    validate_token(request.context, "context", required=False)
    validate_variable_value(request.caller_id_number, "caller_id_number")
    validate_quoted(request.caller_id_name, "caller_id_name")
    validate_non_negative(request.timeout_sec, "timeout_sec")

    variables: List[str] = [_format_variable(key, value) for key, value in request.channel_variables.items()]
    # Caller id always rides in the variable list, after any user variables.
    if request.caller_id_number:
        variables.append(f"origination_caller_id_number={request.caller_id_number}")
    if request.caller_id_name:
        variables.append(f"origination_caller_id_name='{request.caller_id_name}'")
    channel_vars = "{" + ",".join(variables) + "}" if variables else ""

    parts = [f"{channel_vars}{request.aleg}", request.bleg or PARK_DESTINATION]
    if request.dialplan:
        parts.append(request.dialplan)
    if request.context:
        parts.append(request.context)
    if request.caller_id_name and "origination_caller_id_name" not in channel_vars:
        parts.append(request.caller_id_name)
    if request.caller_id_number and "origination_caller_id_number" not in channel_vars:
        parts.append(request.caller_id_number)
    if request.timeout_sec:
        parts.append(str(request.timeout_sec))
    return " ".join(parts)


def originate_call(session: ESLSession, ctx: RequestContext, request: OriginateRequest) -> Dict[str, Any]:
    arguments = build_originate_arguments(request)

    # A new call's tenant is the context it lands in and any accountcode it carries.
    if not request.context and not ctx.unrestricted:
        raise ValidationError("context is required for authorization")
    if request.context:
        require_allowed(
            ctx.scope,
            request.context,
            entity="Context",
            describe=lambda tenant, allowed: (
                f"Cannot originate call in context '{tenant}' - not in your allowed contexts: [{allowed}]"
            ),
        )
    accountcode = request.channel_variables.get("accountcode")
    if accountcode is not None and not ctx.unrestricted:
        require_allowed(
            ctx.scope,
            str(accountcode),
            entity="Accountcode",
            describe=lambda tenant, allowed: (
                f"Cannot originate call with accountcode '{tenant}' - not in your allowed contexts: [{allowed}]"
            ),
        )

    with failure_prefix("Failed to originate call"):
        response = session.send("originate", arguments)
    logger.info("call_originated", aleg=request.aleg)
    return {"status": "success", "data": {"response": parse_text(response).text}}


def _dump_leg(session: ESLSession, leg_uuid: str, label: str) -> Dict[str, Any]:
    with failure_prefix(f"Failed to retrieve {label} details"):
        raw = session.send("uuid_dump", f"{leg_uuid} json")
        return parse_json_object_or_raise(raw, context=f"{label} details")


def get_call_details(session: ESLSession, ctx: RequestContext, call_uuid: str) -> Dict[str, Any]:
    validate_uuid(call_uuid)
    record = authorize_call(session, ctx, call_uuid)

    response: Dict[str, Any] = {
        "status": "success",
        "call_info": record.info,
        "aleg": {"uuid": record.a_leg, "details": _dump_leg(session, record.a_leg, "A-leg")},
    }

    if record.b_leg:
        try:
            b_details = _dump_leg(session, record.b_leg, "B-leg")
        except FSAPIError as exc:
            # The B-leg may have hung up since the lookup.
            logger.warning("bleg_dump_failed", uuid=record.b_leg, error=exc.message)
        else:
            response["bleg"] = {"uuid": record.b_leg, "details": b_details}

    logger.info("call_details_retrieved", uuid=call_uuid)
    return response


def get_status(session: ESLSession) -> Dict[str, Any]:
    with failure_prefix("Failed to get FreeSWITCH status"):
        raw = session.send("json", STATUS_COMMAND_ARGUMENTS)
    payload = parse_json_object_or_raise(raw, context="FreeSWITCH JSON response")
    if "response" not in payload:
        raise UpstreamFormatError("FreeSWITCH response missing 'response' field")
    return {"status": "success", "data": payload["response"]}


def check_health(session: ESLSession) -> Tuple[bool, Optional[str]]:
    try:
        session.send("status")
        return True, None
    except FSAPIError as exc:
        return False, exc.message
