"""Pydantic schemas for mod_callcenter endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


VALID_AGENT_TYPES = ("callback", "uuid-standby")

VALID_AGENT_SET_KEYS = (
    "status",
    "state",
    "contact",
    "type",
    "max_no_answer",
    "wrap_up_time",
    "reject_delay_time",
    "busy_delay_time",
    "ready_time",
)

VALID_TIER_SET_KEYS = ("state", "level", "position")


class _CallcenterRequest(BaseModel):
    # Levels, positions and timer values are often sent as JSON numbers.
    model_config = ConfigDict(coerce_numbers_to_str=True)


class AgentAddRequest(_CallcenterRequest):
    name: str = ""
    type: str = ""
    domain: str = ""


class AgentSetRequest(_CallcenterRequest):
    key: str = ""
    value: str = ""
    domain: str = ""


class AgentDeleteRequest(_CallcenterRequest):
    domain: str = ""


class TierAddRequest(_CallcenterRequest):
    queue: str = ""
    agent: str = ""
    level: str = ""
    position: str = ""


class TierDeleteRequest(_CallcenterRequest):
    queue: str = ""
    agent: str = ""


class TierSetRequest(_CallcenterRequest):
    queue: str = ""
    agent: str = ""
    key: str = ""
    value: str = ""
