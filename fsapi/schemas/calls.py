"""Pydantic schemas for call-control endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class HangupRequest(BaseModel):
    cause: str = ""


class TransferRequest(BaseModel):
    destination: str = ""
    dialplan: str = ""
    context: str = ""
    leg: str = ""


class BridgeRequest(BaseModel):
    uuid_a: str = ""
    uuid_b: str = ""


class HoldRequest(BaseModel):
    action: str = ""


class RecordRequest(BaseModel):
    action: str = ""
    filename: str = ""


class DTMFRequest(BaseModel):
    digits: str = ""
    duration: Optional[int] = None


class OriginateRequest(BaseModel):
    aleg: str = ""
    bleg: str = ""
    dialplan: str = ""
    context: str = ""
    caller_id_name: str = ""
    caller_id_number: str = ""
    timeout_sec: Optional[int] = None
    channel_variables: Dict[str, Any] = Field(default_factory=dict)
