"""Response envelopes shared by every endpoint."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel


class MessageResponse(BaseModel):
    status: str = "success"
    message: str


class ListResponse(BaseModel):
    status: str = "success"
    row_count: int
    rows: List[Dict[str, str]]


class CountResponse(BaseModel):
    status: str = "success"
    count: int


def list_payload(rows: List[Dict[str, str]]) -> Dict[str, Any]:
    return ListResponse(row_count=len(rows), rows=rows).model_dump()
