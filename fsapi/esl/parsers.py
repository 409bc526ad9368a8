"""Parsers for the reply shapes the switch produces.

Every parser is total: malformed input yields an empty table or a
``ParseFailure`` value instead of an exception, so callers decide whether a
failure is fatal. The ``*_or_raise`` helpers convert failures into
``ParseError``/``UpstreamFormatError`` for the handlers that need a value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import re
from typing import Any, Dict, List, Union

from fsapi.core.errors import ParseError, UpstreamFormatError


TABLE_SEPARATOR = "|"
ACK_PREFIX = "+OK"

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_TOKEN_VALUE_STOP = ",}]'\" \t"

Row = Dict[str, str]


@dataclass(frozen=True)
class TableRows:
    rows: List[Row] = field(default_factory=list)


@dataclass(frozen=True)
class Counter:
    value: int


@dataclass(frozen=True)
class RawText:
    text: str


@dataclass(frozen=True)
class JsonDocument:
    payload: Dict[str, Any]


@dataclass(frozen=True)
class ParseFailure:
    reason: str
    raw: str


ParsedReply = Union[TableRows, Counter, RawText, JsonDocument, ParseFailure]


def _content_lines(raw: str) -> List[str]:
    lines = []
    for line in (raw or "").split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith(ACK_PREFIX):
            continue
        lines.append(stripped)
    return lines


def parse_table(raw: str, *, separator: str = TABLE_SEPARATOR) -> TableRows:
    """Parse delimited table output; the first content line is the header."""

    lines = _content_lines(raw)
    if not lines:
        return TableRows(rows=[])

    headers = [name.strip() for name in lines[0].split(separator)]
    rows: List[Row] = []
    for line in lines[1:]:
        fields = line.split(separator)
        row: Row = {}
        for index, name in enumerate(headers):
            row[name] = fields[index].strip() if index < len(fields) else ""
        rows.append(row)
    return TableRows(rows=rows)


def parse_text(raw: str) -> RawText:
    """Free-form replies such as the job line returned by ``originate``."""

    return RawText(text=(raw or "").strip())


def parse_count(raw: str) -> Union[Counter, ParseFailure]:
    """Return the first content line that is an integer."""

    for line in _content_lines(raw):
        if _INTEGER_RE.match(line):
            return Counter(value=int(line))
    return ParseFailure(reason=f"could not parse count from: {(raw or '').strip()}", raw=raw)


def parse_count_or_raise(raw: str) -> int:
    parsed = parse_count(raw)
    if isinstance(parsed, ParseFailure):
        raise ParseError(parsed.reason)
    return parsed.value


def parse_json_object(raw: str) -> Union[JsonDocument, ParseFailure]:
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        return ParseFailure(reason=f"invalid JSON: {exc}", raw=raw)
    if not isinstance(payload, dict):
        return ParseFailure(reason="expected a JSON object", raw=raw)
    return JsonDocument(payload=payload)


def parse_json_object_or_raise(raw: str, *, context: str) -> Dict[str, Any]:
    parsed = parse_json_object(raw)
    if isinstance(parsed, ParseFailure):
        raise UpstreamFormatError(f"Failed to parse {context}: {parsed.reason}")
    return parsed.payload


def parse_json_rows(raw: str) -> Union[TableRows, ParseFailure]:
    """Parse a ``show ... as json`` envelope into rows.

    The switch omits ``rows`` entirely when ``row_count`` is zero.
    """

    parsed = parse_json_object(raw)
    if isinstance(parsed, ParseFailure):
        return parsed
    rows = parsed.payload.get("rows") or []
    if not isinstance(rows, list):
        return ParseFailure(reason="'rows' is not a list", raw=raw)
    normalized: List[Row] = []
    for item in rows:
        if not isinstance(item, dict):
            continue
        normalized.append({str(key): "" if value is None else str(value) for key, value in item.items()})
    return TableRows(rows=normalized)


def parse_json_rows_or_raise(raw: str, *, context: str) -> List[Row]:
    parsed = parse_json_rows(raw)
    if isinstance(parsed, ParseFailure):
        raise UpstreamFormatError(f"Failed to parse {context}: {parsed.reason}")
    return parsed.rows


def extract_token(text: str, key: str) -> str:
    """Return the value of ``key=`` inside a flat ``{k=v,k=v}user/...`` string.

    The value runs up to the next comma, space, closing brace, closing
    bracket or quote. An absent key yields an empty string.
    """

    if not text or not key:
        return ""
    pattern = re.compile(r"(?:^|[{\[,\s'\"])" + re.escape(key) + "=")
    match = pattern.search(text)
    if match is None:
        return ""
    rest = text[match.end():]
    for index, char in enumerate(rest):
        if char in _TOKEN_VALUE_STOP:
            return rest[:index]
    return rest
