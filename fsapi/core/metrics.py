"""In-process metrics collector with Prometheus text exposition."""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
import time
from typing import Dict, Tuple


_lock = Lock()
_started_at = time.time()

_http_requests_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
_http_request_duration_sum: Dict[Tuple[str, str], float] = defaultdict(float)
_http_request_duration_count: Dict[Tuple[str, str], int] = defaultdict(int)
_esl_commands_total: Dict[Tuple[str, str], int] = defaultdict(int)
_esl_connections_total: Dict[str, int] = defaultdict(int)
_authorization_denied_total: Dict[str, int] = defaultdict(int)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _normalize_label(value: str, *, fallback: str = "unknown") -> str:
    normalized = (value or "").strip()
    return normalized or fallback


def record_http_request(*, method: str, path: str, status_code: int, duration_seconds: float) -> None:
    status = str(status_code)
    method_label = method.upper()
    path_label = path or "unknown"
    duration = max(duration_seconds, 0.0)

    with _lock:
        _http_requests_total[(method_label, path_label, status)] += 1
        _http_request_duration_sum[(method_label, path_label)] += duration
        _http_request_duration_count[(method_label, path_label)] += 1


def record_esl_command(*, command: str, outcome: str) -> None:
    with _lock:
        _esl_commands_total[(_normalize_label(command), _normalize_label(outcome))] += 1


def record_esl_connection(*, outcome: str) -> None:
    with _lock:
        _esl_connections_total[_normalize_label(outcome)] += 1


def record_authorization_denied(*, entity: str) -> None:
    with _lock:
        _authorization_denied_total[_normalize_label(entity)] += 1


def render_prometheus_metrics(*, app_name: str, app_version: str, env: str) -> str:
    uptime = max(time.time() - _started_at, 0.0)

    with _lock:
        http_total = dict(_http_requests_total)
        duration_sum = dict(_http_request_duration_sum)
        duration_count = dict(_http_request_duration_count)
        esl_commands_total = dict(_esl_commands_total)
        esl_connections_total = dict(_esl_connections_total)
        authorization_denied_total = dict(_authorization_denied_total)

    lines = [
        "# HELP fsapi_build_info Build metadata.",
        "# TYPE fsapi_build_info gauge",
        (
            f'fsapi_build_info{{app_name="{_escape_label(app_name)}",'
            f'version="{_escape_label(app_version)}",env="{_escape_label(env)}"}} 1'
        ),
        "# HELP fsapi_process_uptime_seconds Process uptime in seconds.",
        "# TYPE fsapi_process_uptime_seconds gauge",
        f"fsapi_process_uptime_seconds {uptime:.6f}",
        "# HELP fsapi_http_requests_total Total HTTP requests.",
        "# TYPE fsapi_http_requests_total counter",
    ]

    for (method, path, status), value in sorted(http_total.items()):
        lines.append(
            (
                f'fsapi_http_requests_total{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}",status="{_escape_label(status)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP fsapi_http_request_duration_seconds Request duration summary.",
            "# TYPE fsapi_http_request_duration_seconds summary",
        ]
    )
    for (method, path), value in sorted(duration_sum.items()):
        lines.append(
            (
                f'fsapi_http_request_duration_seconds_sum{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value:.6f}'
            )
        )
    for (method, path), value in sorted(duration_count.items()):
        lines.append(
            (
                f'fsapi_http_request_duration_seconds_count{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP fsapi_esl_commands_total Commands sent to the switch by outcome.",
            "# TYPE fsapi_esl_commands_total counter",
        ]
    )
    for (command, outcome), value in sorted(esl_commands_total.items()):
        lines.append(
            (
                f'fsapi_esl_commands_total{{command="{_escape_label(command)}",'
                f'outcome="{_escape_label(outcome)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP fsapi_esl_connections_total Control connection attempts by outcome.",
            "# TYPE fsapi_esl_connections_total counter",
        ]
    )
    for outcome, value in sorted(esl_connections_total.items()):
        lines.append(f'fsapi_esl_connections_total{{outcome="{_escape_label(outcome)}"}} {value}')

    lines.extend(
        [
            "# HELP fsapi_authorization_denied_total Requests denied by tenant scope.",
            "# TYPE fsapi_authorization_denied_total counter",
        ]
    )
    for entity, value in sorted(authorization_denied_total.items()):
        lines.append(f'fsapi_authorization_denied_total{{entity="{_escape_label(entity)}"}} {value}')

    lines.append("")
    return "\n".join(lines)


def reset_metrics_for_tests() -> None:
    global _started_at
    with _lock:
        _http_requests_total.clear()
        _http_request_duration_sum.clear()
        _http_request_duration_count.clear()
        _esl_commands_total.clear()
        _esl_connections_total.clear()
        _authorization_denied_total.clear()
    _started_at = time.time()
