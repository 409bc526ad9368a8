"""FastAPI application entrypoint for the switch control API."""

from __future__ import annotations

from time import perf_counter
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fsapi.api.dependencies import ESL_SESSION_KEY, get_esl_session
from fsapi.auth.middleware import REQUEST_CONTEXT_KEY, authenticate_request, resolve_request_context
from fsapi.auth.scope import ALLOWED_CONTEXTS_HEADER
from fsapi.callcenter.router import router as callcenter_router
from fsapi.calls.router import router as calls_router
from fsapi.calls.service import check_health
from fsapi.core.config import get_settings
from fsapi.core.errors import AuthenticationError, FSAPIError
from fsapi.core.logger import bind_request_context, clear_request_context, get_logger
from fsapi.core.metrics import record_http_request, render_prometheus_metrics
from fsapi.core.observability import capture_exception, init_sentry, sentry_scope
from fsapi.esl.client import build_connector
from fsapi.esl.session import ESLSession
from fsapi.registrations.router import router as registrations_router


REQUEST_ID_HEADER = "X-Request-ID"
ESL_CONNECTOR_KEY = "esl_connector"
UNAUTHENTICATED_PATHS = frozenset({"/health"})

settings = get_settings()
logger = get_logger("fsapi.api")

app = FastAPI(title=settings.app_name, version=settings.app_version)

_connector = build_connector(settings)
setattr(app.state, ESL_CONNECTOR_KEY, _connector)
setattr(
    app.state,
    ESL_SESSION_KEY,
    ESLSession(_connector, command_timeout=settings.esl_command_timeout_seconds),
)


def _error_response(
    status_code: int,
    message: str,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message},
        headers=headers,
    )


def _log_failure(request: Request, status_code: int, message: str) -> None:
    log = logger.error if status_code >= 500 else logger.warning
    log("request_failed", method=request.method, path=request.url.path, status_code=status_code, error=message)


def _body_too_large(request: Request) -> bool:
    content_length = request.headers.get("content-length")
    if not content_length:
        return False
    try:
        return int(content_length) > settings.max_request_body_bytes
    except ValueError:
        return False


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    started_at = perf_counter()
    request_id = request.headers.get("x-request-id") or str(uuid4())
    allowed_contexts = request.headers.get(ALLOWED_CONTEXTS_HEADER)
    setattr(request.state, REQUEST_CONTEXT_KEY, resolve_request_context(request, request_id))
    bind_request_context(request_id=request_id, allowed_contexts=allowed_contexts)

    response = None
    status_code = 500

    try:
        with sentry_scope(request_id=request_id, allowed_contexts=allowed_contexts):
            if _body_too_large(request):
                response = _error_response(413, "Request body too large")
            else:
                try:
                    if request.url.path not in UNAUTHENTICATED_PATHS:
                        authenticate_request(request, settings.auth_tokens)
                except AuthenticationError as exc:
                    _log_failure(request, exc.status_code, exc.message)
                    response = _error_response(
                        exc.status_code,
                        exc.message,
                        headers={"WWW-Authenticate": "Bearer"},
                    )
                else:
                    try:
                        response = await call_next(request)
                    except Exception as exc:
                        capture_exception(exc)
                        logger.exception("unhandled_exception", path=request.url.path)
                        response = _error_response(500, "Internal server error")
        status_code = int(response.status_code)
    finally:
        duration = perf_counter() - started_at
        if settings.metrics_enabled:
            record_http_request(
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_seconds=duration,
            )
        clear_request_context()

    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@app.exception_handler(FSAPIError)
async def fsapi_error_handler(request: Request, exc: FSAPIError) -> JSONResponse:
    _log_failure(request, exc.status_code, exc.message)
    if exc.status_code >= 500:
        capture_exception(exc)
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    message = "Invalid request body: " + "; ".join(problems)
    _log_failure(request, 400, message)
    return _error_response(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.on_event("startup")
def on_startup() -> None:
    sentry_enabled = init_sentry()
    logger.info(
        "application_startup",
        env=settings.env,
        version=settings.app_version,
        esl_host=settings.esl_host,
        esl_port=settings.esl_port,
        token_auth_enabled=bool(settings.auth_tokens),
        sentry_enabled=sentry_enabled,
        metrics_enabled=settings.metrics_enabled,
    )


@app.on_event("shutdown")
def on_shutdown() -> None:
    getattr(app.state, ESL_SESSION_KEY).close()
    getattr(app.state, ESL_CONNECTOR_KEY).shutdown()
    logger.info("application_shutdown")


@app.get("/health")
def health(session: ESLSession = Depends(get_esl_session)) -> JSONResponse:
    healthy, error = check_health(session)
    if healthy:
        return JSONResponse(content={"status": "healthy", "version": settings.app_version})

    logger.warning("health_check_failed", error=error)
    return JSONResponse(
        status_code=503,
        content={"status": "unhealthy", "error": "ESL connection unavailable", "version": settings.app_version},
    )


@app.get("/version")
def version() -> Dict[str, Any]:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "env": settings.env,
    }


@app.get("/metrics")
def metrics() -> PlainTextResponse:
    if not settings.metrics_enabled:
        return PlainTextResponse("metrics disabled\n", status_code=404)

    payload = render_prometheus_metrics(
        app_name=settings.app_name,
        app_version=settings.app_version,
        env=settings.env,
    )
    return PlainTextResponse(
        payload,
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


app.include_router(calls_router)
app.include_router(callcenter_router)
app.include_router(registrations_router)
