"""Central runtime configuration for the FreeSWITCH control API."""

from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ESL_PASSWORD = "ClueCon"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    env: str = "development"
    log_level: str = "INFO"
    app_name: str = "fsapi"
    app_version: str = "1.2.0"
    fsapi_host: str = "0.0.0.0"
    fsapi_port: int = 37274
    fsapi_auth_tokens: str = ""
    esl_host: str = "localhost"
    esl_port: int = 8021
    esl_password: str = DEFAULT_ESL_PASSWORD
    esl_command_timeout_seconds: float = 10.0
    esl_connect_timeout_seconds: float = 5.0
    max_request_body_bytes: int = 1048576
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = 0.0
    metrics_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def auth_tokens(self) -> List[str]:
        return [token.strip() for token in self.fsapi_auth_tokens.split(",") if token.strip()]


def _validate(settings: Settings) -> Settings:
    is_production = settings.env.lower() in {"prod", "production"}
    if is_production:
        if not settings.auth_tokens:
            raise ValueError("FSAPI_AUTH_TOKENS is required in production.")
        if not settings.esl_password.strip() or settings.esl_password == DEFAULT_ESL_PASSWORD:
            raise ValueError("ESL_PASSWORD must be changed from the default in production.")
    for name, port in (("FSAPI_PORT", settings.fsapi_port), ("ESL_PORT", settings.esl_port)):
        if port < 1 or port > 65535:
            raise ValueError(f"{name} must be between 1 and 65535.")
    if not settings.esl_host.strip():
        raise ValueError("ESL_HOST must not be empty.")
    if settings.esl_command_timeout_seconds <= 0:
        raise ValueError("ESL_COMMAND_TIMEOUT_SECONDS must be positive.")
    if settings.esl_connect_timeout_seconds <= 0:
        raise ValueError("ESL_CONNECT_TIMEOUT_SECONDS must be positive.")
    if settings.max_request_body_bytes <= 0:
        raise ValueError("MAX_REQUEST_BODY_BYTES must be positive.")
    if settings.sentry_traces_sample_rate < 0 or settings.sentry_traces_sample_rate > 1:
        raise ValueError("SENTRY_TRACES_SAMPLE_RATE must be between 0 and 1.")
    return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return validated settings as a cached singleton."""

    return _validate(Settings())
