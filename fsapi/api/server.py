"""Console entrypoint that serves the API with uvicorn."""

from __future__ import annotations

import uvicorn

from fsapi.core.config import get_settings
from fsapi.core.logger import get_logger


def main() -> None:
    settings = get_settings()
    get_logger("fsapi.server").info(
        "server_starting",
        host=settings.fsapi_host,
        port=settings.fsapi_port,
        esl_host=settings.esl_host,
        esl_port=settings.esl_port,
    )
    uvicorn.run(
        "fsapi.api.main:app",
        host=settings.fsapi_host,
        port=settings.fsapi_port,
        log_level=settings.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
