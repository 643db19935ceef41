from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI, Request, Response

from api.observability import (
    monotonic_ms,
    new_request_id,
    request_log_fields,
    reset_request_id,
    set_request_id,
)
from api.routes import router
from core.config import get_settings
from core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="Athlete Availability API", version="1.0.0")
    app.include_router(router)

    @app.middleware("http")
    async def request_context_and_logging(request: Request, call_next: Callable) -> Response:
        header_name = settings.request_id_header_name or "X-Request-ID"
        request_id = (request.headers.get(header_name) or "").strip() or new_request_id()
        token = set_request_id(request_id)
        started_ms = monotonic_ms()
        client_ip = getattr(request.client, "host", None)
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = monotonic_ms() - started_ms
            logger.exception(
                "http_request_error",
                extra=request_log_fields(
                    method=request.method,
                    path=request.url.path,
                    status_code=500,
                    duration_ms=duration_ms,
                    client_ip=client_ip,
                ),
            )
            raise
        else:
            response.headers[header_name] = request_id
            duration_ms = monotonic_ms() - started_ms
            logger.info(
                "http_request",
                extra=request_log_fields(
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                    client_ip=client_ip,
                ),
            )
            return response
        finally:
            reset_request_id(token)

    return app


app = create_app()
