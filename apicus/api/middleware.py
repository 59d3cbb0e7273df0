from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware import base as middleware_base
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from apicus.api.errors import (
    REQUEST_ID_HEADER,
    build_error_payload,
    error_response,
)

logger = logging.getLogger(__name__)

# endpoints whose bodies carry plan selections and simulated values
SIMULATION_PATH_PREFIXES = ("/v1/services/", "/v1/stack/")


class RequestIdMiddleware(middleware_base.BaseHTTPMiddleware):
    """Tag each request with an id and log its outcome."""

    async def dispatch(
        self,
        request: Request,
        call_next: middleware_base.RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.info(
            "request_completed",
            extra={
                "event": "request_completed",
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(elapsed_ms, 3),
                "request_id": request_id,
            },
        )
        return response


def _declared_length(raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class BodySizeLimitMiddleware(middleware_base.BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        super().__init__(app)
        self._max_body_bytes = max_body_bytes

    async def dispatch(
        self,
        request: Request,
        call_next: middleware_base.RequestResponseEndpoint,
    ) -> Response:
        """Refuse simulation payloads above the configured size."""
        if request.method != "POST" or not request.url.path.startswith(
            SIMULATION_PATH_PREFIXES
        ):
            return await call_next(request)

        size = _declared_length(request.headers.get("content-length"))
        if size is None or size <= self._max_body_bytes:
            body = await request.body()
            size = len(body)
        if size > self._max_body_bytes:
            return error_response(
                request,
                413,
                build_error_payload(
                    "INVALID_REQUEST",
                    "Simulation payload is too large",
                    {
                        "max_body_bytes": self._max_body_bytes,
                        "content_length": size,
                    },
                ),
            )

        async def receive() -> dict[str, object]:
            return {"type": "http.request", "body": body, "more_body": False}

        return await call_next(Request(request.scope, receive))
