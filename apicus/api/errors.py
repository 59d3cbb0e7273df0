from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from apicus.engine.exceptions import CatalogError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"


def build_error_payload(
    code: str, message: str, details: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Build the ``{"error": {...}}`` envelope every failure uses."""
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        }
    }


def error_response(
    request: Request,
    status_code: int,
    payload: dict[str, Any],
) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content=payload)
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers[REQUEST_ID_HEADER] = request_id
    return response


def describe_validation_error(error: dict[str, Any]) -> str:
    """One-line summary of a pydantic error, e.g. for a simulated value."""
    # drop the "body" prefix so locations read like request fields
    location = [str(part) for part in error.get("loc", ()) if part != "body"]
    field = ".".join(location) or "request body"
    return f"Invalid {field}: {error.get('msg', 'invalid value')}"


async def catalog_error_handler(
    request: Request,
    exc: CatalogError,
) -> JSONResponse:
    """Report an unknown service, plan or metric to the caller."""
    logger.info(
        "catalog_lookup_failed",
        extra={
            "event": "catalog_lookup_failed",
            "status_code": exc.status_code,
            "error_code": exc.code,
            "service_id": exc.details.get("service_id"),
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return error_response(
        request,
        exc.status_code,
        build_error_payload(exc.code, exc.message, exc.details),
    )


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Reject malformed plan selections and simulated values with a 400."""
    errors = jsonable_encoder(exc.errors())
    message = (
        describe_validation_error(errors[0])
        if errors
        else "Request validation failed"
    )
    logger.info(
        "request_invalid",
        extra={
            "event": "request_invalid",
            "status_code": 400,
            "error_code": "INVALID_REQUEST",
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return error_response(
        request,
        400,
        build_error_payload(
            "INVALID_REQUEST",
            message,
            {"validation_errors": errors},
        ),
    )


async def internal_error_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Log an unexpected failure and answer with an opaque 500."""
    logger.exception(
        "internal_error",
        extra={
            "event": "internal_error",
            "status_code": 500,
            "error_code": "INTERNAL_ERROR",
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return error_response(
        request,
        500,
        build_error_payload(
            "INTERNAL_ERROR",
            "Cost computation failed unexpectedly",
        ),
    )
