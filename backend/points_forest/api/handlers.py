"""Exception handlers.

Every failure leaves the API in the same procedure-style envelope:
``{"success": false, "error", "code", "details", "traceId"}``; domain errors
also carry ``severity``.
"""

import uuid
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from points_forest.config import get_settings
from points_forest.logging_config import get_logger
from points_forest.utils.errors import RewardError
from points_forest.utils.json_utils import ORJSONResponse

logger = get_logger(__name__)


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    return request_id or request.headers.get("X-Request-ID") or str(uuid.uuid4())


def failure_payload(
    code: str,
    message: str,
    trace_id: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "success": False,
        "error": message,
        "code": code,
        "details": details or {},
        "traceId": trace_id,
    }


async def reward_error_handler(request: Request, exc: RewardError) -> ORJSONResponse:
    trace_id = get_request_id(request)
    logger.warning(
        "reward_error",
        code=exc.code,
        message=exc.message,
        severity=exc.severity.value,
        trace_id=trace_id,
    )
    return ORJSONResponse(status_code=exc.http_status, content=exc.to_dict(trace_id))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    errors = [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=failure_payload(
            "INVALID_INPUT",
            "Request validation failed",
            get_request_id(request),
            details={"errors": errors},
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> ORJSONResponse:
    """Pass through pre-shaped ``detail`` dicts, wrap anything else."""
    trace_id = get_request_id(request)
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        content = {**exc.detail, "traceId": trace_id}
    else:
        content = failure_payload("HTTP_ERROR", str(exc.detail), trace_id)
    return ORJSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
    trace_id = get_request_id(request)
    logger.error(
        "unexpected_error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        trace_id=trace_id,
        exc_info=True,
    )

    # Internal details only leak in debug builds
    message = "Internal server error"
    if get_settings().app_debug:
        message = f"{type(exc).__name__}: {exc}"

    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=failure_payload("INTERNAL_ERROR", message, trace_id),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RewardError, reward_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
