"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnboard.interactions.domain.exceptions import InteractionError, RateLimitedError
from learnboard.obs import logging as obs_logging

logger = logging.getLogger(__name__)

_HTTP_OUTCOMES = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    429: "rate_limited",
}


def get_request_id(request: Request) -> str:
    rid = getattr(request.state, "request_id", None) or obs_logging.current_request_id()
    return rid or "unknown"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(InteractionError)
    async def interaction_exc_handler(request: Request, exc: InteractionError):  # type: ignore[override]
        payload = {
            "outcome": exc.outcome.value,
            "detail": exc.detail,
            "request_id": get_request_id(request),
        }
        headers = None
        if isinstance(exc, RateLimitedError):
            payload["retry_after_seconds"] = exc.retry_after_seconds
            headers = {
                "Retry-After": str(exc.retry_after_seconds),
                "RateLimit-Limit": str(exc.limit),
                "RateLimit-Remaining": "0",
            }
        return JSONResponse(status_code=exc.status_code, content=payload, headers=headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        payload = {
            "outcome": _HTTP_OUTCOMES.get(exc.status_code, "error"),
            "detail": exc.detail,
            "request_id": get_request_id(request),
        }
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        payload = {
            "outcome": "validation_error",
            "detail": "validation_error",
            "errors": jsonable_errors(exc),
            "request_id": get_request_id(request),
        }
        return JSONResponse(status_code=422, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
        logger.exception("unhandled_error", extra={"path": request.url.path})
        payload = {"outcome": "error", "detail": "internal_error", "request_id": get_request_id(request)}
        return JSONResponse(status_code=500, content=payload)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # pydantic may put exception instances under "ctx"; keep only printable fields
    return [
        {"loc": list(error.get("loc", ())), "msg": str(error.get("msg", "")), "type": str(error.get("type", ""))}
        for error in exc.errors()
    ]
