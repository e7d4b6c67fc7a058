"""HTTP middleware and exception handler wiring for FastAPI apps."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront_auth.api.contracts import ApiErrorResponse
from storefront_auth.api.errors import ApiErrorCode, InternalError, to_error_payload
from storefront_auth.core.config import AppConfig
from storefront_auth.core.logging import set_correlation_id

# Auth responses carry tokens, so nothing may be cached on the way back.
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}
HSTS_HEADER = "max-age=31536000; includeSubDomains"


def _request_extra(request: Request, status_code: int) -> dict[str, Any]:
    return {
        "path": request.url.path,
        "method": request.method,
        "status_code": status_code,
        "client_ip": request.client.host if request.client else "unknown",
    }


def _declared_length(request: Request) -> int:
    try:
        return int(request.headers.get("content-length") or 0)
    except ValueError:
        return 0


def register_http_middleware(app: FastAPI, *, config: AppConfig, logger: Any) -> None:
    """Attach request size limit, correlation id, security headers and request log."""
    max_bytes = config.security.request_max_bytes

    @app.middleware("http")
    async def request_size_limit_middleware(request: Request, call_next):
        if _declared_length(request) > max_bytes:
            return JSONResponse(
                status_code=413,
                content=ApiErrorResponse(
                    error=f"Request size exceeds configured limit ({max_bytes} bytes).",
                    code=str(ApiErrorCode.REQUEST_TOO_LARGE),
                ).model_dump(by_alias=True),
            )
        return await call_next(request)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        correlation_id = (
            request.headers.get("x-request-id")
            or request.headers.get("x-correlation-id")
            or uuid.uuid4().hex
        )
        set_correlation_id(correlation_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = correlation_id
        response.headers.update(SECURITY_HEADERS)
        if config.is_production:
            response.headers["Strict-Transport-Security"] = HSTS_HEADER
        logger.info("request_completed", extra=_request_extra(request, response.status_code))
        return response


def register_exception_handlers(app: FastAPI, *, logger: Any) -> None:
    """Attach API exception handlers that return the ``{error, code}`` envelope."""

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
        logger.warning("http_exception", extra=_request_extra(request, exc.status_code))
        return JSONResponse(
            status_code=exc.status_code,
            content=to_error_payload(exc.detail, exc.status_code),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        logger.warning("validation_exception", extra=_request_extra(request, 422))
        return JSONResponse(
            status_code=422,
            content={
                "error": "Dados inválidos",
                "code": str(ApiErrorCode.VALIDATION_ERROR),
                "details": [
                    {"loc": list(error.get("loc", ())), "msg": str(error.get("msg", ""))}
                    for error in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        # Details stay in the log; clients only see the generic envelope.
        logger.exception("unexpected_exception", extra=_request_extra(request, 500))
        error = InternalError()
        return JSONResponse(
            status_code=error.status_code,
            content=to_error_payload(error.detail, error.status_code),
        )
