# backend/classbook/errors.py
"""
JSON error responses.

Every error leaves the API as a JSON object carrying a human readable
``message`` (mirrored in ``error`` for older clients) together with the HTTP
``status``, a machine readable ``code`` and optional ``details``.
"""

import logging
from typing import Any, Dict, NoReturn, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException

logger = logging.getLogger(__name__)


def _title_from_status(status_code: int) -> str:
    mapping = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        409: "Conflict",
        422: "Unprocessable Entity",
        500: "Internal Server Error",
        502: "Bad Gateway",
    }
    return mapping.get(status_code, "Error")


def _problem(
    *,
    status: int,
    message: str,
    instance: str,
    code: Optional[str] = None,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    problem: Dict[str, Any] = {
        "title": _title_from_status(status),
        "status": status,
        "message": message,
        "error": message,
        "instance": instance,
    }
    if code:
        problem["code"] = code
    if details:
        problem["details"] = jsonable_encoder(details)
    return problem


def _parse_detail(detail: Any) -> tuple[str, Optional[str], Optional[Any]]:
    if isinstance(detail, dict):
        code = detail.get("code") if isinstance(detail.get("code"), str) else None
        message = detail.get("message") or detail.get("detail") or ""
        return str(message), code, detail.get("details")
    if detail is None:
        return "", None, None
    return str(detail), None, None


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
        return JSONResponse(
            _problem(
                status=exc.status_code,
                message=exc.message,
                instance=request.url.path,
                code=exc.code,
                details=exc.details,
            ),
            status_code=exc.status_code,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        message, code, details = _parse_detail(exc.detail)
        return JSONResponse(
            _problem(
                status=exc.status_code,
                message=message or _title_from_status(exc.status_code),
                instance=request.url.path,
                code=code,
                details=details,
            ),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        problem = _problem(
            status=422,
            message="Request validation failed",
            instance=request.url.path,
            code="validation_error",
        )
        problem["errors"] = errors
        return JSONResponse(problem, status_code=422)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.url.path}: {str(exc)}", exc_info=exc)
        return JSONResponse(
            _problem(
                status=500,
                message="Internal server error",
                instance=request.url.path,
                code="internal_error",
            ),
            status_code=500,
        )
