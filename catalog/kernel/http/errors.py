from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from catalog.kernel.errors import CatalogError

logger = structlog.get_logger()


def _get_request_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


def error_response(
    request: Request,
    *,
    status_code: int,
    detail: Any,
    code: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render the `{detail, code, request_id?}` envelope shared by every handler."""
    payload: dict[str, Any] = {"detail": detail, "code": code}
    request_id = _get_request_id(request)
    if request_id:
        payload["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=payload, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Register catalog-wide exception handlers on a FastAPI app.

    `detail` stays FastAPI-compatible; `code` and `request_id` are added on top.
    """

    @app.exception_handler(CatalogError)
    async def _catalog_error_handler(request: Request, exc: CatalogError) -> Response:
        request_id = _get_request_id(request)
        if exc.status_code >= 500:
            logger.error("Request failed", request_id=request_id, code=exc.code, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_public_dict(request_id=request_id))

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException) -> Response:
        # `detail` may be a str, list or dict; pass it through untouched.
        return error_response(
            request,
            status_code=int(exc.status_code),
            detail=exc.detail,
            code=f"http.{exc.status_code}",
            headers=dict(exc.headers or {}),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
        return error_response(
            request,
            status_code=422,
            detail=jsonable_errors(exc),
            code="http.validation_error",
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
        logger.exception("Unhandled exception", request_id=_get_request_id(request), error=str(exc))
        return error_response(
            request,
            status_code=500,
            detail="Internal Server Error",
            code="internal.unhandled",
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    # pydantic can embed the raised exception object in `ctx`.
    errors = []
    for error in exc.errors():
        cleaned = dict(error)
        if "ctx" in cleaned:
            cleaned["ctx"] = {key: str(value) for key, value in cleaned["ctx"].items()}
        errors.append(cleaned)
    return errors
