"""
Problem responses (RFC 7807 style) for every error the service reports.

Classified errors (AdapterError subclasses) keep their own type, title and
status. Request validation errors become "invalid-param" problems so callers
see one error shape regardless of where validation failed.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wharf_azuredevops.errors import PROBLEM_TYPE_PREFIX, AdapterError, WharfAuthError
from wharf_azuredevops.logging_config import get_logger

logger = get_logger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


def problem_response(
    request: Request,
    *,
    type_uri: str,
    title: str,
    status_code: int,
    detail: str,
    errors: list[str] | None = None,
    param: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {
        "type": type_uri,
        "title": title,
        "status": status_code,
        "detail": detail,
        "instance": request.url.path,
    }
    if errors:
        content["errors"] = errors
    if param:
        content["param"] = param
    return JSONResponse(
        status_code=status_code,
        content=content,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers,
    )


async def adapter_error_handler(request: Request, exc: AdapterError) -> JSONResponse:
    logger.warning(
        "Request failed",
        path=request.url.path,
        problem=exc.problem_type,
        status=exc.status_code,
        detail=exc.detail,
        cause=str(exc.__cause__) if exc.__cause__ else None,
    )
    headers = None
    if isinstance(exc, WharfAuthError) and exc.realm:
        headers = {"WWW-Authenticate": exc.realm}
    return problem_response(
        request,
        type_uri=exc.type_uri,
        title=exc.title,
        status_code=exc.status_code,
        detail=exc.detail,
        errors=[str(exc.__cause__)] if exc.__cause__ else None,
        param=exc.field,
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    params = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        params.append(loc)
        errors.append(f"{loc}: {err.get('msg', 'invalid')}")
    return problem_response(
        request,
        type_uri=PROBLEM_TYPE_PREFIX + "invalid-param",
        title="Invalid parameter.",
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="One or more parameters failed to parse when reading the request.",
        errors=errors,
        param=params[0] if len(params) == 1 else None,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors."""
    logger.error("Unhandled exception", exc_info=exc, path=str(request.url.path))
    return problem_response(
        request,
        type_uri=PROBLEM_TYPE_PREFIX + "unexpected",
        title="Unexpected error.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


def register_problem_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AdapterError, adapter_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, request_validation_handler  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, unhandled_error_handler)
