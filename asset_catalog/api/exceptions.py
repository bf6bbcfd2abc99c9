"""Centralized exception handling for the API."""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from asset_catalog.errors import CatalogError, ErrorKind
from asset_catalog.logging_config import get_logger

logger = get_logger(__name__)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNSUPPORTED_AUTH: status.HTTP_501_NOT_IMPLEMENTED,
    ErrorKind.CONNECT: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.QUERY: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.STREAM: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.QUERY_TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorKind.LOAD: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.PARSE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(error: CatalogError) -> int:
    """HTTP status for a catalog error kind."""
    return STATUS_BY_KIND.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[dict] = None,
    request_id: Optional[str] = None,
) -> dict:
    """Create a standardized error response."""
    response = {
        "error": {
            "code": error_code,
            "message": message,
            "status": status_code,
        }
    }
    if details:
        response["error"]["details"] = details
    if request_id:
        response["error"]["request_id"] = request_id
    return response


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


async def catalog_exception_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Handle tagged catalog errors."""
    status_code = status_for(exc)
    details = dict(exc.context)
    if exc.detail and exc.detail != exc.message:
        details["detail"] = exc.detail

    log = logger.warning if status_code < 500 else logger.error
    log("Catalog error", kind=exc.kind.value, message=exc.message, path=request.url.path)
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(
            status_code=status_code,
            error_code=exc.kind.value.upper(),
            message=exc.message,
            details=details,
            request_id=_request_id(request),
        ),
    )


async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    logger.warning("Validation error", errors=errors)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=create_error_response(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_ERROR",
            message="Record validation failed",
            details={"errors": errors},
            request_id=_request_id(request),
        ),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error("Unexpected error", error=str(exc), exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=create_error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_ERROR",
            message="An unexpected error occurred. Please try again later.",
            request_id=_request_id(request),
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(CatalogError, catalog_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    # Generic handler should be last
    app.add_exception_handler(Exception, generic_exception_handler)
