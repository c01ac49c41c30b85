"""Error handlers for API routes.

Every error leaves the service as an ErrorResponse body. Lineage errors
are mapped onto HTTP status codes by class:

    ChunkNotFoundError      404
    DuplicateIdError        409
    ImmutableChunkError     409
    InvalidReferenceError   422
    RawChunkCitesError      422
    StageOrderError         422
    other LineageError      400

Anti-Patterns Avoided:
- No bare except clauses
- One handler per error family, looked up from a table
"""

from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.core.exceptions import (
    ChunkNotFoundError,
    DuplicateIdError,
    ImmutableChunkError,
    InvalidReferenceError,
    LineageError,
    RawChunkCitesError,
    StageOrderError,
)
from src.core.logging import get_logger


logger = get_logger(__name__)


class ErrorResponse(BaseModel):
    """Standard error body.

    Attributes:
        error: Error category, e.g. "NotFound"
        detail: Human-readable description
        code: Machine-readable code, e.g. "DUPLICATE_ID"
        path: Request path that failed
        chunk_id: Chunk the error concerns, when known
    """

    error: str = Field(..., description="Error category")
    detail: str = Field(..., description="Human-readable error description")
    code: str | None = Field(default=None, description="Machine-readable error code")
    path: str | None = Field(default=None, description="Request path")
    chunk_id: str | None = Field(default=None, description="Chunk the error concerns")


# =============================================================================
# Status Tables
# =============================================================================

_HTTP_ERROR_NAMES: dict[int, str] = {
    400: "BadRequest",
    404: "NotFound",
    409: "Conflict",
    422: "ValidationError",
    500: "InternalServerError",
    503: "ServiceUnavailable",
}

# First matching class wins; subclasses must precede their bases
_LINEAGE_ERROR_STATUS: tuple[tuple[type[LineageError], int, str, str], ...] = (
    (ChunkNotFoundError, 404, "NotFound", "CHUNK_NOT_FOUND"),
    (DuplicateIdError, 409, "Conflict", "DUPLICATE_ID"),
    (ImmutableChunkError, 409, "Conflict", "IMMUTABLE_CHUNK"),
    (InvalidReferenceError, 422, "InvalidReference", "INVALID_REFERENCE"),
    (RawChunkCitesError, 422, "RawChunkCites", "RAW_CHUNK_CITES"),
    (StageOrderError, 422, "StageOrder", "STAGE_ORDER"),
    (LineageError, 400, "LineageError", "LINEAGE_ERROR"),
)


def _respond(request: Request, status_code: int, **fields: str | None) -> JSONResponse:
    body = ErrorResponse(path=str(request.url.path), **fields)  # type: ignore[arg-type]
    return JSONResponse(status_code=status_code, content=body.model_dump())


# =============================================================================
# Exception Handlers
# =============================================================================

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTPException (including 404 for unknown chunks)."""
    return _respond(
        request,
        exc.status_code,
        error=_HTTP_ERROR_NAMES.get(exc.status_code, "Error"),
        detail=str(exc.detail),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render request validation failures as ``loc: msg`` pairs."""
    field_errors = [
        f"{'.'.join(str(part) for part in error.get('loc', []))}: "
        f"{error.get('msg', 'Invalid value')}"
        for error in exc.errors()
    ]
    return _respond(
        request,
        422,
        error="ValidationError",
        detail="; ".join(field_errors) or "Validation error",
        code="VALIDATION_ERROR",
    )


async def lineage_error_handler(request: Request, exc: LineageError) -> JSONResponse:
    """Render a rejected lineage operation with the status of its class."""
    status_code, error, code = next(
        (status_code, error, code)
        for error_cls, status_code, error, code in _LINEAGE_ERROR_STATUS
        if isinstance(exc, error_cls)
    )
    logger.info(
        "request_rejected",
        path=str(request.url.path),
        error=type(exc).__name__,
        chunk_id=exc.chunk_id,
    )
    return _respond(
        request,
        status_code,
        error=error,
        detail=str(exc),
        code=code,
        chunk_id=exc.chunk_id,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render anything unexpected as a 500 without leaking its message."""
    logger.exception(
        "unhandled_exception",
        path=str(request.url.path),
        error_type=type(exc).__name__,
    )
    return _respond(
        request,
        500,
        error="InternalServerError",
        detail="An unexpected error occurred",
        code="INTERNAL_ERROR",
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI app."""
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(LineageError, lineage_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "ErrorResponse",
    "register_error_handlers",
]
