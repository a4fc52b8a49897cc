"""FastAPI and uvicorn helpers shared by HTTP transports."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from packages.filevault_shared.errors import ErrorCategory, ErrorDetail, codes

from .errors import MissingHeaderError

_CATEGORY_STATUS: Mapping[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.POLICY: 403,
    ErrorCategory.DEPENDENCY: 503,
    ErrorCategory.INTERNAL: 500,
    ErrorCategory.UNSPECIFIED: 500,
}


def create_app(
    *,
    title: str = "filevault",
    version: str = "0.0.0",
    cors_allowed_origins: Sequence[str] = (),
    cors_allowed_methods: Sequence[str] = ("GET", "POST", "DELETE", "OPTIONS"),
) -> FastAPI:
    """Create a FastAPI app; CORS middleware is added when origins are given."""
    app = FastAPI(title=title, version=version)
    if cors_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cors_allowed_origins),
            allow_methods=list(cors_allowed_methods),
            allow_headers=["*"],
            expose_headers=["Content-Disposition", "Content-Length"],
        )
    app.add_exception_handler(MissingHeaderError, _missing_header_response)
    return app


def _missing_header_response(_request: Request, exc: Exception) -> JSONResponse:
    """Render a missing caller-identity header as 401."""
    return JSONResponse(
        status_code=401,
        content={
            "ok": False,
            "errors": [
                {
                    "code": codes.MISSING_REQUIRED_FIELD,
                    "category": ErrorCategory.VALIDATION.value,
                    "message": str(exc),
                    "retryable": False,
                }
            ],
        },
    )


def run_app(
    app: FastAPI,
    *,
    host: str = "127.0.0.1",
    port: int = 8080,
    log_level: str = "info",
) -> None:
    """Run one FastAPI app through uvicorn."""
    uvicorn.run(app, host=host, port=port, log_level=log_level)


def get_header(
    request: Request,
    name: str,
    *,
    required: bool = True,
    strip: bool = True,
) -> str | None:
    """Fetch one header value and optionally enforce presence."""
    value = request.headers.get(name)
    if value is not None and strip:
        value = value.strip()
    if value is None or value == "":
        if required:
            raise MissingHeaderError(
                message=f"Missing required header: {name}",
                header_name=name,
            )
        return None
    return value


def status_for_errors(
    errors: Iterable[ErrorDetail],
    *,
    overrides: Mapping[str, int] | None = None,
) -> int:
    """Return the HTTP status for the first error; ``overrides`` keys by code."""
    for error in errors:
        if overrides and error.code in overrides:
            return overrides[error.code]
        return _CATEGORY_STATUS.get(error.category, 500)
    return 500


def error_response(
    errors: Sequence[ErrorDetail],
    *,
    overrides: Mapping[str, int] | None = None,
) -> JSONResponse:
    """Render envelope errors as a JSON error body."""
    return JSONResponse(
        status_code=status_for_errors(errors, overrides=overrides),
        content={
            "ok": False,
            "errors": [
                {
                    "code": error.code,
                    "category": error.category.value,
                    "message": error.message,
                    "retryable": error.retryable,
                }
                for error in errors
            ],
        },
    )
