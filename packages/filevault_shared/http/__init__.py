"""Shared HTTP server helpers for filevault transports."""

from .errors import HttpError, HttpServerError, MissingHeaderError
from .server import (
    create_app,
    error_response,
    get_header,
    run_app,
    status_for_errors,
)

__all__ = [
    "HttpError",
    "HttpServerError",
    "MissingHeaderError",
    "create_app",
    "error_response",
    "get_header",
    "run_app",
    "status_for_errors",
]
