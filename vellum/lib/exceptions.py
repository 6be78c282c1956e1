import logging

from litestar import Request, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from vellum.lib import observability
from vellum.lib.errors import (
    ConflictError,
    CycleError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    VellumError,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[VellumError], int] = {
    ValidationError: HTTP_400_BAD_REQUEST,
    NotFoundError: HTTP_404_NOT_FOUND,
    CycleError: HTTP_409_CONFLICT,
    InvalidStateError: HTTP_409_CONFLICT,
    ConflictError: HTTP_409_CONFLICT,
}


def _json_error(status_code: int, detail: str, error: str) -> Response:
    return Response(
        content={"status_code": status_code, "detail": detail, "error": error},
        status_code=status_code,
        media_type="application/json",
    )


def status_code_for(exc: VellumError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_CODES:
            return STATUS_CODES[error_type]
    return HTTP_400_BAD_REQUEST


def domain_exception_handler(request: Request, exc: VellumError) -> Response:
    """Map service errors onto JSON responses."""
    return _json_error(status_code_for(exc), exc.message, exc.code)


def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    status_code = exc.status_code
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _json_error(status_code, detail, "http_error")


def internal_server_error_handler(request: Request, exc: Exception) -> Response:
    """Log unexpected exceptions and answer with a generic 500."""
    if not observability.exception(
        "Unhandled exception on {method} {path}",
        method=request.method,
        path=request.url.path,
    ):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return _json_error(HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", "internal_error")


EXCEPTION_HANDLERS = {
    VellumError: domain_exception_handler,
    HTTPException: http_exception_handler,
    Exception: internal_server_error_handler,
}
