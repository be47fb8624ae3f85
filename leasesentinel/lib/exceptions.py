from litestar import Request, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import HTTP_500_INTERNAL_SERVER_ERROR, HTTP_503_SERVICE_UNAVAILABLE


class SweepError(Exception):
    """A sweep could not run, usually because the record store is unreachable."""


class RoutingError(Exception):
    """No destination could be resolved for a sentinel's notification method."""


class SentinelInputError(ValueError):
    """Rejected input to the sentinel creation workflow.

    ``errors`` maps field names to validation messages, when known.
    """

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or {}


def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Render HTTP exceptions as JSON."""
    status_code = exc.status_code
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    return Response(
        content={"status_code": status_code, "detail": detail},
        status_code=status_code,
        media_type="application/json",
    )


def sweep_error_handler(request: Request, exc: SweepError) -> Response:
    """Report a sweep that never started as a service outage."""
    return Response(
        content={"success": False, "error": str(exc)},
        status_code=HTTP_503_SERVICE_UNAVAILABLE,
        media_type="application/json",
    )


def internal_server_error_handler(request: Request, exc: Exception) -> Response:
    """Handle unexpected exceptions without leaking details."""
    return Response(
        content={"status_code": HTTP_500_INTERNAL_SERVER_ERROR, "detail": "Internal Server Error"},
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/json",
    )
