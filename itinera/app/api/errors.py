"""Mapping of domain errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from itinera.app.errors import Forbidden, InvalidState, ItineraError, NotFound, Unauthenticated

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[ItineraError], int] = {
    Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidState: status.HTTP_409_CONFLICT,
}


def status_for(error: ItineraError) -> int:
    """HTTP status for a domain error (500 for unknown subclasses)."""
    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
    """Render a domain error as ``{"detail": message}``."""
    assert isinstance(exc, ItineraError)
    status_code = status_for(exc)

    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}

    if status_code >= 500:
        logger.error(f"[API] unmapped domain error path={request.url.path}", exc_info=exc)
    else:
        logger.debug(
            f"[API] {type(exc).__name__} path={request.url.path} detail={exc.message}"
        )

    return JSONResponse(status_code=status_code, content={"detail": exc.message}, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    """Register the domain error handler on the app."""
    app.add_exception_handler(ItineraError, handle_domain_error)
