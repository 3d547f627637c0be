"""Domain errors and their HTTP mapping.

Services raise these; one exception handler in ``foodlink.main`` turns them
into ``{"detail": ...}`` JSON responses. Every failure is scoped to the request
that triggered it.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class FoodLinkError(Exception):
    status_code = 400

    def __init__(self, detail: str, status_code: int | None = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class NotAuthenticated(FoodLinkError):
    """Missing/invalid credentials (401) or wrong actor for the action (403)."""
    status_code = 401


class NotFound(FoodLinkError):
    status_code = 404


class BackendFailure(FoodLinkError):
    """The document store rejected a read or write. Never retried here."""
    status_code = 503


class ValidationFailure(FoodLinkError):
    status_code = 422


class TransitionRejected(FoodLinkError):
    status_code = 409


class OperationInProgress(FoodLinkError):
    status_code = 409


def forbidden(detail: str) -> NotAuthenticated:
    return NotAuthenticated(detail, status_code=403)


async def foodlink_error_handler(request: Request, exc: FoodLinkError):
    if isinstance(exc, BackendFailure):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)
