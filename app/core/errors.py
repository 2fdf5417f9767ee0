"""
Error taxonomy for the dashboard backend.

Every failure resolves to a JSON response with a ``detail`` message; none of
these errors is fatal to the process.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

CONNECTION_LOST_MESSAGE = "Connection lost. Retrying..."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class DashboardError(Exception):
    """Base class for errors surfaced to dashboard users."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(DashboardError):
    """Required configuration is missing."""


class AuthServiceError(DashboardError):
    """The auth service rejected a request (bad credentials, expired link).

    The message is the auth service's own and is shown verbatim.
    """

    status_code = status.HTTP_400_BAD_REQUEST


class ConnectivityError(DashboardError):
    """A remote service could not be reached."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ManagementAPIError(DashboardError):
    """The management API refused an action, e.g. a duplicate email."""

    status_code = status.HTTP_400_BAD_REQUEST


class ProfileFetchError(DashboardError):
    """The profile row for a user could not be loaded."""


class PermissionDeniedError(DashboardError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(DashboardError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationFailedError(DashboardError):
    """A form failed a client-side check (password too short, mismatch)."""

    status_code = status.HTTP_400_BAD_REQUEST


async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DashboardError, dashboard_error_handler)
