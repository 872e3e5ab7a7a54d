"""
Request Middleware
Provides request_id injection, timing, and mapping of domain errors to HTTP responses.
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from tailauth.core.logging import (
    get_request_id,
    generate_request_id,
    request_id_var,
    request_start_var,
    api_logger,
)
from tailauth.permissions.exceptions import (
    MissingResourceId,
    ResourceNotFound,
    Unauthenticated,
)
from tailauth.services.team_members import TeamMembershipError


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    1. Generates/propagates request_id for tracing
    2. Tracks request timing
    3. Logs request/response summary
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get('X-Request-ID') or generate_request_id()

        request_id_var.set(request_id)
        request_start_var.set(time.time())
        request.state.request_id = request_id

        path = request.url.path
        if not path.endswith('/health'):
            api_logger.debug(
                f"{request.method} {path}",
                client=request.client.host if request.client else 'unknown',
            )

        try:
            response = await call_next(request)
            response.headers['X-Request-ID'] = request_id

            if not path.endswith('/health'):
                duration = round((time.time() - request_start_var.get()) * 1000, 2)
                log_level = 'info' if response.status_code < 400 else 'warning'
                getattr(api_logger, log_level)(
                    f"{request.method} {path} -> {response.status_code}",
                    duration_ms=duration,
                    status=response.status_code,
                )
            return response
        finally:
            request_id_var.set(None)
            request_start_var.set(None)


def _error_response(request: Request, status_code: int, detail) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', None) or get_request_id() or 'unknown'
    return JSONResponse(
        status_code=status_code,
        content={'detail': detail, 'request_id': request_id},
        headers={'X-Request-ID': request_id},
    )


async def unauthenticated_handler(request: Request, exc: Unauthenticated) -> JSONResponse:
    return _error_response(request, 401, 'Authentication required')


async def resource_not_found_handler(request: Request, exc: ResourceNotFound) -> JSONResponse:
    return _error_response(request, 404, f"{exc.kind.capitalize()} not found")


async def missing_resource_id_handler(request: Request, exc: MissingResourceId) -> JSONResponse:
    return _error_response(request, 400, f"{exc.kind.capitalize()} ID required")


async def team_membership_error_handler(request: Request, exc: TeamMembershipError) -> JSONResponse:
    decision = getattr(exc, 'decision', None)
    if decision is not None:
        role = decision.role.value if decision.role else None
        return _error_response(request, exc.status_code, {'error': exc.message, 'role': role})
    return _error_response(request, exc.status_code, exc.message)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Safe JSON 500 for anything unhandled, with request_id for debugging."""
    api_logger.error(
        f"Unhandled exception in {request.method} {request.url.path}",
        error=exc,
        path=str(request.url.path),
    )
    return _error_response(request, 500, 'Internal server error')


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Unauthenticated, unauthenticated_handler)
    app.add_exception_handler(ResourceNotFound, resource_not_found_handler)
    app.add_exception_handler(MissingResourceId, missing_resource_id_handler)
    app.add_exception_handler(TeamMembershipError, team_membership_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
