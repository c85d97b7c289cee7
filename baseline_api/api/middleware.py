"""API middleware: correlation ID, tenant context, current principal."""

import logging
import re
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from baseline_api.core.context import correlation_id_ctx, tenant_id_ctx
from baseline_api.observability.request_log import ANONYMOUS
from baseline_api.security.principal import principal_from_authorization

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"
CORRELATION_HEADER = "X-Correlation-ID"
AUTHORIZATION_HEADER = "Authorization"

_CORRELATION_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")
TENANT_EXEMPT_PATHS = frozenset({"/health", "/health/ready", "/docs", "/openapi.json"})


def resolve_correlation_id(inbound: Optional[str]) -> str:
    """Adopt a well-formed inbound id verbatim; otherwise generate a new one."""
    if inbound and _CORRELATION_ID_PATTERN.match(inbound):
        return inbound
    return uuid.uuid4().hex


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Generate or preserve correlation ID; attach to request.state, logging context and
    the response header, including responses for unhandled errors.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = resolve_correlation_id(request.headers.get(CORRELATION_HEADER))
        request.state.correlation_id = correlation_id
        token = correlation_id_ctx.set(correlation_id)
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("Unhandled error for %s %s", request.method, request.url.path)
                response = JSONResponse(
                    status_code=500,
                    content={"detail": "Internal server error"},
                )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            correlation_id_ctx.reset(token)


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Extract X-Tenant-ID; return 400 if missing; attach to request.state and request-scoped context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in TENANT_EXEMPT_PATHS:
            request.state.tenant_id = None
            return await call_next(request)

        tenant_id = request.headers.get(TENANT_HEADER)
        if not tenant_id or not tenant_id.strip():
            return JSONResponse(
                status_code=400,
                content={"detail": "X-Tenant-ID header is required"},
            )
        request.state.tenant_id = tenant_id.strip()
        token = tenant_id_ctx.set(request.state.tenant_id)
        try:
            return await call_next(request)
        finally:
            tenant_id_ctx.reset(token)


class PrincipalMiddleware(BaseHTTPMiddleware):
    """Expose the caller's identity (or None) as request.state.principal / actor_name. Never rejects."""

    def __init__(self, app: ASGIApp, secret: str, algorithm: str = "HS256") -> None:
        super().__init__(app)
        self._secret = secret
        self._algorithm = algorithm

    async def dispatch(self, request: Request, call_next) -> Response:
        principal = principal_from_authorization(
            request.headers.get(AUTHORIZATION_HEADER),
            self._secret,
            self._algorithm,
        )
        request.state.principal = principal.subject if principal else None
        request.state.actor_name = principal.display_name if principal else ANONYMOUS
        return await call_next(request)
