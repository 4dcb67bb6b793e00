"""Tenant router middleware: routes by Host header to a subdomain tenant."""

from __future__ import annotations

import structlog
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from edgegate.engine.gate import AccessGate, get_gate
from edgegate.engine.host import host_from_header
from edgegate.middleware.pipeline import Middleware, RequestContext

logger = structlog.get_logger()


def not_found() -> Response:
    return PlainTextResponse("Not found", status_code=404)


class TenantRouter(Middleware):
    """Reject out-of-scope hosts and attach tenant info to the context."""

    def __init__(self, gate: AccessGate | None = None) -> None:
        self._gate = gate

    async def process_request(self, request: Request, context: RequestContext) -> Response | None:
        gate = self._gate or get_gate()
        hostname = host_from_header(request.headers.get("host", ""))
        context.hostname = hostname

        resolution = gate.resolve_host(hostname)
        if not resolution.allowed:
            logger.info("host_rejected", hostname=hostname)
            return not_found()

        context.subdomain = resolution.subdomain
        context.protected = resolution.protected
        context.target_url = resolution.target_url
        structlog.contextvars.bind_contextvars(subdomain=resolution.subdomain)

        # A protected tenant without a target is indistinguishable from an unknown one
        if resolution.protected and not resolution.target_url:
            logger.info("protected_tenant_without_target", subdomain=resolution.subdomain)
            return not_found()

        return None
