"""Basic-auth gate middleware for protected tenants."""

from __future__ import annotations

import structlog
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from edgegate.config.loader import get_settings
from edgegate.engine.gate import AccessGate, AuthOutcome, get_gate
from edgegate.middleware.pipeline import Middleware, RequestContext

logger = structlog.get_logger()


def challenge_header(realm: str) -> str:
    return f'Basic realm="{realm}", charset="UTF-8"'


class BasicAuthGate(Middleware):
    """Require valid Basic credentials on protected tenants.

    - 401 with a WWW-Authenticate challenge for any failed or missing login
    - 429 with Retry-After once the client's failure threshold is reached
    - Unprotected tenants pass straight through
    """

    def __init__(self, gate: AccessGate | None = None) -> None:
        self._gate = gate

    async def process_request(self, request: Request, context: RequestContext) -> Response | None:
        if not context.protected:
            return None

        gate = self._gate or get_gate()
        decision = gate.authorize(
            context.subdomain,
            context.client_id,
            request.headers.get("authorization"),
        )

        if decision.outcome is AuthOutcome.AUTHORIZED:
            return None

        if decision.outcome is AuthOutcome.RATE_LIMITED:
            return PlainTextResponse(
                "Too many requests",
                status_code=429,
                headers={"Retry-After": str(decision.retry_after)},
            )

        return PlainTextResponse(
            "Not authorized",
            status_code=401,
            headers={"WWW-Authenticate": challenge_header(get_settings().auth_realm)},
        )
