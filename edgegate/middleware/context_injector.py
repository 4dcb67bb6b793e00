"""Context injector middleware: request ID and client identity."""

from __future__ import annotations

from uuid import uuid4

import structlog
from starlette.requests import Request
from starlette.responses import Response

from edgegate.config.loader import get_settings
from edgegate.middleware.pipeline import Middleware, RequestContext
from edgegate.utils.client_id import client_id_from_header

logger = structlog.get_logger()


class ContextInjector(Middleware):
    """Attach request ID and client identity to the context.

    - Generates a unique request ID (uuid4, first 8 chars)
    - Derives the client ID from the trusted connecting-IP header
    - Binds both to structlog contextvars for the rest of the request
    """

    def __init__(self, client_ip_header: str | None = None, max_client_id_length: int | None = None) -> None:
        self._client_ip_header = client_ip_header
        self._max_client_id_length = max_client_id_length

    async def process_request(self, request: Request, context: RequestContext) -> Response | None:
        settings = get_settings()
        header_name = self._client_ip_header or settings.client_ip_header
        max_length = self._max_client_id_length or settings.max_client_id_length

        context.request_id = uuid4().hex[:8]
        context.client_id = client_id_from_header(request.headers.get(header_name), max_length)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=context.request_id,
            client_id=context.client_id,
        )
        logger.debug("context_injected", method=request.method)
        return None

    async def process_response(self, response: Response, context: RequestContext) -> Response:
        response.headers["x-request-id"] = context.request_id
        return response
