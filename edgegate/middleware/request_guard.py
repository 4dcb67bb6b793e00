"""Scheme and method guards applied before tenant routing."""

from __future__ import annotations

import structlog
from starlette.requests import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response

from edgegate.config.loader import get_settings
from edgegate.middleware.pipeline import Middleware, RequestContext

logger = structlog.get_logger()

ALLOWED_METHODS = frozenset({"GET", "HEAD"})
_ALLOW_HEADER = "GET, HEAD"


class SchemeEnforcer(Middleware):
    """Redirect plain-HTTP requests to the same URL over HTTPS (301)."""

    async def process_request(self, request: Request, context: RequestContext) -> Response | None:
        if not get_settings().enforce_https or request.url.scheme != "http":
            return None
        secure_url = str(request.url.replace(scheme="https"))
        logger.debug("https_redirect", url=secure_url)
        return RedirectResponse(secure_url, status_code=301)


class MethodFilter(Middleware):
    """Only GET and HEAD are served; everything else gets 405."""

    async def process_request(self, request: Request, context: RequestContext) -> Response | None:
        if request.method.upper() in ALLOWED_METHODS:
            return None
        return PlainTextResponse(
            "Method Not Allowed",
            status_code=405,
            headers={"Allow": _ALLOW_HEADER},
        )
