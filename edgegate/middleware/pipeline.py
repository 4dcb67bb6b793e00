"""Request stages run in order around the gate's final redirect."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import structlog
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

logger = structlog.get_logger()


@dataclass
class RequestContext:
    """Per-request state filled in by the stages as they run."""

    request_id: str = ""
    client_id: str = ""
    hostname: str = ""
    subdomain: str = ""
    protected: bool = False
    target_url: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.request_id:
            self.request_id = uuid4().hex[:8]


class Middleware(abc.ABC):
    """One stage of the gate."""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abc.abstractmethod
    async def process_request(self, request: Request, context: RequestContext) -> Response | None:
        """Return None to let the request continue, or a Response to answer it now."""
        ...

    async def process_response(self, response: Response, context: RequestContext) -> Response:
        return response


@dataclass
class _Stage:
    middleware: Middleware
    enabled: bool = True


class MiddlewarePipeline:
    """Stages in registration order; responses unwind in reverse.

    A response produced by a stage's request hook still passes back through
    the response hooks of every stage, so headers land on short-circuits too.
    """

    def __init__(self) -> None:
        self._stages: list[_Stage] = []

    def add(self, middleware: Middleware, enabled: bool = True) -> None:
        self._stages.append(_Stage(middleware, enabled))
        logger.info("middleware_registered", name=middleware.name, enabled=enabled)

    def set_enabled(self, name: str, enabled: bool) -> None:
        """Toggle every stage registered under ``name``; unknown names are ignored."""
        for stage in self._stages:
            if stage.middleware.name == name:
                stage.enabled = enabled

    @property
    def names(self) -> list[str]:
        return [stage.middleware.name for stage in self._stages]

    def _active(self) -> list[Middleware]:
        return [stage.middleware for stage in self._stages if stage.enabled]

    async def process_request(self, request: Request, context: RequestContext) -> Response | None:
        for mw in self._active():
            try:
                result = await mw.process_request(request, context)
            except Exception:
                # Fail closed: a broken stage must not let the request through
                logger.exception("middleware_request_error", middleware=mw.name)
                return PlainTextResponse("Internal gateway error", status_code=502)
            if result is not None:
                logger.debug("middleware_short_circuit", middleware=mw.name, status=result.status_code)
                return result
        return None

    async def process_response(self, response: Response, context: RequestContext) -> Response:
        """Run response hooks last-registered first; a raising hook is skipped."""
        for mw in reversed(self._active()):
            try:
                response = await mw.process_response(response, context)
            except Exception:
                logger.exception("middleware_response_error", middleware=mw.name)
        return response
