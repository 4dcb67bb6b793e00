"""FastAPI edge gate application."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse, Response

from edgegate.config.loader import load_settings, register_reload_handler
from edgegate.engine.gate import get_gate
from edgegate.health import router as health_router
from edgegate.logging_config import setup_logging
from edgegate.middleware.basic_auth import BasicAuthGate
from edgegate.middleware.context_injector import ContextInjector
from edgegate.middleware.pipeline import MiddlewarePipeline, RequestContext
from edgegate.middleware.request_guard import MethodFilter, SchemeEnforcer
from edgegate.middleware.router import TenantRouter, not_found
from edgegate.middleware.security_headers import SecurityHeaders

logger = structlog.get_logger()

_pipeline: MiddlewarePipeline | None = None


def _build_pipeline() -> MiddlewarePipeline:
    """Build the ordered middleware pipeline.

    SecurityHeaders sits near the front so its response hook runs late and
    covers every short-circuit response.
    """
    pipeline = MiddlewarePipeline()
    pipeline.add(ContextInjector())    # 0: request ID, client ID
    pipeline.add(SecurityHeaders())    # 1: headers on every response
    pipeline.add(SchemeEnforcer())     # 2: http -> https
    pipeline.add(MethodFilter())       # 3: GET/HEAD only
    pipeline.add(TenantRouter())       # 4: host scope, tenant lookup
    pipeline.add(BasicAuthGate())      # 5: credentials + failure limiter
    return pipeline


def _get_pipeline() -> MiddlewarePipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = _build_pipeline()
    return _pipeline


def _invalidate_config() -> None:
    get_gate().invalidate()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    global _pipeline

    settings = load_settings()
    setup_logging(log_level=settings.log_level, json_format=settings.log_json)
    register_reload_handler(on_reload=_invalidate_config)

    _pipeline = _build_pipeline()
    gate = get_gate()
    config = gate.config()
    logger.info(
        "gate_started",
        port=settings.listen_port,
        middleware=_pipeline.names,
        allowed_suffixes=list(config.allowed_suffixes),
        protected_subdomains=len(config.protected_subdomains),
    )

    yield

    logger.info("gate_stopped", rate_limit_entries=gate.rate_limiter.entry_count)


app = FastAPI(title="edgegate", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.include_router(health_router)


@app.api_route("/{path:path}", methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def gate_request(request: Request, path: str) -> Response:
    """Catch-all handler: run the gate, then redirect to the tenant target."""
    pipeline = _get_pipeline()
    context = RequestContext()

    short_circuit = await pipeline.process_request(request, context)
    if short_circuit is not None:
        # Short-circuit responses still need the response pipeline (security headers)
        return await pipeline.process_response(short_circuit, context)

    if context.target_url:
        logger.info("redirect", subdomain=context.subdomain, target=context.target_url)
        response: Response = RedirectResponse(context.target_url, status_code=302)
    else:
        logger.info("tenant_not_found", subdomain=context.subdomain)
        response = not_found()

    return await pipeline.process_response(response, context)
