"""Health endpoint."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response

from edgegate.engine.gate import get_gate
from edgegate.middleware.pipeline import RequestContext

router = APIRouter()


@router.get("/_edgegate/health")
async def health() -> Response:
    """Health check: the gate is in-process, so it is up whenever this answers.

    Exempt from host scoping and auth so probes can reach it on any Host,
    but it still gets the pipeline's response headers.
    """
    from edgegate.main import _get_pipeline

    gate = get_gate()
    config = gate.config()
    response = JSONResponse({
        "status": "healthy",
        "gate": "up",
        "allowed_suffixes": len(config.allowed_suffixes),
        "protected_subdomains": len(config.protected_subdomains),
        "rate_limit_entries": gate.rate_limiter.entry_count,
    })
    return await _get_pipeline().process_response(response, RequestContext())
