"""Security headers stamped on every gate response."""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml
from starlette.requests import Request
from starlette.responses import Response

from edgegate.config.loader import get_settings
from edgegate.middleware.pipeline import Middleware, RequestContext

logger = structlog.get_logger()

_PRESETS_PATH = Path(__file__).parent.parent / "config" / "header_presets.yaml"
DEFAULT_PRESET = "strict"

# Software fingerprints removed from whatever response we send
_STRIP_HEADERS = ("server", "x-powered-by")

_presets: dict | None = None


def _load_presets() -> dict:
    """Parse ``header_presets.yaml`` once per process."""
    global _presets
    if _presets is None:
        if _PRESETS_PATH.exists():
            _presets = yaml.safe_load(_PRESETS_PATH.read_text(encoding="utf-8")) or {}
        else:
            logger.error("header_presets_not_found", path=str(_PRESETS_PATH))
            _presets = {}
    return _presets


def reset_presets_cache() -> None:
    global _presets
    _presets = None


def preset_headers(name: str) -> dict[str, str]:
    """Header map for a preset; unknown names get the strict set."""
    presets = _load_presets()
    chosen = presets.get(name)
    if chosen is None:
        logger.warning("unknown_header_preset", preset=name, fallback=DEFAULT_PRESET)
        chosen = presets.get(DEFAULT_PRESET, {})
    return {str(k): str(v) for k, v in chosen.items()}


class SecurityHeaders(Middleware):
    """Apply a header preset on the way out.

    Headers set by earlier stages that the preset does not name, such as
    ``Retry-After`` and ``WWW-Authenticate``, are left alone.
    """

    def __init__(self, preset: str | None = None) -> None:
        self._preset = preset

    async def process_request(self, request: Request, context: RequestContext) -> Response | None:
        return None

    async def process_response(self, response: Response, context: RequestContext) -> Response:
        try:
            headers = preset_headers(self._preset or get_settings().header_preset)
        except Exception as exc:
            logger.error("security_headers_error", error=str(exc))
            return response

        for name in _STRIP_HEADERS:
            if name in response.headers:
                del response.headers[name]
        response.headers.update(headers)
        return response
