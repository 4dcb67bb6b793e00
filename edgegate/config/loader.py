"""Gate settings loaded from env vars with pydantic-settings."""

from __future__ import annotations

import signal
import threading
from collections.abc import Callable

import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict

from edgegate.config import rate_limit_defaults as defaults

logger = structlog.get_logger()


class GateSettings(BaseSettings):
    """Operational settings; tenant variables are read through ConfigSource."""

    model_config = SettingsConfigDict(
        env_prefix="GATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    listen_port: int = 8080
    log_level: str = "info"
    log_json: bool = True

    # Redirect plain-HTTP requests to HTTPS
    enforce_https: bool = True

    # Client identity
    client_ip_header: str = "cf-connecting-ip"
    max_client_id_length: int = defaults.MAX_CLIENT_ID_LENGTH

    # Failed-authentication rate limiting
    rate_limit_window_seconds: int = defaults.RATE_LIMIT_WINDOW_SECONDS
    rate_limit_max_failures: int = defaults.MAX_FAILED_ATTEMPTS
    rate_limit_max_failures_unknown: int = defaults.MAX_FAILED_ATTEMPTS_UNKNOWN
    rate_limit_max_keys: int = defaults.MAX_RATE_LIMIT_KEYS

    # Basic auth
    max_auth_header_length: int = defaults.MAX_AUTH_HEADER_LENGTH
    auth_realm: str = "Secure Redirect"

    # Security headers
    header_preset: str = "strict"


_settings: GateSettings | None = None


def get_settings() -> GateSettings:
    """Process-wide settings, loaded on first use."""
    return _settings if _settings is not None else load_settings()


def load_settings() -> GateSettings:
    """Read GATE_* variables (and ``.env``) into a fresh settings object."""
    global _settings
    settings = GateSettings()
    _settings = settings
    logger.info(
        "config_loaded",
        port=settings.listen_port,
        enforce_https=settings.enforce_https,
        client_ip_header=settings.client_ip_header,
        header_preset=settings.header_preset,
    )
    return settings


def register_reload_handler(on_reload: Callable[[], None] | None = None) -> bool:
    """Reload settings on SIGHUP, then run ``on_reload``.

    Signal handlers can only be installed from the main thread; returns
    whether the handler was installed.
    """
    if threading.current_thread() is not threading.main_thread():
        logger.debug("sighup_handler_not_installed", reason="worker thread")
        return False

    def _on_sighup(signum, frame):
        logger.info("sighup_received")
        load_settings()
        if on_reload is not None:
            on_reload()

    try:
        signal.signal(signal.SIGHUP, _on_sighup)
    except (AttributeError, ValueError):
        # No SIGHUP on this platform
        logger.debug("sighup_handler_not_installed", reason="unsupported")
        return False
    return True
