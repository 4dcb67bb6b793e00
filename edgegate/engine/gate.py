"""Access decisions for one request: host scope, tenant and credentials."""

from __future__ import annotations

import enum
from dataclasses import dataclass

import structlog

from edgegate.config.loader import GateSettings, get_settings
from edgegate.config.rate_limit_defaults import MAX_AUTH_HEADER_LENGTH
from edgegate.config.source import ConfigSource
from edgegate.engine.auth import check_basic_auth
from edgegate.engine.config_cache import CachedConfig, ConfigCache
from edgegate.engine.credentials import is_configured, resolve_credentials
from edgegate.engine.host import canonical_key, extract_subdomain, host_is_allowed
from edgegate.engine.ratelimit import FailureRateLimiter

logger = structlog.get_logger()


class AuthOutcome(enum.Enum):
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class AuthDecision:
    outcome: AuthOutcome
    retry_after: int = 0

    @property
    def allowed(self) -> bool:
        return self.outcome is AuthOutcome.AUTHORIZED


@dataclass(frozen=True)
class HostResolution:
    """Tenant view of a hostname, recomputed for every request."""

    allowed: bool
    subdomain: str = ""
    protected: bool = False
    target_url: str | None = None


_REJECTED = HostResolution(allowed=False)


class AccessGate:
    """Host resolution and Basic-auth gating over shared process state.

    The config cache and failure limiter are owned here and shared by every
    request routed through the same gate instance.
    """

    def __init__(
        self,
        source: ConfigSource | None = None,
        config_cache: ConfigCache | None = None,
        rate_limiter: FailureRateLimiter | None = None,
        max_auth_header_length: int = MAX_AUTH_HEADER_LENGTH,
    ) -> None:
        self.source = source or ConfigSource()
        self.config_cache = config_cache or ConfigCache()
        self.rate_limiter = rate_limiter or FailureRateLimiter()
        self.max_auth_header_length = max_auth_header_length

    @classmethod
    def from_settings(cls, settings: GateSettings, source: ConfigSource | None = None) -> AccessGate:
        limiter = FailureRateLimiter(
            window_seconds=settings.rate_limit_window_seconds,
            max_failures=settings.rate_limit_max_failures,
            max_failures_unknown=settings.rate_limit_max_failures_unknown,
            max_keys=settings.rate_limit_max_keys,
        )
        return cls(
            source=source,
            rate_limiter=limiter,
            max_auth_header_length=settings.max_auth_header_length,
        )

    def config(self) -> CachedConfig:
        return self.config_cache.get(
            self.source.allowed_host_suffixes(),
            self.source.protected_subdomains(),
        )

    def invalidate(self) -> None:
        self.config_cache.invalidate()

    def resolve_host(self, hostname: str) -> HostResolution:
        """Decide whether a hostname is in scope and which tenant it names."""
        config = self.config()
        if not host_is_allowed(hostname, config.allowed_suffixes):
            return _REJECTED

        subdomain = extract_subdomain(hostname, config.allowed_suffixes)
        target_url = self.source.redirect_target(canonical_key(subdomain)) if subdomain else None
        return HostResolution(
            allowed=True,
            subdomain=subdomain,
            protected=subdomain in config.protected_subdomains,
            target_url=target_url,
        )

    def authorize(self, subdomain: str, client_id: str, authorization: str | None) -> AuthDecision:
        """Check a protected tenant's credentials under the failure limiter.

        A tenant without usable credentials is refused outright. A limited
        client is refused before its header is decoded.
        """
        expected = resolve_credentials(subdomain, self.source)
        if not is_configured(expected):
            logger.warning("tenant_credentials_missing", subdomain=subdomain)
            return AuthDecision(AuthOutcome.UNAUTHORIZED)

        limiter = self.rate_limiter
        limited, retry_after = limiter.check(client_id, subdomain)
        if limited:
            logger.warning(
                "rate_limit_exceeded",
                client_id=client_id,
                subdomain=subdomain,
                retry_after=retry_after,
            )
            return AuthDecision(AuthOutcome.RATE_LIMITED, retry_after=retry_after)

        header = authorization or ""
        if len(header) > self.max_auth_header_length:
            failures = limiter.register_failed_attempt(client_id, subdomain)
            logger.warning(
                "auth_header_too_large",
                client_id=client_id,
                subdomain=subdomain,
                length=len(header),
                failures=failures,
            )
            return AuthDecision(AuthOutcome.UNAUTHORIZED)

        if not check_basic_auth(header, expected):
            failures = limiter.register_failed_attempt(client_id, subdomain)
            logger.info("auth_failed", client_id=client_id, subdomain=subdomain, failures=failures)
            return AuthDecision(AuthOutcome.UNAUTHORIZED)

        limiter.clear_failures(client_id, subdomain)
        logger.info("auth_succeeded", client_id=client_id, subdomain=subdomain)
        return AuthDecision(AuthOutcome.AUTHORIZED)


# Module-level singleton
_gate: AccessGate | None = None


def get_gate() -> AccessGate:
    """Get or create the process-wide gate."""
    global _gate
    if _gate is None:
        _gate = AccessGate.from_settings(get_settings())
    return _gate


def reset_gate() -> None:
    """Drop the process-wide gate (for testing)."""
    global _gate
    _gate = None
