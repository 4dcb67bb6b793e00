"""Edge gate: host scoping, tenant Basic auth and failed-login rate limiting."""

__version__ = "0.1.0"
