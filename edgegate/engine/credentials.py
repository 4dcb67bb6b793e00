"""Expected-credential resolution for protected tenants."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Union

import structlog

from edgegate.config.source import ConfigSource
from edgegate.engine.host import canonical_key

logger = structlog.get_logger()

MULTI_USER_NAMESPACE = "USERS"
USER_NAMESPACE = "USER"
PASS_NAMESPACE = "PASS"
FALLBACK_USER = "FALLBACK_USER"
FALLBACK_PASS = "FALLBACK_PASS"


@dataclass(frozen=True)
class CredentialPair:
    user: str
    password: str


@dataclass(frozen=True)
class SingleCredential:
    """One user/password pair from tenant or fallback variables."""

    user: str
    password: str


@dataclass(frozen=True)
class MultiCredential:
    """Ordered list of accepted pairs from a ``USERS_<KEY>`` JSON array."""

    pairs: tuple[CredentialPair, ...]


CredentialSpec = Union[SingleCredential, MultiCredential]


def _is_non_empty(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _parse_multi_user(raw: str) -> MultiCredential | None:
    """Parse a JSON array of ``{"user", "pass"}`` objects.

    Returns None for anything that is not valid JSON or not the required shape.
    """
    try:
        data = json.loads(raw)
    except (ValueError, TypeError):
        return None
    if not isinstance(data, list):
        return None

    pairs: list[CredentialPair] = []
    for item in data:
        if not isinstance(item, dict):
            return None
        user = item.get("user")
        password = item.get("pass")
        if not isinstance(user, str) or not isinstance(password, str) or not user or not password:
            return None
        pairs.append(CredentialPair(user=user, password=password))
    return MultiCredential(pairs=tuple(pairs))


def resolve_credentials(subdomain: str, source: ConfigSource) -> CredentialSpec:
    """Resolve the expected credentials for a tenant.

    ``USERS_<KEY>`` wins when it holds a well-formed array. Otherwise
    ``USER_<KEY>``/``PASS_<KEY>`` are used, each falling back to
    ``FALLBACK_USER``/``FALLBACK_PASS`` when unset.
    """
    key = canonical_key(subdomain)

    raw_multi = source.value(MULTI_USER_NAMESPACE, key)
    if raw_multi is not None:
        multi = _parse_multi_user(raw_multi)
        if multi is not None:
            return multi
        logger.debug("multi_user_credentials_ignored", key=key)

    user = source.value(USER_NAMESPACE, key) or source.raw(FALLBACK_USER) or ""
    password = source.value(PASS_NAMESPACE, key) or source.raw(FALLBACK_PASS) or ""
    return SingleCredential(user=user, password=password)


def is_configured(spec: CredentialSpec) -> bool:
    """True when every expected pair has non-blank user and password."""
    if isinstance(spec, MultiCredential):
        return bool(spec.pairs) and all(
            _is_non_empty(pair.user) and _is_non_empty(pair.password) for pair in spec.pairs
        )
    if isinstance(spec, SingleCredential):
        return _is_non_empty(spec.user) and _is_non_empty(spec.password)
    return False
