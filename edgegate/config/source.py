"""Lookup of tenant configuration variables by computed name."""

from __future__ import annotations

import os
from collections.abc import Mapping

ALLOWED_HOST_SUFFIXES = "ALLOWED_HOST_SUFFIXES"
PROTECTED_SUBDOMAINS = "PROTECTED_SUBDOMAINS"
LINK_NAMESPACE = "LINK"


class ConfigSource:
    """Read-only view over the variables that describe tenants.

    Backed by ``os.environ`` unless another mapping is given. Names follow
    ``<NAMESPACE>_<KEY>``, e.g. ``USER_FOO_BAR`` for tenant ``foo.bar``.
    """

    def __init__(self, mapping: Mapping[str, str] | None = None) -> None:
        self._mapping = os.environ if mapping is None else mapping

    def raw(self, name: str) -> str | None:
        """Return the variable's value, or None when unset or empty."""
        value = self._mapping.get(name)
        if not value:
            return None
        return value

    def value(self, namespace: str, key: str) -> str | None:
        return self.raw(f"{namespace}_{key}")

    def allowed_host_suffixes(self) -> str:
        return self._mapping.get(ALLOWED_HOST_SUFFIXES, "") or ""

    def protected_subdomains(self) -> str:
        return self._mapping.get(PROTECTED_SUBDOMAINS, "") or ""

    def redirect_target(self, key: str) -> str | None:
        return self.value(LINK_NAMESPACE, key)
