"""Parsed host configuration cached by a hash of its raw strings."""

from __future__ import annotations

import threading
from dataclasses import dataclass

import structlog

from edgegate.engine.host import parse_simple_list, parse_suffix_list

logger = structlog.get_logger()

_INT32_MASK = 0xFFFFFFFF


def _to_int32(value: int) -> int:
    value &= _INT32_MASK
    return value - (1 << 32) if value & 0x80000000 else value


def get_config_hash(raw_suffixes: str | None, raw_protected: str | None) -> int:
    """Cheap 32-bit rolling hash used only for change detection.

    The first string is length-prefixed so the boundary between the two
    inputs is part of the hashed text.
    """
    suffixes = raw_suffixes or ""
    protected = raw_protected or ""
    text = f"{len(suffixes)}:{suffixes}|{protected}"
    h = 0
    for char in text:
        h = _to_int32((h << 5) - h + ord(char))
    return h


@dataclass(frozen=True)
class CachedConfig:
    allowed_suffixes: tuple[str, ...]
    protected_subdomains: frozenset[str]
    source_hash: int


class ConfigCache:
    """Memoizes parsed suffix and protected-subdomain lists.

    Re-parses only when the raw strings hash differently from the stored
    value. ``invalidate()`` forces the next ``get`` to re-parse; it never
    takes the lock, so it is safe to call from a signal handler that
    interrupts ``get`` on the same thread.
    """

    def __init__(self) -> None:
        self._config: CachedConfig | None = None
        self._hash: int | None = None
        self._generation = 0
        self._built_generation = -1
        self._lock = threading.Lock()

    def get(self, raw_suffixes: str | None, raw_protected: str | None) -> CachedConfig:
        current_hash = get_config_hash(raw_suffixes, raw_protected)
        with self._lock:
            generation = self._generation
            if generation != self._built_generation or self._hash != current_hash:
                self._config = CachedConfig(
                    allowed_suffixes=parse_suffix_list(raw_suffixes),
                    protected_subdomains=frozenset(parse_simple_list(raw_protected)),
                    source_hash=current_hash,
                )
                self._hash = current_hash
                self._built_generation = generation
                logger.info(
                    "config_cache_rebuilt",
                    suffixes=len(self._config.allowed_suffixes),
                    protected=len(self._config.protected_subdomains),
                )
            return self._config

    def invalidate(self) -> None:
        """Mark the cached value stale so the next access re-parses."""
        self._generation += 1
