"""Host suffix validation and subdomain extraction."""

from __future__ import annotations

import re

import structlog

logger = structlog.get_logger()

_SUFFIX_CHARS_RE = re.compile(r"^[a-z0-9.-]+$")
_WHITESPACE_RE = re.compile(r"\s+")


class InvalidSuffixError(ValueError):
    """A configured host suffix cannot be used for matching."""


def _to_ascii_label(label: str) -> str:
    """Encode one non-ASCII label with the idna codec."""
    if label.isascii():
        return label
    try:
        return label.encode("idna").decode("ascii")
    except UnicodeError as exc:
        raise InvalidSuffixError(f"Invalid international domain name: {label}") from exc


def validate_and_normalize_suffix(raw: object) -> str:
    """Validate one configured suffix and return its normalized form.

    The result is lower-case and starts with a dot, e.g. ``EXAMPLE.COM``
    becomes ``.example.com``. Bracketed IPv6 literals are returned as-is.
    """
    if not raw or not isinstance(raw, str):
        raise InvalidSuffixError("Host suffix must be a non-empty string")

    normalized = raw.strip().lower()
    if not normalized:
        raise InvalidSuffixError("Host suffix cannot be empty or whitespace-only")

    if ":" in normalized:
        if not (normalized.startswith("[") and normalized.endswith("]")):
            raise InvalidSuffixError("IPv6 addresses must be wrapped in brackets")
        return normalized

    normalized = ".".join(_to_ascii_label(part) for part in normalized.split("."))

    if ".." in normalized or ".-" in normalized or "-." in normalized:
        raise InvalidSuffixError("Host suffix contains malformed domain tokens")

    if not _SUFFIX_CHARS_RE.match(normalized):
        raise InvalidSuffixError("Host suffix contains invalid characters")

    if not normalized.startswith("."):
        normalized = "." + normalized

    if normalized.startswith(".-") or normalized.endswith(("-", ".")):
        raise InvalidSuffixError("Host suffix has invalid format")

    return normalized


def _split_tokens(raw: str | None) -> list[str]:
    if not raw:
        return []
    tokens = (_WHITESPACE_RE.sub("", token) for token in raw.split(","))
    return [token for token in tokens if token]


def parse_suffix_list(raw: str | None) -> tuple[str, ...]:
    """Parse a comma-separated suffix list, skipping invalid entries.

    One malformed token is logged and dropped; the rest of the list is kept.
    """
    suffixes: list[str] = []
    for token in _split_tokens(raw):
        try:
            suffixes.append(validate_and_normalize_suffix(token))
        except InvalidSuffixError as exc:
            logger.warning("invalid_host_suffix", suffix=token, reason=str(exc))
    return tuple(suffixes)


def parse_simple_list(raw: str | None) -> tuple[str, ...]:
    """Comma-separated list with whitespace removed and no normalization."""
    return tuple(_split_tokens(raw))


def host_is_allowed(hostname: str, suffixes: tuple[str, ...] | list[str]) -> bool:
    """Case-insensitive tail match; an empty suffix set allows every host."""
    if not suffixes:
        return True
    hostname = hostname.lower()
    return any(hostname.endswith(suffix) for suffix in suffixes)


def extract_subdomain(hostname: str, suffixes: tuple[str, ...] | list[str]) -> str:
    """Return everything before the first matching suffix.

    ``a.b.example.com`` with ``.example.com`` gives ``a.b``; a hostname that
    equals the suffix (``example.com``) or matches nothing gives ``""``.
    """
    hostname = hostname.lower()
    for suffix in suffixes:
        if hostname.endswith(suffix):
            sub = hostname[: len(hostname) - len(suffix)]
            return sub[:-1] if sub.endswith(".") else sub
    return ""


def canonical_key(subdomain: str) -> str:
    """Variable-name-safe key for a subdomain: ``foo.bar`` -> ``FOO_BAR``."""
    return subdomain.upper().replace(".", "_")


def host_from_header(host_header: str | None) -> str:
    """Lower-cased hostname from a Host header value, without the port."""
    if not host_header:
        return ""
    host = host_header.strip().lower()
    if host.startswith("["):
        end = host.find("]")
        return host[: end + 1] if end != -1 else host
    return host.split(":", 1)[0]
