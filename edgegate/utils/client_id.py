"""Client identity derived from the trusted connecting-IP header."""

from __future__ import annotations

import re

from edgegate.config.rate_limit_defaults import MAX_CLIENT_ID_LENGTH, UNKNOWN_CLIENT

# C0/C1 controls, DEL, line/paragraph separators, bidi overrides, BOM
CONTROL_CHARS_RE = re.compile(
    r"[\x00-\x1f\x7f-\x9f\u2028\u2029\u200b-\u200f\u202a-\u202e\u2066-\u2069\ufeff]"
)


def strip_control_chars(value: str) -> str:
    """Strip all control characters from a string."""
    return CONTROL_CHARS_RE.sub("", value)


def client_id_from_header(value: str | None, max_length: int = MAX_CLIENT_ID_LENGTH) -> str:
    """Return the client identifier, or ``UNKNOWN_CLIENT`` when unusable.

    Missing, blank or implausibly long values all collapse to the sentinel,
    which the failure limiter throttles harder.
    """
    if not value or len(value) > max_length:
        return UNKNOWN_CLIENT
    cleaned = strip_control_chars(value).strip()
    return cleaned or UNKNOWN_CLIENT
