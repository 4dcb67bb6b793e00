"""HTTP Basic credential verification with constant-time comparison."""

from __future__ import annotations

import base64
import binascii

from edgegate.engine.credentials import CredentialSpec, MultiCredential, SingleCredential

BASIC_PREFIX = "Basic "


def constant_time_equal(a: object, b: object) -> bool:
    """Compare two strings without exiting early on the first difference.

    The loop always runs to the longer length; a length mismatch is folded
    into the accumulator up front.
    """
    if not isinstance(a, str) or not isinstance(b, str):
        return False

    len_a = len(a)
    len_b = len(b)
    diff = len_a ^ len_b
    for i in range(max(len_a, len_b)):
        char_a = ord(a[i]) if i < len_a else 0
        char_b = ord(b[i]) if i < len_b else 0
        diff |= char_a ^ char_b
    return diff == 0


def decode_basic_credentials(header: str | None) -> tuple[str, str] | None:
    """Split a ``Basic`` Authorization header into (user, password).

    Returns None when the scheme is wrong, the payload is not base64 or not
    UTF-8, or the decoded value has no ``:`` separator.
    """
    if not header or not header.startswith(BASIC_PREFIX):
        return None

    encoded = header[len(BASIC_PREFIX):].strip()
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None

    user, sep, password = decoded.partition(":")
    if not sep:
        return None
    return user, password


def _pair_matches(user: str, password: str, expected_user: str, expected_password: str) -> bool:
    # Both fields are always compared.
    user_ok = constant_time_equal(user, expected_user)
    password_ok = constant_time_equal(password, expected_password)
    return user_ok & password_ok


def check_basic_auth(header: str | None, expected: CredentialSpec) -> bool:
    """Verify a Basic Authorization header against the expected credentials."""
    provided = decode_basic_credentials(header)
    if provided is None:
        return False
    user, password = provided

    if isinstance(expected, MultiCredential):
        matched = False
        for pair in expected.pairs:
            matched |= _pair_matches(user, password, pair.user, pair.password)
        return matched
    if isinstance(expected, SingleCredential):
        return _pair_matches(user, password, expected.user, expected.password)
    return False
