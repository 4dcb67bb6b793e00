"""Access control and failed-auth rate limiting for tenant subdomains."""

from edgegate.engine.host import (
    InvalidSuffixError,
    extract_subdomain,
    host_is_allowed,
    parse_suffix_list,
    validate_and_normalize_suffix,
)
from edgegate.engine.credentials import (
    CredentialPair,
    MultiCredential,
    SingleCredential,
    is_configured,
    resolve_credentials,
)
from edgegate.engine.auth import check_basic_auth, constant_time_equal
from edgegate.engine.ratelimit import FailureRateLimiter
from edgegate.engine.gate import AccessGate, AuthDecision, AuthOutcome, HostResolution, get_gate

__all__ = [
    "AccessGate",
    "AuthDecision",
    "AuthOutcome",
    "CredentialPair",
    "FailureRateLimiter",
    "HostResolution",
    "InvalidSuffixError",
    "MultiCredential",
    "SingleCredential",
    "check_basic_auth",
    "constant_time_equal",
    "extract_subdomain",
    "get_gate",
    "host_is_allowed",
    "is_configured",
    "parse_suffix_list",
    "resolve_credentials",
    "validate_and_normalize_suffix",
]
