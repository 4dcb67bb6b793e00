"""Default failed-authentication thresholds and request limits."""

from __future__ import annotations

# Client identity assigned when no trusted per-caller identifier is available
UNKNOWN_CLIENT = "unknown"

# Default thresholds
RATE_LIMIT_WINDOW_SECONDS = 10 * 60  # 10-minute fixed window
MAX_FAILED_ATTEMPTS = 10  # failures per window for identified clients
MAX_FAILED_ATTEMPTS_UNKNOWN = 3  # stricter for unknown clients

# Capacity & eviction to bound memory
MAX_RATE_LIMIT_KEYS = 10_000

# Oversized Authorization headers count as a failure without being decoded
MAX_AUTH_HEADER_LENGTH = 4096

# Longest client identifier accepted from the connecting-IP header
MAX_CLIENT_ID_LENGTH = 64
