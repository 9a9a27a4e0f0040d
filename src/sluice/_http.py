"""Small HTTP-related constants shared across Sluice.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

# Statuses an outer retry policy may treat as transient.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})

EVENT_STREAM_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "text/event-stream",
}

DEFAULT_BASE_URL = "https://api.openai.com/v1"
