"""Shared transport-side error helpers.

Failures are mapped into APIError/TransportError with stable retry metadata
so callers can decide on retries without brittle substring matching.
"""

from __future__ import annotations

import asyncio

import httpx

from sluice._http import RETRYABLE_STATUS_CODES
from sluice.errors import APIError, TransportError, _walk_exception_chain


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def is_retryable_status(status_code: int | None) -> bool:
    """Return True for statuses an outer retry policy may retry."""
    return isinstance(status_code, int) and status_code in RETRYABLE_STATUS_CODES


def auth_hint(status_code: int | None) -> str | None:
    """Generate a credentials hint for 401/403 responses."""
    if status_code in {401, 403}:
        return (
            "Check credentials/permissions "
            "(try setting OPENAI_API_KEY or Config.api_key)."
        )
    return None


def status_error(
    status_code: int, status_text: str | None, body: str | None
) -> TransportError:
    """Build the error raised for a non-2xx streaming response."""
    detail = body if body else "<no body>"
    return TransportError(
        f"Responses SSE request failed: {status_code} {status_text or ''} - {detail}",
        status_code=status_code,
        status_text=status_text,
        body=body,
        hint=auth_hint(status_code),
        retryable=is_retryable_status(status_code),
    )


def wrap_transport_error(
    exc: BaseException,
    *,
    phase: str,
    allow_network_errors: bool,
    message: str | None = None,
) -> APIError:
    """Map SDK/httpx exceptions into APIError with stable retry metadata.

    Network-level httpx failures become TransportError; everything else
    becomes a plain APIError.
    """
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped: fill in missing context only.
    if isinstance(exc, APIError):
        if exc.phase is None:
            exc.phase = phase
        return exc

    status_code = extract_status_code(exc)
    network_error = any(
        isinstance(e, httpx.RequestError) for e in _walk_exception_chain(exc)
    )
    retryable = is_retryable_status(status_code) or (
        allow_network_errors and network_error
    )

    msg = message or f"openai {phase} failed"
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    cause = str(exc)
    text = f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}"

    err_cls: type[APIError] = TransportError if network_error else APIError
    return err_cls(
        text,
        hint=auth_hint(status_code),
        retryable=retryable,
        status_code=status_code,
        provider="openai",
        phase=phase,
    )
