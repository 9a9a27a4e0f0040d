"""Transport selection: native SDK stream first, raw HTTP SSE as fallback.

Whatever the SDK hands back is classified once, here, into an explicit
source variant so downstream code never re-tests shapes:

- ``EventSequence``: async (or sync) iterable of event records
- ``ByteBody``: a byte stream carrying SSE frames
- ``SingleEvent``: one non-iterable event record

A result that is none of these (``{}``, ``"ok"``, ``None``) cannot represent
a stream and triggers the HTTP fallback, as does any exception raised by the
native call.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Mapping
from dataclasses import dataclass
import inspect
import logging
from typing import Any, Union

import httpx
from pydantic import BaseModel

from sluice._errors import status_error, wrap_transport_error
from sluice._http import EVENT_STREAM_HEADERS
from sluice.errors import APIError, CapabilityError
from sluice.sse import close_source, is_byte_source, iter_sse_events

logger = logging.getLogger(__name__)

_EVENT_KEYS = ("type", "event", "delta", "usage", "response", "choices")


@dataclass(frozen=True)
class EventSequence:
    """A lazily iterated sequence of event records."""

    events: AsyncIterable[Any]


@dataclass(frozen=True)
class ByteBody:
    """A byte stream to be decoded as SSE."""

    body: Any


@dataclass(frozen=True)
class SingleEvent:
    """One event record, consumed as a one-element sequence."""

    event: Any


EventSource = Union[EventSequence, ByteBody, SingleEvent]


def _member(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def embedded_body(obj: Any) -> Any | None:
    """Return the byte stream an object carries in ``body``, if any."""
    if obj is None or isinstance(obj, (str, bytes, bytearray)):
        return None
    body = _member(obj, "body")
    return body if is_byte_source(body) else None


def looks_like_event(obj: Any) -> bool:
    """Return True when *obj* carries at least one known event field."""
    return any(_member(obj, key) is not None for key in _EVENT_KEYS)


def classify_source(obj: Any) -> EventSource | None:
    """Decide which source variant *obj* is, or None when it cannot stream."""
    if obj is None or isinstance(obj, (str, bytes, bytearray)):
        return None
    if callable(getattr(obj, "aiter_bytes", None)):
        return ByteBody(obj)

    body = embedded_body(obj)
    if body is not None:
        return ByteBody(body)

    if isinstance(obj, AsyncIterable):
        return EventSequence(obj)
    if isinstance(obj, (Mapping, BaseModel)):
        # Both are iterable, but over keys/fields, not events.
        return SingleEvent(obj) if looks_like_event(obj) else None
    if isinstance(obj, Iterable):
        return EventSequence(_iterate(obj))
    return SingleEvent(obj) if looks_like_event(obj) else None


async def _iterate(items: Iterable[Any]) -> AsyncIterator[Any]:
    for item in items:
        yield item


async def iter_raw_events(source: Any) -> AsyncIterator[Any]:
    """Flatten any source into raw event records.

    Items of an event sequence that carry their own byte body are decoded
    inline, so embedded SSE streams keep their position in the sequence.
    """
    if not isinstance(source, (EventSequence, ByteBody, SingleEvent)):
        source = classify_source(source)

    if source is None:
        return
    if isinstance(source, SingleEvent):
        yield source.event
        return
    if isinstance(source, ByteBody):
        decoded = iter_sse_events(source.body)
        try:
            async for event in decoded:
                yield event
        finally:
            await decoded.aclose()
        return

    events = source.events
    try:
        async for item in events:
            body = embedded_body(item)
            if body is None:
                yield item
                continue
            decoded = iter_sse_events(body)
            try:
                async for event in decoded:
                    yield event
            finally:
                await decoded.aclose()
    finally:
        await close_source(events)


# =============================================================================
# Native SDK call
# =============================================================================


async def sdk_stream(client: Any, body: dict[str, Any]) -> Any:
    """Call ``client.responses.create`` with the request body.

    The SDK may return an async iterable of events, an object exposing a
    byte body, or a single event object; classification is left to
    `classify_source()`.

    Raises:
        CapabilityError: When the client has no callable ``responses.create``.
    """
    create = getattr(getattr(client, "responses", None), "create", None)
    if client is None or not callable(create):
        raise CapabilityError(
            "OpenAI SDK client does not support responses.create",
            hint="Upgrade the openai package or rely on the HTTP fallback.",
        )
    result = create(**body)
    if inspect.isawaitable(result):
        result = await result
    return result


# =============================================================================
# HTTP fallback
# =============================================================================


def responses_url(base_url: str | None) -> str:
    """Build the ``/v1/responses`` URL without duplicating path segments."""
    normalized = (base_url or "").rstrip("/")
    if normalized.endswith("/responses"):
        return normalized
    if normalized.endswith("/v1"):
        return f"{normalized}/responses"
    return f"{normalized}/v1/responses"


async def sse_fetch(
    http_client: httpx.AsyncClient,
    base_url: str | None,
    api_key: str | None,
    body: dict[str, Any],
) -> AsyncIterator[dict[str, Any]]:
    """POST the request and yield events decoded from the SSE response.

    ``stream`` is always forced on, whatever the caller passed.

    Raises:
        TransportError: On a non-2xx status (with status, reason and body
            text) or when the request cannot be sent.
    """
    url = responses_url(base_url)
    payload = {**body, "stream": True}
    headers = {**EVENT_STREAM_HEADERS, "Authorization": f"Bearer {api_key}"}

    try:
        async with http_client.stream(
            "POST", url, json=payload, headers=headers
        ) as response:
            if not response.is_success:
                text = await _read_text(response)
                raise status_error(response.status_code, response.reason_phrase, text)
            decoded = iter_sse_events(response)
            try:
                async for event in decoded:
                    yield event
            finally:
                await decoded.aclose()
    except httpx.RequestError as exc:
        raise wrap_transport_error(
            exc,
            phase="stream",
            allow_network_errors=True,
            message="Responses SSE request failed",
        ) from exc


async def _read_text(response: httpx.Response) -> str | None:
    """Read the error body, best effort."""
    try:
        await response.aread()
        return response.text
    except httpx.HTTPError as exc:
        logger.debug("Could not read error body from %s: %s", response.url, exc)
        return None


@dataclass(frozen=True)
class HttpFallback:
    """Where and how to re-send a request as a raw SSE POST."""

    http_client: httpx.AsyncClient
    base_url: str | None
    api_key: str | None

    def open(self, body: dict[str, Any]) -> EventSequence:
        return EventSequence(
            sse_fetch(self.http_client, self.base_url, self.api_key, body)
        )


# =============================================================================
# Selection
# =============================================================================


async def select_source(
    client: Any,
    body: dict[str, Any],
    *,
    fallback: HttpFallback | None = None,
) -> EventSource:
    """Pick the event source for a request: native stream, else HTTP SSE.

    Raises:
        CapabilityError: Native client unusable and no fallback configured.
        APIError: Native call failed (or returned a non-stream) and no
            fallback is configured.
    """
    try:
        result = await sdk_stream(client, body)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        if fallback is None:
            if isinstance(exc, CapabilityError):
                raise
            raise wrap_transport_error(
                exc,
                phase="create",
                allow_network_errors=True,
                message="Responses SDK call failed",
            ) from exc
        logger.debug("Native responses.create failed, using SSE fallback: %s", exc)
        return fallback.open(body)

    source = classify_source(result)
    if source is not None:
        return source

    if fallback is None:
        raise APIError(
            f"responses.create returned a non-stream result: {type(result).__name__}",
            provider="openai",
            phase="create",
        )
    logger.debug(
        "responses.create returned %s, using SSE fallback", type(result).__name__
    )
    return fallback.open(body)


async def stream_events(
    client: Any,
    body: dict[str, Any],
    *,
    fallback: HttpFallback | None = None,
) -> AsyncIterator[Any]:
    """Yield raw events for a request from whichever transport works."""
    source = await select_source(client, body, fallback=fallback)
    events = iter_raw_events(source)
    try:
        async for event in events:
            yield event
    finally:
        await events.aclose()
