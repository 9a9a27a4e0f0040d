"""Incremental Server-Sent-Events decoding over a pull-based byte reader.

Frames are separated by a blank line; each ``data: `` line carries one JSON
event. ``data: [DONE]`` ends the stream. Bytes may arrive split anywhere,
including inside a multi-byte UTF-8 character, so decoding is incremental and
only complete frames are parsed.
"""

from __future__ import annotations

import codecs
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Mapping
import inspect
import json
import logging
from typing import Any

from sluice.errors import MalformedEventError

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"
DATA_PREFIX = "data: "
FRAME_DELIMITER = "\n\n"

# Marks the [DONE] record inside a frame.
_DONE = object()


def is_byte_source(obj: Any) -> bool:
    """Return True when *obj* can be read as a stream of bytes."""
    if obj is None or isinstance(obj, (str, Mapping)):
        return False
    if isinstance(obj, (bytes, bytearray)):
        return True
    return callable(getattr(obj, "aiter_bytes", None)) or hasattr(obj, "__aiter__")


def open_byte_reader(body: Any) -> AsyncIterator[bytes]:
    """Return an async reader for an httpx response, async or sync byte iterable.

    Raises:
        TypeError: When *body* is not a byte source.
    """
    aiter_bytes = getattr(body, "aiter_bytes", None)
    if callable(aiter_bytes):
        return aiter_bytes()
    if isinstance(body, AsyncIterable):
        return body.__aiter__()
    if isinstance(body, (bytes, bytearray)):
        return _iterate([bytes(body)])
    if isinstance(body, Iterable) and not isinstance(body, (str, Mapping)):
        return _iterate(body)
    raise TypeError(f"Unsupported byte source: {type(body).__name__}")


async def _iterate(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


async def iter_sse_events(source: Any) -> AsyncIterator[dict[str, Any]]:
    """Yield parsed JSON events from an SSE byte source.

    Malformed ``data:`` payloads are skipped. The reader is closed on every
    exit path: exhaustion, ``[DONE]``, consumer ``aclose()`` and errors.
    """
    if source is None:
        return

    reader = open_byte_reader(source)
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    # A chunk ending in "\r" may be the first half of "\r\n".
    carry = ""
    try:
        async for chunk in reader:
            text = carry + decoder.decode(chunk)
            carry = "\r" if text.endswith("\r") else ""
            if carry:
                text = text[:-1]

            # Only the new text can complete a delimiter.
            start = max(len(buffer) - 1, 0)
            buffer += text.replace("\r\n", "\n")
            if buffer.find(FRAME_DELIMITER, start) == -1:
                continue

            *frames, buffer = buffer.split(FRAME_DELIMITER)
            for event in _frame_events(frames):
                if event is _DONE:
                    return
                yield event

        # Source closed without a trailing blank line: flush what is left.
        tail = buffer + carry + decoder.decode(b"", final=True)
        for event in _frame_events([tail]):
            if event is _DONE:
                return
            yield event
    finally:
        await close_source(reader)


def _frame_events(frames: list[str]) -> Iterable[Any]:
    for frame in frames:
        for raw_line in frame.split("\n"):
            line = raw_line.strip()
            if not line.startswith(DATA_PREFIX):
                continue
            data = line[len(DATA_PREFIX) :].strip()
            if data == DONE_SENTINEL:
                yield _DONE
                return
            try:
                yield parse_event(data)
            except MalformedEventError as exc:
                logger.debug("Skipping malformed SSE data line: %s", exc)


def parse_event(data: str) -> dict[str, Any]:
    """Parse one ``data:`` payload into an event record.

    Raises:
        MalformedEventError: When the payload is not a JSON object.
    """
    try:
        event = json.loads(data)
    except ValueError as exc:
        raise MalformedEventError(f"invalid JSON: {data[:80]!r}") from exc
    if not isinstance(event, dict):
        raise MalformedEventError(f"expected a JSON object, got {type(event).__name__}")
    return event


async def close_source(source: Any) -> None:
    """Release a reader or event stream: ``aclose()``, else ``close()``."""
    close = getattr(source, "aclose", None)
    if not callable(close):
        close = getattr(source, "close", None)
    if not callable(close):
        return
    result = close()
    if inspect.isawaitable(result):
        await result
