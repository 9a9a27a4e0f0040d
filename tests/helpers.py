"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: byte readers, SDK client fakes and an
httpx transport recorder cover every transport shape the suites need.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any

import httpx


def sse_payload(events: list[Any], *, done: bool = True) -> str:
    """Render events as SSE frames, optionally terminated by ``[DONE]``."""
    payload = "".join(
        f"data: {json.dumps(event, ensure_ascii=False)}\n\n" for event in events
    )
    if done:
        payload += "data: [DONE]\n\n"
    return payload


def split_bytes(payload: str | bytes, chunk_size: int) -> list[bytes]:
    """Encode *payload* and cut it into fixed-size byte chunks."""
    data = payload.encode("utf-8") if isinstance(payload, str) else payload
    return [data[i : i + chunk_size] for i in range(0, len(data), chunk_size)]


@dataclass
class ByteReader:
    """Async byte source that records reads and whether it was closed."""

    chunks: list[bytes]
    reads: int = 0
    closed: bool = False
    fail_after: int | None = None

    def __aiter__(self) -> ByteReader:
        return self

    async def __anext__(self) -> bytes:
        if self.fail_after is not None and self.reads >= self.fail_after:
            raise OSError("connection reset")
        if self.reads >= len(self.chunks):
            raise StopAsyncIteration
        chunk = self.chunks[self.reads]
        self.reads += 1
        return chunk

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class FakeResponses:
    """Stand-in for ``client.responses`` that returns or raises a scripted result."""

    result: Any = None
    error: BaseException | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


@dataclass
class FakeClient:
    """SDK client double exposing ``responses.create``."""

    responses: FakeResponses = field(default_factory=FakeResponses)
    closed: bool = False

    async def close(self) -> None:
        self.closed = True


@dataclass
class RecordingTransport:
    """httpx transport handler that records requests and replies with SSE."""

    body: str = ""
    status_code: int = 200
    requests: list[httpx.Request] = field(default_factory=list)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(
            self.status_code,
            content=self.body.encode("utf-8"),
            headers={"Content-Type": "text/event-stream"},
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def sent_json(self, index: int = 0) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


async def async_events(*events: Any) -> Any:
    """Async generator over *events*."""
    for event in events:
        yield event


async def collect(aiter: Any) -> list[Any]:
    """Drain an async iterator into a list."""
    return [item async for item in aiter]
