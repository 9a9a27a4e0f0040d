"""Sluice: normalize streamed Responses API events into canonical chunks.

Public API:
    - ResponsesProvider: conversation in, chunk stream out
    - build_request_body(): Responses request construction
    - process_event_stream(): any event source to canonical chunks
    - iter_sse_events(): incremental SSE decoding
    - Config / Options: connection settings and request options
"""

from __future__ import annotations

import logging

from sluice.config import Config
from sluice.conversation import format_conversation
from sluice.errors import (
    APIError,
    CapabilityError,
    ConfigurationError,
    SluiceError,
    TransportError,
)
from sluice.models import (
    DoneChunk,
    Model,
    ModelInfo,
    ReasoningChunk,
    ServiceTier,
    StreamChunk,
    TextChunk,
    UsageChunk,
)
from sluice.normalizer import (
    FunctionCallAccumulator,
    format_function_call,
    normalize_event,
    process_event_stream,
)
from sluice.options import Options
from sluice.provider import ResponsesProvider
from sluice.request import build_request_body
from sluice.sse import iter_sse_events
from sluice.transport import (
    ByteBody,
    EventSequence,
    HttpFallback,
    SingleEvent,
    classify_source,
    responses_url,
    sdk_stream,
    select_source,
    sse_fetch,
    stream_events,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("sluice-responses")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("sluice").addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "ByteBody",
    "CapabilityError",
    "Config",
    "ConfigurationError",
    "DoneChunk",
    "EventSequence",
    "FunctionCallAccumulator",
    "HttpFallback",
    "Model",
    "ModelInfo",
    "Options",
    "ReasoningChunk",
    "ResponsesProvider",
    "ServiceTier",
    "SingleEvent",
    "SluiceError",
    "StreamChunk",
    "TextChunk",
    "TransportError",
    "UsageChunk",
    "build_request_body",
    "classify_source",
    "format_conversation",
    "format_function_call",
    "iter_sse_events",
    "normalize_event",
    "process_event_stream",
    "responses_url",
    "sdk_stream",
    "select_source",
    "sse_fetch",
    "stream_events",
]
