"""Event normalization: raw Responses events to canonical chunks.

Each raw event is matched against an ordered tuple of (predicate, handler)
rules; the first matching rule produces the event's chunks, possibly none.
Rules are grouped by the chunk kind they produce so each can be tested on
its own.

Function-call arguments arrive as fragments keyed by call id. They are
buffered in a `FunctionCallAccumulator` owned by one traversal and emitted as
a single tagged text chunk when the call completes:

    <read_file>
    <path>src/app.py</path>
    </read_file>
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
import json
import logging
from typing import TYPE_CHECKING, Any

from sluice.errors import MalformedArgumentsError
from sluice.models import (
    DoneChunk,
    ReasoningChunk,
    StreamChunk,
    TextChunk,
    UsageChunk,
)
from sluice.transport import iter_raw_events

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sluice.models import Model

logger = logging.getLogger(__name__)

TEXT_DELTA_TYPES = frozenset({"response.text.delta", "response.output_text.delta"})
REASONING_DELTA_TYPES = frozenset(
    {
        "response.reasoning.delta",
        "response.reasoning_text.delta",
        "response.reasoning_summary.delta",
        "response.reasoning_summary_text.delta",
    }
)
USAGE_TYPE = "response.usage"
DONE_TYPES = frozenset({"response.done", "response.completed"})
FUNCTION_CALL_DELTA_TYPE = "response.function_call_arguments.delta"
FUNCTION_CALL_DONE_TYPE = "response.function_call_arguments.done"
OUTPUT_ITEM_ADDED_TYPE = "response.output_item.added"

DEFAULT_CALL_NAME = "tool_call"


def _get(obj: Any, key: str) -> Any:
    """Read *key* from a mapping, or the attribute of an SDK object."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def event_type(event: Any) -> str | None:
    """Return the event's type tag, preferring ``type`` over ``event``."""
    tag = _get(event, "type")
    if tag is None:
        tag = _get(event, "event")
    return tag if isinstance(tag, str) else None


# =============================================================================
# Function-call accumulation
# =============================================================================


@dataclass
class PendingFunctionCall:
    """Argument fragments received so far for one call id."""

    name: str | None = None
    fragments: list[str] = field(default_factory=list)

    @property
    def arguments(self) -> str:
        return "".join(self.fragments)


class FunctionCallAccumulator:
    """Buffer streamed function-call arguments until each call completes.

    One instance per stream traversal. Several calls may be pending at once;
    they are independent and keyed by call id.
    """

    def __init__(self) -> None:
        self._calls: dict[str, PendingFunctionCall] = {}

    @property
    def pending(self) -> tuple[str, ...]:
        """Call ids seen but not yet completed."""
        return tuple(self._calls)

    def register(self, call_id: str, name: str | None = None) -> PendingFunctionCall:
        """Return the pending call for *call_id*, creating it if unseen.

        The first name seen for a call sticks.
        """
        call = self._calls.get(call_id)
        if call is None:
            call = self._calls[call_id] = PendingFunctionCall()
        if _non_empty_str(name) and not call.name:
            call.name = name
        return call

    def add_delta(self, call_id: str, delta: Any, name: str | None = None) -> None:
        """Append one argument fragment. Missing or empty deltas append nothing."""
        call = self.register(call_id, name)
        if _non_empty_str(delta):
            call.fragments.append(delta)

    def complete(
        self,
        call_id: str,
        *,
        name: str | None = None,
        arguments: Any = None,
    ) -> str:
        """Finish a call and return its tagged serialization.

        A final ``arguments`` string on the done event wins over the buffered
        fragments. A completion with no prior fragments is valid.
        """
        call = self._calls.pop(call_id, None) or PendingFunctionCall()
        if _non_empty_str(name) and not call.name:
            call.name = name

        raw = arguments if _non_empty_str(arguments) else call.arguments
        try:
            parsed = parse_arguments(raw)
        except MalformedArgumentsError as exc:
            logger.debug("Emitting %s without arguments: %s", call_id, exc)
            parsed = {}
        return format_function_call(call.name or DEFAULT_CALL_NAME, parsed)


def parse_arguments(raw: str) -> dict[str, Any]:
    """Parse a JSON object of argument names to values.

    Raises:
        MalformedArgumentsError: When *raw* is not a JSON object.
    """
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError as exc:
        raise MalformedArgumentsError(f"invalid JSON arguments: {raw[:80]!r}") from exc
    if not isinstance(parsed, dict):
        raise MalformedArgumentsError(
            f"expected a JSON object, got {type(parsed).__name__}"
        )
    return parsed


def format_function_call(name: str, arguments: Mapping[str, Any]) -> str:
    """Serialize a call as an outer tag holding one inner tag per argument."""
    if not arguments:
        return f"<{name}></{name}>"
    lines = [f"<{name}>"]
    for key, value in arguments.items():
        rendered = value if isinstance(value, str) else json.dumps(value)
        lines.append(f"<{key}>{rendered}</{key}>")
    lines.append(f"</{name}>")
    return "\n".join(lines)


def _call_id(event: Any) -> str:
    # Streamed argument events reference the output item; older shapes use call_id.
    key = _get(event, "item_id") or _get(event, "call_id")
    return key if isinstance(key, str) else ""


# =============================================================================
# Rules
# =============================================================================


def _is_text_delta(event: Any) -> bool:
    return event_type(event) in TEXT_DELTA_TYPES


def _text_delta(event: Any, calls: FunctionCallAccumulator) -> Iterator[StreamChunk]:
    delta = _get(event, "delta")
    if _non_empty_str(delta):
        yield TextChunk(delta)


def _is_reasoning_delta(event: Any) -> bool:
    return event_type(event) in REASONING_DELTA_TYPES


def _reasoning_delta(
    event: Any, calls: FunctionCallAccumulator
) -> Iterator[StreamChunk]:
    delta = _get(event, "delta")
    if _non_empty_str(delta):
        yield ReasoningChunk(delta)


def _has_usage(event: Any) -> bool:
    return (
        event_type(event) == USAGE_TYPE
        or _get(event, "usage") is not None
        or _get(_get(event, "response"), "usage") is not None
    )


def _count(usage: Any, *keys: str) -> int | float:
    for key in keys:
        value = _get(usage, key)
        if value is not None:
            return value
    return 0


def usage_chunk(usage: Any) -> UsageChunk:
    """Extract token counts, accepting Responses and Chat Completions names."""
    cache_read = _get(usage, "cache_read_tokens")
    if cache_read is None:
        cache_read = _get(_get(usage, "input_tokens_details"), "cached_tokens")
    return UsageChunk(
        input_tokens=_count(usage, "input_tokens", "prompt_tokens"),
        output_tokens=_count(usage, "output_tokens", "completion_tokens"),
        cache_read_tokens=cache_read or 0,
        cache_write_tokens=_count(usage, "cache_write_tokens"),
        total_cost=_count(usage, "total_cost"),
    )


def _usage(event: Any, calls: FunctionCallAccumulator) -> Iterator[StreamChunk]:
    # Chat-completions chunks may carry a final delta next to usage.
    if _is_chat_delta(event):
        yield from _chat_delta(event, calls)
    usage = _get(event, "usage")
    if usage is None:
        usage = _get(_get(event, "response"), "usage")
    yield usage_chunk(usage if usage is not None else {})
    # response.completed carries usage; it still marks the end of the response.
    if event_type(event) in DONE_TYPES:
        yield DoneChunk()


def _is_done(event: Any) -> bool:
    return event_type(event) in DONE_TYPES


def _done(event: Any, calls: FunctionCallAccumulator) -> Iterator[StreamChunk]:
    yield DoneChunk()


def _has_output(event: Any) -> bool:
    return isinstance(_get(_get(event, "response"), "output"), list)


def _full_response(event: Any, calls: FunctionCallAccumulator) -> Iterator[StreamChunk]:
    for item in _get(_get(event, "response"), "output"):
        if not item:
            continue
        kind = _get(item, "type")
        if kind == "text":
            text = _get(item, "text")
            if isinstance(text, str):
                yield TextChunk(text)
            for content in _get(item, "content") or []:
                if _get(content, "type") in {"text", "output_text"}:
                    content_text = _get(content, "text")
                    if isinstance(content_text, str):
                        yield TextChunk(content_text)
        elif kind == "reasoning":
            for summary in _get(item, "summary") or []:
                if _get(summary, "type") == "summary_text":
                    summary_text = _get(summary, "text")
                    if isinstance(summary_text, str):
                        yield ReasoningChunk(summary_text)


def _is_function_call(event: Any) -> bool:
    tag = event_type(event)
    if tag in {FUNCTION_CALL_DELTA_TYPE, FUNCTION_CALL_DONE_TYPE}:
        return True
    return (
        tag == OUTPUT_ITEM_ADDED_TYPE
        and _get(_get(event, "item"), "type") == "function_call"
    )


def _function_call(event: Any, calls: FunctionCallAccumulator) -> Iterator[StreamChunk]:
    tag = event_type(event)
    if tag == OUTPUT_ITEM_ADDED_TYPE:
        item = _get(event, "item")
        key = _get(item, "id") or _get(item, "call_id")
        if isinstance(key, str):
            calls.register(key, _get(item, "name"))
        return
    if tag == FUNCTION_CALL_DELTA_TYPE:
        calls.add_delta(_call_id(event), _get(event, "delta"), _get(event, "name"))
        return
    yield TextChunk(
        calls.complete(
            _call_id(event),
            name=_get(event, "name"),
            arguments=_get(event, "arguments"),
        )
    )


def _chat_delta_of(event: Any) -> Any:
    choices = _get(event, "choices")
    if not isinstance(choices, list) or not choices:
        return None
    return _get(choices[0], "delta")


def _is_chat_delta(event: Any) -> bool:
    return _chat_delta_of(event) is not None


def _chat_delta(event: Any, calls: FunctionCallAccumulator) -> Iterator[StreamChunk]:
    delta = _chat_delta_of(event)
    reasoning = _get(delta, "reasoning") or _get(delta, "reasoning_content")
    if _non_empty_str(reasoning):
        yield ReasoningChunk(reasoning)
    content = _get(delta, "content")
    if _non_empty_str(content):
        yield TextChunk(content)


def _has_bare_delta(event: Any) -> bool:
    return _non_empty_str(_get(event, "delta"))


def _bare_delta(event: Any, calls: FunctionCallAccumulator) -> Iterator[StreamChunk]:
    yield TextChunk(_get(event, "delta"))


Rule = tuple[
    Callable[[Any], bool],
    Callable[[Any, FunctionCallAccumulator], Iterator[StreamChunk]],
]

# Order matters: the first matching rule wins.
RULES: tuple[Rule, ...] = (
    (_is_text_delta, _text_delta),
    (_is_reasoning_delta, _reasoning_delta),
    (_has_usage, _usage),
    (_is_done, _done),
    (_has_output, _full_response),
    (_is_function_call, _function_call),
    (_is_chat_delta, _chat_delta),
    (_has_bare_delta, _bare_delta),
)


def normalize_event(
    event: Any,
    model: Model | None = None,
    calls: FunctionCallAccumulator | None = None,
) -> Iterator[StreamChunk]:
    """Yield the canonical chunks for one raw event.

    *calls* carries function-call state across events of one stream; pass the
    same accumulator for every event of a traversal.
    """
    if event is None or isinstance(event, (str, bytes, int, float)):
        return
    if calls is None:
        calls = FunctionCallAccumulator()
    for matches, handle in RULES:
        if matches(event):
            yield from handle(event, calls)
            return
    logger.debug(
        "No chunk for %s event (model=%s)",
        event_type(event) or "untyped",
        model.id if model is not None else None,
    )


async def process_event_stream(
    source: Any, model: Model | None = None
) -> AsyncIterator[StreamChunk]:
    """Yield canonical chunks for every event of *source*, in arrival order.

    *source* may be a classified transport source, an async or sync iterable
    of events, a byte stream carrying SSE, or a single event.
    """
    calls = FunctionCallAccumulator()
    events = iter_raw_events(source)
    try:
        async for event in events:
            for chunk in normalize_event(event, model, calls):
                yield chunk
    finally:
        await events.aclose()
    if calls.pending:
        logger.debug("Stream ended with incomplete calls: %s", ", ".join(calls.pending))
