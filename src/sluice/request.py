"""Request body construction for streaming Responses calls."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sluice.models import Model
    from sluice.options import Options


def build_request_body(
    model: Model,
    formatted_input: Any,
    previous_response_id: str | None = None,
    system_prompt: str | None = None,
    verbosity: str | None = None,
    reasoning_effort: str | None = None,
    metadata: Mapping[str, Any] | None = None,
    options: Options | None = None,
) -> dict[str, Any]:
    """Build a Responses API request body.

    Optional fields are only added when they carry a value the model accepts;
    the result never holds a ``None`` value.
    """
    store = metadata.get("store") if metadata is not None else None
    body: dict[str, Any] = {
        "model": model.id,
        "input": formatted_input,
        "stream": True,
        "store": store is not False,
    }
    if system_prompt is not None:
        body["instructions"] = system_prompt

    enable_summary = options.enable_reasoning_summary if options else False
    temperature = options.temperature if options else None
    requested_tier = options.service_tier if options else None

    if reasoning_effort:
        reasoning: dict[str, Any] = {"effort": reasoning_effort}
        if enable_summary:
            reasoning["summary"] = "auto"
        body["reasoning"] = reasoning

    # Only for an explicit True; undeclared models reject the field.
    if model.info.supports_verbosity is True:
        body["text"] = {"verbosity": verbosity or "medium"}

    if model.info.supports_temperature is not False and _is_number(temperature):
        body["temperature"] = temperature

    max_tokens = model.max_output_tokens
    if max_tokens:
        body["max_output_tokens"] = max_tokens

    if previous_response_id:
        body["previous_response_id"] = previous_response_id

    if requested_tier and (
        requested_tier == "default" or requested_tier in model.info.tier_names()
    ):
        body["service_tier"] = requested_tier

    return body


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
