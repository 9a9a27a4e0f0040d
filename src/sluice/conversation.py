"""Conversation formatting for the Responses API input field."""

from __future__ import annotations

from typing import Any


def format_conversation(
    system_prompt: str | None, messages: list[Any] | None
) -> list[dict[str, Any]]:
    """Convert role-tagged chat messages into Responses input items.

    Text becomes ``input_text`` for user turns and ``output_text`` for
    assistant turns. Other typed blocks (images, tool calls...) are passed
    through unchanged. The system prompt travels in ``instructions``; it is
    accepted here so call sites can pass the same arguments everywhere.
    """
    _ = system_prompt
    formatted: list[dict[str, Any]] = []

    for message in messages or []:
        if not message:
            continue

        role = "user" if message.get("role") == "user" else "assistant"
        text_type = "input_text" if role == "user" else "output_text"
        parts: list[dict[str, Any]] = []

        content = message.get("content")
        if isinstance(content, str):
            parts.append({"type": text_type, "text": content})
        elif isinstance(content, list):
            for block in content:
                if not block or not isinstance(block, dict):
                    continue
                block_type = block.get("type")
                if block_type == "text" and isinstance(block.get("text"), str):
                    parts.append({"type": text_type, "text": block["text"]})
                elif isinstance(block_type, str):
                    parts.append(dict(block))

        if parts:
            formatted.append({"role": role, "content": parts})

    return formatted
