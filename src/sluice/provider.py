"""Responses provider: conversation in, canonical chunk stream out."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from sluice.conversation import format_conversation
from sluice.normalizer import process_event_stream
from sluice.request import build_request_body
from sluice.transport import HttpFallback, select_source

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from sluice.config import Config
    from sluice.models import Model, StreamChunk
    from sluice.options import Options

logger = logging.getLogger(__name__)


class ResponsesProvider:
    """Streaming OpenAI Responses API provider.

    The native SDK stream is preferred. When the SDK is missing, raises, or
    returns something that is not a stream, the request is re-sent as a raw
    SSE POST against ``config.base_url``.
    """

    def __init__(
        self,
        config: Config,
        model: Model,
        *,
        client: Any = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize with connection settings and the target model.

        *client* and *http_client* may be injected; injected clients are not
        closed by `aclose()`.
        """
        self.config = config
        self.model = model
        self._client: Any = client
        self._http_client = http_client
        self._owns_client = client is None
        self._owns_http_client = http_client is None

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client, or None if unavailable."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError:
                logger.warning("openai package not installed; using SSE fallback only")
                return None
            self._client = AsyncOpenAI(
                api_key=self.config.api_key, base_url=self.config.base_url
            )
        return self._client

    def _get_http_client(self) -> httpx.AsyncClient:
        """Lazily initialize and return the httpx client for the SSE fallback."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_s)
            )
        return self._http_client

    async def create_message(
        self,
        system_prompt: str | None,
        messages: list[Any],
        *,
        previous_response_id: str | None = None,
        verbosity: str | None = None,
        reasoning_effort: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        options: Options | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream canonical chunks for one model turn.

        Raises:
            TransportError: The SSE fallback got a non-2xx response or could
                not connect.
        """
        body = build_request_body(
            self.model,
            format_conversation(system_prompt, messages),
            previous_response_id,
            system_prompt,
            verbosity,
            reasoning_effort,
            metadata,
            options,
        )
        fallback = HttpFallback(
            self._get_http_client(), self.config.base_url, self.config.api_key
        )
        source = await select_source(self._get_client(), body, fallback=fallback)

        chunks = process_event_stream(source, self.model)
        try:
            async for chunk in chunks:
                yield chunk
        finally:
            await chunks.aclose()

    async def aclose(self) -> None:
        """Close client resources this provider created."""
        client, self._client = self._client, None
        http_client, self._http_client = self._http_client, None

        if client is not None and self._owns_client:
            try:
                await client.close()
            except Exception as exc:
                logger.warning("OpenAI client cleanup failed: %s", exc)
        if http_client is not None and self._owns_http_client:
            await http_client.aclose()
