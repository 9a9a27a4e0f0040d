"""Provider tests: conversation in, canonical chunks out, across both transports."""

from __future__ import annotations

import pytest

from sluice.config import Config
from sluice.errors import TransportError
from sluice.models import DoneChunk, Model, TextChunk, UsageChunk
from sluice.options import Options
from sluice.provider import ResponsesProvider
from tests.helpers import (
    ByteReader,
    FakeClient,
    FakeResponses,
    RecordingTransport,
    async_events,
    collect,
    sse_payload,
)

pytestmark = pytest.mark.unit

_EVENTS = [
    {"type": "response.output_text.delta", "delta": "Hello"},
    {
        "type": "response.completed",
        "response": {"usage": {"input_tokens": 3, "output_tokens": 1}},
    },
]
_EXPECTED = [TextChunk("Hello"), UsageChunk(3, 1), DoneChunk()]
_MESSAGES = [{"role": "user", "content": "Hi"}]


@pytest.fixture
def config() -> Config:
    return Config(api_key="sk-test")


@pytest.mark.asyncio
async def test_native_stream_skips_http(config: Config, capable_model: Model) -> None:
    transport = RecordingTransport(body=sse_payload(_EVENTS))
    client = FakeClient(FakeResponses(result=async_events(*_EVENTS)))

    async with transport.client() as http:
        provider = ResponsesProvider(
            config, capable_model, client=client, http_client=http
        )
        chunks = await collect(
            provider.create_message(
                "Be brief.",
                _MESSAGES,
                reasoning_effort="low",
                options=Options(temperature=0.2),
            )
        )

    assert chunks == _EXPECTED
    assert transport.requests == []
    sent = client.responses.calls[0]
    assert sent["model"] == "test-model"
    assert sent["instructions"] == "Be brief."
    assert sent["input"] == [
        {"role": "user", "content": [{"type": "input_text", "text": "Hi"}]}
    ]
    assert sent["stream"] is True
    assert sent["temperature"] == 0.2
    assert sent["reasoning"] == {"effort": "low"}


@pytest.mark.parametrize(
    "responses",
    [FakeResponses(error=RuntimeError("sdk exploded")), FakeResponses(result={})],
    ids=["sdk-raises", "non-stream-result"],
)
@pytest.mark.asyncio
async def test_fallback_streams_over_http(
    config: Config, base_model: Model, responses: FakeResponses
) -> None:
    transport = RecordingTransport(body=sse_payload(_EVENTS))

    async with transport.client() as http:
        provider = ResponsesProvider(
            config, base_model, client=FakeClient(responses), http_client=http
        )
        chunks = await collect(
            provider.create_message(None, _MESSAGES, metadata={"store": False})
        )

    assert chunks == _EXPECTED
    assert len(transport.requests) == 1
    assert str(transport.requests[0].url) == "https://api.openai.com/v1/responses"
    sent = transport.sent_json()
    assert sent["stream"] is True
    assert sent["store"] is False
    assert "instructions" not in sent


@pytest.mark.asyncio
async def test_fallback_http_error_propagates(
    config: Config, base_model: Model
) -> None:
    transport = RecordingTransport(body='{"error": "boom"}', status_code=500)
    client = FakeClient(FakeResponses(error=RuntimeError("sdk exploded")))

    async with transport.client() as http:
        provider = ResponsesProvider(
            config, base_model, client=client, http_client=http
        )
        with pytest.raises(TransportError) as exc_info:
            await collect(provider.create_message(None, _MESSAGES))

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == '{"error": "boom"}'


@pytest.mark.asyncio
async def test_early_stop_releases_the_stream(
    config: Config, base_model: Model
) -> None:
    reader = ByteReader([sse_payload(_EVENTS).encode("utf-8")])
    client = FakeClient(FakeResponses(result={"body": reader}))
    provider = ResponsesProvider(config, base_model, client=client)

    chunks = provider.create_message(None, _MESSAGES)
    assert await chunks.__anext__() == TextChunk("Hello")
    await chunks.aclose()
    await provider.aclose()

    assert reader.closed is True


@pytest.mark.asyncio
async def test_aclose_leaves_injected_clients_open(
    config: Config, base_model: Model
) -> None:
    transport = RecordingTransport()
    client = FakeClient()

    async with transport.client() as http:
        provider = ResponsesProvider(
            config, base_model, client=client, http_client=http
        )
        await provider.aclose()

        assert client.closed is False
        assert http.is_closed is False


@pytest.mark.asyncio
async def test_aclose_closes_owned_http_client(
    config: Config, base_model: Model
) -> None:
    provider = ResponsesProvider(config, base_model, client=FakeClient())
    http = provider._get_http_client()

    await provider.aclose()

    assert http.is_closed is True
