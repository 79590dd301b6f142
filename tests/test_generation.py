# -*- coding: utf-8 -*-
"""Tests for the generation client's fallback and streaming behaviour."""
import pytest

from conftest import FakeOpenAI, FakeStream
from orchestrator.errors import GenerationError
from orchestrator.generation import GenerationClient, GenerationOptions


PRIMARY = "primary-model"
FALLBACK = "fallback-model"


def make_client(*outcomes) -> tuple[GenerationClient, FakeOpenAI]:
    fake = FakeOpenAI(*outcomes)
    return GenerationClient(client=fake, fallback_model=FALLBACK), fake


@pytest.mark.asyncio
async def test_generate_returns_stripped_text() -> None:
    """A successful call returns the completion text with whitespace stripped."""
    client, fake = make_client("  hello there \n")

    text = await client.generate("prompt", system_text="be brief", options=GenerationOptions(model=PRIMARY))

    assert text == "hello there"
    call = fake.completions.calls[0]
    assert call["model"] == PRIMARY
    assert call["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "prompt"},
    ]


@pytest.mark.asyncio
async def test_generate_passes_named_options() -> None:
    """Temperature and output budget reach the backend unchanged."""
    client, fake = make_client("ok")

    await client.generate("prompt", options=GenerationOptions(temperature=0.3, max_output_tokens=3000, model=PRIMARY))

    call = fake.completions.calls[0]
    assert call["temperature"] == 0.3
    assert call["max_tokens"] == 3000
    assert call["messages"] == [{"role": "user", "content": "prompt"}]


@pytest.mark.asyncio
async def test_failure_retries_once_with_fallback_model() -> None:
    """A failed primary call is retried exactly once on the fallback model."""
    client, fake = make_client(RuntimeError("rate limited"), "from fallback")

    text = await client.generate("prompt", options=GenerationOptions(model=PRIMARY))

    assert text == "from fallback"
    assert [c["model"] for c in fake.completions.calls] == [PRIMARY, FALLBACK]


@pytest.mark.asyncio
async def test_empty_completion_counts_as_failure() -> None:
    """An empty completion triggers the fallback like any other failure."""
    client, fake = make_client(None, "second try")

    assert await client.generate("prompt", options=GenerationOptions(model=PRIMARY)) == "second try"
    assert len(fake.completions.calls) == 2


@pytest.mark.asyncio
async def test_fallback_failure_raises_chained_error() -> None:
    """When both attempts fail the last error is chained onto GenerationError."""
    last = ConnectionError("still down")
    client, fake = make_client(RuntimeError("down"), last)

    with pytest.raises(GenerationError) as exc_info:
        await client.generate("prompt", options=GenerationOptions(model=PRIMARY))

    assert exc_info.value.__cause__ is last
    assert exc_info.value.cause is last
    assert exc_info.value.models == [PRIMARY, FALLBACK]
    assert len(fake.completions.calls) == 2


@pytest.mark.asyncio
async def test_fallback_model_failure_is_not_retried() -> None:
    """A call that already used the fallback model fails after one attempt."""
    client, fake = make_client(RuntimeError("down"), "never used")

    with pytest.raises(GenerationError):
        await client.generate("prompt", options=GenerationOptions(model=FALLBACK))

    assert len(fake.completions.calls) == 1


@pytest.mark.asyncio
async def test_stream_forwards_non_empty_fragments() -> None:
    """Each non-empty fragment reaches the callback and the result is their concatenation."""
    stream = FakeStream(["Hel", "", None, "lo", " world"])
    client, fake = make_client(stream)
    received: list[str] = []

    text = await client.generate_stream("prompt", on_chunk=received.append, options=GenerationOptions(model=PRIMARY))

    assert text == "Hello world"
    assert received == ["Hel", "lo", " world"]
    assert fake.completions.calls[0]["stream"] is True


@pytest.mark.asyncio
async def test_stream_accepts_async_callback() -> None:
    received: list[str] = []

    async def on_chunk(chunk: str) -> None:
        received.append(chunk)

    client, _ = make_client(FakeStream(["a", "b"]))

    assert await client.generate_stream("prompt", on_chunk=on_chunk) == "ab"
    assert received == ["a", "b"]


@pytest.mark.asyncio
async def test_stream_failure_is_never_retried() -> None:
    """Streaming errors surface immediately, even from the primary model."""
    client, fake = make_client(FakeStream(["partial"], error=RuntimeError("connection reset")), "unused")

    with pytest.raises(GenerationError) as exc_info:
        await client.generate_stream("prompt", options=GenerationOptions(model=PRIMARY))

    assert "connection reset" in str(exc_info.value)
    assert len(fake.completions.calls) == 1


@pytest.mark.asyncio
async def test_check_connection() -> None:
    """The connection check looks for a hello and never raises."""
    healthy, _ = make_client("Hello!")
    broken, _ = make_client(RuntimeError("down"), RuntimeError("down"))

    assert await healthy.check_connection() is True
    assert await broken.check_connection() is False
