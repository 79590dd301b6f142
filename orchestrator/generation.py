"""Generation client around the OpenAI chat completions API.

The client owns the retry policy: a failed call is retried exactly once with
the fallback model, unless the failed call already used it. Streaming calls
are never retried because fragments already handed to the caller cannot be
replayed.
"""
from __future__ import annotations

import inspect
import logging
import os
import typing as t
from dataclasses import dataclass, replace

from openai import AsyncOpenAI

from orchestrator.errors import GenerationError

logger = logging.getLogger(__name__)

# Generation defaults - configurable via environment variables
DEFAULT_MODEL = os.getenv("STUDY_AI_MODEL", "gpt-4o-mini")
FALLBACK_MODEL = os.getenv("STUDY_AI_FALLBACK_MODEL", "gpt-3.5-turbo")
DEFAULT_TEMPERATURE = float(os.getenv("STUDY_AI_TEMPERATURE", "0.7"))
DEFAULT_MAX_TOKENS = int(os.getenv("STUDY_AI_MAX_TOKENS", "2000"))

ChunkCallback = t.Callable[[str], t.Any]


@dataclass(frozen=True)
class GenerationOptions:
    """Named generation settings for one call."""
    temperature: float = DEFAULT_TEMPERATURE
    max_output_tokens: int = DEFAULT_MAX_TOKENS
    model: str = DEFAULT_MODEL


class GenerationBackend(t.Protocol):
    """Anything that can turn a prompt into text."""

    async def generate(
        self,
        prompt: str,
        system_text: t.Optional[str] = None,
        options: t.Optional[GenerationOptions] = None,
    ) -> str: ...

    async def generate_stream(
        self,
        prompt: str,
        system_text: t.Optional[str] = None,
        on_chunk: t.Optional[ChunkCallback] = None,
        options: t.Optional[GenerationOptions] = None,
    ) -> str: ...

    async def check_connection(self) -> bool: ...


def get_openai_client() -> AsyncOpenAI:
    """Get async OpenAI client with API key."""
    return AsyncOpenAI(api_key=os.getenv("OPENAI_API_KEY"))


def _build_messages(prompt: str, system_text: t.Optional[str]) -> list[dict[str, str]]:
    messages = []
    if system_text:
        messages.append({"role": "system", "content": system_text})
    messages.append({"role": "user", "content": prompt})
    return messages


class GenerationClient:
    """Text generation with a bounded fallback policy.

    Args:
        client: An `AsyncOpenAI` instance, or any object exposing the same
            `chat.completions.create` coroutine. Defaults to a client built
            from `OPENAI_API_KEY`.
        fallback_model: Model substituted for the single retry.
    """

    def __init__(
        self,
        client: t.Optional[t.Any] = None,
        fallback_model: str = FALLBACK_MODEL,
    ) -> None:
        self._client = client if client is not None else get_openai_client()
        self.fallback_model = fallback_model

    def attempt_models(self, options: GenerationOptions) -> list[str]:
        """Models tried, in order, for a non-streaming call."""
        if options.model == self.fallback_model:
            return [options.model]
        return [options.model, self.fallback_model]

    async def generate(
        self,
        prompt: str,
        system_text: t.Optional[str] = None,
        options: t.Optional[GenerationOptions] = None,
    ) -> str:
        """Generate text for a prompt.

        Args:
            prompt: User prompt text
            system_text: Optional system message
            options: Generation settings (defaults apply when omitted)

        Returns:
            The generated text, stripped of surrounding whitespace

        Raises:
            GenerationError: If every attempt failed
        """
        options = options or GenerationOptions()
        models = self.attempt_models(options)
        last_error: t.Optional[BaseException] = None

        for attempt, model in enumerate(models, 1):
            try:
                return await self._complete(prompt, system_text, replace(options, model=model))
            except Exception as e:
                last_error = e
                if attempt < len(models):
                    logger.warning(
                        "Generation with model %s failed (%s); retrying with fallback model %s",
                        model, e, models[attempt],
                    )

        raise GenerationError(
            f"AI service unavailable: {last_error}", cause=last_error, models=models
        ) from last_error

    async def generate_stream(
        self,
        prompt: str,
        system_text: t.Optional[str] = None,
        on_chunk: t.Optional[ChunkCallback] = None,
        options: t.Optional[GenerationOptions] = None,
    ) -> str:
        """Stream generated text, handing each fragment to `on_chunk`.

        Returns:
            The concatenation of all fragments

        Raises:
            GenerationError: On any backend failure (no retry)
        """
        options = options or GenerationOptions()
        fragments: list[str] = []
        try:
            stream = await self._client.chat.completions.create(
                model=options.model,
                messages=_build_messages(prompt, system_text),
                temperature=options.temperature,
                max_tokens=options.max_output_tokens,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content or ""
                if not content:
                    continue
                fragments.append(content)
                if on_chunk is not None:
                    outcome = on_chunk(content)
                    if inspect.isawaitable(outcome):
                        await outcome
        except Exception as e:
            raise GenerationError(
                f"AI streaming service unavailable: {e}", cause=e, models=[options.model]
            ) from e

        return "".join(fragments)

    async def check_connection(self) -> bool:
        """Send a tiny prompt and report whether the backend answered."""
        try:
            reply = await self.generate(
                'Say "Hello" if you can hear me.',
                options=GenerationOptions(temperature=0.0, max_output_tokens=10),
            )
        except GenerationError as e:
            logger.error("Generation backend connection test failed: %s", e)
            return False
        return "hello" in reply.lower()

    async def _complete(
        self,
        prompt: str,
        system_text: t.Optional[str],
        options: GenerationOptions,
    ) -> str:
        completion = await self._client.chat.completions.create(
            model=options.model,
            messages=_build_messages(prompt, system_text),
            temperature=options.temperature,
            max_tokens=options.max_output_tokens,
        )
        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ValueError("Empty response from LLM")
        return content.strip()
