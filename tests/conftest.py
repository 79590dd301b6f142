# -*- coding: utf-8 -*-
"""Shared fakes for the generation backend, the OpenAI client and the clock."""
from __future__ import annotations

import typing as t
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from orchestrator.errors import GenerationError
from orchestrator.generation import GenerationOptions


FIXED_NOW = datetime(2025, 1, 13, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock returning a settable time."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def _completion(content: t.Optional[str]) -> SimpleNamespace:
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _chunk(content: t.Optional[str]) -> SimpleNamespace:
    if content is None:
        return SimpleNamespace(choices=[])
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeStream:
    """Async iterator of streamed completion chunks, optionally failing midway."""

    def __init__(self, chunks: list[t.Optional[str]], error: t.Optional[Exception] = None) -> None:
        self._chunks = list(chunks)
        self._error = error

    def __aiter__(self) -> "FakeStream":
        return self

    async def __anext__(self) -> SimpleNamespace:
        if self._chunks:
            return _chunk(self._chunks.pop(0))
        if self._error is not None:
            error, self._error = self._error, None
            raise error
        raise StopAsyncIteration


class FakeCompletions:
    """Stands in for `AsyncOpenAI().chat.completions`.

    Each queued outcome is used by one call: a string is returned as the
    completion content, None gives an empty completion, an exception is raised
    and a `FakeStream` is returned for streaming calls.
    """

    def __init__(self, outcomes: t.Iterable[t.Any]) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[dict[str, t.Any]] = []

    async def create(self, **kwargs: t.Any) -> t.Any:
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if kwargs.get("stream"):
            return outcome
        return _completion(outcome)


class FakeOpenAI:
    def __init__(self, *outcomes: t.Any) -> None:
        self.completions = FakeCompletions(outcomes)
        self.chat = SimpleNamespace(completions=self.completions)


class FakeBackend:
    """In-memory `GenerationBackend` returning canned text.

    Args:
        text: Text returned by every call, or an exception to raise
        chunks: Fragments handed out when streaming (defaults to `text` split
            into words)
    """

    def __init__(self, text: t.Union[str, Exception] = "", chunks: t.Optional[list[str]] = None) -> None:
        self.text = text
        self.chunks = chunks
        self.calls: list[dict[str, t.Any]] = []

    async def generate(
        self,
        prompt: str,
        system_text: t.Optional[str] = None,
        options: t.Optional[GenerationOptions] = None,
    ) -> str:
        self.calls.append({"prompt": prompt, "system_text": system_text, "options": options})
        if isinstance(self.text, Exception):
            raise self.text
        return self.text

    async def generate_stream(
        self,
        prompt: str,
        system_text: t.Optional[str] = None,
        on_chunk: t.Optional[t.Callable[[str], t.Any]] = None,
        options: t.Optional[GenerationOptions] = None,
    ) -> str:
        self.calls.append({"prompt": prompt, "system_text": system_text, "options": options, "stream": True})
        if isinstance(self.text, Exception):
            raise GenerationError(f"AI streaming service unavailable: {self.text}", cause=self.text)
        chunks = self.chunks if self.chunks is not None else [w + " " for w in self.text.split(" ")]
        for chunk in chunks:
            if on_chunk is not None:
                await on_chunk(chunk)
        return "".join(chunks)

    async def check_connection(self) -> bool:
        return not isinstance(self.text, Exception)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# -----------------------------
# Sample payloads
# -----------------------------

LONG_CONTENT = (
    "Photosynthesis converts light energy into chemical energy stored in glucose. "
    "Chlorophyll in the chloroplasts absorbs light, and water is split to release oxygen. "
) * 3


@pytest.fixture
def summary_payload() -> dict[str, t.Any]:
    return {
        "material": {
            "id": "mat-1",
            "title": "Photosynthesis",
            "content": LONG_CONTENT,
            "category": "pdf",
        },
        "summary_type": "brief",
        "focus_areas": ["light reactions"],
    }


@pytest.fixture
def schedule_payload() -> dict[str, t.Any]:
    return {
        "materials": [
            {"id": "mat-1", "title": "Cell Biology", "content": "x" * 5000, "category": "document"},
            {"id": "mat-2", "title": "Genetics Lecture", "content": "y" * 2000, "category": "video"},
        ],
        "preferences": {
            "available_hours": {"monday": [{"start": "09:00", "end": "11:00"}]},
            "preferred_session_length": 60,
            "max_sessions_per_day": 2,
            "learning_style": "visual",
            "difficulty_progression": "linear",
        },
        "goals": {
            "target_completion_date": "2025-02-01T00:00:00Z",
            "priority": "retention",
            "review_frequency": "weekly",
        },
    }
