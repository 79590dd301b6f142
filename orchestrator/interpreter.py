"""Response interpreter for generated text.

Generated text is untrusted. Decoding happens in two stages:

1. Strict decode - a fenced ```json block (or a response that is itself a JSON
   document) is decoded and every field is sanitized into a bounded domain value.
2. Heuristic decode - when stage 1 fails, a best-effort structure is derived
   from the plain text.

Every public function returns either `Decoded(value)` or
`Fallback(value, notice)` and never raises.
"""
from __future__ import annotations

import json
import logging
import math
import re
import typing as t
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from academic_planner.models import (
    DEFAULT_SESSION_MINUTES,
    DIFFICULTIES,
    EFFORT_LEVELS,
    MAX_SESSION_MINUTES,
    MIN_SESSION_MINUTES,
    PRIORITIES,
    SESSION_TYPES,
    Flashcard,
    LearningOutput,
    QuizQuestion,
    ScheduledSession,
    StudyBlock,
)

logger = logging.getLogger(__name__)

SCHEDULE_UNAVAILABLE = "AI scheduling temporarily unavailable. Please create schedule manually."
SUMMARY_FROM_TEXT = "Structured summary unavailable; derived from plain text."
LIST_FROM_TEXT = "Structured list unavailable; derived from plain text."
ITEMS_UNAVAILABLE = "Structured items unavailable in generated text."
ANALYSIS_FROM_TEXT = "Structured analysis unavailable; derived from plain text."

DEFAULT_SUMMARY_TITLE = "Generated Summary"
MAX_KEY_POINTS = 10
QUIZ_LETTERS = ("a", "b", "c", "d")

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_STRING_LITERAL = re.compile(r'"(?:[^"\\]|\\.)*"')
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t", "\b": "\\b", "\f": "\\f"}
_HEADING = re.compile(r"^#+\s*(.+)$", re.MULTILINE)
_BULLET = re.compile(r"^\s*[-*•]\s*(.+)$", re.MULTILINE)
_NUMBERED = re.compile(r"^\s*\d+\.\s*(.+)$", re.MULTILINE)
_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+\.)\s*")


@dataclass(frozen=True)
class Decoded:
    """Strict decoding succeeded."""
    value: t.Any

    @property
    def strict(self) -> bool:
        return True


@dataclass(frozen=True)
class Fallback:
    """Strict decoding failed; `value` was derived heuristically."""
    value: t.Any
    notice: str

    @property
    def strict(self) -> bool:
        return False


Interpretation = t.Union[Decoded, Fallback]


@dataclass
class ScheduleDraft:
    """Sanitized schedule content before metrics are applied."""
    sessions: list[ScheduledSession] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


@dataclass
class SummaryDraft:
    """Sanitized summary content before metadata is applied."""
    title: str
    content: str
    key_points: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    difficulty: t.Optional[str] = None


# -----------------------------
# Strict decoding
# -----------------------------

def _escape_control_characters(text: str) -> str:
    """Escape raw control characters that appear inside JSON string literals."""
    def _escape(match: re.Match) -> str:
        literal = match.group(0)
        for char, escaped in _CONTROL_ESCAPES.items():
            literal = literal.replace(char, escaped)
        return literal

    return _STRING_LITERAL.sub(_escape, text)


def _loads(candidate: str) -> t.Any:
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return json.loads(_escape_control_characters(candidate))


def extract_structured_block(text: str) -> t.Optional[t.Any]:
    """Decode the fenced JSON block in `text`, if there is a valid one.

    When the response has no fence at all, the whole response is tried as a
    JSON document.

    Returns:
        The decoded JSON value, or None when nothing decodes
    """
    if not isinstance(text, str) or not text.strip():
        return None

    match = _FENCE.search(text)
    candidate = match.group(1) if match else text.strip()
    if not match and candidate[:1] not in ("{", "["):
        return None

    try:
        return _loads(candidate)
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning("Generated text contained an undecodable block: %s", e)
        logger.debug("Undecodable text (first 500 chars): %s", text[:500])
        return None


# -----------------------------
# Field sanitation
# -----------------------------

def _as_number(value: t.Any) -> t.Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def sanitize_duration(value: t.Any) -> int:
    """Clamp a raw duration to [15, 180] minutes; 60 when missing or invalid."""
    number = _as_number(value)
    if number is None:
        return DEFAULT_SESSION_MINUTES
    return int(min(max(round(number), MIN_SESSION_MINUTES), MAX_SESSION_MINUTES))


def sanitize_choice(value: t.Any, allowed: t.Sequence[str], default: str) -> str:
    return value if isinstance(value, str) and value in allowed else default


def sanitize_date(value: t.Any, now: datetime) -> datetime:
    """Parse an ISO-8601 date into an aware UTC datetime; `now` when invalid."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return now
    else:
        return now
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _text(value: t.Any, default: str = "") -> str:
    if isinstance(value, str):
        return value.strip() or default
    if value is None or isinstance(value, (dict, list)):
        return default
    return str(value)


def _rating(value: t.Any) -> t.Optional[float]:
    number = _as_number(value)
    if number is None:
        return None
    return min(max(number, 1.0), 5.0)


def sanitize_session(raw: t.Any, index: int, now: datetime) -> t.Optional[ScheduledSession]:
    """Reconcile one raw session object, or return None if it is not an object."""
    if not isinstance(raw, dict):
        return None

    session_id = _text(raw.get("id")) or f"session_{index}_{uuid.uuid4().hex[:8]}"
    prerequisites = raw.get("prerequisites")
    actual = _as_number(raw.get("actualDuration", raw.get("actual_duration")))

    return ScheduledSession(
        id=session_id,
        material_id=_text(raw.get("materialId", raw.get("material_id"))),
        title=_text(raw.get("title"), "Study Session"),
        description=_text(raw.get("description")),
        scheduled_date=sanitize_date(raw.get("scheduledDate", raw.get("scheduled_date")), now),
        duration=sanitize_duration(raw.get("duration")),
        session_type=sanitize_choice(raw.get("sessionType", raw.get("session_type")), SESSION_TYPES, "study"),
        difficulty=sanitize_choice(raw.get("difficulty"), DIFFICULTIES, "intermediate"),
        priority=sanitize_choice(raw.get("priority"), PRIORITIES, "medium"),
        prerequisites=[str(p) for p in prerequisites] if isinstance(prerequisites, list) else [],
        estimated_effort=sanitize_choice(
            raw.get("estimatedEffort", raw.get("estimated_effort")), EFFORT_LEVELS, "moderate"
        ),
        completed=raw.get("completed") is True,
        actual_duration=int(actual) if actual is not None and actual > 0 else None,
        user_rating=_rating(raw.get("userRating", raw.get("user_rating"))),
        notes=_text(raw.get("notes")),
    )


def sanitize_sessions(raw_sessions: t.Any, now: datetime) -> list[ScheduledSession]:
    """Sanitize a raw session list, dropping items that are not objects."""
    if not isinstance(raw_sessions, list):
        return []
    sessions = []
    for index, raw in enumerate(raw_sessions):
        session = sanitize_session(raw, index, now)
        if session is None:
            logger.warning("Dropping malformed session at index %d: %r", index, raw)
            continue
        sessions.append(session)
    return sessions


def _string_list(value: t.Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def sanitize_flashcards(raw_cards: t.Any) -> list[Flashcard]:
    if not isinstance(raw_cards, list):
        return []
    cards = []
    for raw in raw_cards:
        if not isinstance(raw, dict):
            continue
        question, answer = _text(raw.get("question")), _text(raw.get("answer"))
        if question and answer:
            cards.append(Flashcard(question=question, answer=answer))
    return cards


def sanitize_quiz(raw_questions: t.Any) -> list[QuizQuestion]:
    if not isinstance(raw_questions, list):
        return []
    questions = []
    for raw in raw_questions:
        if not isinstance(raw, dict):
            continue
        question = _text(raw.get("question"))
        options = raw.get("options")
        answer = _text(raw.get("answer")).lower()
        if not question or not isinstance(options, list) or len(options) != 4:
            continue
        if answer not in QUIZ_LETTERS:
            continue
        questions.append(QuizQuestion(question=question, options=[_text(o) for o in options], answer=answer))
    return questions


def sanitize_study_blocks(raw_blocks: t.Any) -> list[StudyBlock]:
    if not isinstance(raw_blocks, list):
        return []
    blocks = []
    for raw in raw_blocks:
        if not isinstance(raw, dict):
            continue
        hours = _as_number(raw.get("durationHours", raw.get("duration_hours")))
        topic = _text(raw.get("topic"))
        if not topic or hours is None or hours <= 0:
            continue
        blocks.append(StudyBlock(date=_text(raw.get("date")), topic=topic, duration_hours=hours))
    return blocks


# -----------------------------
# Heuristic decoding
# -----------------------------

def heuristic_key_points(text: str) -> list[str]:
    """Bullet lines followed by numbered lines, at most ten."""
    points = [p.strip() for p in _BULLET.findall(text)]
    points += [p.strip() for p in _NUMBERED.findall(text)]
    return [p for p in points if p][:MAX_KEY_POINTS]


def heuristic_lines(text: str) -> list[str]:
    """Non-empty lines with list markers stripped."""
    lines = (_LIST_MARKER.sub("", line).strip() for line in text.splitlines())
    return [line for line in lines if line]


# -----------------------------
# Public entry points
# -----------------------------

def _safe(fallback: t.Callable[[], Fallback]) -> t.Callable:
    """Return `fallback()` when the wrapped interpreter hits an unexpected error."""
    def decorator(func: t.Callable[..., Interpretation]) -> t.Callable[..., Interpretation]:
        def wrapper(*args: t.Any, **kwargs: t.Any) -> Interpretation:
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.exception("Interpreter %s failed; using fallback", func.__name__)
                return fallback()
        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper
    return decorator


@_safe(lambda: Fallback(ScheduleDraft(suggestions=[SCHEDULE_UNAVAILABLE]), SCHEDULE_UNAVAILABLE))
def interpret_schedule(text: str, now: datetime) -> Interpretation:
    """Interpret a scheduling response into a `ScheduleDraft`."""
    data = extract_structured_block(text)
    if not isinstance(data, dict):
        return Fallback(ScheduleDraft(suggestions=[SCHEDULE_UNAVAILABLE]), SCHEDULE_UNAVAILABLE)

    recommendations = data.get("recommendations")
    suggestions = _string_list(recommendations.get("suggestions")) if isinstance(recommendations, dict) else []
    return Decoded(ScheduleDraft(sessions=sanitize_sessions(data.get("schedule"), now), suggestions=suggestions))


def _summary_from_text(text: str) -> Fallback:
    heading = _HEADING.search(text or "")
    draft = SummaryDraft(
        title=heading.group(1).strip() if heading else DEFAULT_SUMMARY_TITLE,
        content=text or "",
        key_points=heuristic_key_points(text or ""),
    )
    return Fallback(draft, SUMMARY_FROM_TEXT)


@_safe(lambda: Fallback(SummaryDraft(title=DEFAULT_SUMMARY_TITLE, content=""), SUMMARY_FROM_TEXT))
def interpret_summary(text: str) -> Interpretation:
    """Interpret a summarization response into a `SummaryDraft`."""
    data = extract_structured_block(text)
    if not isinstance(data, dict):
        return _summary_from_text(text)

    return Decoded(SummaryDraft(
        title=_text(data.get("title")),
        content=_text(data.get("content")),
        key_points=_string_list(data.get("keyPoints", data.get("key_points")))[:MAX_KEY_POINTS],
        tags=_string_list(data.get("tags")),
        difficulty=data.get("difficulty") if data.get("difficulty") in DIFFICULTIES else None,
    ))


@_safe(lambda: Fallback([], ITEMS_UNAVAILABLE))
def interpret_flashcards(text: str) -> Interpretation:
    """Interpret a flashcard response into a list of `Flashcard`."""
    data = extract_structured_block(text)
    if isinstance(data, dict):
        data = data.get("flashcards")
    if not isinstance(data, list):
        return Fallback([], ITEMS_UNAVAILABLE)
    return Decoded(sanitize_flashcards(data))


@_safe(lambda: Fallback([], ITEMS_UNAVAILABLE))
def interpret_quiz(text: str) -> Interpretation:
    """Interpret a quiz response into a list of `QuizQuestion`."""
    data = extract_structured_block(text)
    if isinstance(data, dict):
        data = data.get("quiz")
    if not isinstance(data, list):
        return Fallback([], ITEMS_UNAVAILABLE)
    return Decoded(sanitize_quiz(data))


@_safe(lambda: Fallback([], LIST_FROM_TEXT))
def interpret_string_list(text: str) -> Interpretation:
    """Interpret a response that should be a JSON array of strings."""
    data = extract_structured_block(text)
    if isinstance(data, list):
        return Decoded(_string_list(data))
    return Fallback(heuristic_lines(text or ""), LIST_FROM_TEXT)


@_safe(lambda: Fallback(LearningOutput(summary=""), ANALYSIS_FROM_TEXT))
def interpret_learning_output(text: str) -> Interpretation:
    """Interpret an analysis response into a `LearningOutput`."""
    data = extract_structured_block(text)
    if not isinstance(data, dict):
        output = LearningOutput(summary=text or "", bullet_points=heuristic_key_points(text or ""))
        return Fallback(output, ANALYSIS_FROM_TEXT)

    return Decoded(LearningOutput(
        summary=_text(data.get("summary")),
        bullet_points=_string_list(data.get("bulletPoints", data.get("bullet_points"))),
        flashcards=sanitize_flashcards(data.get("flashcards")),
        quiz=sanitize_quiz(data.get("quiz")),
        recommended_schedule=sanitize_study_blocks(
            data.get("recommendedSchedule", data.get("recommended_schedule"))
        ),
    ))
