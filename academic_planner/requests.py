# -*- coding: utf-8 -*-
"""
Request records and payload validation for every job type.

Payloads arrive as JSON-like mappings (REST body, MCP tool arguments or a CLI
payload file). `parse_request` turns one into the typed request for its job
type or raises `ValidationError` naming the offending field.
"""
from __future__ import annotations

import math
import typing as t
from dataclasses import dataclass, field
from datetime import datetime, timezone

from academic_planner.models import (
    CATEGORY_ALIASES,
    DEFAULT_SESSION_MINUTES,
    DIFFICULTIES,
    MAX_SESSION_MINUTES,
    MIN_SESSION_MINUTES,
    MaterialCategory,
    MaterialDescriptor,
    ScheduledSession,
    StudyGoals,
    TimeSlot,
    UserPreferences,
)
from orchestrator.errors import ValidationError
from orchestrator.models import JobType


# Validation limits
MAX_CONTENT_LENGTH = 100_000
MIN_SUMMARY_CONTENT_LENGTH = 100
MAX_FOCUS_AREAS = 5
MAX_SCHEDULE_MATERIALS = 20
MAX_SESSIONS_PER_DAY = 6
MAX_TOPIC_COUNT = 20
MAX_WEEKLY_HOURS = 168
MAX_ANALYSIS_FLASHCARDS = 30
MAX_ANALYSIS_QUIZ = 20

SUMMARY_TYPES = ("brief", "detailed", "key-points", "flashcards")
TARGET_LENGTHS = ("short", "medium", "long")
LEARNING_STYLES = ("visual", "auditory", "kinesthetic", "reading")
PROGRESSION_MODES = ("linear", "adaptive", "mixed")
GOAL_PRIORITIES = ("speed", "retention", "balanced")
REVIEW_FREQUENCIES = ("daily", "weekly", "bi-weekly")


@dataclass(frozen=True)
class SummaryRequest:
    material: MaterialDescriptor
    summary_type: str
    target_length: str = "medium"
    focus_areas: tuple[str, ...] = ()
    difficulty: t.Optional[str] = None


@dataclass(frozen=True)
class ScheduleRequest:
    materials: list[MaterialDescriptor]
    preferences: UserPreferences = field(default_factory=UserPreferences)
    goals: StudyGoals = field(default_factory=StudyGoals)
    existing_schedule: list[ScheduledSession] = field(default_factory=list)


@dataclass(frozen=True)
class TopicRequest:
    """Flashcard and quiz generation for a topic."""
    topic: str
    count: int = 5


@dataclass(frozen=True)
class NotesRequest:
    content: str


@dataclass(frozen=True)
class StudyPlanRequest:
    goal: str
    available_hours: float  # per week


@dataclass(frozen=True)
class AnalysisRequest:
    """One-shot analysis producing summary, notes, flashcards, quiz and schedule."""
    text: str
    summary_length: str = "medium"
    flashcard_count: int = 10
    quiz_count: int = 5
    difficulty: str = "intermediate"
    include_schedule: bool = True
    schedule_start_date: t.Optional[datetime] = None
    schedule_end_date: t.Optional[datetime] = None
    total_study_hours: float = 10


JobRequest = t.Union[
    SummaryRequest, ScheduleRequest, TopicRequest, NotesRequest, StudyPlanRequest, AnalysisRequest
]


# -----------------------------
# Field helpers
# -----------------------------

def _mapping(value: t.Any, name: str) -> t.Mapping[str, t.Any]:
    if not isinstance(value, t.Mapping):
        raise ValidationError(f"'{name}' must be an object", field=name)
    return value


def _string(payload: t.Mapping[str, t.Any], key: str, *, required: bool = True, default: str = "") -> str:
    value = payload.get(key)
    if value is None:
        if required:
            raise ValidationError(f"'{key}' is required", field=key)
        return default
    if not isinstance(value, str):
        raise ValidationError(f"'{key}' must be a string", field=key)
    if required and not value.strip():
        raise ValidationError(f"'{key}' must not be empty", field=key)
    return value


def _choice(payload: t.Mapping[str, t.Any], key: str, allowed: t.Sequence[str], default: t.Optional[str]) -> t.Optional[str]:
    value = payload.get(key)
    if value is None:
        return default
    if value not in allowed:
        raise ValidationError(f"'{key}' must be one of {', '.join(allowed)}; got {value!r}", field=key)
    return value


def _number(
    payload: t.Mapping[str, t.Any],
    key: str,
    default: t.Optional[float],
    *,
    minimum: t.Optional[float] = None,
    maximum: t.Optional[float] = None,
    integer: bool = False,
    exclusive_minimum: bool = False,
) -> float:
    value = payload.get(key, default)
    if value is None:
        raise ValidationError(f"'{key}' is required", field=key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"'{key}' must be a number", field=key)
    if not math.isfinite(value):
        raise ValidationError(f"'{key}' must be a finite number", field=key)
    if integer and int(value) != value:
        raise ValidationError(f"'{key}' must be a whole number", field=key)
    if minimum is not None and (value <= minimum if exclusive_minimum else value < minimum):
        bound = "greater than" if exclusive_minimum else "at least"
        raise ValidationError(f"'{key}' must be {bound} {minimum}", field=key)
    if maximum is not None and value > maximum:
        raise ValidationError(f"'{key}' must be at most {maximum}", field=key)
    return int(value) if integer else value


def _timestamp(value: t.Any, name: str) -> t.Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{name}' must be an ISO-8601 string", field=name)
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"'{name}' is not a valid date: {value!r}", field=name) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_category(value: t.Any) -> MaterialCategory:
    """Resolve a category name or upload type tag."""
    if value is None:
        return MaterialCategory.DOCUMENT
    if isinstance(value, str):
        if value in CATEGORY_ALIASES:
            return CATEGORY_ALIASES[value]
        try:
            return MaterialCategory(value)
        except ValueError:
            pass
    raise ValidationError(f"Unknown material category: {value!r}", field="category")


def parse_material(raw: t.Any, name: str = "material") -> MaterialDescriptor:
    data = _mapping(raw, name)
    content = _string(data, "content", required=False)
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"Material content exceeds maximum length of {MAX_CONTENT_LENGTH} characters",
            field="content",
        )
    return MaterialDescriptor(
        id=_string(data, "id"),
        title=_string(data, "title"),
        content=content,
        category=parse_category(data.get("category", data.get("type"))),
    )


def parse_time_slots(raw: t.Any) -> dict[str, list[TimeSlot]]:
    hours = _mapping(raw if raw is not None else {}, "available_hours")
    slots_by_day: dict[str, list[TimeSlot]] = {}
    for day, slots in hours.items():
        if not isinstance(slots, list):
            raise ValidationError(f"Invalid time slots format for {day}", field="available_hours")
        parsed = []
        for slot in slots:
            if not isinstance(slot, t.Mapping) or not slot.get("start") or not slot.get("end"):
                raise ValidationError(
                    f"Invalid time slot format for {day}: missing start or end time",
                    field="available_hours",
                )
            parsed.append(TimeSlot(start=str(slot["start"]), end=str(slot["end"])))
        slots_by_day[day] = parsed
    return slots_by_day


def parse_preferences(raw: t.Any) -> UserPreferences:
    data = _mapping(raw if raw is not None else {}, "preferences")
    return UserPreferences(
        available_hours=parse_time_slots(data.get("available_hours")),
        preferred_session_length=_number(
            data, "preferred_session_length", DEFAULT_SESSION_MINUTES,
            minimum=MIN_SESSION_MINUTES, maximum=MAX_SESSION_MINUTES, integer=True,
        ),
        max_sessions_per_day=_number(
            data, "max_sessions_per_day", 3, minimum=1, maximum=MAX_SESSIONS_PER_DAY, integer=True,
        ),
        learning_style=_choice(data, "learning_style", LEARNING_STYLES, "reading"),
        difficulty_progression=_choice(data, "difficulty_progression", PROGRESSION_MODES, "linear"),
    )


def parse_goals(raw: t.Any) -> StudyGoals:
    data = _mapping(raw if raw is not None else {}, "goals")
    return StudyGoals(
        target_completion_date=_timestamp(data.get("target_completion_date"), "target_completion_date"),
        priority=_choice(data, "priority", GOAL_PRIORITIES, "balanced"),
        review_frequency=_choice(data, "review_frequency", REVIEW_FREQUENCIES, "weekly"),
    )


# -----------------------------
# Per job type parsers
# -----------------------------

def parse_summary_request(payload: t.Mapping[str, t.Any]) -> SummaryRequest:
    material = parse_material(payload.get("material"))
    if len(material.content) < MIN_SUMMARY_CONTENT_LENGTH:
        raise ValidationError(
            f"Material content must be at least {MIN_SUMMARY_CONTENT_LENGTH} characters",
            field="content",
        )

    summary_type = payload.get("summary_type")
    if summary_type is None:
        raise ValidationError("'summary_type' is required", field="summary_type")

    focus_areas = payload.get("focus_areas") or []
    if not isinstance(focus_areas, list) or not all(isinstance(a, str) for a in focus_areas):
        raise ValidationError("'focus_areas' must be a list of strings", field="focus_areas")
    if len(focus_areas) > MAX_FOCUS_AREAS:
        raise ValidationError(f"Maximum {MAX_FOCUS_AREAS} focus areas allowed", field="focus_areas")

    return SummaryRequest(
        material=material,
        summary_type=_choice(payload, "summary_type", SUMMARY_TYPES, None),
        target_length=_choice(payload, "target_length", TARGET_LENGTHS, "medium"),
        focus_areas=tuple(focus_areas),
        difficulty=_choice(payload, "difficulty", DIFFICULTIES, None),
    )


def parse_schedule_request(payload: t.Mapping[str, t.Any]) -> ScheduleRequest:
    materials = payload.get("materials")
    if not isinstance(materials, list) or not materials:
        raise ValidationError("At least one material is required for scheduling", field="materials")
    if len(materials) > MAX_SCHEDULE_MATERIALS:
        raise ValidationError(
            f"Maximum {MAX_SCHEDULE_MATERIALS} materials can be scheduled at once", field="materials"
        )

    return ScheduleRequest(
        materials=[parse_material(m, "materials") for m in materials],
        preferences=parse_preferences(payload.get("preferences")),
        goals=parse_goals(payload.get("goals")),
    )


def parse_topic_request(payload: t.Mapping[str, t.Any]) -> TopicRequest:
    return TopicRequest(
        topic=_string(payload, "topic"),
        count=_number(payload, "count", 5, minimum=1, maximum=MAX_TOPIC_COUNT, integer=True),
    )


def parse_notes_request(payload: t.Mapping[str, t.Any]) -> NotesRequest:
    content = _string(payload, "content")
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"'content' exceeds maximum length of {MAX_CONTENT_LENGTH} characters", field="content"
        )
    return NotesRequest(content=content)


def parse_study_plan_request(payload: t.Mapping[str, t.Any]) -> StudyPlanRequest:
    return StudyPlanRequest(
        goal=_string(payload, "goal"),
        available_hours=_number(
            payload, "available_hours", None, minimum=0, maximum=MAX_WEEKLY_HOURS, exclusive_minimum=True,
        ),
    )


def parse_analysis_request(payload: t.Mapping[str, t.Any]) -> AnalysisRequest:
    include_schedule = payload.get("include_schedule", True)
    if not isinstance(include_schedule, bool):
        raise ValidationError("'include_schedule' must be a boolean", field="include_schedule")

    return AnalysisRequest(
        text=_string(payload, "text"),
        summary_length=_choice(payload, "summary_length", TARGET_LENGTHS, "medium"),
        flashcard_count=_number(
            payload, "flashcard_count", 10, minimum=1, maximum=MAX_ANALYSIS_FLASHCARDS, integer=True,
        ),
        quiz_count=_number(payload, "quiz_count", 5, minimum=1, maximum=MAX_ANALYSIS_QUIZ, integer=True),
        difficulty=_choice(payload, "difficulty", DIFFICULTIES, "intermediate"),
        include_schedule=include_schedule,
        schedule_start_date=_timestamp(payload.get("schedule_start_date"), "schedule_start_date"),
        schedule_end_date=_timestamp(payload.get("schedule_end_date"), "schedule_end_date"),
        total_study_hours=_number(payload, "total_study_hours", 10, minimum=0, exclusive_minimum=True),
    )


REQUEST_PARSERS: dict[JobType, t.Callable[[t.Mapping[str, t.Any]], JobRequest]] = {
    JobType.SUMMARIZATION: parse_summary_request,
    JobType.SCHEDULING: parse_schedule_request,
    JobType.FLASHCARDS: parse_topic_request,
    JobType.QUIZ: parse_topic_request,
    JobType.NOTES: parse_notes_request,
    JobType.STUDY_PLAN: parse_study_plan_request,
    JobType.ANALYSIS: parse_analysis_request,
}


def parse_job_type(value: t.Any) -> JobType:
    if isinstance(value, JobType):
        return value
    try:
        return JobType(value)
    except ValueError as e:
        allowed = ", ".join(jt.value for jt in JobType)
        raise ValidationError(f"Unknown job type {value!r}; expected one of {allowed}", field="type") from e


def parse_request(job_type: t.Union[JobType, str], payload: t.Any) -> JobRequest:
    """Validate a submit payload into the request record for its job type.

    Args:
        job_type: A `JobType` or its string value
        payload: JSON-like mapping supplied by the caller

    Returns:
        The typed request record

    Raises:
        ValidationError: If the job type is unknown or the payload is malformed
    """
    job_type = parse_job_type(job_type)
    return REQUEST_PARSERS[job_type](_mapping(payload, "payload"))
