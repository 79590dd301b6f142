# -*- coding: utf-8 -*-
"""
Data models for study materials, scheduled sessions and generated content.

Every record here is produced either by the request parser (caller input) or by
the response interpreter (sanitized model output), so field values are always
within the documented bounds.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import typing as t


# Allowed values for enumerated session fields
SESSION_TYPES = ("study", "review", "practice", "assessment")
DIFFICULTIES = ("beginner", "intermediate", "advanced")
PRIORITIES = ("high", "medium", "low")
EFFORT_LEVELS = ("light", "moderate", "intensive")

MIN_SESSION_MINUTES = 15
MAX_SESSION_MINUTES = 180
DEFAULT_SESSION_MINUTES = 60


class MaterialCategory(Enum):
    """Content category of a study material."""
    DOCUMENT = "document"
    VIDEO = "video"
    AUDIO = "audio"
    PLAIN_TEXT = "plain-text"


# Upload type tags accepted as aliases for a category
CATEGORY_ALIASES = {
    "pdf": MaterialCategory.DOCUMENT,
    "docx": MaterialCategory.DOCUMENT,
    "text": MaterialCategory.PLAIN_TEXT,
    "txt": MaterialCategory.PLAIN_TEXT,
}


@dataclass(frozen=True)
class MaterialDescriptor:
    """A study material as seen by the time estimator."""
    id: str
    title: str
    content: str
    category: MaterialCategory = MaterialCategory.DOCUMENT

    @property
    def length(self) -> int:
        return len(self.content)


@dataclass
class ScheduledSession:
    """One planned study session."""
    id: str
    material_id: str
    title: str
    description: str
    scheduled_date: datetime
    duration: int  # minutes, always within [15, 180]
    session_type: str = "study"
    difficulty: str = "intermediate"
    priority: str = "medium"
    prerequisites: list[str] = field(default_factory=list)
    estimated_effort: str = "moderate"
    completed: bool = False
    actual_duration: t.Optional[int] = None
    user_rating: t.Optional[float] = None  # 1-5 scale
    notes: str = ""


@dataclass
class ScheduleMetrics:
    """Aggregate analytics derived from a session list."""
    total_estimated_time: float = 0.0  # hours
    material_distribution: dict[str, int] = field(default_factory=dict)
    session_type_distribution: dict[str, int] = field(default_factory=dict)
    difficulty_progression: dict[int, str] = field(default_factory=dict)
    weekly_time_commitment: float = 0.0  # hours per week
    confidence: float = 0.0


@dataclass(frozen=True)
class TimeSlot:
    """An available study window, "HH:MM" local times."""
    start: str
    end: str


@dataclass(frozen=True)
class UserPreferences:
    """Scheduling constraints supplied by the learner."""
    available_hours: dict[str, list[TimeSlot]] = field(default_factory=dict)
    preferred_session_length: int = DEFAULT_SESSION_MINUTES
    max_sessions_per_day: int = 3
    learning_style: str = "reading"
    difficulty_progression: str = "linear"


@dataclass(frozen=True)
class StudyGoals:
    """What the learner wants out of the schedule."""
    target_completion_date: t.Optional[datetime] = None
    priority: str = "balanced"
    review_frequency: str = "weekly"


@dataclass
class ScheduleResponse:
    """Compiled result of a scheduling job."""
    schedule: list[ScheduledSession]
    metrics: ScheduleMetrics
    suggested_start_date: datetime
    completion_date: datetime
    suggestions: list[str]
    model: str
    generated_at: datetime
    processing_time_ms: int = 0
    degraded: bool = False
    notice: t.Optional[str] = None


@dataclass
class Summary:
    """Compiled result of a summarization job."""
    id: str
    title: str
    content: str
    key_points: list[str]
    tags: list[str]
    difficulty: str
    estimated_read_time: int  # minutes
    material_id: str
    created_at: datetime
    original_length: int
    summary_length: int
    compression_ratio: float
    model: str
    processing_time_ms: int = 0
    degraded: bool = False
    notice: t.Optional[str] = None


@dataclass
class Flashcard:
    """Question/answer pair for memory practice."""
    question: str
    answer: str


@dataclass
class QuizQuestion:
    """Multiple choice question with four options and one correct letter."""
    question: str
    options: list[str]
    answer: str  # one of 'a', 'b', 'c', 'd'


@dataclass
class StudyBlock:
    """Coarse day-level study allocation."""
    date: str
    topic: str
    duration_hours: float


@dataclass
class LearningOutput:
    """Everything produced by a one-shot content analysis."""
    summary: str
    bullet_points: list[str] = field(default_factory=list)
    flashcards: list[Flashcard] = field(default_factory=list)
    quiz: list[QuizQuestion] = field(default_factory=list)
    recommended_schedule: list[StudyBlock] = field(default_factory=list)
    degraded: bool = False
    notice: t.Optional[str] = None


@dataclass
class ListResult:
    """Generic list payload (notes, study plans, flashcards, quizzes)."""
    items: list[t.Any]
    degraded: bool = False
    notice: t.Optional[str] = None
