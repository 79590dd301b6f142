# -*- coding: utf-8 -*-
"""
Scheduling heuristics.

Pure, deterministic functions over already-sanitized data: study time
estimation, schedule metrics, confidence scoring and feedback-driven
adjustment of preferences. Nothing here performs I/O or reads the clock; the
caller passes "now" where a default date is needed.
"""
from __future__ import annotations

import math
import re
import typing as t
from collections import Counter
from dataclasses import replace
from datetime import datetime

from academic_planner.models import (
    MAX_SESSION_MINUTES,
    MIN_SESSION_MINUTES,
    MaterialCategory,
    MaterialDescriptor,
    ScheduledSession,
    ScheduleMetrics,
    Summary,
    UserPreferences,
)


# Minutes of study per 1000 characters of content
MINUTES_PER_1000_CHARS = {
    MaterialCategory.DOCUMENT: 2.0,
    MaterialCategory.VIDEO: 1.5,
    MaterialCategory.AUDIO: 1.2,
    MaterialCategory.PLAIN_TEXT: 1.8,
}

# Content features that make material slower to study
COMPLEXITY_PATTERNS = (
    re.compile(r"\$.*?\$"),            # math notation
    re.compile(r"[A-Z]{3,}"),          # acronyms
    re.compile(r"\b\d+\.\d+\b"),       # decimal numbers
    re.compile(r"\b[a-z]+\([^)]*\)"),  # function calls
)
COMPLEXITY_THRESHOLD = 10
COMPLEXITY_STEP = 0.2

SESSIONS_PER_WEEK_CHUNK = 7
SECONDS_PER_WEEK = 7 * 24 * 60 * 60

WORDS_PER_MINUTE = 225
TOP_TAGS = 10
STOP_WORDS = frozenset({"the", "and", "but", "for", "with", "that", "this", "are", "was", "from"})


def estimate_study_time(material: MaterialDescriptor) -> int:
    """Estimate minutes needed to study a material.

    Args:
        material: The material to estimate

    Returns:
        Whole minutes, rounded up
    """
    rate = MINUTES_PER_1000_CHARS.get(material.category, 2.0)
    base_time = (material.length / 1000) * rate

    multiplier = 1.0
    for pattern in COMPLEXITY_PATTERNS:
        if len(pattern.findall(material.content)) > COMPLEXITY_THRESHOLD:
            multiplier += COMPLEXITY_STEP

    return math.ceil(base_time * multiplier)


def compute_metrics(sessions: t.Sequence[ScheduledSession]) -> ScheduleMetrics:
    """Derive aggregate analytics from a session list.

    Difficulty progression groups sessions by list position in chunks of
    seven, not by calendar week.
    """
    total_time = sum(s.duration for s in sessions)

    material_distribution: dict[str, int] = {}
    if total_time > 0:
        minutes_by_material: dict[str, int] = {}
        for session in sessions:
            minutes_by_material[session.material_id] = (
                minutes_by_material.get(session.material_id, 0) + session.duration
            )
        material_distribution = {
            material_id: round(100 * minutes / total_time)
            for material_id, minutes in minutes_by_material.items()
        }

    session_type_distribution = dict(Counter(s.session_type for s in sessions))

    difficulty_progression: dict[int, str] = {}
    for index, session in enumerate(sessions):
        week = index // SESSIONS_PER_WEEK_CHUNK + 1
        difficulty_progression.setdefault(week, session.difficulty)

    return ScheduleMetrics(
        total_estimated_time=total_time / 60,
        material_distribution=material_distribution,
        session_type_distribution=session_type_distribution,
        difficulty_progression=difficulty_progression,
        weekly_time_commitment=weekly_commitment(sessions),
        confidence=confidence_score(sessions),
    )


def completion_date(sessions: t.Sequence[ScheduledSession], now: datetime) -> datetime:
    """Latest scheduled date, or `now` for an empty schedule."""
    if not sessions:
        return now
    return max(s.scheduled_date for s in sessions)


def weekly_commitment(sessions: t.Sequence[ScheduledSession]) -> float:
    """Average study hours per calendar week spanned by the schedule."""
    if not sessions:
        return 0.0

    first = sessions[0].scheduled_date
    last = max(s.scheduled_date for s in sessions)
    weeks = math.ceil((last - first).total_seconds() / SECONDS_PER_WEEK)
    total_hours = sum(s.duration for s in sessions) / 60

    return total_hours / max(1, weeks)


def confidence_score(sessions: t.Sequence[ScheduledSession]) -> float:
    """Heuristic [0, 1] quality estimate for a schedule."""
    score = 0.5

    in_order = all(
        later.scheduled_date >= earlier.scheduled_date
        for earlier, later in zip(sessions, sessions[1:])
    )
    if in_order:
        score += 0.2

    if len({s.session_type for s in sessions}) > 1:
        score += 0.2

    if all(MIN_SESSION_MINUTES <= s.duration <= MAX_SESSION_MINUTES for s in sessions):
        score += 0.1

    return max(0.0, min(round(score, 2), 1.0))


def adjust_for_feedback(
    preferences: UserPreferences,
    ratings: t.Sequence[float],
) -> UserPreferences:
    """Shrink or grow the preferred session length from session ratings.

    Args:
        preferences: Current learner preferences
        ratings: Session ratings on a 1-5 scale

    Returns:
        Preferences with an adjusted `preferred_session_length`, or the
        input unchanged when ratings are empty or average between 3 and 4
    """
    if not ratings:
        return preferences

    average = sum(ratings) / len(ratings)
    length = preferences.preferred_session_length

    if average < 3:
        length = max(round(length * 0.8), MIN_SESSION_MINUTES)
    elif average > 4:
        length = min(round(length * 1.2), MAX_SESSION_MINUTES)
    else:
        return preferences

    return replace(preferences, preferred_session_length=length)


def schedule_analytics(sessions: t.Sequence[ScheduledSession]) -> dict[str, t.Any]:
    """Progress analytics for a schedule that is being worked through."""
    completed = [s for s in sessions if s.completed]
    pending = [s for s in sessions if not s.completed]

    planned_minutes = sum(s.duration for s in sessions)
    completed_minutes = sum(s.actual_duration or s.duration for s in completed)
    remaining_minutes = sum(s.duration for s in pending)

    ratings = [s.user_rating or 0 for s in completed]
    avg_rating = sum(ratings) / len(completed) if completed else 0

    progress_by_material: dict[str, dict[str, int]] = {}
    for session in sessions:
        entry = progress_by_material.setdefault(session.material_id, {"completed": 0, "total": 0})
        entry["total"] += 1
        if session.completed:
            entry["completed"] += 1

    return {
        "overview": {
            "total_sessions": len(sessions),
            "completed_sessions": len(completed),
            "pending_sessions": len(pending),
            "completion_rate": (len(completed) / len(sessions)) * 100 if sessions else 0,
        },
        "time_tracking": {
            "total_planned_time": round(planned_minutes / 60, 1),
            "completed_time": round(completed_minutes / 60, 1),
            "remaining_time": round(remaining_minutes / 60, 1),
            "efficiency": (completed_minutes / planned_minutes) * 100 if planned_minutes else 0,
        },
        "performance": {
            "avg_rating": round(avg_rating, 1),
            "avg_session_length": round(completed_minutes / len(completed)) if completed else 0,
        },
        "progress_by_material": [
            {
                "material_id": material_id,
                **progress,
                "progress_percentage": (progress["completed"] / progress["total"]) * 100,
            }
            for material_id, progress in progress_by_material.items()
        ],
    }


# -----------------------------
# Summary text statistics
# -----------------------------

def estimate_read_time(text: str) -> int:
    """Minutes to read `text` at an average reading speed."""
    return math.ceil(len(text.split()) / WORDS_PER_MINUTE)


def extract_tags(text: str, category: MaterialCategory) -> list[str]:
    """Category tag plus the most frequent content keywords."""
    words = re.findall(r"\b[a-z]{3,}\b", text.lower())
    frequency = Counter(word for word in words if word not in STOP_WORDS)
    keywords = [word for word, _ in frequency.most_common(5)]
    return ([category.value] + keywords)[:8]


def summary_stats(summaries: t.Sequence[Summary]) -> t.Optional[dict[str, t.Any]]:
    """Aggregate statistics over generated summaries, or None when there are none."""
    if not summaries:
        return None

    tag_frequency = Counter(tag for s in summaries for tag in s.tags)

    return {
        "total_summaries": len(summaries),
        "total_original_length": sum(s.original_length for s in summaries),
        "total_summary_length": sum(s.summary_length for s in summaries),
        "avg_compression_ratio": round(sum(s.compression_ratio for s in summaries) / len(summaries), 2),
        "avg_processing_time": round(sum(s.processing_time_ms for s in summaries) / len(summaries)),
        "difficulty_distribution": dict(Counter(s.difficulty for s in summaries)),
        "top_tags": [{"tag": tag, "count": count} for tag, count in tag_frequency.most_common(TOP_TAGS)],
    }
