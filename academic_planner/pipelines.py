# -*- coding: utf-8 -*-
"""
Prompt builders and result compilers for each job type.

A prompt builder turns a validated request into prompt text. A result compiler
runs the generated text through the response interpreter and, for scheduling,
through the heuristics engine, producing the record stored on the job.
"""
from __future__ import annotations

import json
import math
import typing as t
import uuid
from dataclasses import dataclass, replace
from datetime import datetime

from academic_planner import heuristics
from academic_planner.models import ListResult, LearningOutput, ScheduleResponse, Summary
from academic_planner.requests import (
    AnalysisRequest,
    NotesRequest,
    ScheduleRequest,
    StudyPlanRequest,
    SummaryRequest,
    TopicRequest,
)
from orchestrator import interpreter
from orchestrator.generation import GenerationOptions
from prompts import render_prompt


DEFAULT_SUGGESTIONS = [
    "Follow the spaced repetition schedule for optimal retention",
    "Take breaks between intensive study sessions",
    "Review difficult concepts before proceeding to advanced topics",
]

# Output token budget per summary type
SUMMARY_MAX_TOKENS = {
    "brief": 600,
    "detailed": 2000,
    "key-points": 800,
    "flashcards": 1500,
}
SUMMARY_DEFAULT_MAX_TOKENS = 1000

ANALYSIS_CONTENT_LIMIT = 8000
ANALYSIS_SUMMARY_WORDS = {"short": 100, "medium": 200, "long": 400}
ANALYSIS_DEFAULT_DAYS = 14


@dataclass(frozen=True)
class CompileContext:
    """Facts about the generation call a compiler may record."""
    now: datetime
    model: str
    processing_time_ms: int = 0


# -----------------------------
# Generation options
# -----------------------------

def summary_options(request: SummaryRequest) -> GenerationOptions:
    return GenerationOptions(
        temperature=0.7,
        max_output_tokens=SUMMARY_MAX_TOKENS.get(request.summary_type, SUMMARY_DEFAULT_MAX_TOKENS),
    )


def schedule_options(request: ScheduleRequest) -> GenerationOptions:
    # Low temperature keeps session placement consistent between runs
    return GenerationOptions(temperature=0.3, max_output_tokens=3000)


def analysis_options(request: AnalysisRequest) -> GenerationOptions:
    return GenerationOptions(temperature=0.3, max_output_tokens=4000)


def default_options(request: t.Any) -> GenerationOptions:
    return GenerationOptions()


# -----------------------------
# Prompt builders
# -----------------------------

def _format_available_hours(request: ScheduleRequest) -> str:
    lines = [
        f"{day}: {', '.join(f'{slot.start}-{slot.end}' for slot in slots)}"
        for day, slots in request.preferences.available_hours.items()
    ]
    return "\n".join(lines) or "flexible"


def build_schedule_prompt(request: ScheduleRequest, now: datetime) -> str:
    materials_data = [
        {
            "id": material.id,
            "title": material.title,
            "type": material.category.value,
            "contentLength": material.length,
            "estimatedStudyTime": heuristics.estimate_study_time(material),
        }
        for material in request.materials
    ]
    target = request.goals.target_completion_date

    return render_prompt(
        "scheduler",
        material_count=len(request.materials),
        available_hours=_format_available_hours(request),
        preferred_session_length=request.preferences.preferred_session_length,
        max_sessions_per_day=request.preferences.max_sessions_per_day,
        learning_style=request.preferences.learning_style,
        difficulty_progression=request.preferences.difficulty_progression,
        target_completion_date=target.isoformat() if target else "flexible",
        priority=request.goals.priority,
        review_frequency=request.goals.review_frequency,
        completed_sessions=len(request.existing_schedule),
        current_date=now.isoformat(),
        materials_data=json.dumps(materials_data, indent=2),
    )


def build_summary_prompt(request: SummaryRequest, now: datetime) -> str:
    return render_prompt(
        "summarizer",
        summary_type=request.summary_type,
        target_length=request.target_length,
        difficulty=request.difficulty or "intermediate",
        focus_areas=", ".join(request.focus_areas) or "general overview",
        material_title=request.material.title,
        material_type=request.material.category.value,
        material_content=request.material.content,
    )


def build_flashcards_prompt(request: TopicRequest, now: datetime) -> str:
    return render_prompt("flashcards", count=request.count, topic=request.topic)


def build_quiz_prompt(request: TopicRequest, now: datetime) -> str:
    return render_prompt("quiz", count=request.count, topic=request.topic)


def build_notes_prompt(request: NotesRequest, now: datetime) -> str:
    return render_prompt("notes", content=request.content)


def build_study_plan_prompt(request: StudyPlanRequest, now: datetime) -> str:
    return render_prompt("study_plan", available_hours=f"{request.available_hours:g}", goal=request.goal)


def schedule_days(start: t.Optional[datetime], end: t.Optional[datetime]) -> int:
    """Days between two dates, at least 1; two weeks when either is missing."""
    if start is None or end is None:
        return ANALYSIS_DEFAULT_DAYS
    delta = abs(end - start)
    return max(math.ceil(delta.total_seconds() / 86400), 1)


def build_analysis_prompt(request: AnalysisRequest, now: datetime) -> str:
    text = request.text[:ANALYSIS_CONTENT_LIMIT]
    if len(request.text) > ANALYSIS_CONTENT_LIMIT:
        text += " ...(content truncated)"

    if request.include_schedule:
        start = (request.schedule_start_date or now).date().isoformat()
        end = (
            request.schedule_end_date.date().isoformat()
            if request.schedule_end_date else "two weeks after the start date"
        )
        schedule_instructions = (
            "For the schedule:\n"
            f"- Distribute {request.total_study_hours:g} hours across "
            f"{schedule_days(request.schedule_start_date, request.schedule_end_date)} days\n"
            f"- Start date: {start}\n"
            f"- End date: {end}\n"
            "- Balance daily workload\n"
            "- Include review sessions"
        )
    else:
        schedule_instructions = "Skip the recommendedSchedule array."

    return render_prompt(
        "analysis",
        summary_length=request.summary_length,
        summary_words=ANALYSIS_SUMMARY_WORDS.get(request.summary_length, 200),
        flashcard_count=request.flashcard_count,
        quiz_count=request.quiz_count,
        difficulty=request.difficulty,
        schedule_instructions=schedule_instructions,
        text=text,
    )


# -----------------------------
# Result compilers
# -----------------------------

def _degradation(result: interpreter.Interpretation) -> dict[str, t.Any]:
    if result.strict:
        return {"degraded": False, "notice": None}
    return {"degraded": True, "notice": result.notice}


def compile_schedule(request: ScheduleRequest, text: str, context: CompileContext) -> ScheduleResponse:
    result = interpreter.interpret_schedule(text, context.now)
    sessions = result.value.sessions

    return ScheduleResponse(
        schedule=sessions,
        metrics=heuristics.compute_metrics(sessions),
        suggested_start_date=context.now,
        completion_date=heuristics.completion_date(sessions, context.now),
        suggestions=result.value.suggestions or list(DEFAULT_SUGGESTIONS),
        model=context.model,
        generated_at=context.now,
        processing_time_ms=context.processing_time_ms,
        **_degradation(result),
    )


def compile_summary(request: SummaryRequest, text: str, context: CompileContext) -> Summary:
    result = interpreter.interpret_summary(text)
    draft = result.value
    material = request.material
    content = draft.content or text

    return Summary(
        id=f"summary_{uuid.uuid4().hex}",
        title=draft.title or f"Summary: {material.title}",
        content=content,
        key_points=draft.key_points,
        tags=draft.tags or heuristics.extract_tags(text, material.category),
        difficulty=draft.difficulty or request.difficulty or "intermediate",
        estimated_read_time=heuristics.estimate_read_time(content),
        material_id=material.id,
        created_at=context.now,
        original_length=material.length,
        summary_length=len(content),
        compression_ratio=round(len(content) / material.length, 2),
        model=context.model,
        processing_time_ms=context.processing_time_ms,
        **_degradation(result),
    )


def compile_flashcards(request: TopicRequest, text: str, context: CompileContext) -> ListResult:
    result = interpreter.interpret_flashcards(text)
    return ListResult(items=result.value, **_degradation(result))


def compile_quiz(request: TopicRequest, text: str, context: CompileContext) -> ListResult:
    result = interpreter.interpret_quiz(text)
    return ListResult(items=result.value, **_degradation(result))


def compile_string_list(request: t.Any, text: str, context: CompileContext) -> ListResult:
    result = interpreter.interpret_string_list(text)
    return ListResult(items=result.value, **_degradation(result))


def compile_analysis(request: AnalysisRequest, text: str, context: CompileContext) -> LearningOutput:
    result = interpreter.interpret_learning_output(text)
    output = replace(result.value, **_degradation(result))
    if not request.include_schedule:
        output = replace(output, recommended_schedule=[])
    return output
