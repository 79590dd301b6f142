# -*- coding: utf-8 -*-
from __future__ import annotations

import typing as t
from dataclasses import dataclass
from datetime import datetime

from academic_planner import pipelines
from academic_planner.pipelines import CompileContext
from orchestrator.generation import GenerationOptions
from orchestrator.models import JobType


@dataclass(frozen=True)
class Pipeline:
    """Everything the orchestrator needs to run one job type."""
    job_type: JobType
    description: str
    build_prompt: t.Callable[[t.Any, datetime], str]
    compile_result: t.Callable[[t.Any, str, CompileContext], t.Any]
    options: t.Callable[[t.Any], GenerationOptions] = pipelines.default_options
    system_text: t.Optional[str] = None


# Pipeline registry mapping job types to their prompt, options and compiler
PIPELINE_REGISTRY: dict[JobType, Pipeline] = {
    JobType.SUMMARIZATION: Pipeline(
        job_type=JobType.SUMMARIZATION,
        description="Summarize one study material",
        build_prompt=pipelines.build_summary_prompt,
        compile_result=pipelines.compile_summary,
        options=pipelines.summary_options,
    ),
    JobType.SCHEDULING: Pipeline(
        job_type=JobType.SCHEDULING,
        description="Plan study sessions for a set of materials",
        build_prompt=pipelines.build_schedule_prompt,
        compile_result=pipelines.compile_schedule,
        options=pipelines.schedule_options,
    ),
    JobType.FLASHCARDS: Pipeline(
        job_type=JobType.FLASHCARDS,
        description="Generate flashcards for a topic",
        build_prompt=pipelines.build_flashcards_prompt,
        compile_result=pipelines.compile_flashcards,
        system_text=(
            "You are an expert educator creating flashcards for effective learning. "
            "Make questions that promote understanding and retention."
        ),
    ),
    JobType.QUIZ: Pipeline(
        job_type=JobType.QUIZ,
        description="Generate a multiple choice quiz for a topic",
        build_prompt=pipelines.build_quiz_prompt,
        compile_result=pipelines.compile_quiz,
        system_text=(
            "You are an expert quiz creator. "
            "Make challenging but fair questions that test student understanding."
        ),
    ),
    JobType.NOTES: Pipeline(
        job_type=JobType.NOTES,
        description="Extract bullet-point study notes from content",
        build_prompt=pipelines.build_notes_prompt,
        compile_result=pipelines.compile_string_list,
        system_text=(
            "You are an expert at extracting key information and creating study notes. "
            "Focus on the most important concepts that students need to remember."
        ),
    ),
    JobType.STUDY_PLAN: Pipeline(
        job_type=JobType.STUDY_PLAN,
        description="Recommend a study plan for a learning goal",
        build_prompt=pipelines.build_study_plan_prompt,
        compile_result=pipelines.compile_string_list,
        system_text=(
            "You are an expert study planner. "
            "Create realistic, balanced plans that optimize learning outcomes."
        ),
    ),
    JobType.ANALYSIS: Pipeline(
        job_type=JobType.ANALYSIS,
        description="Analyze content into summary, notes, flashcards, quiz and schedule",
        build_prompt=pipelines.build_analysis_prompt,
        compile_result=pipelines.compile_analysis,
        options=pipelines.analysis_options,
        system_text=(
            "You are an expert educational content analyzer and learning specialist. "
            "Create comprehensive, high-quality learning materials that help students "
            "understand and retain information effectively. Always return valid JSON."
        ),
    ),
}


def get_pipeline(job_type: JobType) -> Pipeline:
    """Return the pipeline registered for `job_type`."""
    pipeline = PIPELINE_REGISTRY.get(job_type)
    if pipeline is None:
        raise KeyError(
            f"No pipeline registered for job type '{job_type.value}'. "
            f"Available: {[jt.value for jt in PIPELINE_REGISTRY]}"
        )
    return pipeline


def list_pipelines() -> list[dict[str, str]]:
    """Describe every registered pipeline."""
    return [
        {"type": job_type.value, "description": pipeline.description}
        for job_type, pipeline in PIPELINE_REGISTRY.items()
    ]
