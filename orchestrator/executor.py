"""Execution engine for AI jobs.

This module runs submitted jobs: each one is validated up front, registered,
and then driven to completion by its own asyncio task that builds the prompt,
calls the generation backend, interprets the response and records the outcome
in the job registry.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
import typing as t
from dataclasses import replace
from datetime import datetime

from academic_planner.heuristics import adjust_for_feedback
from academic_planner.models import ScheduledSession
from academic_planner.pipelines import CompileContext
from academic_planner.requests import JobRequest, ScheduleRequest, parse_job_type, parse_request
from orchestrator.errors import GENERATION_ERROR, INTERNAL_ERROR, GenerationError, ValidationError
from orchestrator.generation import ChunkCallback, GenerationBackend, GenerationOptions
from orchestrator.jobs import JobRegistry, utc_now
from orchestrator.models import JobType
from registry import Pipeline, get_pipeline

logger = logging.getLogger(__name__)

# Progress checkpoints reported while a job runs
PROMPT_READY_PROGRESS = 10
STREAM_PROGRESS_STEP = 5
GENERATED_PROGRESS = 90


class Orchestrator:
    """Submits jobs and runs them against a generation backend.

    Args:
        registry: Where job state is recorded
        backend: Anything satisfying the `GenerationBackend` protocol
        model: Optional model that overrides every pipeline's default
        clock: Callable returning the current aware datetime
        max_concurrent: Optional limit on jobs generating at the same time.
            If None (default), every job runs as soon as it is submitted.
    """

    def __init__(
        self,
        registry: JobRegistry,
        backend: GenerationBackend,
        *,
        model: t.Optional[str] = None,
        clock: t.Callable[[], datetime] = utc_now,
        max_concurrent: t.Optional[int] = None,
    ) -> None:
        self.registry = registry
        self.backend = backend
        self.model = model
        self._clock = clock
        self._semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None
        self._tasks: set[asyncio.Task] = set()

    def submit(
        self,
        job_type: t.Union[JobType, str],
        payload: t.Mapping[str, t.Any],
        on_chunk: t.Optional[ChunkCallback] = None,
    ) -> str:
        """Validate a payload and start a job for it.

        Must be called with an event loop running. Returns as soon as the job
        task is scheduled; generation happens in the background.

        Args:
            job_type: A `JobType` or its string value
            payload: JSON-like request body for the job type
            on_chunk: If given, the job streams and this is called with each
                generated fragment

        Returns:
            The new job id

        Raises:
            ValidationError: If the payload is malformed (no job is created)
            RuntimeError: If no event loop is running
        """
        job_type = parse_job_type(job_type)
        request = parse_request(job_type, payload)
        return self.submit_request(job_type, request, on_chunk)

    def submit_request(
        self,
        job_type: JobType,
        request: JobRequest,
        on_chunk: t.Optional[ChunkCallback] = None,
    ) -> str:
        """Start a job for an already validated request."""
        loop = asyncio.get_running_loop()
        job_id = self.registry.create(job_type)
        task = loop.create_task(self._run(job_id, job_type, request, on_chunk), name=job_id)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job_id

    def submit_reschedule(
        self,
        payload: t.Mapping[str, t.Any],
        completed_sessions: t.Sequence[ScheduledSession],
        feedback: t.Sequence[t.Mapping[str, t.Any]] = (),
    ) -> str:
        """Reschedule the materials a learner has not started finishing yet.

        Materials with at least one completed session are dropped, and the
        preferred session length is adjusted from the feedback ratings.

        Args:
            payload: The original scheduling payload
            completed_sessions: Sessions from the previous schedule
            feedback: Mappings with a numeric "rating" (1-5) per session

        Returns:
            The id of the new scheduling job

        Raises:
            ValidationError: If the payload or feedback is malformed, or no
                material is left to schedule
        """
        request = t.cast(ScheduleRequest, parse_request(JobType.SCHEDULING, payload))

        finished = {s.material_id for s in completed_sessions if s.completed}
        materials = [m for m in request.materials if m.id not in finished]
        if not materials:
            raise ValidationError("No materials left to schedule", field="materials")

        ratings = []
        for item in feedback:
            rating = item.get("rating") if isinstance(item, t.Mapping) else None
            if isinstance(rating, bool) or not isinstance(rating, (int, float)):
                raise ValidationError("Every feedback entry needs a numeric 'rating'", field="feedback")
            ratings.append(float(rating))

        updated = replace(
            request,
            materials=materials,
            preferences=adjust_for_feedback(request.preferences, ratings),
            existing_schedule=list(completed_sessions),
        )
        logger.info(
            "Rescheduling %d of %d material(s) with session length %d min",
            len(materials), len(request.materials), updated.preferences.preferred_session_length,
        )
        return self.submit_request(JobType.SCHEDULING, updated)

    async def drain(self) -> None:
        """Wait until every in-flight job task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def _run(
        self,
        job_id: str,
        job_type: JobType,
        request: JobRequest,
        on_chunk: t.Optional[ChunkCallback],
    ) -> None:
        """Drive one job to a terminal state. Never raises."""
        # Acquire semaphore if concurrency limiting is enabled
        if self._semaphore:
            await self._semaphore.acquire()

        try:
            self.registry.mark_processing(job_id)
            pipeline = get_pipeline(job_type)

            prompt = pipeline.build_prompt(request, self._clock())
            options = pipeline.options(request)
            if self.model:
                options = replace(options, model=self.model)
            self.registry.set_progress(job_id, PROMPT_READY_PROGRESS)

            started = time.monotonic()
            text = await self._generate(job_id, pipeline, prompt, options, on_chunk)
            elapsed_ms = int((time.monotonic() - started) * 1000)
            self.registry.set_progress(job_id, GENERATED_PROGRESS)

            context = CompileContext(now=self._clock(), model=options.model, processing_time_ms=elapsed_ms)
            result = pipeline.compile_result(request, text, context)
            self.registry.complete(job_id, result)

        except GenerationError as e:
            self.registry.fail(job_id, GENERATION_ERROR, str(e))
        except Exception as e:
            logger.exception("Job %s failed with an unexpected error", job_id)
            self.registry.fail(job_id, INTERNAL_ERROR, f"{type(e).__name__}: {e}")
        finally:
            # Release semaphore if we acquired it
            if self._semaphore:
                self._semaphore.release()

    async def _generate(
        self,
        job_id: str,
        pipeline: Pipeline,
        prompt: str,
        options: GenerationOptions,
        on_chunk: t.Optional[ChunkCallback],
    ) -> str:
        if on_chunk is None:
            return await self.backend.generate(prompt, pipeline.system_text, options)

        progress = PROMPT_READY_PROGRESS

        async def forward(chunk: str) -> None:
            nonlocal progress
            progress = min(progress + STREAM_PROGRESS_STEP, GENERATED_PROGRESS)
            self.registry.set_progress(job_id, progress)
            outcome = on_chunk(chunk)
            if inspect.isawaitable(outcome):
                await outcome

        return await self.backend.generate_stream(
            prompt, pipeline.system_text, on_chunk=forward, options=options
        )
