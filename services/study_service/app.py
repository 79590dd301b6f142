"""
FastAPI service for study assistant jobs.

This service exposes the job orchestrator as REST API endpoints. Generation
runs in the background, so submitting returns immediately with a job id and
callers poll the job until it is completed or failed.
"""
from __future__ import annotations

import logging
import os
import typing as t
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status

from orchestrator.errors import ValidationError
from orchestrator.executor import Orchestrator
from orchestrator.generation import GenerationBackend, GenerationClient, get_openai_client
from orchestrator.jobs import JobRegistry
from orchestrator.models import Job
from orchestrator.utils import to_jsonable
from services.shared.models import (
    ActiveJobsResponse,
    ErrorResponse,
    JobStatusResponse,
    SubmitJobRequest,
    SubmitJobResponse,
)

logger = logging.getLogger(__name__)


def _job_response(job: Job) -> JobStatusResponse:
    return JobStatusResponse.model_validate(to_jsonable(job))


def _orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


def create_app(
    backend: t.Optional[GenerationBackend] = None,
    registry: t.Optional[JobRegistry] = None,
) -> FastAPI:
    """Build the study service.

    Args:
        backend: Generation backend to use. Defaults to the OpenAI client,
            which requires OPENAI_API_KEY at startup.
        registry: Job registry to use. Defaults to a fresh one.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize resources on startup and cleanup on shutdown."""
        job_backend = backend
        if job_backend is None:
            if not os.getenv("OPENAI_API_KEY"):
                raise RuntimeError("OPENAI_API_KEY environment variable is not set.")
            job_backend = GenerationClient(get_openai_client())

        job_registry = registry if registry is not None else JobRegistry()
        app.state.orchestrator = Orchestrator(job_registry, job_backend)
        job_registry.start_sweeper()
        logger.info("Study service started")

        yield

        await job_registry.stop_sweeper()
        await app.state.orchestrator.drain()

    app = FastAPI(
        title="Study Assistant Service",
        description="REST API for asynchronous AI study jobs: summaries, schedules, flashcards and more",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint for container orchestration."""
        return {"status": "healthy", "service": "study-service"}

    @app.get("/health/backend", responses={503: {"model": ErrorResponse}})
    async def backend_health_check(request: Request):
        """Check that the generation backend answers a tiny prompt."""
        if not await _orchestrator(request).backend.check_connection():
            raise HTTPException(status_code=503, detail="Generation backend is not responding")
        return {"status": "healthy", "service": "study-service", "backend": "connected"}

    @app.post(
        "/jobs",
        response_model=SubmitJobResponse,
        status_code=status.HTTP_202_ACCEPTED,
        responses={400: {"model": ErrorResponse}},
    )
    async def submit_job(body: SubmitJobRequest, request: Request) -> SubmitJobResponse:
        """
        Submit a job for background processing.

        Returns as soon as the payload is validated; poll `GET /jobs/{job_id}`
        for the result.
        """
        try:
            job_id = _orchestrator(request).submit(body.type, body.payload)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return SubmitJobResponse(job_id=job_id, status="pending")

    @app.get("/jobs", response_model=ActiveJobsResponse)
    async def list_active_jobs(request: Request) -> ActiveJobsResponse:
        """List jobs that are still pending or processing."""
        jobs = _orchestrator(request).registry.list_active()
        return ActiveJobsResponse(jobs=[_job_response(job) for job in jobs])

    @app.get("/jobs/{job_id}", response_model=JobStatusResponse, responses={404: {"model": ErrorResponse}})
    async def get_job_status(job_id: str, request: Request) -> JobStatusResponse:
        """Get a job's status, and its result or error once it is finished."""
        job = _orchestrator(request).registry.status(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail=f"Job '{job_id}' not found")
        return _job_response(job)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8004)
