"""
Shared Pydantic models for REST API serialization.

This module contains Pydantic equivalents of the job dataclasses, ensuring
consistent JSON serialization between the study service and its MCP wrapper.
"""
from __future__ import annotations

import typing as t
from datetime import datetime

from pydantic import BaseModel, Field


# Type literals for commonly used values
JobTypeName = t.Literal[
    "summarization",
    "scheduling",
    "flashcards",
    "quiz",
    "notes",
    "study-plan",
    "analysis",
]
JobStatusName = t.Literal["pending", "processing", "completed", "failed"]


class SubmitJobRequest(BaseModel):
    """Request model for submitting a job.

    `type` is checked by the orchestrator so an unknown job type is reported
    the same way as any other invalid payload.
    """
    type: str
    payload: dict[str, t.Any] = Field(default_factory=dict)


class SubmitJobResponse(BaseModel):
    """Response model for an accepted job."""
    job_id: str
    status: JobStatusName = "pending"


class JobErrorModel(BaseModel):
    """Failure detail of a failed job."""
    code: str
    message: str
    timestamp: datetime


class JobStatusResponse(BaseModel):
    """
    Snapshot of one job.

    `result` is the job's result record rendered as plain JSON; its shape
    depends on the job type.
    """
    id: str
    type: JobTypeName
    status: JobStatusName
    progress: int = Field(ge=0, le=100)
    started_at: datetime
    completed_at: t.Optional[datetime] = None
    result: t.Any = None
    error: t.Optional[JobErrorModel] = None


class ActiveJobsResponse(BaseModel):
    """Response model for the list of pending and processing jobs."""
    jobs: list[JobStatusResponse] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Body of a 4xx response raised by the service."""
    detail: str
