"""
Data models for tracking asynchronous AI jobs.

This module contains the dataclasses used to represent submitted jobs, their
lifecycle state and the error recorded when a job fails.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import typing as t


class JobType(Enum):
    """Kind of work a job performs."""
    SUMMARIZATION = "summarization"
    SCHEDULING = "scheduling"
    FLASHCARDS = "flashcards"
    QUIZ = "quiz"
    NOTES = "notes"
    STUDY_PLAN = "study-plan"
    ANALYSIS = "analysis"

    @property
    def id_prefix(self) -> str:
        """Prefix used when allocating job ids of this type."""
        return self.value.replace("-", "_")


class JobStatus(Enum):
    """Lifecycle state of a job."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


@dataclass
class JobError:
    """Failure detail kept on a failed job for later inspection."""
    code: str
    message: str
    timestamp: datetime


@dataclass
class Job:
    """Represents one tracked unit of asynchronous work."""
    id: str
    type: JobType
    status: JobStatus
    progress: int
    started_at: datetime
    completed_at: t.Optional[datetime] = None
    result: t.Any = None
    error: t.Optional[JobError] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
