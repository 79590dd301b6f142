"""Exception types raised by the job orchestration core."""
from __future__ import annotations

import typing as t


# Error codes recorded on failed jobs
GENERATION_ERROR = "GENERATION_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"


class ValidationError(ValueError):
    """A submit payload is malformed; raised before any job is created."""

    def __init__(self, message: str, field: t.Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class GenerationError(RuntimeError):
    """The generation backend failed after the fallback policy was exhausted."""

    def __init__(
        self,
        message: str,
        cause: t.Optional[BaseException] = None,
        models: t.Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.models = list(models)


class PollTimeoutError(TimeoutError):
    """A caller-side polling loop ran out of attempts before the job finished."""

    def __init__(self, job_id: str, attempts: int) -> None:
        super().__init__(f"Job '{job_id}' did not finish after {attempts} poll(s)")
        self.job_id = job_id
        self.attempts = attempts
