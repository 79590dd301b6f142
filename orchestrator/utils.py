"""Utility functions for the orchestrator."""
from __future__ import annotations

import asyncio
import dataclasses
import json
import typing as t
from datetime import datetime
from enum import Enum
from pathlib import Path

from rich.console import Console

from orchestrator.errors import PollTimeoutError
from orchestrator.jobs import JobRegistry
from orchestrator.models import Job

console = Console()
err_console = Console(stderr=True)


def load_payload(path_str: str) -> dict[str, t.Any]:
    """Read a job payload from a JSON file.

    Args:
        path_str: Path to a JSON file holding one object

    Returns:
        The decoded payload

    Raises:
        SystemExit: If the file is missing or does not hold a JSON object
    """
    path = Path(path_str)

    if not path.is_file():
        err_console.print(f"[red]Error:[/red] Payload file '{path_str}' does not exist.")
        raise SystemExit(1)

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        err_console.print(f"[red]Error:[/red] Payload file '{path_str}' is not valid JSON: {e}")
        raise SystemExit(1)

    if not isinstance(payload, dict):
        err_console.print(f"[red]Error:[/red] Payload file '{path_str}' must hold a JSON object.")
        raise SystemExit(1)

    return payload


async def wait_for_job(
    registry: JobRegistry,
    job_id: str,
    interval: float = 1.0,
    max_attempts: int = 60,
    on_poll: t.Optional[t.Callable[[Job], None]] = None,
) -> Job:
    """Poll a job at a fixed interval until it is completed or failed.

    Polling never touches the job itself; giving up leaves it running.

    Args:
        registry: Registry holding the job
        job_id: Job to wait for
        interval: Seconds between polls
        max_attempts: Polls before giving up
        on_poll: Optional callback receiving every snapshot

    Returns:
        The terminal job snapshot

    Raises:
        KeyError: If the job is unknown (never created, or already swept)
        PollTimeoutError: If the job is still running after `max_attempts` polls
    """
    for attempt in range(1, max_attempts + 1):
        job = registry.status(job_id)
        if job is None:
            raise KeyError(f"Job '{job_id}' not found")
        if on_poll:
            on_poll(job)
        if job.is_terminal:
            return job
        if attempt < max_attempts:
            await asyncio.sleep(interval)

    raise PollTimeoutError(job_id, max_attempts)


def to_jsonable(value: t.Any) -> t.Any:
    """Convert dataclasses, enums and datetimes into JSON-compatible values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value
