"""
MCP wrapper for the study service.

This module exposes the study job operations as MCP tool functions that make
HTTP calls to the distributed study service, converting between plain tool
arguments and the Pydantic models used by the REST API.
"""
from __future__ import annotations

import os
import typing as t

import httpx
from fastmcp import FastMCP

from services.shared.models import (
    ActiveJobsResponse,
    JobStatusResponse,
    SubmitJobRequest,
    SubmitJobResponse,
)


mcp = FastMCP("StudyMCPWrapper")

# Service URL - configurable via environment variable
STUDY_SERVICE_URL = os.getenv("STUDY_SERVICE_URL", "http://localhost:8004")

# Timeout settings (in seconds); generation runs in the background so every call is fast
STANDARD_TIMEOUT = 30.0


def _http_client() -> httpx.Client:
    return httpx.Client(base_url=STUDY_SERVICE_URL, timeout=STANDARD_TIMEOUT)


def _request(method: str, path: str, **kwargs: t.Any) -> dict[str, t.Any]:
    """Call the study service and return the decoded JSON body.

    Raises:
        ValueError: If the service rejected the request (HTTP 400 or 404)
        RuntimeError: On timeouts, other HTTP errors or connection failures
    """
    try:
        with _http_client() as client:
            response = client.request(method, path, **kwargs)
            response.raise_for_status()
        return response.json()

    except httpx.TimeoutException as e:
        raise RuntimeError(f"Study service call timed out after {STANDARD_TIMEOUT} seconds") from e
    except httpx.HTTPStatusError as e:
        if e.response.status_code in (400, 404):
            raise ValueError(e.response.json().get("detail", e.response.text)) from e
        raise RuntimeError(
            f"HTTP error from study service: {e.response.status_code} {e.response.text}"
        ) from e
    except httpx.HTTPError as e:
        raise RuntimeError(f"Error calling study service: {str(e)}") from e


def _submit_job(job_type: str, payload: dict[str, t.Any]) -> SubmitJobResponse:
    """
    Submit a study job.

    The job runs in the background on the study service; use the returned
    job id with `_get_job_status` to follow it.
    """
    request = SubmitJobRequest(type=job_type, payload=payload)
    return SubmitJobResponse(**_request("POST", "/jobs", json=request.model_dump()))


def _get_job_status(job_id: str) -> JobStatusResponse:
    """Get the status of a job, with its result or error once finished."""
    return JobStatusResponse(**_request("GET", f"/jobs/{job_id}"))


def _list_active_jobs() -> list[JobStatusResponse]:
    """List jobs that are still pending or processing."""
    return ActiveJobsResponse(**_request("GET", "/jobs")).jobs


@mcp.tool()
def submit_job(job_type: str, payload: dict[str, t.Any]) -> SubmitJobResponse:
    """Submit a study job (summarization, scheduling, flashcards, quiz, notes, study-plan, analysis)."""
    return _submit_job(job_type, payload)


@mcp.tool()
def get_job_status(job_id: str) -> JobStatusResponse:
    """Get the status and result of a study job."""
    return _get_job_status(job_id)


@mcp.tool()
def list_active_jobs() -> list[JobStatusResponse]:
    """List study jobs that are still running."""
    return _list_active_jobs()
