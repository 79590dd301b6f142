# -*- coding: utf-8 -*-
"""Tests for the MCP wrapper's HTTP calls and the gateway's local tools.

The wrapper's HTTP client is swapped for one backed by `httpx.MockTransport`,
so requests and error mapping are checked without a running study service.
"""
import json

import httpx
import pytest

from mcp_gateway import server as gateway
from mcp_wrappers.study import mcp_service


JOB_BODY = {
    "id": "notes_abc",
    "type": "notes",
    "status": "completed",
    "progress": 100,
    "started_at": "2025-01-13T09:00:00+00:00",
    "completed_at": "2025-01-13T09:00:02+00:00",
    "result": {"items": ["Cells divide"], "degraded": False, "notice": None},
    "error": None,
}


@pytest.fixture
def service(monkeypatch):
    """Route wrapper calls to a handler; returns the list of seen requests."""
    seen: list[httpx.Request] = []
    responses: dict[tuple[str, str], httpx.Response] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return responses.get(
            (request.method, request.url.path),
            httpx.Response(404, json={"detail": f"Job '{request.url.path.rsplit('/', 1)[-1]}' not found"}),
        )

    def client() -> httpx.Client:
        return httpx.Client(base_url="http://study.test", transport=httpx.MockTransport(handler))

    monkeypatch.setattr(mcp_service, "_http_client", client)
    return seen, responses


def test_submit_job_posts_type_and_payload(service) -> None:
    seen, responses = service
    responses[("POST", "/jobs")] = httpx.Response(202, json={"job_id": "notes_abc", "status": "pending"})

    response = mcp_service._submit_job("notes", {"content": "Cells"})

    assert response.job_id == "notes_abc"
    assert response.status == "pending"
    assert json.loads(seen[0].content) == {"type": "notes", "payload": {"content": "Cells"}}


def test_get_job_status_parses_result(service) -> None:
    _, responses = service
    responses[("GET", "/jobs/notes_abc")] = httpx.Response(200, json=JOB_BODY)

    job = mcp_service._get_job_status("notes_abc")

    assert job.status == "completed"
    assert job.result["items"] == ["Cells divide"]
    assert job.completed_at.year == 2025


def test_list_active_jobs(service) -> None:
    _, responses = service
    running = {**JOB_BODY, "status": "processing", "progress": 10, "completed_at": None, "result": None}
    responses[("GET", "/jobs")] = httpx.Response(200, json={"jobs": [running]})

    jobs = mcp_service._list_active_jobs()

    assert [job.id for job in jobs] == ["notes_abc"]
    assert jobs[0].progress == 10


def test_rejections_become_value_errors(service) -> None:
    _, responses = service
    responses[("POST", "/jobs")] = httpx.Response(400, json={"detail": "'count' must be at most 20"})

    with pytest.raises(ValueError, match="at most 20"):
        mcp_service._submit_job("quiz", {"topic": "Cells", "count": 50})

    with pytest.raises(ValueError, match="not found"):
        mcp_service._get_job_status("quiz_missing")


def test_server_errors_become_runtime_errors(service) -> None:
    _, responses = service
    responses[("GET", "/jobs")] = httpx.Response(500, text="boom")

    with pytest.raises(RuntimeError, match="500"):
        mcp_service._list_active_jobs()


def test_connection_failure_becomes_runtime_error(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    monkeypatch.setattr(
        mcp_service, "_http_client",
        lambda: httpx.Client(base_url="http://study.test", transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(RuntimeError, match="connection refused"):
        mcp_service._list_active_jobs()


def test_gateway_estimates_study_time_locally() -> None:
    """Estimates come from the heuristics engine without touching the service."""
    estimate = gateway._estimate_study_time([
        {"id": "m1", "title": "Notes", "content": "a" * 5000},
        {"id": "m2", "title": "Lecture", "content": "b" * 10_000, "category": "video"},
    ])

    assert estimate == {"materials": {"m1": 10, "m2": 15}, "total_minutes": 25}


def test_gateway_rejects_malformed_material() -> None:
    with pytest.raises(ValueError):
        gateway._estimate_study_time([{"id": "m1", "content": "abc"}])


def test_gateway_service_status() -> None:
    status = gateway.get_service_status()

    assert status["study_service"] == mcp_service.STUDY_SERVICE_URL
    assert status["gateway_status"] == "running"
