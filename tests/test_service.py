# -*- coding: utf-8 -*-
"""Tests for the study service REST API.

The service runs in-process through FastAPI's TestClient with a fake
generation backend, so no network or API key is needed.
"""
import asyncio
import time

from fastapi.testclient import TestClient

from conftest import FakeBackend
from orchestrator.jobs import JobRegistry
from services.study_service.app import create_app


def wait_until_finished(client: TestClient, job_id: str, attempts: int = 100) -> dict:
    for _ in range(attempts):
        body = client.get(f"/jobs/{job_id}").json()
        if body["status"] in ("completed", "failed"):
            return body
        time.sleep(0.01)
    raise AssertionError(f"Job {job_id} did not finish")


def test_health_check() -> None:
    with TestClient(create_app(backend=FakeBackend("[]"))) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "study-service"}


def test_backend_health_check() -> None:
    """The backend check reports 503 when the generation backend is down."""
    with TestClient(create_app(backend=FakeBackend("Hello"))) as client:
        healthy = client.get("/health/backend")
    with TestClient(create_app(backend=FakeBackend(ConnectionError("down")))) as client:
        broken = client.get("/health/backend")

    assert healthy.status_code == 200
    assert healthy.json()["backend"] == "connected"
    assert broken.status_code == 503
    assert "not responding" in broken.json()["detail"]


def test_submit_and_poll_summary(summary_payload) -> None:
    """Submitting returns 202 with a job id; polling yields the compiled summary."""
    backend = FakeBackend("# Light\n- Chlorophyll absorbs light\n- Water is split")

    with TestClient(create_app(backend=backend, registry=JobRegistry())) as client:
        response = client.post("/jobs", json={"type": "summarization", "payload": summary_payload})
        assert response.status_code == 202
        job_id = response.json()["job_id"]
        assert job_id.startswith("summarization_")
        assert response.json()["status"] == "pending"

        body = wait_until_finished(client, job_id)

    assert body["status"] == "completed"
    assert body["progress"] == 100
    assert body["error"] is None
    assert body["result"]["title"] == "Light"
    assert body["result"]["key_points"] == ["Chlorophyll absorbs light", "Water is split"]
    assert body["result"]["degraded"] is True


def test_failed_generation_is_reported(schedule_payload) -> None:
    backend = FakeBackend(ConnectionError("network down"))

    with TestClient(create_app(backend=backend)) as client:
        job_id = client.post("/jobs", json={"type": "scheduling", "payload": schedule_payload}).json()["job_id"]
        body = wait_until_finished(client, job_id)

    assert body["status"] == "failed"
    assert body["result"] is None
    assert body["error"]["code"] == "INTERNAL_ERROR"
    assert "network down" in body["error"]["message"]


def test_invalid_payload_is_rejected() -> None:
    registry = JobRegistry()

    with TestClient(create_app(backend=FakeBackend("[]"), registry=registry)) as client:
        bad_count = client.post("/jobs", json={"type": "quiz", "payload": {"topic": "Cells", "count": 0}})
        unknown = client.post("/jobs", json={"type": "homework", "payload": {}})

    assert bad_count.status_code == 400
    assert "count" in bad_count.json()["detail"]
    assert unknown.status_code == 400
    assert len(registry) == 0


def test_non_finite_number_in_body_is_rejected() -> None:
    """JSON bodies carrying Infinity get a 400, not a server error."""
    registry = JobRegistry()
    body = '{"type": "quiz", "payload": {"topic": "Cells", "count": Infinity}}'

    with TestClient(create_app(backend=FakeBackend("[]"), registry=registry)) as client:
        response = client.post("/jobs", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert "finite" in response.json()["detail"]
    assert len(registry) == 0


def test_unknown_job_returns_404() -> None:
    with TestClient(create_app(backend=FakeBackend("[]"))) as client:
        response = client.get("/jobs/quiz_does_not_exist")

    assert response.status_code == 404
    assert "not found" in response.json()["detail"]


def test_active_jobs_are_listed() -> None:
    """Running jobs show up in the active listing; finished ones drop out."""

    class SlowBackend(FakeBackend):
        async def generate(self, prompt, system_text=None, options=None) -> str:
            await asyncio.sleep(0.3)
            return '["note"]'

    with TestClient(create_app(backend=SlowBackend())) as client:
        job_id = client.post("/jobs", json={"type": "notes", "payload": {"content": "Cells"}}).json()["job_id"]

        active = client.get("/jobs").json()["jobs"]
        assert [job["id"] for job in active] == [job_id]
        assert active[0]["status"] in ("pending", "processing")

        wait_until_finished(client, job_id)
        assert client.get("/jobs").json()["jobs"] == []
