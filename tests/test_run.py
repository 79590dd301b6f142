# -*- coding: utf-8 -*-
"""Tests for the command-line runner."""
import json

from click.testing import CliRunner

from orchestrator import run
from orchestrator.models import Job, JobError, JobStatus, JobType
from conftest import FIXED_NOW


def test_list_shows_every_job_type() -> None:
    result = CliRunner().invoke(run.main, ["--list"])

    assert result.exit_code == 0
    for job_type in JobType:
        assert job_type.value in result.output


def test_missing_api_key_exits(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    payload = tmp_path / "payload.json"
    payload.write_text(json.dumps({"content": "Cells"}))

    result = CliRunner().invoke(run.main, ["notes", str(payload)])

    assert result.exit_code == 1


def test_invalid_payload_file_exits(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    payload = tmp_path / "payload.json"
    payload.write_text("[1, 2, 3]")

    result = CliRunner().invoke(run.main, ["notes", str(payload)])

    assert result.exit_code == 1


def test_runs_job_and_prints_result(tmp_path, monkeypatch) -> None:
    """A completed job is printed as JSON."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    payload = tmp_path / "payload.json"
    payload.write_text(json.dumps({"content": "Cells"}))
    job = Job(
        id="notes_1", type=JobType.NOTES, status=JobStatus.COMPLETED, progress=100,
        started_at=FIXED_NOW, completed_at=FIXED_NOW, result={"items": ["Cells divide"]},
    )

    async def fake_run_job(*args, **kwargs) -> Job:
        return job

    monkeypatch.setattr(run, "run_job", fake_run_job)
    result = CliRunner().invoke(run.main, ["notes", str(payload)])

    assert result.exit_code == 0
    assert "Cells divide" in result.output


def test_failed_job_exits_with_error(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    payload = tmp_path / "payload.json"
    payload.write_text(json.dumps({"content": "Cells"}))
    job = Job(
        id="notes_1", type=JobType.NOTES, status=JobStatus.FAILED, progress=10, started_at=FIXED_NOW,
        completed_at=FIXED_NOW, error=JobError(code="GENERATION_ERROR", message="down", timestamp=FIXED_NOW),
    )

    async def fake_run_job(*args, **kwargs) -> Job:
        return job

    monkeypatch.setattr(run, "run_job", fake_run_job)
    result = CliRunner().invoke(run.main, ["notes", str(payload)])

    assert result.exit_code == 1


def test_non_positive_interval_is_a_usage_error(tmp_path, monkeypatch) -> None:
    """A zero or negative polling interval is rejected before anything runs."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    payload = tmp_path / "payload.json"
    payload.write_text(json.dumps({"content": "Cells"}))

    for interval in ("0", "-1"):
        result = CliRunner().invoke(run.main, ["notes", str(payload), "--interval", interval])

        assert result.exit_code == 2
        assert "--interval" in result.output
