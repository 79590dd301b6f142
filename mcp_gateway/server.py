"""
MCP Gateway Server - Unified entry point for the study assistant.

This server registers the study job tools from the MCP wrapper, which route
calls to the distributed study service via HTTP, alongside local tools that
need no generation backend.
"""
from __future__ import annotations

import typing as t

from fastmcp import FastMCP

# Import the raw functions from the MCP wrapper (not the decorated versions)
# This allows us to register them with our own unified FastMCP instance
from mcp_wrappers.study.mcp_service import (
    _get_job_status, _list_active_jobs, _submit_job,
    STUDY_SERVICE_URL,
)
from academic_planner.heuristics import estimate_study_time as _estimate_minutes
from academic_planner.requests import parse_material
from registry import list_pipelines
from services.shared.models import JobStatusResponse, SubmitJobResponse

# Create the unified MCP server
mcp = FastMCP("StudyAssistantGateway")


def get_service_status() -> dict[str, str]:
    """
    Get the status of the distributed services.

    This function reports the configured URL of each service to help
    with debugging and service discovery.
    """
    return {
        "study_service": STUDY_SERVICE_URL,
        "gateway_status": "running",
    }


def _estimate_study_time(materials: list[dict[str, t.Any]]) -> dict[str, t.Any]:
    """
    Estimate study minutes for each material and in total.

    Each material needs `id`, `title` and `content`; `category` is one of
    document, video, audio, plain-text (default document).
    """
    descriptors = [parse_material(m, "materials") for m in materials]
    per_material = {d.id: _estimate_minutes(d) for d in descriptors}
    return {
        "materials": per_material,
        "total_minutes": sum(per_material.values()),
    }


# Study Service Tools
@mcp.tool()
def submit_job(job_type: str, payload: dict[str, t.Any]) -> SubmitJobResponse:
    """Submit a study job (summarization, scheduling, flashcards, quiz, notes, study-plan, analysis)."""
    return _submit_job(job_type, payload)


@mcp.tool()
def get_job_status(job_id: str) -> JobStatusResponse:
    """Get the status of a study job, with its result or error once finished."""
    return _get_job_status(job_id)


@mcp.tool()
def list_active_jobs() -> list[JobStatusResponse]:
    """List study jobs that are still pending or processing."""
    return _list_active_jobs()


# Local Tools
@mcp.tool()
def estimate_study_time(materials: list[dict[str, t.Any]]) -> dict[str, t.Any]:
    """Estimate how many minutes each study material takes, without calling the AI."""
    return _estimate_study_time(materials)


@mcp.tool()
def get_gateway_info() -> dict[str, t.Any]:
    """
    Get information about the MCP Gateway and connected services.

    This tool provides status information about the gateway, the URL of the
    study service it connects to and the job types it accepts.
    """
    return {
        **get_service_status(),
        "job_types": list_pipelines(),
    }


if __name__ == "__main__":
    print("🌟 Starting Study Assistant MCP Gateway")
    for service_name, service_url in get_service_status().items():
        if service_name != "gateway_status":
            print(f"  • {service_name}: {service_url}")
    print("\n🚀 Starting MCP server...")
    mcp.run()
