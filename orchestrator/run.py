# -*- coding: utf-8 -*-
import asyncio
import json
import logging
import math
import os
import typing as t

import click
from rich.json import JSON
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from orchestrator.errors import PollTimeoutError, ValidationError
from orchestrator.executor import Orchestrator
from orchestrator.generation import DEFAULT_MODEL, GenerationClient
from orchestrator.jobs import JobRegistry
from orchestrator.models import Job, JobStatus, JobType
from orchestrator.utils import console, err_console, load_payload, to_jsonable, wait_for_job
from registry import list_pipelines


def configure_logging(verbose: bool) -> None:
    """Route log records through rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
    )


def create_pipeline_table() -> Table:
    """Create a table of the job types that can be submitted."""
    table = Table(title="🧠 Job Types", show_header=True, header_style="bold magenta")
    table.add_column("Type", style="cyan")
    table.add_column("Description", style="white")
    for pipeline in list_pipelines():
        table.add_row(pipeline["type"], pipeline["description"])
    return table


def display_result(job: Job) -> None:
    """Print a terminal job: its result as JSON, or its error."""
    if job.status is JobStatus.FAILED:
        err_console.print(
            f"[red]Error:[/red] Job {job.id} failed "
            f"[bold]{job.error.code}[/bold]: {job.error.message}"
        )
        raise SystemExit(1)

    result = to_jsonable(job.result)
    if isinstance(result, dict) and result.get("degraded"):
        console.print(f"[yellow]⚠ Degraded result:[/yellow] {result.get('notice')}")
    console.print(Panel(JSON(json.dumps(result, indent=2)), title=f"📄 {job.type.value} result", expand=True))


async def run_job(
    job_type: JobType,
    payload: dict[str, t.Any],
    model: t.Optional[str],
    interval: float,
    max_attempts: int,
    stream: bool,
) -> Job:
    """Submit one job and poll it to completion with a progress bar."""
    orchestrator = Orchestrator(JobRegistry(), GenerationClient(), model=model)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
        transient=True,
    ) as progress:
        on_chunk = (lambda chunk: progress.console.print(chunk, end="", markup=False, highlight=False)) if stream else None
        job_id = orchestrator.submit(job_type, payload, on_chunk=on_chunk)
        bar = progress.add_task(f"Running {job_type.value} job...", total=100)

        def on_poll(job: Job) -> None:
            progress.update(bar, completed=job.progress, description=f"{job.type.value}: {job.status.value}")

        try:
            return await wait_for_job(orchestrator.registry, job_id, interval, max_attempts, on_poll=on_poll)
        finally:
            if stream:
                progress.console.print()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("job_type", required=False, type=click.Choice([jt.value for jt in JobType]))
@click.argument("payload_file", required=False, type=click.Path(dir_okay=False))
@click.option("--model", default=None, help=f"Model for generation (default: {DEFAULT_MODEL}).")
@click.option(
    "--timeout", default=120.0, show_default=True, type=click.FloatRange(min=0, min_open=True),
    help="Seconds to wait for the job.",
)
@click.option(
    "--interval", default=1.0, show_default=True, type=click.FloatRange(min=0, min_open=True),
    help="Seconds between status polls.",
)
@click.option("--stream", is_flag=True, help="Stream generated text while the job runs.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--list", "list_types", is_flag=True, help="List job types without running anything.")
def main(
    job_type: t.Optional[str],
    payload_file: t.Optional[str],
    model: t.Optional[str],
    timeout: float,
    interval: float,
    stream: bool,
    verbose: bool,
    list_types: bool,
) -> None:
    """Run one study assistant job and print its result.

    JOB_TYPE: Kind of job to run.
    PAYLOAD_FILE: JSON file with the job's request payload.
    """
    configure_logging(verbose)

    if list_types:
        console.print(create_pipeline_table())
        return

    if not job_type or not payload_file:
        err_console.print("[red]Error:[/red] Provide a job type and a payload file.")
        raise SystemExit(1)

    if not os.getenv("OPENAI_API_KEY"):
        err_console.print("[red]Error:[/red] OPENAI_API_KEY environment variable is not set.")
        raise SystemExit(1)

    payload = load_payload(payload_file)
    max_attempts = max(1, math.ceil(timeout / interval))

    console.print(
        Panel.fit(
            f"[bold blue]📚 Study Assistant[/bold blue]\n"
            f"Running a [bold]{job_type}[/bold] job with model [bold]{model or DEFAULT_MODEL}[/bold]",
            border_style="blue",
        )
    )

    try:
        job = asyncio.run(run_job(JobType(job_type), payload, model, interval, max_attempts, stream))
    except ValidationError as e:
        err_console.print(f"[red]Invalid payload:[/red] {e}")
        raise SystemExit(1)
    except PollTimeoutError as e:
        err_console.print(f"[red]Timed out:[/red] {e}")
        raise SystemExit(1)

    if verbose:
        console.print(f"[dim]Job {job.id} finished with status {job.status.value}[/dim]")
    display_result(job)


if __name__ == "__main__":
    main()
