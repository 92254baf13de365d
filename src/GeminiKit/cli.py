"""Typer-based CLI for GeminiKit."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from GeminiKit.errors import GeminiError, describe_error
from GeminiKit.logging_utils import setup_logging
from GeminiKit.models.content import Content, GenerationConfig
from GeminiKit.models.generation import CountTokensRequest, GenerateContentRequest
from GeminiKit.service import GeminiClient
from GeminiKit.settings import load_settings

__all__ = ["app", "main"]

T = TypeVar("T")

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(help="GeminiKit: command line client for the Gemini API", no_args_is_help=True)
batch_app = typer.Typer(help="Inspect and manage batch jobs", no_args_is_help=True)
app.add_typer(batch_app, name="batch")


# ============================================================================
# Setup
# ============================================================================


def _make_client() -> GeminiClient:
    """Build a client from the environment and configure logging."""
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_format)
    return GeminiClient(settings)


def _run(operation: Callable[[GeminiClient], Awaitable[T]]) -> T:
    """Run ``operation`` against a fresh client, mapping failures to exit code 1."""
    try:
        client = _make_client()
    except ValidationError as exc:
        err_console.print(f"[red]✗ Configuration error:[/red] {exc.error_count()} invalid setting(s)")
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"]) or "settings"
            err_console.print(f"  {location}: {error['msg']}", markup=False)
        raise typer.Exit(code=1)

    async def _call() -> T:
        async with client:
            return await operation(client)

    try:
        return asyncio.run(_call())
    except GeminiError as exc:
        logger.debug("Command failed", exc_info=True)
        err_console.print(f"✗ {describe_error(exc)}", markup=False, highlight=False)
        raise typer.Exit(code=1)


def _generation_request(
    prompt: str, model: Optional[str], temperature: Optional[float]
) -> GenerateContentRequest:
    config = GenerationConfig(temperature=temperature) if temperature is not None else None
    return GenerateContentRequest(
        model=model,
        contents=[Content.from_text(prompt)],
        generation_config=config,
    )


# ============================================================================
# Commands
# ============================================================================


@app.command()
def generate(
    prompt: str = typer.Argument(..., help="Prompt text"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name"),
    stream: bool = typer.Option(False, "--stream", help="Print chunks as they arrive"),
    temperature: Optional[float] = typer.Option(None, "--temperature", "-t"),
) -> None:
    """Generate text for PROMPT."""
    request = _generation_request(prompt, model, temperature)

    async def _generate(client: GeminiClient) -> None:
        if not stream:
            response = await client.generate_content(request)
            typer.echo(response.text)
            return
        async with client.stream_generate_content(request) as chunks:
            async for chunk in chunks:
                typer.echo(chunk.text, nl=False)
        typer.echo("")

    _run(_generate)


@app.command("count-tokens")
def count_tokens(
    prompt: str = typer.Argument(..., help="Prompt text"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name"),
) -> None:
    """Count the tokens PROMPT uses."""
    request = CountTokensRequest(model=model, contents=[Content.from_text(prompt)])
    response = _run(lambda client: client.count_tokens(request))
    typer.echo(f"total_tokens: {response.total_tokens}")


@app.command()
def upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    mime_type: str = typer.Option(..., "--mime-type", help="MIME type of the file"),
    display_name: Optional[str] = typer.Option(None, "--display-name"),
) -> None:
    """Upload a file to the File API."""
    resource = _run(lambda client: client.upload_file(path, mime_type, display_name))
    console.print(f"[green]✓ Uploaded[/green] {resource.name}")
    typer.echo(f"uri: {resource.uri}")
    typer.echo(f"state: {resource.state.value}")


# ============================================================================
# Batch commands
# ============================================================================


def _job_row(job: Any) -> list[str]:
    error = f"{job.error.code}: {job.error.message}" if job.error else ""
    return [job.name, job.state.value, job.update_time or job.create_time or "", error]


@batch_app.command("status")
def batch_status(name: str = typer.Argument(..., help="Batch name or id")) -> None:
    """Show the current state of a batch job."""
    job = _run(lambda client: client.get_batch(name))
    typer.echo(f"{job.name}: {job.state.value}")
    if job.error is not None:
        typer.echo(f"error {job.error.code}: {job.error.message}")


@batch_app.command("list")
def batch_list(
    page_token: Optional[str] = typer.Option(None, "--page-token"),
    page_size: Optional[int] = typer.Option(None, "--page-size", min=1),
) -> None:
    """List batch jobs."""
    page = _run(lambda client: client.list_batches(page_token, page_size=page_size))
    table = Table(title="Batch jobs")
    for column in ("Name", "State", "Updated", "Error"):
        table.add_column(column)
    for job in page.jobs:
        table.add_row(*_job_row(job))
    console.print(table)
    if page.next_page_token:
        typer.echo(f"next page: {page.next_page_token}")


@batch_app.command("cancel")
def batch_cancel(name: str = typer.Argument(..., help="Batch name or id")) -> None:
    """Request cancellation of a batch job."""
    _run(lambda client: client.cancel_batch(name))
    typer.echo(f"cancellation requested: {name}")


@batch_app.command("delete")
def batch_delete(name: str = typer.Argument(..., help="Batch name or id")) -> None:
    """Delete a batch job."""
    _run(lambda client: client.delete_batch(name))
    typer.echo(f"deleted: {name}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
