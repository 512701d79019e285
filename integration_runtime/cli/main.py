"""Integration Runtime CLI - Main entry point."""

import asyncio
import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from integration_runtime.config import get_settings
from integration_runtime.errors import IntegrationError
from integration_runtime.observability import configure_logging
from integration_runtime.schemas.descriptor import IntegrationDescriptor
from integration_runtime.schemas.runtime import RuntimeVariableSet, Segment
from integration_runtime.services.execution_service import IntegrationExecutionService

app = typer.Typer(
    name="integration",
    help="Integration Runtime - execute declarative API integration descriptors",
    no_args_is_help=True,
)

console = Console()

MODES = ("testing", "active")


def _load_descriptor(path: Path) -> IntegrationDescriptor:
    return IntegrationDescriptor.model_validate_json(path.read_text(encoding="utf-8"))


def _load_variables(path: Path | None) -> RuntimeVariableSet:
    if path is None:
        return RuntimeVariableSet()
    return RuntimeVariableSet.model_validate_json(path.read_text(encoding="utf-8"))


def _load_segment(path: Path | None) -> Segment | None:
    if path is None:
        return None
    return Segment.model_validate_json(path.read_text(encoding="utf-8"))


def _check_mode(mode: str) -> str:
    if mode not in MODES:
        raise typer.BadParameter(f"mode must be one of {', '.join(MODES)}")
    return mode


def _service() -> IntegrationExecutionService:
    settings = get_settings()
    configure_logging(settings.log_level)
    return IntegrationExecutionService.from_settings(settings)


def _outputs_table(outputs: dict[str, Any], title: str) -> Table:
    table = Table(title=title, border_style="cyan")
    table.add_column("Variable", style="bold cyan")
    table.add_column("Value", style="white")
    table.add_column("Type", style="dim")
    for name, value in outputs.items():
        table.add_row(name, json.dumps(value, default=str), type(value).__name__)
    return table


async def _run(descriptor_path: Path, variables_path: Path | None, segment_path: Path | None, mode: str) -> None:
    descriptor = _load_descriptor(descriptor_path)
    service = _service()
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn(f"[bold cyan]Calling {descriptor.name or 'integration'}..."),
            console=console,
        ) as progress:
            progress.add_task("execute", total=None)
            result = await service.execute(
                descriptor,
                _load_variables(variables_path),
                strategy_mode=mode,
                segment=_load_segment(segment_path),
            )
    except IntegrationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Upstream status: {result.status}[/green]")
    console.print(_outputs_table(result.result, "Outputs"))


async def _preview(descriptor_path: Path, variables_path: Path | None, segment_path: Path | None, mode: str) -> None:
    descriptor = _load_descriptor(descriptor_path)
    try:
        spec = await _service().preview(
            descriptor,
            _load_variables(variables_path),
            strategy_mode=mode,
            segment=_load_segment(segment_path),
        )
    except IntegrationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    headers = "\n".join(f"[cyan]{name}:[/cyan] {value}" for name, value in spec.headers.items()) or "[dim]none[/dim]"
    console.print(
        Panel(
            f"[bold]{spec.method}[/bold] {spec.url}\n\n{headers}",
            title="Request",
            border_style="cyan",
        )
    )
    if spec.body is not None:
        body = spec.body if isinstance(spec.body, str) else json.dumps(spec.body, indent=2, default=str)
        console.print(Panel(body, title="Body", border_style="green"))


@app.command()
def run(
    descriptor: Path = typer.Argument(..., exists=True, dir_okay=False, help="Descriptor JSON file"),
    variables: Path = typer.Option(None, "--variables", "-v", exists=True, dir_okay=False, help="Runtime variables JSON file"),
    segment: Path = typer.Option(None, "--segment", "-s", exists=True, dir_okay=False, help="Segment overlay JSON file"),
    mode: str = typer.Option("testing", "--mode", "-m", help="Strategy mode (testing, active)"),
) -> None:
    """Execute a descriptor against its live API."""
    asyncio.run(_run(descriptor, variables, segment, _check_mode(mode)))


@app.command()
def preview(
    descriptor: Path = typer.Argument(..., exists=True, dir_okay=False, help="Descriptor JSON file"),
    variables: Path = typer.Option(None, "--variables", "-v", exists=True, dir_okay=False, help="Runtime variables JSON file"),
    segment: Path = typer.Option(None, "--segment", "-s", exists=True, dir_okay=False, help="Segment overlay JSON file"),
    mode: str = typer.Option("testing", "--mode", "-m", help="Strategy mode (testing, active)"),
) -> None:
    """Show the request a descriptor would send, without sending it."""
    asyncio.run(_preview(descriptor, variables, segment, _check_mode(mode)))


@app.command()
def extract(
    descriptor: Path = typer.Argument(..., exists=True, dir_okay=False, help="Descriptor JSON file"),
    response: Path = typer.Argument(..., exists=True, dir_okay=False, help="Raw response body (JSON or XML)"),
    variables: Path = typer.Option(None, "--variables", "-v", exists=True, dir_okay=False, help="Runtime variables JSON file"),
) -> None:
    """Decode a saved response body and map it onto output variables."""
    try:
        outputs = _service().interpret(
            _load_descriptor(descriptor),
            response.read_text(encoding="utf-8"),
            _load_variables(variables),
        )
    except IntegrationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    console.print(_outputs_table(outputs, "Outputs"))


@app.command()
def server() -> None:
    """Start the FastAPI server."""
    import uvicorn

    settings = get_settings()
    console.print(
        Panel(
            f"[bold cyan]Starting Integration Runtime API Server[/bold cyan]\n\n"
            f"[cyan]Host:[/cyan]  {settings.host}\n"
            f"[cyan]Port:[/cyan]  {settings.port}\n"
            f"[cyan]Debug:[/cyan] {settings.debug}",
            title="Server",
            border_style="cyan",
        )
    )
    uvicorn.run(
        "integration_runtime.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    app()
