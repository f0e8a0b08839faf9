"""stubsim CLI - fixture-driven HTTP test double."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from stubsim.config import SimulatorSettings, load_settings
from stubsim.modules.simulator import (
    CustomizationLoader,
    CustomizationRunner,
    Forwarder,
    SimulatorServer,
    URIMapper,
)

app = typer.Typer(
    name="stubsim",
    help="Fixture-driven HTTP test double with scriptable hooks",
    no_args_is_help=True,
)
console = Console()

SAMPLE_GLOBAL_REQUEST = '''"""Runs before every request. Set vars["resolved-response"] to answer directly."""

# vars["request"] = vars["request"].strip()
'''


def configure_logging(verbose: bool) -> None:
    """Route stubsim logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)


def build_server(settings: SimulatorSettings) -> SimulatorServer:
    """Wire a server from resolved settings."""
    forwarder = None
    if settings.forwarding_enabled:
        forwarder = Forwarder(
            read_timeout=settings.read_timeout,
            buffer_size=settings.buffer_size,
            header_propagation=settings.header_propagation,
        )
    return SimulatorServer(
        settings.root_path,
        host=settings.host,
        port=settings.port,
        runner=CustomizationRunner(CustomizationLoader(), suffix=settings.script_suffix),
        forwarder=forwarder,
        uri_mapper=URIMapper(settings.uri_map, base_url=settings.proxy_url),
        post_hooks_on_short_circuit=settings.post_hooks_on_short_circuit,
    )


def _load(**overrides) -> SimulatorSettings:
    try:
        return load_settings(**overrides)
    except ValueError as exc:
        console.print(f"[red]Invalid configuration: {exc}[/red]")
        raise typer.Exit(1) from exc


@app.command()
def version() -> None:
    """Show the installed stubsim version."""
    from importlib.metadata import PackageNotFoundError, version as pkg_version

    try:
        current_version = pkg_version("stubsim")
    except PackageNotFoundError:
        current_version = "0.0.0+unknown"

    console.print(f"stubsim {current_version}")


@app.command()
def init(
    root: Path = typer.Argument(Path("simulator"), help="Simulation root directory"),
) -> None:
    """Create a simulation root with a sample fixture pair."""
    if root.exists() and any(root.iterdir()):
        console.print(f"[yellow]Simulation root already exists at {root}[/yellow]")
        return

    try:
        sample_dir = root / "example"
        sample_dir.mkdir(parents=True, exist_ok=True)
        (sample_dir / "Hello-Request.txt").write_text("hello")
        (sample_dir / "Hello-Response.txt").write_text("hello from stubsim")
        (root / "GlobalRequest.py.sample").write_text(SAMPLE_GLOBAL_REQUEST)
    except PermissionError:
        console.print("[red]Error: Cannot write to this directory.[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Simulation root created:[/green] {root}")
    console.print("[dim]Try: stubsim resolve example --root simulator --data hello[/dim]")


@app.command()
def serve(
    root: Optional[Path] = typer.Option(None, "--root", "-r", help="Simulation root directory"),
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listen port"),
    proxy_url: Optional[str] = typer.Option(
        None, "--proxy-url", help="Forward unmatched requests to this base URL"
    ),
    header_propagation: Optional[str] = typer.Option(
        None,
        "--header-propagation",
        help="Upstream response headers to keep: content-type or all",
    ),
    record: Optional[Path] = typer.Option(
        None, "--record", help="Write the exchange log as JSON on shutdown"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Serve fixtures over HTTP."""
    settings = _load(
        root_path=root,
        host=host,
        port=port,
        proxy_url=proxy_url,
        header_propagation=header_propagation,
        verbose=verbose or None,
    )
    configure_logging(settings.verbose)

    if not settings.root_path.is_dir():
        console.print(f"[red]Simulation root not found: {settings.root_path}[/red]")
        raise typer.Exit(1)

    server = build_server(settings)
    console.print(
        Panel(
            f"Root: {settings.root_path}\n"
            f"Listening: http://{settings.host}:{settings.port}\n"
            f"Forwarding: {settings.proxy_url or ('uri_map' if settings.uri_map else 'off')}",
            title="stubsim",
        )
    )
    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")
    finally:
        if record is not None:
            server.store.write_json(record)
            console.print(f"[green]Exchange log written:[/green] {record}")


@app.command()
def resolve(
    path: str = typer.Argument(..., help="Path relative to the simulation root"),
    root: Optional[Path] = typer.Option(None, "--root", "-r", help="Simulation root directory"),
    data: str = typer.Option("", "--data", "-d", help="Request payload"),
    data_file: Optional[Path] = typer.Option(
        None, "--data-file", help="Read the request payload from a file"
    ),
    content_type: str = typer.Option("text/plain", "--content-type", "-t", help="Content type"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run one request cycle against the fixtures and print the outcome."""
    settings = _load(root_path=root, verbose=verbose or None)
    configure_logging(settings.verbose)

    if data_file is not None:
        try:
            data = data_file.read_text()
        except OSError as exc:
            console.print(f"[red]Cannot read {data_file}: {exc}[/red]")
            raise typer.Exit(1) from exc

    # Fixtures only: the default resolve of the server pipeline never forwards.
    pipeline = build_server(settings).pipeline
    try:
        result = asyncio.run(
            pipeline.run(settings.root_path, path.strip("/"), data, content_type)
        )
    except Exception as exc:
        console.print(f"[red]Resolution failed: {exc}[/red]")
        raise typer.Exit(1) from exc

    if result.failures:
        table = Table(title="Skipped customizations")
        table.add_column("Role")
        table.add_column("Location")
        table.add_column("Error")
        for failure in result.failures:
            table.add_row(failure.role.value, failure.location, failure.message)
        console.print(table)

    outcome = result.outcome
    if outcome is None:
        console.print("[yellow]No fixture matched.[/yellow]")
        raise typer.Exit(2)

    source = str(outcome.matching_request) if outcome.matching_request else "customization"
    if result.short_circuited:
        source = "global request unit"
    body = outcome.body.decode("utf-8", errors="replace") if isinstance(outcome.body, bytes) else outcome.body
    console.print(Panel(Text(body), title=f"{outcome.status_code} {outcome.content_type}", subtitle=source))


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
