"""
gaspredictor serve - Run the HTTP API.

Endpoints:
- GET /                   - API banner
- GET /health             - Service and database health
- GET /api/v1/health/db   - Live database ping (503 when unavailable)
- GET /ui                 - Landing page
"""

import dataclasses
from pathlib import Path

import typer

from gaspredictor.cli.common import err_console, load_settings_or_exit
from gaspredictor.exceptions import ConfigurationError, RetryError
from gaspredictor.service.server import run_service
from gaspredictor.utils.logging import setup_logging_from_settings

app = typer.Typer(name="serve", help="Run the Gas Predictor API", invoke_without_command=True)


@app.callback()
def serve(
    ctx: typer.Context,
    env: str | None = typer.Option(None, help="Environment (development, test, production)"),
    host: str | None = typer.Option(None, help="Host to bind to (default: HOST or 127.0.0.1)"),
    port: int | None = typer.Option(None, help="Port to bind to (default: PORT)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Directory with config.yaml / .env"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Run the Gas Predictor API as a long-running service.

    In production the process exits with status 1 if the database cannot be
    reached at startup.
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = load_settings_or_exit(project_dir, env)
    if verbose:
        settings = dataclasses.replace(settings, logging=dataclasses.replace(settings.logging, level="DEBUG"))
    setup_logging_from_settings(settings)

    try:
        run_service(settings, host=host, port=port)
    except ConfigurationError as e:
        err_console.print(f"[red]Configuration error:[/red] {e.message}")
        raise typer.Exit(1) from None
    except RetryError as e:
        err_console.print(f"[red]Database unavailable:[/red] {e.message}")
        raise typer.Exit(1) from None
