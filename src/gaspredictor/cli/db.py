"""
gaspredictor db - Database diagnostics.
"""

import asyncio
from pathlib import Path
from typing import Any

import typer
from rich.table import Table

from gaspredictor.cli.common import console, err_console, load_settings_or_exit
from gaspredictor.config.settings import Settings
from gaspredictor.connections import check_database_health, create_connection, get_database_status
from gaspredictor.core.retry.manager import RetryManager
from gaspredictor.exceptions import ConfigurationError, ReadinessTimeoutError, RetryError

app = typer.Typer(name="db", help="Database diagnostics")


@app.command("status")
def status(
    env: str | None = typer.Option(None, help="Environment to resolve"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Directory with config.yaml / .env"),
    timeout: float | None = typer.Option(None, help="Readiness timeout in seconds (default: from settings)"),
) -> None:
    """
    Connect to the configured database and report its status.

    Exits with status 1 if the database is not configured or not healthy.
    """
    settings = load_settings_or_exit(project_dir, env)
    if not settings.database.url:
        err_console.print("[yellow]No database configured (set DATABASE_URL)[/yellow]")
        raise typer.Exit(1)

    try:
        result = asyncio.run(_probe(settings, timeout))
    except ConfigurationError as e:
        err_console.print(f"[red]Configuration error:[/red] {e.message}")
        raise typer.Exit(1) from None

    table = Table(title="Database status", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in result["status"].items():
        table.add_row(key, "-" if value is None else str(value))
    table.add_row("healthy", "[green]yes[/green]" if result["healthy"] else "[red]no[/red]")
    console.print(table)

    if result["error"]:
        err_console.print(f"[red]{result['error']}[/red]")
    if not result["healthy"]:
        raise typer.Exit(1)


async def _probe(settings: Settings, timeout: float | None) -> dict[str, Any]:
    connection = create_connection(settings.database.url)
    manager = RetryManager(default_policy=settings.database.retry)
    error = None
    try:
        try:
            await manager.execute(connection.connect, operation_name="database_connect")
            await manager.execute_with_readiness(
                lambda: connection.state,
                connection.ping,
                operation_name="database_ping",
                readiness_timeout=settings.database.readiness_timeout if timeout is None else timeout,
            )
        except (RetryError, ReadinessTimeoutError) as e:
            error = e.message
        healthy = error is None and await check_database_health(connection)
        status = get_database_status(connection)
    finally:
        await connection.close()
    return {"status": status, "healthy": healthy, "error": error}
