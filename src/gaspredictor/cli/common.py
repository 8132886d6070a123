"""
Helpers shared by CLI commands.
"""

from pathlib import Path

import typer
from rich.console import Console

from gaspredictor.config.settings import Settings, load_settings
from gaspredictor.exceptions import ConfigurationError

console = Console()
err_console = Console(stderr=True)


def load_settings_or_exit(project_dir: Path, env: str | None) -> Settings:
    """Load settings; report a configuration problem and exit with status 1."""
    try:
        return load_settings(project_dir, env=env)
    except ConfigurationError as e:
        err_console.print(f"[red]Configuration error:[/red] {e.message}")
        raise typer.Exit(1) from None
