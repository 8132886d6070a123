"""
gaspredictor config - Show the resolved configuration.
"""

from pathlib import Path

import typer
import yaml
from rich.syntax import Syntax

from gaspredictor.cli.common import console, load_settings_or_exit

app = typer.Typer(name="config", help="Show the resolved configuration", invoke_without_command=True)


@app.callback()
def config(
    ctx: typer.Context,
    env: str | None = typer.Option(None, help="Environment to resolve"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Directory with config.yaml / .env"),
) -> None:
    """
    Print the settings the service would start with.

    Secrets (JWT secret, database URL) are masked.
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = load_settings_or_exit(project_dir, env)
    data = settings.to_dict(mask_secrets=True)

    console.print(f"\n[bold]Configuration ({settings.environment})[/bold]\n")
    content = yaml.safe_dump(_plain(data), sort_keys=False, default_flow_style=False)
    console.print(Syntax(content, "yaml", theme="monokai"))


def _plain(value):
    """Tuples to lists so that safe_dump accepts them."""
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
