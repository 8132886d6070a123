"""
Main CLI entry point.
"""

import typer

from gaspredictor import __version__
from gaspredictor.cli import config, db, serve


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"gaspredictor version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="gaspredictor",
    help="Gas Price Predictor API",
    add_completion=True,
)

app.add_typer(serve.app, name="serve")
app.add_typer(config.app, name="config")
app.add_typer(db.app, name="db")


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    Gas Price Predictor API.

    Run 'gaspredictor <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
