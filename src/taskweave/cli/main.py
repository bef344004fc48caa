"""Main CLI application - ties all subcommands together."""

import typer

from taskweave.cli.common import console
from taskweave.cli.db import app as db_app
from taskweave.cli.workflow import app as workflow_app

app = typer.Typer(
    name="taskweave",
    help="Taskweave - task dependency, hierarchy, and workflow engine",
    add_completion=False,
    no_args_is_help=True,
)

app.add_typer(db_app, name="db")
app.add_typer(workflow_app, name="workflow")


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Host to bind to"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to listen on"),
) -> None:
    """Start the HTTP API.

    Examples:
        taskweave serve                # Settings defaults (localhost:3340)
        taskweave serve -p 9000        # Custom port
        taskweave serve -h 0.0.0.0     # Listen on all interfaces
    """
    from taskweave.main import run_server

    run_server(host=host, port=port)


@app.command()
def version() -> None:
    """Show version information."""
    from taskweave import __version__

    console.print(f"taskweave {__version__}")


def main() -> None:
    app()
