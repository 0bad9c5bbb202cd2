# src/hwmgr_plugin/cli/main.py
"""
This module is the main entry point for the hwmgr-plugin CLI.

It aggregates all commands from the submodules (start, serve).
"""

import logging

import typer

from ..core.config import config
from . import serve, start

# --- Setup Logger ---
logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


app = typer.Typer(
    name="hwmgr-plugin",
    help="Reconcile NodePools against hardware management backends and serve their inventory.",
    add_completion=False,
)


def version_callback(value: bool):
    """
    Prints the version of hwmgr-plugin.
    """
    if value:
        from .. import __version__

        typer.echo(f"hwmgr-plugin version: {__version__}")
        raise typer.Exit()


@app.command()
def version():
    """
    Show the version of hwmgr-plugin.
    """
    from .. import __version__

    typer.echo(f"hwmgr-plugin version: {__version__}")


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
):
    """
    hwmgr-plugin CLI main entry point.
    """
    pass


# Register command sub-apps
app.add_typer(start.app, name="start")
app.add_typer(serve.app, name="serve")


if __name__ == "__main__":
    app()
