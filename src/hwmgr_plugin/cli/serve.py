# src/hwmgr_plugin/cli/serve.py
"""
Serve command: runs the inventory API on its own, without the controller.
"""

import logging

import typer
import uvicorn
from typing_extensions import Annotated

from ..core.config import config

logger = logging.getLogger(__name__)

app = typer.Typer(name="serve", help="Serve the hardware inventory API.")


@app.callback(invoke_without_command=True)
def serve(
    ctx: typer.Context,
    host: Annotated[str, typer.Option("--host", help="Bind address.")] = config.API_HOST,
    port: Annotated[int, typer.Option("--port", help="Port to listen on.")] = config.API_PORT,
) -> None:
    """
    Start the inventory API server.
    """
    if ctx.invoked_subcommand is not None:
        return

    from ..api.app import create_app

    logger.info(f"Starting inventory API on {host}:{port}")
    uvicorn.run(create_app(use_lifespan=True), host=host, port=port)
