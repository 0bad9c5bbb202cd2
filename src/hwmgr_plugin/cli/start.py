# src/hwmgr_plugin/cli/start.py
"""
Start command for the hwmgr-plugin CLI.

Runs the NodePool controller until SIGINT or SIGTERM, optionally with the
inventory API served from the same event loop.
"""

import asyncio
import logging
import signal
import traceback
from typing import Optional

import typer
import uvicorn
from typing_extensions import Annotated

from ..core.config import config
from ..core.factory import get_adaptor_registry, get_controller, get_store

logger = logging.getLogger(__name__)

app = typer.Typer(name="start", help="Start the NodePool controller.")


def install_shutdown_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def signal_handler(signum):
        sig_name = "SIGTERM" if signum == signal.SIGTERM else "SIGINT"
        logger.info(f"Received {sig_name}, initiating graceful shutdown...")
        stop.set()

    for signum in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(signum, signal_handler, signum)


async def run_controller(namespace: Optional[str], workers: Optional[int], with_api: bool, host: str, port: int):
    controller = get_controller()
    if namespace:
        controller.namespace = namespace
    if workers:
        controller.workers = workers

    stop = asyncio.Event()
    install_shutdown_handlers(stop)

    server = None
    server_task = None
    if with_api:
        from ..api.app import create_app

        server = uvicorn.Server(uvicorn.Config(create_app(), host=host, port=port, log_config=None))
        # The controller owns signal handling.
        server.install_signal_handlers = lambda: None
        server_task = asyncio.create_task(server.serve())
        logger.info(f"Inventory API listening on {host}:{port}")

    await controller.start()
    logger.info("hwmgr-plugin is running. Press CTRL+C to exit.")
    try:
        await stop.wait()
    finally:
        await controller.stop()
        if server is not None:
            server.should_exit = True
            await server_task
        await get_adaptor_registry().close()
        await get_store().close()
        logger.info("hwmgr-plugin stopped.")


@app.callback(invoke_without_command=True)
def start(
    ctx: typer.Context,
    namespace: Annotated[
        Optional[str],
        typer.Option("--namespace", "-n", help="Namespace to watch for NodePools. Defaults to the plugin namespace."),
    ] = None,
    workers: Annotated[
        Optional[int],
        typer.Option("--workers", help="Number of concurrent reconcile workers.", min=1),
    ] = None,
    with_api: Annotated[
        bool,
        typer.Option("--with-api/--no-api", help="Also serve the inventory API."),
    ] = True,
    host: Annotated[str, typer.Option("--host", help="Inventory API bind address.")] = config.API_HOST,
    port: Annotated[int, typer.Option("--port", help="Inventory API port.")] = config.API_PORT,
) -> None:
    """
    Start the NodePool controller loop.
    """
    if ctx.invoked_subcommand is not None:
        return

    logger.info("Initializing hwmgr-plugin...")
    try:
        asyncio.run(run_controller(namespace, workers, with_api, host, port))
    except KeyboardInterrupt:
        logger.info("Shutting down hwmgr-plugin.")
        raise typer.Exit()
    except Exception as e:
        logger.error(f"An unexpected error occurred: {e}")
        logger.error("Controller failed: %s", traceback.format_exc())
        raise typer.Exit(code=1)
