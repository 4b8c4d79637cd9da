from __future__ import annotations

import asyncio
import logging

import typer

from nanobanana.config import Settings, load_settings
from nanobanana.logging_setup import configure_logging
from nanobanana.tools import ToolRouter, build_router

logger = logging.getLogger(__name__)

app = typer.Typer(help="Nano Banana image tool server.", no_args_is_help=False)


def _startup() -> tuple[ToolRouter, Settings]:
    settings = load_settings()
    configure_logging(settings.log_level)
    router = build_router(settings)
    if router.initialization_error is not None:
        logger.warning("Generation tools will fail until the environment is configured correctly.")
    return router, settings


@app.callback(invoke_without_command=True)
def default(ctx: typer.Context) -> None:
    """Serve over stdio when no command is given."""
    if ctx.invoked_subcommand is None:
        stdio()


@app.command()
def stdio() -> None:
    """Serve the tools as an MCP server on stdin/stdout."""
    from nanobanana.server import run_stdio

    router, _ = _startup()
    try:
        asyncio.run(run_stdio(router))
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")


@app.command()
def http(
    host: str = typer.Option(None, help="Bind address (defaults to HTTP_HOST)."),
    port: int = typer.Option(None, help="Bind port (defaults to HTTP_PORT)."),
) -> None:
    """Serve the tools as JSON-RPC 2.0 over HTTP (POST /rpc)."""
    import uvicorn

    from nanobanana.api.app import create_app

    router, settings = _startup()
    uvicorn.run(
        create_app(router),
        host=host or settings.http_host,
        port=port or settings.http_port,
        log_level="warning",
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
