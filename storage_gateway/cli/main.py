"""Main CLI entry point for storage-gateway management commands."""

import click

from storage_gateway import __version__
from storage_gateway.cli.commands import storage
from storage_gateway.cli.utils import info
from storage_gateway.infra.logging.config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="storage-gateway")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Storage Gateway CLI.

    \b
    Command Groups:
      serve      Run the HTTP API with uvicorn
      storage    Inspect buckets and objects, presign URLs, tear down buckets

    \b
    Quick Start:
      storage-gateway storage info
      storage-gateway storage buckets
      storage-gateway storage teardown scratch --pack-size 99 --yes
    """
    ctx.ensure_object(dict)


@cli.command()
@click.option("--host", default=None, help="Bind address (default: APP_HOST)")
@click.option("--port", type=int, default=None, help="Bind port (default: APP_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the HTTP API server."""
    import uvicorn

    from storage_gateway.core.settings import get_app_settings, get_logging_settings

    settings = get_app_settings()
    log_settings = get_logging_settings()
    host = host or settings.host
    port = port or settings.port

    info(f"Starting uvicorn on {host}:{port}")
    uvicorn.run(
        "storage_gateway.app.main:app",
        host=host,
        port=port,
        reload=reload,
        access_log=settings.debug,
        log_level=log_settings.level.lower(),
    )


cli.add_command(storage.storage)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
