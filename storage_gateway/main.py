"""Main entry point for storage-gateway.

- ``--server`` runs the FastAPI server with settings from configuration
- anything else runs the CLI
"""

from __future__ import annotations

import sys


def run_fastapi_server() -> None:
    """Run the FastAPI application server with uvicorn."""
    import uvicorn

    from storage_gateway.core.settings import get_app_settings, get_logging_settings

    settings = get_app_settings()
    log_settings = get_logging_settings()

    uvicorn.run(
        "storage_gateway.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        access_log=settings.debug,
        log_level=log_settings.level.lower(),
    )


def main() -> None:
    """Route to the server (``--server``) or the CLI."""
    if "--server" in sys.argv:
        sys.argv.remove("--server")
        run_fastapi_server()
        return

    from storage_gateway.cli.main import main as cli_main

    cli_main()


if __name__ == "__main__":
    main()
