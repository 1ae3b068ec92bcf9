"""
Serve Command

Run the HTTP filtering proxy with uvicorn.
"""

from typing import Annotated, Optional

import typer
import uvicorn

from feedcel.cli.utils import build_cli_args, load_config_from_cli, print_header
from feedcel.server import create_app


def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Interface to bind")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Port to listen on")] = None,
    compile_error_status: Annotated[Optional[int], typer.Option(
        "--compile-error-status", help="HTTP status returned for invalid expressions")] = None,
    timeout: Annotated[Optional[float], typer.Option("--timeout", help="Fetch timeout in seconds")] = None,
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    verbose: Annotated[Optional[bool], typer.Option("--verbose", "-v", help="Enable verbose output")] = None,
    debug: Annotated[Optional[bool], typer.Option("--debug", help="Enable debug logging")] = None,
):
    """
    Serve [green]/filter[/green] over HTTP.

    • [green]curl 'http://127.0.0.1:8080/filter?url=https://go.dev/blog/feed.atom&expression=item.Title.contains("Go")'[/green]
    """
    cli_args = build_cli_args(
        host=host,
        port=port,
        compile_error_status=compile_error_status,
        timeout=timeout,
        verbose=verbose,
        debug=debug,
    )
    app_config = load_config_from_cli(config_file=config, cli_args=cli_args)

    print_header("feedcel proxy", f"Listening on http://{app_config.server.host}:{app_config.server.port}")
    uvicorn.run(
        create_app(config=app_config),
        host=app_config.server.host,
        port=app_config.server.port,
        log_level=app_config.effective_log_level().lower(),
    )
