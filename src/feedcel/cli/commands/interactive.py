"""
Interactive Command

Fetch a feed once, then iterate on filter expressions against it.
"""

import asyncio
from typing import Annotated, Optional

import typer

from feedcel.adapter import adapt_all
from feedcel.cli.error_handling import handle_error
from feedcel.cli.interactive import InteractiveSession, InteractiveShell, record_evaluation_error
from feedcel.cli.utils import build_cli_args, console, load_config_from_cli, print_config_summary, print_header
from feedcel.core.exceptions import FetchError
from feedcel.pipeline import FilterPipeline


def interactive(
    feed: Annotated[str, typer.Option("--feed", "-f", help="Feed URL or local file path")],
    timeout: Annotated[Optional[float], typer.Option("--timeout", help="Fetch timeout in seconds")] = None,
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file to load")] = None,
    verbose: Annotated[Optional[bool], typer.Option("--verbose", "-v", help="Enable verbose output")] = None,
):
    """
    Explore a feed with filter expressions.

    [bold cyan]Commands in the session:[/bold cyan]

    • [green]<expression>[/green] - Count matching items
    • [green]:history[/green] - List expressions and match counts
    • [green]:select N[/green] - Select a history entry
    • [green]:detail[/green] - Toggle per-item results
    • [green]:schema[/green] - Toggle the declared fields
    • [green]:quit[/green] - Exit and print valid expressions
    """
    cli_args = build_cli_args(timeout=timeout, verbose=verbose)
    app_config = load_config_from_cli(config_file=config, cli_args=cli_args)

    print_header("feedcel interactive", "Expressions are evaluated against one fetched copy of the feed")
    if app_config.verbose:
        print_config_summary(app_config, source=feed)

    pipeline = FilterPipeline(config=app_config, error_handler=record_evaluation_error)
    try:
        parsed = pipeline.fetch(feed)
    except FetchError as e:
        handle_error(e)

    session = InteractiveSession(adapt_all(parsed.entries), pipeline=pipeline)
    shell = InteractiveShell(session, source=feed)

    try:
        asyncio.run(shell.start_repl())
    except KeyboardInterrupt:
        console.print("\n[dim]Interactive session interrupted[/dim]")
