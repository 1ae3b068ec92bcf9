"""
Filter Command

Fetch one feed, filter its items with an expression and report which items
matched. Optionally writes the filtered feed to a file.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.markup import escape

from feedcel.cel import Environment, Program
from feedcel.cli.error_handling import handle_error
from feedcel.cli.utils import build_cli_args, console, load_config_from_cli, print_config_summary
from feedcel.core.exceptions import CompileError, EncodingError, FeedCELError
from feedcel.exporters import write_feed
from feedcel.pipeline import FilterPipeline, FilterResponse

EXAMPLE_EXPRESSION = 'item.Title.contains("Go")'


def prompt_expression(env: Environment) -> Program:
    """Ask for an expression until one compiles."""
    while True:
        source = typer.prompt(f"Filter expression (e.g. {EXAMPLE_EXPRESSION})", default="", show_default=False)
        if not source.strip():
            console.print("[red]Expression cannot be empty[/red]")
            continue
        try:
            program = env.compile(source)
        except CompileError as e:
            console.print(f"[red]{escape(e.message)}[/red]")
            continue
        console.print(f"[yellow]{escape(source)}[/yellow]\n")
        return program


def print_outcome(outcome: FilterResponse, show_excluded: bool = True) -> None:
    result = outcome.result
    for index, item in enumerate(result.items):
        title = escape(item.label())
        if index in result.errors:
            console.print(f"[yellow]Error    {title}: {escape(result.errors[index].message)}[/yellow]")
        elif result.is_included(index):
            console.print(f"Included {title}")
        elif show_excluded:
            console.print(f"[dim]Excluded {title}[/dim]")

    console.print(f"\nFiltered {len(result.items)} → {len(result.included_indices)} items")


def filter_feed(
    feed: Annotated[str, typer.Option("--feed", "-f", help="Feed URL or local file path")],
    expr: Annotated[Optional[str], typer.Option("--expr", "-e", help="Filter expression; prompts when omitted")] = None,

    # Output settings
    output_format: Annotated[Optional[str], typer.Option("--format", help="Output format: json, rss or atom")] = None,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write the filtered feed to this file")] = None,
    show_excluded: Annotated[Optional[bool], typer.Option("--show-excluded/--hide-excluded", help="List excluded items")] = None,

    # Behaviour
    timeout: Annotated[Optional[float], typer.Option("--timeout", help="Fetch timeout in seconds")] = None,
    on_error: Annotated[Optional[str], typer.Option("--on-error", help="Per-item evaluation errors: exclude or abort")] = None,

    # Configuration
    config: Annotated[Optional[str], typer.Option("--config", "-c", help="Configuration file path")] = None,
    verbose: Annotated[Optional[bool], typer.Option("--verbose", "-v", help="Enable verbose output")] = None,
    debug: Annotated[Optional[bool], typer.Option("--debug", help="Enable debug logging")] = None,
):
    """
    Filter a feed with an expression.

    [bold cyan]Examples:[/bold cyan]

    • [green]feedcel filter -f https://go.dev/blog/feed.atom -e 'item.Title.contains("Go")'[/green]
    • [green]feedcel filter -f feed.xml -e 'now - item.Published < duration("48h")' --format rss -o recent.xml[/green]
    """
    cli_args = build_cli_args(
        format=output_format,
        output=output,
        show_excluded=show_excluded,
        timeout=timeout,
        on_error=on_error,
        verbose=verbose,
        debug=debug,
    )
    app_config = load_config_from_cli(config_file=config, cli_args=cli_args)
    if app_config.verbose:
        print_config_summary(app_config, source=feed)

    pipeline = FilterPipeline(config=app_config)
    try:
        parsed = pipeline.fetch(feed)
        program = pipeline.compile(expr) if expr else prompt_expression(pipeline.env)
        outcome = pipeline.process(parsed, program, app_config.output.default_format)
    except FeedCELError as e:
        handle_error(e)

    print_outcome(outcome, show_excluded=app_config.output.show_excluded)

    output_file = app_config.output.output_file
    if output_file:
        try:
            written = write_feed(outcome.rendered, output_file)
        except EncodingError as e:
            handle_error(e)
        console.print(f"[green]Wrote {outcome.format_name} feed to {escape(str(written))}[/green]")
