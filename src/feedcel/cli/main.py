#!/usr/bin/env python3
"""
feedcel CLI Main Application

Typer-based command-line interface: filter a feed once, serve the HTTP proxy,
or explore a feed interactively.
"""

import sys
from typing import Optional

import typer
from rich.console import Console

from feedcel.cli import __version__
from feedcel.cli.commands import filter as filter_command
from feedcel.cli.commands import interactive, serve

console = Console()

app = typer.Typer(
    name="feedcel",
    help="Filter RSS, Atom and JSON feeds with CEL expressions",
    context_settings={"help_option_names": ["-h", "--help"]},
    rich_markup_mode="rich",
    no_args_is_help=True,
)

app.command("filter", help="Filter a feed once and report matches")(filter_command.filter_feed)
app.command("serve", help="Run the HTTP filtering proxy")(serve.serve)
app.command("interactive", help="Explore a feed with expressions interactively")(interactive.interactive)


def version_callback(value: bool):
    """Show version information."""
    if value:
        console.print(f"[bold cyan]feedcel[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def app_callback(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version information and exit"
    ),
):
    """
    feedcel - filter feeds with CEL expressions

    Expressions see the current entry as [cyan]item[/cyan] (URL, Title, Author,
    Tags, Categories, Content, ContentLength, Published, Updated) and the
    request time as [cyan]now[/cyan].

    [bold]Quick Start:[/bold]

    • Filter once: [cyan]feedcel filter -f feed.xml -e 'item.Title.contains("Go")'[/cyan]
    • Run the proxy: [cyan]feedcel serve --port 8080[/cyan]
    • Explore a feed: [cyan]feedcel interactive -f https://go.dev/blog/feed.atom[/cyan]
    """


def main():
    """Entry point for the feedcel console script."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    main()
