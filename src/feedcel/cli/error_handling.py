"""
CLI Error Rendering

Prints a FeedCELError as a rich panel with its recovery suggestions and
trace id, then exits with status 1.
"""

from typing import Optional

import typer
from rich.console import Console, Group
from rich.padding import Padding
from rich.panel import Panel
from rich.text import Text

from feedcel.core.exceptions import CompileError, FeedCELError, FetchError

console = Console(stderr=True)


def _error_title(err: FeedCELError) -> str:
    return err.error_code.name.replace('_', ' ').title()


def _expression_pointer(err: CompileError) -> Optional[Text]:
    """The offending expression line with a caret under the reported column."""
    if not err.expression or not err.line or not err.column:
        return None
    lines = err.expression.splitlines() or [""]
    if err.line > len(lines):
        return None
    pointer = Text(lines[err.line - 1], style="yellow")
    pointer.append("\n" + " " * (err.column - 1) + "^", style="bold red")
    return pointer


def handle_error(err: FeedCELError):
    """Render ``err`` on stderr and exit the command with status 1."""
    body = [Text(err.message)]
    if isinstance(err, CompileError):
        pointer = _expression_pointer(err)
        if pointer is not None:
            body.append(Padding(pointer, (1, 0, 0, 0)))
    elif isinstance(err, FetchError) and err.source:
        body.append(Text(f"Source: {err.source}", style="dim"))

    console.print()
    console.print(Panel(
        Group(*body),
        title=f"[bold red]Error: {_error_title(err)}[/bold red]",
        border_style="red",
        expand=False
    ))

    if err.suggestions:
        console.print("\n[bold green]Suggested solutions:[/bold green]")
        for i, suggestion in enumerate(err.suggestions, 1):
            suggestion_text = Text(f"{i}. {suggestion.action}: {suggestion.description}\n")
            if suggestion.command:
                suggestion_text.append("   Run: ", style="bold")
                suggestion_text.append(suggestion.command, style="cyan")
            console.print(Padding(suggestion_text, (0, 1)))

    console.print(Padding(f"Trace ID: [yellow]{err.context.correlation_id}[/yellow]", (1, 0, 0, 0)))
    raise typer.Exit(code=1)
