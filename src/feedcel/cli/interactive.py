"""
Interactive Shell Implementation

REPL for iterating on filter expressions against one already fetched feed.
Every submitted expression is compiled and evaluated over the whole item set
and recorded in an append-only history with its match count; the feed is
never re-fetched during a session.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.styles import Style
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from feedcel.cel import Program
from feedcel.core.exceptions import CompileError, EvaluationError
from feedcel.item import ITEM_TYPE_NAME, Item
from feedcel.pipeline import FilterPipeline, utc_now
from feedcel.filters import FilterResult

console = Console()
logger = logging.getLogger(__name__)

COMPILE_FAILED = "Error: compile failed"

MATCH = "match"
EXCLUDED = "excluded"
ERROR = "error"


def record_evaluation_error(error: EvaluationError) -> None:
    logger.debug(f"Evaluation error on item {error.describe_item()}: {error.message}")


@dataclass(frozen=True)
class HistoryEntry:
    """
    One submitted expression.

    Attributes:
        expression: Source text as submitted
        summary: ``"N matches"`` or the compile error placeholder
        program: Compiled program, absent when compilation failed
        result: Partition of the session items, absent when compilation failed
        error: Compile error, when compilation failed
    """
    expression: str
    summary: str
    program: Optional[Program] = None
    result: Optional[FilterResult] = None
    error: Optional[CompileError] = None

    @property
    def valid(self) -> bool:
        return self.error is None


class InteractiveSession:
    """
    Expression history over a fixed item set.

    The history starts with ``true`` and only ever grows; entries are never
    modified once recorded.
    """

    def __init__(self, items: Sequence[Item], pipeline: Optional[FilterPipeline] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.items: List[Item] = list(items)
        self.pipeline = pipeline or FilterPipeline(error_handler=record_evaluation_error)
        self.clock = clock or utc_now
        self.history: List[HistoryEntry] = []
        self.selected_index = 0
        self.show_detail = False
        self.show_schema = False
        self.submit("true")

    def submit(self, expression: str) -> Optional[HistoryEntry]:
        """
        Compile and evaluate an expression over every item and record it.

        Blank input is ignored. The new entry becomes the selected one.
        """
        if not expression or not expression.strip():
            return None

        try:
            program = self.pipeline.env.compile(expression)
        except CompileError as e:
            entry = HistoryEntry(expression, COMPILE_FAILED, error=e)
        else:
            result = self.pipeline.filter_items(self.items, program, now=self.clock())
            entry = HistoryEntry(expression, result.summary(), program=program, result=result)

        self.history.append(entry)
        self.selected_index = len(self.history) - 1
        return entry

    @property
    def selected(self) -> HistoryEntry:
        return self.history[self.selected_index]

    def select(self, index: int) -> HistoryEntry:
        if not 0 <= index < len(self.history):
            raise IndexError(f"no history entry {index}; choose 0-{len(self.history) - 1}")
        self.selected_index = index
        return self.selected

    def toggle_detail(self) -> bool:
        self.show_detail = not self.show_detail
        return self.show_detail

    def toggle_schema(self) -> bool:
        self.show_schema = not self.show_schema
        return self.show_schema

    def detail(self) -> List[Tuple[Item, str, Optional[EvaluationError]]]:
        """Per-item outcome of the selected entry: match, excluded or error."""
        result = self.selected.result
        if result is None:
            return []

        rows = []
        for index, item in enumerate(result.items):
            if index in result.errors:
                rows.append((item, ERROR, result.errors[index]))
            elif result.is_included(index):
                rows.append((item, MATCH, None))
            else:
                rows.append((item, EXCLUDED, None))
        return rows

    def schema(self):
        return self.pipeline.env.schema()

    def valid_expressions(self) -> List[HistoryEntry]:
        return [entry for entry in self.history if entry.valid]


class InteractiveShell:
    """
    Prompt-driven front end for an :class:`InteractiveSession`.

    Lines starting with ``:`` are shell commands; anything else is submitted
    as an expression.
    """

    def __init__(self, session: InteractiveSession, source: str = ""):
        self.session = session
        self.source = source
        self.console = console

        self.commands = [":history", ":select", ":detail", ":schema", ":help", ":quit", ":exit"]
        env = session.pipeline.env
        words = list(self.commands)
        words += [f"item.{field}" for field in env.schema()["types"].get(ITEM_TYPE_NAME, {})]
        words += list(env.variables)
        words += env.function_names()
        self.completer = WordCompleter(words, WORD=True)
        self.history = InMemoryHistory()

        self.style = Style.from_dict({
            'prompt': '#00aa00 bold',
            'command': '#0000aa bold',
            'error': '#aa0000 bold',
            'success': '#00aa00',
            'info': '#888888',
        })

    async def start_repl(self) -> None:
        """Read lines until ``:quit`` or end of input, then list the valid expressions."""
        self._show_welcome()

        prompt = PromptSession(
            history=self.history,
            completer=self.completer,
            style=self.style,
            complete_style='multi-column'
        )

        while True:
            try:
                user_input = await prompt.prompt_async(HTML('<prompt>feedcel></prompt> '))
                if not user_input.strip():
                    continue
                if self.handle_input(user_input.strip()):
                    break
            except KeyboardInterrupt:
                self.console.print("\n[dim]Use :quit to leave the session[/dim]")
                continue
            except EOFError:
                break

        self._show_goodbye()

    def handle_input(self, line: str) -> bool:
        """
        Handle one line of input.

        Returns:
            True if the session should end
        """
        if not line.startswith(":"):
            entry = self.session.submit(line)
            if entry is not None:
                self._show_entry(entry)
            return False

        command, _, argument = line[1:].partition(" ")
        command = command.lower()
        if command in ("quit", "exit", "q"):
            return True
        if command == "history":
            self._show_history()
        elif command == "select":
            self._handle_select(argument.strip())
        elif command == "detail":
            state = "on" if self.session.toggle_detail() else "off"
            self.console.print(f"[dim]Detail view {state}[/dim]")
            if self.session.show_detail:
                self._show_detail()
        elif command == "schema":
            if self.session.toggle_schema():
                self._show_schema()
            else:
                self.console.print("[dim]Schema view off[/dim]")
        elif command == "help":
            self._show_help()
        else:
            self.console.print(f"[red]Unknown command: :{escape(command)}[/red]")
            self.console.print("[dim]Type :help for available commands[/dim]")
        return False

    def _handle_select(self, argument: str) -> None:
        try:
            entry = self.session.select(int(argument))
        except ValueError:
            self.console.print("[red]Usage: :select N[/red]")
            return
        except IndexError as e:
            self.console.print(f"[red]{e}[/red]")
            return
        self._show_entry(entry)

    def _show_entry(self, entry: HistoryEntry) -> None:
        index = self.session.selected_index
        if entry.valid:
            self.console.print(f"[green][{index}][/green] {escape(entry.expression)}  [bold]{entry.summary}[/bold]")
        else:
            self.console.print(f"[red][{index}][/red] {escape(entry.expression)}  [red]{entry.summary}[/red]")
            self.console.print(f"[red]{escape(entry.error.message)}[/red]")
        if self.session.show_detail:
            self._show_detail()

    def _show_history(self) -> None:
        table = Table(title="Expressions", show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Expression")
        table.add_column("Result")
        for index, entry in enumerate(self.session.history):
            marker = "→ " if index == self.session.selected_index else ""
            summary = entry.summary if entry.valid else f"[red]{entry.summary}[/red]"
            table.add_row(f"{marker}{index}", escape(entry.expression), summary)
        self.console.print(table)

    def _show_detail(self) -> None:
        entry = self.session.selected
        if not entry.valid:
            self.console.print(Panel(escape(entry.error.message), title="Compilation Error", border_style="red"))
            return

        table = Table(title=f"Matches: {len(entry.result.included_indices)}  |  {escape(entry.expression)}",
                      show_header=True, header_style="bold cyan")
        table.add_column("Result", width=8)
        table.add_column("Title")
        table.add_column("Author")
        table.add_column("URL", style="dim")
        for item, outcome, error in self.session.detail():
            if outcome == MATCH:
                table.add_row("[green]match[/green]", escape(item.label()), escape(item.author or ""),
                              escape(item.url))
            elif outcome == ERROR:
                table.add_row("[red]error[/red]", escape(item.label()), escape(error.message), escape(item.url))
            else:
                table.add_row("[dim]-[/dim]", f"[dim]{escape(item.label())}[/dim]", "", escape(item.url))
        self.console.print(table)

    def _show_schema(self) -> None:
        schema = self.session.schema()
        table = Table(title="Schema", show_header=True, header_style="bold cyan")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        for name, type_name in schema["variables"].items():
            table.add_row(name, type_name)
        for type_name, fields in schema["types"].items():
            for field_name, field_type in fields.items():
                table.add_row(f"  {type_name}.{field_name}", field_type)
        self.console.print(table)

    def _show_welcome(self) -> None:
        welcome_text = (
            f"[bold cyan]feedcel interactive[/bold cyan]\n"
            f"Feed: [cyan]{escape(self.source)}[/cyan] ({len(self.session.items)} items)\n\n"
            "Type an expression to count matches, or [green]:help[/green] for commands."
        )
        self.console.print(Panel(welcome_text, title="Welcome", border_style="blue"))

    def _show_goodbye(self) -> None:
        lines = []
        for entry in self.session.valid_expressions():
            lines.append(f"{escape(entry.expression)}\n\t[{entry.summary}]")
        goodbye_text = "\n".join(lines) if lines else "[dim]No valid expressions[/dim]"
        self.console.print(Panel(goodbye_text, title="Valid expressions", border_style="green"))

    def _show_help(self) -> None:
        help_table = Table(title="Available Commands", show_header=True, header_style="bold cyan")
        help_table.add_column("Command", style="green")
        help_table.add_column("Description")

        help_table.add_row("<expression>", "Evaluate an expression, e.g. item.Title.contains(\"Go\")")
        help_table.add_row(":history", "List submitted expressions and match counts")
        help_table.add_row(":select N", "Select history entry N")
        help_table.add_row(":detail", "Toggle per-item results for the selected entry")
        help_table.add_row(":schema", "Toggle the declared fields and variables")
        help_table.add_row(":help", "Show this help")
        help_table.add_row(":quit", "Leave and print the valid expressions")
        self.console.print(help_table)
