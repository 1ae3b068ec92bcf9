"""
CLI Utilities

Shared utilities for CLI commands: configuration loading, headers and
summaries.
"""

from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel

from feedcel.core.config import AppConfig, ConfigManager
from feedcel.core.exceptions import ConfigurationError
from feedcel.core.log import setup_logging

console = Console()


def build_cli_args(**kwargs: Any) -> Dict[str, Any]:
    """Collect CLI options that were actually given; ``None`` means not given."""
    return {key: value for key, value in kwargs.items() if value is not None}


def load_config_from_cli(
    config_file: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None
) -> AppConfig:
    """
    Load configuration from CLI arguments with proper error handling.

    Also configures logging from the loaded settings.

    Args:
        config_file: Optional path to configuration file
        cli_args: Dictionary of CLI arguments to override config

    Returns:
        Validated AppConfig instance

    Raises:
        typer.Exit: If configuration is invalid
    """
    from feedcel.cli.error_handling import handle_error

    try:
        config_manager = ConfigManager(config_file=config_file)
        app_config = config_manager.load_config(cli_args=cli_args or {})
    except ConfigurationError as e:
        handle_error(e)

    setup_logging(app_config.effective_log_level())
    return app_config


def print_header(title: str, subtitle: Optional[str] = None) -> None:
    """Print a formatted header for CLI output."""
    if subtitle:
        header_text = f"[bold cyan]{title}[/bold cyan]\n[dim]{subtitle}[/dim]"
    else:
        header_text = f"[bold cyan]{title}[/bold cyan]"

    console.print(Panel(header_text, border_style="cyan"))


def print_config_summary(config: AppConfig, source: Optional[str] = None) -> None:
    """Print a summary of the current configuration."""
    config_lines = []

    if source:
        config_lines.append(f"Feed: [cyan]{source}[/cyan]")
    config_lines.append(f"Fetch timeout: [cyan]{config.fetch.timeout}s[/cyan]")
    config_lines.append(f"Output format: [cyan]{config.output.default_format}[/cyan]")
    if config.output.output_file:
        config_lines.append(f"Output file: [cyan]{config.output.output_file}[/cyan]")
    if config.filter.on_error == "abort":
        config_lines.append("Evaluation errors: [yellow]abort[/yellow]")
    else:
        config_lines.append("Evaluation errors: [green]exclude item[/green]")

    console.print(Panel(
        "\n".join(config_lines),
        title="[bold]Configuration[/bold]",
        border_style="green"
    ))
