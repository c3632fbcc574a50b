"""
Terminal output for the txmigrate CLI.

Every command writes through the helpers below, which follow the global
output_mode:

    text  Rich-rendered status lines and a status table, errors on stderr
    json  nothing is printed until the command calls flush_json(), which
          writes one JSON object to stdout (no ANSI codes)

Library code never imports this module; only the CLI produces user output.

Examples:
    >>> from txmigrate.utils.console import output_mode, success
    >>> output_mode.format = "json"
    >>> success("Migrated up from version 0 to 3")
    >>> output_mode.add_json("to_version", 3)
    >>> output_mode.flush_json()
    {"status": "success", "message": "Migrated up from version 0 to 3", "to_version": 3}
"""

from __future__ import annotations

import json
import sys
from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table

FORMATS = ("text", "json")


class OutputMode:
    """
    Selected output format plus the pending JSON document.

    The format is validated on every assignment, so a bad --format value
    fails before any command runs.
    """

    def __init__(self, format_type: str = "text"):
        self._json_buffer: dict[str, Any] = {}
        self.format = format_type

    @property
    def format(self) -> str:
        return self._format

    @format.setter
    def format(self, value: str) -> None:
        if value not in FORMATS:
            raise ValueError(f"Invalid format: {value}. Must be 'text' or 'json'")
        self._format = value

    def is_human(self) -> bool:
        return self._format == "text"

    def is_agent(self) -> bool:
        return self._format == "json"

    def add_json(self, key: str, value: Any) -> None:
        self._json_buffer[key] = value

    def flush_json(self) -> None:
        """Write the buffered document to stdout (json mode only) and reset it."""
        if not self.is_agent() or not self._json_buffer:
            return
        sys.stdout.write(json.dumps(self._json_buffer, indent=2) + "\n")
        sys.stdout.flush()
        self._json_buffer.clear()


output_mode = OutputMode()

console = Console()
console_err = Console(stderr=True)


def success(message: str) -> None:
    """Report a completed command."""
    if output_mode.is_agent():
        output_mode.add_json("status", "success")
        output_mode.add_json("message", message)
    else:
        console.print(f"[green]✓[/green] {message}")


def error(message: str) -> None:
    """Report a failed command; human output goes to stderr."""
    if output_mode.is_agent():
        output_mode.add_json("status", "error")
        output_mode.add_json("error", message)
    else:
        console_err.print(f"[red]✗[/red] {message}", style="red")


def warning(message: str) -> None:
    if output_mode.is_agent():
        output_mode.add_json("warning", message)
    else:
        console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")


def info(message: str) -> None:
    # Extra detail for humans only; json documents stay minimal.
    if output_mode.is_human():
        console.print(f"[blue]ℹ[/blue] {message}")


def print_status_table(status: dict[str, Any]) -> None:
    """
    Show a database's schema status.

    In json mode every key is copied into the pending document. In text mode
    the keys become rows of a two-column table, with a non-zero "pending"
    count highlighted.

    Args:
        status: Mapping with database, current_version, max_version and
            pending keys, in display order
    """
    if output_mode.is_agent():
        for key, value in status.items():
            output_mode.add_json(key, value)
        return

    table = Table(title="Schema Status", box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")

    for key, value in status.items():
        label = key.replace("_", " ").capitalize()
        rendered = f"[yellow]{value}[/yellow]" if key == "pending" and value else str(value)
        table.add_row(label, rendered)

    console.print(table)
