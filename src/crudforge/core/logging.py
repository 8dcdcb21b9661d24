# src/crudforge/core/logging.py
"""Console logging for crudforge, rendered with rich."""

import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from rich.console import Console

# Ordered from most to least verbose
LEVELS: Dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


def _style(style: str) -> Callable[[Any], str]:
    return lambda text: f"[{style}]{text}[/{style}]"


# Styles for the different kinds of names that show up in log lines
color_palette: Dict[str, Callable[[Any], str]] = {
    "resource": _style("bold cyan"),
    "table": _style("blue"),
    "field": _style("green"),
    "route": _style("magenta"),
    "method": _style("bold yellow"),
    "operation": _style("cyan"),
    "dim": _style("dim"),
}


class Logger:
    """Small leveled logger with indentation and timing helpers."""

    def __init__(self, console: Optional[Console] = None, level: str = "INFO"):
        self.console = console or Console(highlight=False)
        self._indent = 0
        self.level = level

    @property
    def level(self) -> str:
        return self._level

    @level.setter
    def level(self, value: str) -> None:
        value = value.upper()
        if value not in LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        self._level = value

    def _enabled(self, level: str) -> bool:
        return LEVELS[level] >= LEVELS[self._level]

    def _emit(self, level: str, prefix: str, message: str) -> None:
        if not self._enabled(level):
            return
        pad = "  " * self._indent
        self.console.print(f"{pad}{prefix} {message}")

    def debug(self, message: str) -> None:
        self._emit("DEBUG", "[dim]·[/dim]", f"[dim]{message}[/dim]")

    def info(self, message: str) -> None:
        self._emit("INFO", "[blue]ℹ[/blue]", message)

    def success(self, message: str) -> None:
        self._emit("INFO", "[green]✓[/green]", message)

    def warn(self, message: str) -> None:
        self._emit("WARNING", "[yellow]![/yellow]", f"[yellow]{message}[/yellow]")

    def error(self, message: str) -> None:
        self._emit("ERROR", "[red]✗[/red]", f"[red]{message}[/red]")

    def section(self, title: str) -> None:
        """Print a section divider."""
        if self._enabled("INFO"):
            self.console.rule(f"[bold]{title}[/bold]")

    @contextmanager
    def indented(self) -> Iterator[None]:
        """Indent every line logged inside the block."""
        self._indent += 1
        try:
            yield
        finally:
            self._indent -= 1

    @contextmanager
    def timed(self, label: str) -> Iterator[None]:
        """Log how long the block took."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = (time.perf_counter() - start) * 1000
            self.debug(f"{label} took {elapsed:.2f}ms")


# Shared instance used across the package
log = Logger()
