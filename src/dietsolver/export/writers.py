"""Line sinks for solve reports."""

from __future__ import annotations

from typing import Optional, Protocol

from rich.console import Console


class OutputWriter(Protocol):
    """Accepts one text line per call, in call order."""

    def write_line(self, text: str) -> None:
        ...


class ConsoleWriter:
    """Write report lines to a Rich console.

    Markup and highlighting are off so food names and numbers print verbatim.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def write_line(self, text: str) -> None:
        self.console.print(text, markup=False, highlight=False)


class ListWriter:
    """Collect report lines in memory."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def write_line(self, text: str) -> None:
        self.lines.append(text)


def format_number(value: float) -> str:
    """Format a solved value with 15 significant digits.

    Integral values print without a trailing ".0" (1800, not 1800.0).
    """
    return format(float(value), ".15g")
