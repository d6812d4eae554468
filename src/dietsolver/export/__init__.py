"""Report writers."""

from dietsolver.export.writers import ConsoleWriter, ListWriter, OutputWriter, format_number

__all__ = ["ConsoleWriter", "ListWriter", "OutputWriter", "format_number"]
