"""Diet-problem LP with incremental model refinement."""

__version__ = "0.1.0"
