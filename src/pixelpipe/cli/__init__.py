"""
Command-line interface for pixelpipe.

This package contains CLI implementations using Click.
"""

from pixelpipe.cli.commands import cli


def main() -> None:
    """Entry point for the pixelpipe console script."""
    cli()


__all__ = ["cli", "main"]
