"""
Rich progress displays for CLI operations.

All output goes to stderr to preserve stdout for machine-readable output
(the path of the written image).
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from pixelpipe.core.pipeline import PipelineResult
from pixelpipe.core.registry import FilterRegistry

# Console for stderr output (preserves stdout for machine output)
console = Console(stderr=True)


@contextmanager
def pipeline_progress(names: Sequence[str]) -> Iterator[None]:
    """
    Display a spinner while a pipeline runs.

    Args:
        names: Filter names of the pipeline, shown in the description
    """
    progress = Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[green]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
    chain = " → ".join(names)
    if len(chain) > 60:
        chain = f"{chain[:57]}..."
    with progress:
        task = progress.add_task(f"Applying filters [dim]({chain})[/dim]", total=None)
        yield
        progress.update(task, completed=True)


def print_trace(output_path: Path, input_size: int, result: PipelineResult) -> None:
    """
    Print a panel with the per-stage trace of a finished run.

    Args:
        output_path: Path where the image was saved
        input_size: Size of the input buffer in bytes
        result: The finished pipeline run
    """
    table = Table(show_header=True, header_style="cyan", box=None, padding=(0, 2))
    table.add_column("#", justify="right", style="dim")
    table.add_column("Filter")
    table.add_column("Time", justify="right")
    table.add_column("Size", justify="right")

    for index, record in enumerate(result.trace, start=1):
        table.add_row(
            str(index),
            record.name,
            f"{record.elapsed * 1000:.1f}ms",
            f"{record.output_size / 1000:.2f} KB",
        )

    summary = Table.grid(padding=(0, 2))
    summary.add_column(style="cyan", justify="right")
    summary.add_column(style="white")
    summary.add_row("Saved to", f"[bold green]{output_path}[/bold green]")
    summary.add_row("Input", f"{input_size / 1000:.2f} KB")
    summary.add_row("Total", f"{result.total_elapsed:.3f}s")
    if result.skipped:
        summary.add_row("Skipped", f"[yellow]{', '.join(result.skipped)}[/yellow]")

    outer = Table.grid()
    outer.add_row(summary)
    if result.trace:
        outer.add_row("")
        outer.add_row(table)

    panel = Panel(
        outer,
        title="[bold green]✓ Pipeline finished[/bold green]",
        border_style="green",
        padding=(1, 2),
    )
    console.print()
    console.print(panel)


def print_filters(registry: FilterRegistry) -> None:
    """Print the registered filters and their parameter defaults."""
    table = Table(show_header=True, header_style="cyan")
    table.add_column("Filter")
    table.add_column("Parameters")
    table.add_column("Template")
    for name in registry.names():
        definition = registry.resolve(name)
        assert definition is not None
        params = ", ".join(f"{k}={v}" for k, v in definition.defaults.items()) or "-"
        table.add_row(name, params, "✓" if definition.uses_assets else "")
    console.print(table)


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {message}")
