"""
Click command definitions for the pixelpipe CLI.

This module contains the Click command group and all CLI commands
(run, filters).
"""

from pathlib import Path

import click

from pixelpipe import (
    Config,
    Pipeline,
    PipelineResult,
    ValidationError,
    __version__,
    get_registry,
    parse_param_overrides,
    parse_pipeline,
)
from pixelpipe.cli import progress
from pixelpipe.cli.handlers import (
    cancel_check,
    install_sigint_handler,
    reset_cancellation,
    restore_sigint_handler,
    run_with_error_handling,
)
from pixelpipe.cli.utils import default_output_path
from pixelpipe.core.config import UNKNOWN_FILTER_ERROR
from pixelpipe.logging_config import configure_logging, get_verbosity_from_env


@click.group(help="Apply ordered image filter pipelines to image files.")
@click.version_option(version=__version__, package_name="pixelpipe")
@click.pass_context
def cli(ctx: click.Context) -> None:
    ctx.color = True


@cli.command(name="run")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--filter",
    "-f",
    "filter_names",
    multiple=True,
    help="Filter to apply; repeat for more stages (applied in the given order).",
)
@click.option("--pipeline", "-p", help="Filters as one string, e.g. 'invert,stretch'.")
@click.option("--out", "-o", type=click.Path(path_type=Path), help="Output file path.")
@click.option(
    "--param",
    "param_items",
    multiple=True,
    help="Filter parameter as filter.param=value, e.g. stretch.factor=2.",
)
@click.option("--strict", is_flag=True, help="Fail on unknown filter names instead of skipping.")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Per-stage time budget in seconds (0 disables; default from config).",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Minimize progress messages; only print result path or errors.",
)
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help="Increase verbosity: -v log each stage, -vv codec and asset detail.",
)
def run_command(
    input_path: Path,
    filter_names: tuple[str, ...],
    pipeline: str | None,
    out: Path | None,
    param_items: tuple[str, ...],
    strict: bool,
    timeout: float | None,
    quiet: bool,
    verbose_count: int,
) -> None:
    """Run a filter pipeline on INPUT_PATH and write the result as PNG."""
    reset_cancellation()
    if quiet:
        configure_logging(quiet=True)
    else:
        configure_logging(verbose_level=max(verbose_count, get_verbosity_from_env()))

    def do_run() -> None:
        # 1. Config with CLI overrides
        config = Config.from_env()
        if strict:
            config.unknown_filter_policy = UNKNOWN_FILTER_ERROR
        if timeout is not None:
            config.stage_timeout = timeout or None

        # 2. Pipeline (validates names and parameters before reading input)
        if filter_names and pipeline:
            raise ValidationError("Use either --filter or --pipeline, not both", field="filter")
        names = list(filter_names) if filter_names else parse_pipeline(pipeline or "")
        if not names:
            raise ValidationError("No filters given; use --filter or --pipeline", field="filter")
        pipe = Pipeline(names, parse_param_overrides(param_items), config=config)

        # 3. Run
        data = input_path.read_bytes()
        result: PipelineResult
        if not quiet:
            with progress.pipeline_progress(names):
                result = pipe.run(data, cancel_check=cancel_check)
        else:
            result = pipe.run(data, cancel_check=cancel_check)

        # 4. Save
        out_path = out if out is not None else Path(default_output_path())
        out_path.write_bytes(result.buffer)

        # 5. Print result
        if quiet:
            click.echo(str(out_path))
        else:
            progress.print_trace(out_path, len(data), result)
            click.echo(str(out_path))

    old_sigint = install_sigint_handler()
    try:
        run_with_error_handling(do_run, quiet=quiet)
    finally:
        restore_sigint_handler(old_sigint)


@cli.command(name="filters")
def filters_command() -> None:
    """List the available filters and their default parameters."""
    progress.print_filters(get_registry())
