"""suiteshard CLI: shard a declared suite and run the shards in parallel."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler

from suiteshard import __version__
from suiteshard.config import load_config, validate_config
from suiteshard.errors import EXIT_CONFIG_ERROR, ConfigurationError
from suiteshard.orchestrator import RunOptions, failure_summary, run_sharded_suite
from suiteshard.reporters.terminal import reporter

logger = logging.getLogger(__name__)


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _build_options(kwargs: dict[str, Any]) -> RunOptions:
    """Merge ``.suiteshard.yml`` defaults with the command-line flags."""
    config = load_config(Path.cwd())

    if kwargs.get("workers") is not None:
        config.workers = kwargs["workers"]
    if kwargs.get("suffix") is not None:
        config.suffix = kwargs["suffix"]
    if kwargs.get("exit_code") is not None:
        config.failure_exit_code = kwargs["exit_code"]
    if kwargs.get("prepend") is not None:
        config.engine.prepend = kwargs["prepend"]

    errors = validate_config(config)
    if errors:
        raise ConfigurationError("; ".join(errors))

    output = kwargs.get("output")
    return RunOptions(
        suite_name=kwargs["suite"],
        declaration=Path(kwargs["declaration"]),
        output_path=Path(output) if output else None,
        workers=config.workers,
        suffix=config.suffix,
        failure_exit_code=config.failure_exit_code,
        dry_run=kwargs.get("dry_run", False),
        temp_dir=Path(config.temp_dir),
        engine=config.engine,
    )


@click.command()
@click.argument("suite")
@click.argument("declaration", type=click.Path(dir_okay=False))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Where to write the synthesized shard configuration (must end in .xml).",
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    default=None,
    help="Number of shards / parallel workers (default: CPU count x 3).",
)
@click.option(
    "--suffix",
    type=str,
    default=None,
    help="Test filename suffix (default: Test.php).",
)
@click.option(
    "--prepend",
    type=str,
    default=None,
    help="Auto-prepend hook forwarded to every worker.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Print the planned worker invocations instead of running them.",
)
@click.option(
    "--exit-code",
    type=click.IntRange(min=1, max=255),
    default=None,
    help="Exit status to use when at least one shard fails (default: 1, 2 is reserved).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="suiteshard")
def cli(**kwargs: Any) -> None:
    """Split SUITE from the DECLARATION file into shards and run them in parallel.

    Exit status is 0 when every shard passed, 1 (or --exit-code) when any
    shard failed, and 2 on configuration errors.
    """
    _configure_logging(verbose=kwargs.get("verbose", False))
    ctx = click.get_current_context()

    try:
        options = _build_options(kwargs)
        outcome = asyncio.run(
            run_sharded_suite(options, on_plan=reporter.print_shard_plan)
        )
    except ConfigurationError as e:
        reporter.print_error(str(e))
        ctx.exit(EXIT_CONFIG_ERROR)

    if outcome.dry_run:
        reporter.print_planned_commands(outcome)
        ctx.exit(outcome.exit_status)

    click.echo(outcome.output, nl=False)
    reporter.print_run_summary(outcome)

    failure = failure_summary(outcome)
    if failure is not None:
        logger.warning("%s", failure)
    ctx.exit(outcome.exit_status)


def main() -> None:
    """Console-script entry point."""
    cli()


if __name__ == "__main__":
    main()
