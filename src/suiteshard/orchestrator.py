"""Sharded run orchestration: parse, discover, partition, synthesize, dispatch, merge."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from suiteshard.config import EngineConfig, default_worker_count
from suiteshard.errors import (
    EXIT_FAILURE,
    ConfigurationError,
    NoTestsDiscoveredError,
    SuiteNotFoundError,
    WorkerExecutionError,
)
from suiteshard.sharding.context import RunContext
from suiteshard.sharding.declaration import read_root_attributes, read_suite_directories
from suiteshard.sharding.merger import RunOutcome, merge_worker_results
from suiteshard.sharding.parallel_runner import run_shards_parallel
from suiteshard.sharding.shard_result import read_shard_statuses
from suiteshard.sharding.splitter import (
    DEFAULT_SUFFIX,
    Shard,
    discover_suite_files,
    partition_files,
    shard_size,
)
from suiteshard.sharding.synthesizer import validate_output_path, write_shard_config

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


@dataclass
class RunOptions:
    """Everything one sharded run needs to know."""

    suite_name: str
    """Suite to shard."""

    declaration: Path
    """Suite declaration file."""

    output_path: Path | None = None
    """Synthesized configuration path (None = run-scoped temp file)."""

    workers: int = field(default_factory=default_worker_count)
    """Number of shards and parallel workers."""

    suffix: str = DEFAULT_SUFFIX
    """Test filename suffix."""

    failure_exit_code: int = EXIT_FAILURE
    """Overall exit status when any shard fails."""

    dry_run: bool = False
    """Plan the workers without starting them."""

    temp_dir: Path | None = None
    """Directory for run-scoped artifacts (None = system temp dir)."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    """Engine invocation settings."""


def _validate_options(options: RunOptions) -> None:
    """Fail fast on options that make the run impossible."""
    if not options.suite_name:
        raise ConfigurationError("A suite name is required")
    if options.workers < 1:
        raise ConfigurationError(f"Worker count must be >= 1, got {options.workers}")
    if not options.suffix:
        raise ConfigurationError("Test file suffix must not be empty")
    working_dir = options.engine.working_dir
    if working_dir and not Path(working_dir).is_dir():
        raise ConfigurationError(f"Engine working directory does not exist: {working_dir}")
    if options.output_path is not None:
        validate_output_path(options.output_path)


def _plan_shards(options: RunOptions) -> tuple[list[Shard], dict[str, str], Path]:
    """Resolve the suite, discover its files, and partition them."""
    declaration = options.declaration
    directories = read_suite_directories(declaration, options.suite_name)
    if not directories:
        raise SuiteNotFoundError(options.suite_name, str(declaration))
    logger.info("Suite '%s' declares %d directories", options.suite_name, len(directories))

    base_dir = declaration.resolve().parent
    files = discover_suite_files(directories, options.suffix, base_dir)
    if not files:
        raise NoTestsDiscoveredError(options.suite_name, options.suffix)
    logger.info("Discovered %d test files", len(files))

    shards = partition_files(files, options.workers)
    logger.info(
        "Partitioned into %d shards of up to %d files",
        len(shards),
        shard_size(len(files), options.workers),
    )
    return shards, read_root_attributes(declaration), base_dir


async def run_sharded_suite(
    options: RunOptions,
    context: RunContext | None = None,
    *,
    on_plan: Callable[[list[Shard]], None] | None = None,
) -> RunOutcome:
    """Run *options.suite_name* split across *options.workers* parallel shards.

    Teardown always runs: output sinks are removed, the synthesized
    configuration is removed unless this was a dry run, and the status
    record survives only when the run did not succeed.

    Args:
        options: Run options.
        context: Run context; a fresh one (new token) is created if omitted.
        on_plan: Called with the shards once they are partitioned.

    Returns:
        The aggregated RunOutcome.

    Raises:
        ConfigurationError: Bad options, malformed declaration, or an
            unusable output path.
        SuiteNotFoundError: The suite is not declared or has no directories.
        NoTestsDiscoveredError: The suite's directories hold no test files.
    """
    _validate_options(options)

    if context is None:
        context = RunContext(config_path=options.output_path)
        if options.temp_dir is not None:
            context.temp_dir = Path(options.temp_dir)

    shards: list[Shard] = []
    config_written = False
    succeeded = False
    try:
        shards, root_attributes, base_dir = _plan_shards(options)
        if on_plan is not None:
            on_plan(shards)

        write_shard_config(shards, context.synthesized_config, root_attributes, base_dir)
        config_written = True

        results = await run_shards_parallel(
            shards, context, options.engine, dry_run=options.dry_run
        )
        recorded = None if options.dry_run else read_shard_statuses(context.status_record)

        outcome = merge_worker_results(
            results,
            failure_exit_code=options.failure_exit_code,
            status_record=context.status_record,
            recorded_statuses=recorded,
            dry_run=options.dry_run,
        )
        if options.dry_run:
            outcome.kept_config = context.synthesized_config
        succeeded = outcome.success
        return outcome
    finally:
        context.teardown(
            shard_count=len(shards),
            preserve_status_record=not succeeded,
            keep_config=options.dry_run or not config_written,
        )


def failure_summary(outcome: RunOutcome) -> WorkerExecutionError | None:
    """Describe the failed shards of *outcome*, or None if all passed."""
    if outcome.success:
        return None
    return WorkerExecutionError(outcome.failed_shards, exit_code=outcome.exit_status)
