"""Parallel shard dispatch: one worker process per shard, fan-out then join."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from suiteshard.sharding.shard_result import append_shard_status
from suiteshard.utils.subprocess_runner import SubprocessError, run_subprocess

if TYPE_CHECKING:
    from collections.abc import Sequence

    from suiteshard.config import EngineConfig
    from suiteshard.sharding.context import RunContext
    from suiteshard.sharding.splitter import Shard

logger = logging.getLogger(__name__)

EXIT_SPAWN_FAILURE = 127
"""Status recorded for a worker whose executable could not be started."""


@dataclass
class WorkerResult:
    """Outcome of one shard's worker."""

    shard_index: int
    """Index of the shard the worker ran."""

    output: str = ""
    """Captured stdout and stderr of the worker."""

    exit_status: int = 0
    """Worker exit status."""

    command: list[str] = field(default_factory=list)
    """Command line the worker was (or would be) started with."""

    skipped: bool = False
    """True when the shard was empty and completed without a process."""

    @property
    def success(self) -> bool:
        return self.exit_status == 0


def build_worker_command(shard: Shard, context: RunContext, engine: EngineConfig) -> list[str]:
    """Build the engine invocation selecting *shard*'s sub-suite.

    The prepend hook is forwarded untouched as an interpreter ini setting.
    """
    command: list[str] = []
    if engine.interpreter:
        command.append(engine.interpreter)
        if engine.prepend:
            command.extend(["-d", f"auto_prepend_file={engine.prepend}"])
    command.extend(engine.command)
    command.extend(
        [
            "--configuration",
            str(context.synthesized_config),
            "--testsuite",
            shard.name,
        ]
    )
    command.extend(engine.extra_args)
    return command


async def _run_shard(shard: Shard, context: RunContext, engine: EngineConfig) -> WorkerResult:
    """Run one shard's worker and record its exit status."""
    command = build_worker_command(shard, context, engine)

    if shard.is_empty:
        logger.debug("Shard %d is empty, completing as a no-op", shard.index)
        append_shard_status(context.status_record, shard.index, 0)
        return WorkerResult(shard_index=shard.index, command=command, skipped=True)

    logger.info("Launching shard %d with %d test files", shard.index, len(shard.files))
    try:
        result = await run_subprocess(
            command,
            cwd=Path(engine.working_dir) if engine.working_dir else None,
            output_path=context.output_sink(shard.index),
        )
        exit_status, output = result.returncode, result.output
    except SubprocessError as e:
        logger.error("Shard %d could not start: %s", shard.index, e)
        exit_status, output = EXIT_SPAWN_FAILURE, f"{e}\n"

    append_shard_status(context.status_record, shard.index, exit_status)
    if exit_status != 0:
        logger.warning("Shard %d exited with status %d", shard.index, exit_status)
    else:
        logger.info("Shard %d passed", shard.index)

    return WorkerResult(
        shard_index=shard.index,
        output=output,
        exit_status=exit_status,
        command=command,
    )


async def run_shards_parallel(
    shards: Sequence[Shard],
    context: RunContext,
    engine: EngineConfig,
    *,
    dry_run: bool = False,
) -> list[WorkerResult]:
    """Run every shard concurrently and wait for all of them.

    All workers are launched before any is awaited; ``asyncio.gather()`` is
    the single join barrier. Each worker owns its output sink and its result
    slot, and a failing worker never affects the others. There is no
    timeout and no retry.

    With *dry_run* nothing is started: the planned commands are returned
    as successful results with no output.

    Returns:
        One WorkerResult per shard, in shard order.
    """
    if dry_run:
        return [
            WorkerResult(
                shard_index=shard.index,
                command=build_worker_command(shard, context, engine),
                skipped=shard.is_empty,
            )
            for shard in shards
        ]

    logger.info("Dispatching %d shards", len(shards))
    results = await asyncio.gather(*(_run_shard(shard, context, engine) for shard in shards))
    return list(results)
