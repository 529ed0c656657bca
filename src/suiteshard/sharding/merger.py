"""Merge per-shard worker results into a single run outcome."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from suiteshard.errors import EXIT_FAILURE, EXIT_OK

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from pathlib import Path

    from suiteshard.sharding.parallel_runner import WorkerResult


@dataclass
class RunOutcome:
    """Final result of a sharded run."""

    exit_status: int = EXIT_OK
    """0 when every shard passed, otherwise the failure code."""

    output: str = ""
    """Worker outputs concatenated in shard order."""

    worker_results: list[WorkerResult] = field(default_factory=list)
    """Per-shard results, sorted by shard index."""

    status_record: Path | None = None
    """Where per-shard exit statuses can be inspected after the run."""

    dry_run: bool = False
    """True when no worker was actually started."""

    kept_config: Path | None = None
    """Synthesized configuration left in place after a dry run."""

    @property
    def success(self) -> bool:
        return self.exit_status == EXIT_OK

    @property
    def failed_shards(self) -> dict[int, int]:
        """Non-zero exit statuses keyed by shard index."""
        return {r.shard_index: r.exit_status for r in self.worker_results if r.exit_status != 0}


def reduce_exit_statuses(
    statuses: Iterable[int],
    failure_exit_code: int = EXIT_FAILURE,
) -> int:
    """Return 0 iff every status is 0, else *failure_exit_code*."""
    return EXIT_OK if all(s == 0 for s in statuses) else failure_exit_code


def merge_worker_results(
    results: Sequence[WorkerResult],
    *,
    failure_exit_code: int = EXIT_FAILURE,
    status_record: Path | None = None,
    recorded_statuses: Mapping[int, int] | None = None,
    dry_run: bool = False,
) -> RunOutcome:
    """Merge worker results into one RunOutcome.

    Outputs are concatenated by ascending shard index whatever order the
    workers finished in.

    When *recorded_statuses* (read back from the status record) is given,
    the overall status is reduced from it instead, and a shard missing
    from the record counts as failed.
    """
    ordered = sorted(results, key=lambda r: r.shard_index)
    if recorded_statuses is None:
        statuses = [r.exit_status for r in ordered]
    else:
        statuses = [recorded_statuses.get(r.shard_index, failure_exit_code) for r in ordered]
    return RunOutcome(
        exit_status=reduce_exit_statuses(statuses, failure_exit_code),
        output="".join(r.output for r in ordered),
        worker_results=ordered,
        status_record=status_record,
        dry_run=dry_run,
    )
