"""Suite sharding: declaration parsing, partitioning, synthesis and parallel dispatch."""

from suiteshard.sharding.context import RunContext
from suiteshard.sharding.declaration import (
    SuiteDeclaration,
    load_suite_declaration,
    read_root_attributes,
    read_suite_directories,
)
from suiteshard.sharding.merger import RunOutcome, merge_worker_results, reduce_exit_statuses
from suiteshard.sharding.parallel_runner import (
    WorkerResult,
    build_worker_command,
    run_shards_parallel,
)
from suiteshard.sharding.shard_result import append_shard_status, read_shard_statuses
from suiteshard.sharding.splitter import (
    Shard,
    TestFile,
    discover_suite_files,
    discover_test_files,
    partition_files,
    shard_size,
    split_into_shards,
)
from suiteshard.sharding.synthesizer import (
    render_shard_document,
    validate_output_path,
    write_shard_config,
)

__all__ = [
    "RunContext",
    "RunOutcome",
    "Shard",
    "SuiteDeclaration",
    "TestFile",
    "WorkerResult",
    "append_shard_status",
    "build_worker_command",
    "discover_suite_files",
    "discover_test_files",
    "load_suite_declaration",
    "merge_worker_results",
    "partition_files",
    "read_root_attributes",
    "read_shard_statuses",
    "read_suite_directories",
    "reduce_exit_statuses",
    "render_shard_document",
    "run_shards_parallel",
    "shard_size",
    "split_into_shards",
    "validate_output_path",
    "write_shard_config",
]
