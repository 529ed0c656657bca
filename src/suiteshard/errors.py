"""Error taxonomy for sharded suite runs."""

from __future__ import annotations

EXIT_OK = 0
"""All shards passed."""

EXIT_FAILURE = 1
"""Default status when at least one shard failed."""

EXIT_CONFIG_ERROR = 2
"""Configuration or usage error; no worker was started."""


class SuiteShardError(Exception):
    """Base class for all suiteshard errors."""

    exit_code: int = EXIT_FAILURE


class ConfigurationError(SuiteShardError):
    """Invalid configuration detected before any work started."""

    exit_code = EXIT_CONFIG_ERROR


class SuiteNotFoundError(ConfigurationError):
    """The requested suite is absent or declares no directories."""

    def __init__(self, suite_name: str, source: str = "") -> None:
        """Initialize with the offending suite name.

        Args:
            suite_name: Name of the suite that could not be resolved.
            source: Declaration file the suite was looked up in.
        """
        location = f" in {source}" if source else ""
        super().__init__(f"Suite '{suite_name}' not found or has no directories{location}")
        self.suite_name = suite_name
        self.source = source


class NoTestsDiscoveredError(ConfigurationError):
    """The suite resolved but none of its directories held matching files."""

    def __init__(self, suite_name: str, suffix: str) -> None:
        """Initialize with the suite name and the suffix that matched nothing."""
        super().__init__(f"No test files ending in '{suffix}' found for suite '{suite_name}'")
        self.suite_name = suite_name
        self.suffix = suffix


class WorkerExecutionError(SuiteShardError):
    """One or more shards exited with a non-zero status.

    Not fatal to the run: every shard still completes and its output is
    still surfaced. The orchestrator attaches this to the outcome instead
    of raising it.
    """

    def __init__(self, failed_shards: dict[int, int], exit_code: int = EXIT_FAILURE) -> None:
        """Initialize with the failing shard indices and their statuses.

        Args:
            failed_shards: Mapping of shard index to non-zero exit status.
            exit_code: Overall exit status reported for the run.
        """
        shards = ", ".join(f"shard-{i} ({status})" for i, status in sorted(failed_shards.items()))
        super().__init__(f"{len(failed_shards)} shard(s) failed: {shards}")
        self.failed_shards = dict(failed_shards)
        self.exit_code = exit_code
