"""Run-scoped state shared by every stage of a sharded run."""

from __future__ import annotations

import logging
import secrets
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

_TOKEN_BYTES = 6
_PREFIX = "suiteshard"


def generate_run_token() -> str:
    """Return a random token that keeps concurrent runs' artifacts apart."""
    return secrets.token_hex(_TOKEN_BYTES)


@dataclass
class RunContext:
    """Everything a run needs to name and clean up its artifacts.

    Created once per invocation and passed explicitly to the synthesizer,
    the dispatcher and the status record.
    """

    token: str = field(default_factory=generate_run_token)
    """Random run token embedded in every artifact name."""

    temp_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    """Directory holding the output sinks and the status record."""

    config_path: Path | None = None
    """Synthesized configuration path (defaults to one under *temp_dir*)."""

    def __post_init__(self) -> None:
        self.temp_dir = Path(self.temp_dir)
        if self.config_path is not None:
            self.config_path = Path(self.config_path)

    @property
    def synthesized_config(self) -> Path:
        """Path the shard configuration is written to."""
        if self.config_path is not None:
            return self.config_path
        return self.temp_dir / f"{_PREFIX}-{self.token}.xml"

    @property
    def status_record(self) -> Path:
        """Append-only record of per-shard exit statuses."""
        return self.temp_dir / f"{_PREFIX}-{self.token}-status.jsonl"

    def output_sink(self, shard_index: int) -> Path:
        """Exclusive output file for one shard's worker."""
        return self.temp_dir / f"{_PREFIX}-{self.token}-shard-{shard_index}.out"

    def teardown(
        self,
        *,
        shard_count: int,
        preserve_status_record: bool = False,
        keep_config: bool = False,
    ) -> None:
        """Remove every run-scoped artifact that exists.

        Args:
            shard_count: Number of shards whose sinks may exist.
            preserve_status_record: Keep the status record for inspection.
            keep_config: Keep the synthesized configuration.
        """
        targets = [self.output_sink(i) for i in range(shard_count)]
        if not keep_config:
            targets.append(self.synthesized_config)
        if not preserve_status_record:
            targets.append(self.status_record)

        for path in targets:
            if path.exists():
                path.unlink()
                logger.debug("Removed %s", path)
