"""Per-shard exit status record.

Each worker appends exactly one JSON line once it has exited; the record
is read only after every worker has been joined.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


def append_shard_status(record_path: Path, shard_index: int, exit_status: int) -> None:
    """Append one shard's exit status to the run's status record."""
    record_path.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps({"shard_index": shard_index, "exit_status": exit_status})
    with record_path.open("a", encoding="utf-8") as fh:
        fh.write(line + "\n")


def read_shard_statuses(record_path: Path) -> dict[int, int]:
    """Read a status record into a shard index to exit status mapping.

    Returns:
        Statuses keyed by shard index; empty when the record does not exist.
    """
    if not record_path.is_file():
        return {}

    statuses: dict[int, int] = {}
    for line in record_path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        entry: dict[str, Any] = json.loads(line)
        statuses[int(entry["shard_index"])] = int(entry["exit_status"])
    return dict(sorted(statuses.items()))
