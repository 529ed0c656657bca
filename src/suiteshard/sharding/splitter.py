"""Test file discovery and contiguous shard splitting."""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = "Test.php"


@dataclass(frozen=True)
class TestFile:
    """A discovered test file, tagged with the suffix it matched."""

    __test__ = False  # not a pytest class

    path: Path
    """Resolved absolute path to the file."""

    suffix: str
    """Filename suffix the file was discovered with."""


@dataclass(frozen=True)
class Shard:
    """One contiguous slice of the discovered files."""

    index: int
    """Zero-based shard index."""

    files: tuple[TestFile, ...] = ()
    """Files assigned to this shard, in discovery order."""

    @property
    def name(self) -> str:
        """Sub-suite name used in the synthesized configuration."""
        return f"shard-{self.index}"

    @property
    def is_empty(self) -> bool:
        return not self.files


def discover_test_files(directory: Path, suffix: str) -> list[TestFile]:
    """Discover regular files under *directory* whose name ends with *suffix*.

    Directory symlinks are not followed, so no file is reachable twice.

    Args:
        directory: Root directory to walk recursively.
        suffix: Filename suffix, e.g. ``Test.php``.

    Returns:
        Sorted list of unique test files. Empty when *directory* does not
        exist or is not a directory.
    """
    if not directory.is_dir():
        logger.debug("Skipping missing directory %s", directory)
        return []

    found: set[Path] = set()
    for root, _dirs, names in os.walk(directory):
        for name in names:
            candidate = Path(root) / name
            if name.endswith(suffix) and candidate.is_file():
                found.add(candidate.resolve())

    return [TestFile(path=p, suffix=suffix) for p in sorted(found)]


def discover_suite_files(
    directories: Iterable[str],
    suffix: str,
    base_dir: Path,
) -> list[TestFile]:
    """Discover files across all directories of a suite, in directory order.

    Relative directories resolve against *base_dir*. A file reachable from
    more than one (overlapping) directory is kept at its first position.
    """
    seen: set[Path] = set()
    files: list[TestFile] = []
    for directory in directories:
        root = Path(directory)
        if not root.is_absolute():
            root = base_dir / root
        for test_file in discover_test_files(root, suffix):
            if test_file.path not in seen:
                seen.add(test_file.path)
                files.append(test_file)
    return files


def shard_size(total: int, shard_count: int) -> int:
    """Files per shard: ``ceil(total / shard_count)``, at least 1."""
    if shard_count < 1:
        msg = f"shard_count must be >= 1, got {shard_count}"
        raise ValueError(msg)
    return max(1, math.ceil(total / shard_count))


def split_into_shards(
    files: Sequence[TestFile],
    shard_index: int,
    shard_count: int,
) -> list[TestFile]:
    """Return the contiguous slice of *files* assigned to one shard.

    Shard *i* receives ``files[i * size:(i + 1) * size]`` where
    ``size = shard_size(len(files), shard_count)``; trailing shards may be
    empty when there are fewer files than shards.

    Raises:
        ValueError: If shard_index or shard_count is invalid.
    """
    size = shard_size(len(files), shard_count)
    if shard_index < 0 or shard_index >= shard_count:
        msg = f"shard_index must be in [0, {shard_count}), got {shard_index}"
        raise ValueError(msg)
    start = shard_index * size
    return list(files[start : start + size])


def partition_files(files: Sequence[TestFile], shard_count: int) -> list[Shard]:
    """Partition *files* into exactly *shard_count* contiguous shards."""
    shards = [
        Shard(index=i, files=tuple(split_into_shards(files, i, shard_count)))
        for i in range(shard_count)
    ]
    logger.info(
        "Partitioned %d test files into %d shards of up to %d",
        len(files),
        shard_count,
        shard_size(len(files), shard_count),
    )
    return shards
