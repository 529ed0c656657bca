"""Subprocess-based worker runner with output capture and error handling.

Runs one command to completion, writing its combined stdout/stderr to a
dedicated sink file, and reports the exit code independently of the
captured output.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


@dataclass
class SubprocessResult:
    """Result of subprocess execution."""

    returncode: int
    """Exit code of the process."""

    output: str
    """Combined stdout and stderr captured from the process."""

    success: bool
    """True if returncode is 0."""

    duration_ms: float = 0.0
    """Actual duration of execution in milliseconds."""


async def run_subprocess(
    command: Sequence[str],
    *,
    output_path: Path,
    cwd: Path | None = None,
) -> SubprocessResult:
    """Execute a command in a subprocess and wait for it to exit.

    stderr is merged into stdout and the merged stream is written to
    *output_path* (created or truncated), then read back once the process
    has exited. There is no timeout.

    Args:
        command: Command and arguments as a sequence.
        output_path: Sink file for the process output.
        cwd: Working directory for the subprocess. Defaults to current directory.

    Returns:
        SubprocessResult with exit code, output, and metadata.

    Raises:
        SubprocessError: If the command cannot be started.
        ValueError: If command is empty or the working directory is missing.

    Example:
        >>> result = await run_subprocess(
        ...     ["php", "vendor/bin/phpunit", "--testsuite", "shard-0"],
        ...     output_path=Path("/tmp/shard-0.out"),
        ... )
        >>> result.returncode
        0
    """
    if not command:
        raise ValueError("Command cannot be empty")

    work_dir = cwd.resolve() if cwd else Path.cwd()
    if not work_dir.exists():
        raise ValueError(f"Working directory does not exist: {work_dir}")

    logger.debug(
        "Running subprocess: %s (cwd=%s, sink=%s)",
        " ".join(str(c) for c in command),
        work_dir,
        output_path,
    )

    start_time = time.perf_counter()

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("wb") as sink:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=sink,
                stderr=asyncio.subprocess.STDOUT,
                cwd=work_dir,
            )
            returncode = await process.wait()
        output = output_path.read_text(encoding="utf-8", errors="replace")

    except FileNotFoundError as exc:
        logger.error("Command not found: %s", command[0])
        raise SubprocessError(
            f"Command not found: {command[0]}",
            result=SubprocessResult(returncode=-1, output=str(exc), success=False),
        ) from exc

    except OSError as exc:
        logger.exception("Unexpected error running subprocess")
        raise SubprocessError(
            f"Subprocess execution failed: {exc}",
            result=SubprocessResult(returncode=-1, output=str(exc), success=False),
        ) from exc

    duration_ms = (time.perf_counter() - start_time) * 1000

    result = SubprocessResult(
        returncode=returncode,
        output=output,
        success=returncode == 0,
        duration_ms=duration_ms,
    )

    logger.debug(
        "Subprocess completed: returncode=%d, duration=%.2fms, success=%s",
        returncode,
        duration_ms,
        result.success,
    )

    return result


class SubprocessError(Exception):
    """Exception raised when a subprocess cannot be executed."""

    def __init__(self, message: str, result: SubprocessResult) -> None:
        """Initialize with error message and result.

        Args:
            message: Error description.
            result: The SubprocessResult describing the failed execution.
        """
        super().__init__(message)
        self.result = result
