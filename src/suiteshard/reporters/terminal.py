"""Terminal reporter with rich output formatting."""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from collections.abc import Sequence

    from suiteshard.sharding.merger import RunOutcome
    from suiteshard.sharding.splitter import Shard

# Status lines go to stderr so stdout carries only the workers' output.
console = Console(stderr=True)

_MAX_FILE_PATH_LENGTH = 60


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return "…" + text[-(limit - 1) :]


class CLIReporter:
    """Rich terminal output reporter for sharded runs."""

    def __init__(self, output: Console | None = None) -> None:
        """Initialize the CLI reporter."""
        self.console = output or console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {escape(message)}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{escape(message)}[/dim]")

    def print_shard_plan(self, shards: Sequence[Shard]) -> None:
        """Print one row per shard with its file count and first file."""
        table = Table(title="Shard plan", show_lines=False)
        table.add_column("Shard", style="cyan")
        table.add_column("Files", justify="right")
        table.add_column("First file", style="dim")

        for shard in shards:
            first = str(shard.files[0].path) if shard.files else "-"
            first = escape(_truncate(first, _MAX_FILE_PATH_LENGTH))
            table.add_row(shard.name, str(len(shard.files)), first)

        self.console.print(table)

    def print_planned_commands(self, outcome: RunOutcome) -> None:
        """Print the worker invocations of a dry run."""
        self.print_header("Planned workers (dry run)")
        for result in outcome.worker_results:
            line = escape(shlex.join(result.command))
            suffix = " [dim](empty shard, no-op)[/dim]" if result.skipped else ""
            self.console.print(f"  shard-{result.shard_index}: {line}{suffix}", highlight=False)
        if outcome.kept_config is not None:
            self.print_info(
                f"Shard configuration kept at {outcome.kept_config}; remove it when done"
            )

    def print_run_summary(self, outcome: RunOutcome) -> None:
        """Print per-shard statuses and the overall verdict."""
        table = Table(title="Shard results")
        table.add_column("Shard", style="cyan")
        table.add_column("Status", justify="right")
        table.add_column("Result")

        for result in outcome.worker_results:
            if result.skipped:
                verdict = "[dim]empty[/dim]"
            elif result.success:
                verdict = "[green]passed[/green]"
            else:
                verdict = "[red]failed[/red]"
            table.add_row(f"shard-{result.shard_index}", str(result.exit_status), verdict)

        self.console.print(table)

        if outcome.success:
            self.print_success(f"All {len(outcome.worker_results)} shards passed")
            return

        failed = len(outcome.failed_shards)
        self.print_error(
            f"{failed} of {len(outcome.worker_results)} shards failed "
            f"(exit status {outcome.exit_status})"
        )
        if outcome.status_record is not None:
            self.print_info(f"Per-shard exit statuses: {outcome.status_record}")


reporter = CLIReporter()
