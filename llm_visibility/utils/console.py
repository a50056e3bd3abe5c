"""
Rich console output for the llm-visibility CLI.

Three output modes, selected by CLI flags:

- text (default): Rich spinners, progress bar, tables and panels
- json (--format json): everything is buffered and written to stdout as one
  JSON document at the end, for scripts and agents
- quiet (--quiet): tab-separated totals only

Every helper checks the global `output_mode`, so command code never branches
on the mode itself.

Example:
    >>> output_mode.format = "json"
    >>> success("Config loaded")
    >>> print_final_summary("2026-03-02T08-30-00Z", done=3, total=4)
    {"status": "success", "message": "Config loaded", "run_id": ..., ...}
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from llm_visibility.config.constants import PROVIDER_DISPLAY_NAMES

_STATUS_STYLES = {
    "done": "green",
    "failed": "red",
    "extracting": "cyan",
    "running": "blue",
    "pending": "dim",
}

_SENTIMENT_STYLES = {
    "positive": "green",
    "negative": "red",
    "mixed": "yellow",
    "neutral": "white",
    "not_mentioned": "dim",
}


class OutputMode:
    """
    Current output format and verbosity.

    Attributes:
        format: "text" or "json"
        quiet: Suppress everything but the final totals
    """

    def __init__(self, format_type: str = "text", quiet: bool = False):
        if format_type not in ("text", "json"):
            raise ValueError(f"Invalid format: {format_type}. Must be 'text' or 'json'")

        self.format = format_type
        self.quiet = quiet
        self._json_buffer: dict[str, Any] = {}

    def is_human(self) -> bool:
        return self.format == "text"

    def is_agent(self) -> bool:
        return self.format == "json"

    def add_json(self, key: str, value: Any) -> None:
        """Buffer a key for the final JSON document."""
        self._json_buffer[key] = value

    def flush_json(self) -> None:
        """Write the buffered JSON document to stdout and clear the buffer."""
        if self.is_agent() and self._json_buffer:
            json.dump(self._json_buffer, sys.stdout, indent=2, default=str)
            sys.stdout.write("\n")
            sys.stdout.flush()
            self._json_buffer.clear()


# Set by the CLI callback from --format/--quiet
output_mode = OutputMode()

console = Console()
console_err = Console(stderr=True)


@contextmanager
def spinner(message: str):
    """Show a spinner while the block runs (text mode only)."""
    if output_mode.is_human() and not output_mode.quiet:
        with console.status(f"[bold blue]{message}", spinner="dots") as status:
            yield status
    else:
        yield None


def create_progress_bar() -> Progress | NoOpProgress:
    """
    Progress bar for task completion.

    Text mode gets a Rich Progress with a "done/total" column; the other
    modes get NoOpProgress with the same interface.

    Example:
        >>> with create_progress_bar() as progress:
        ...     bar = progress.add_task("Querying providers", total=6)
        ...     progress.update(bar, completed=2)
    """
    if output_mode.is_human() and not output_mode.quiet:
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
    return NoOpProgress()


class NoOpProgress:
    """Stand-in for rich.progress.Progress outside text mode."""

    def __enter__(self):
        return self

    def __exit__(self, *args):
        pass

    def add_task(self, _description: str, total: int | None = None) -> int:
        return 0

    def update(self, _task_id: int, **_kwargs: Any) -> None:
        pass


def success(message: str) -> None:
    if output_mode.is_human():
        if not output_mode.quiet:
            console.print(f"[green]✓[/green] {message}")
    elif output_mode.is_agent():
        output_mode.add_json("status", "success")
        output_mode.add_json("message", message)


def error(message: str) -> None:
    """
    Report an error.

    Text mode prints to stderr (even with --quiet); json mode buffers
    {"status": "error", "error": message}.
    """
    if output_mode.is_human():
        console_err.print(f"[red]✗[/red] {message}", style="red")
    elif output_mode.is_agent():
        output_mode.add_json("status", "error")
        output_mode.add_json("error", message)


def warning(message: str) -> None:
    if output_mode.is_human():
        if not output_mode.quiet:
            console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")
    elif output_mode.is_agent():
        warnings = output_mode._json_buffer.setdefault("warnings", [])
        warnings.append(message)


def info(message: str) -> None:
    """Informational line, text mode only."""
    if output_mode.is_human() and not output_mode.quiet:
        console.print(f"[blue]ℹ[/blue] {message}")


def print_summary_table(tasks: list[dict]) -> None:
    """
    Print one row per task.

    Expected keys per row: provider, model_name, prompt_index, status,
    brand_mentioned, brand_rank, sentiment, error.

    Json mode buffers the rows under "tasks"; quiet mode prints nothing.
    """
    if output_mode.is_agent():
        output_mode.add_json("tasks", tasks)
        return

    if output_mode.quiet:
        return

    table = Table(title="Visibility by Task", box=box.ROUNDED)
    table.add_column("Provider", style="cyan", no_wrap=True)
    table.add_column("Model", style="magenta")
    table.add_column("Prompt", justify="right")
    table.add_column("Mentioned", justify="center")
    table.add_column("Rank", justify="right")
    table.add_column("Sentiment", justify="center")
    table.add_column("Status", justify="center")

    for row in tasks:
        status = row.get("status", "unknown")
        status_style = _STATUS_STYLES.get(status, "yellow")

        if status == "done":
            mentioned = (
                "[green]✓[/green]" if row.get("brand_mentioned") else "[red]✗[/red]"
            )
            rank = row.get("brand_rank")
            rank_str = f"#{rank}" if rank is not None else "-"
            sentiment = row.get("sentiment") or "-"
            sentiment_str = f"[{_SENTIMENT_STYLES.get(sentiment, 'white')}]{sentiment}[/]"
        else:
            mentioned = rank_str = sentiment_str = "-"

        status_str = f"[{status_style}]{status}[/]"
        if status == "failed" and row.get("error_type"):
            status_str += f" [dim]({row['error_type']})[/dim]"

        table.add_row(
            PROVIDER_DISPLAY_NAMES.get(row.get("provider", ""), row.get("provider", "")),
            row.get("model_name", ""),
            str(row.get("prompt_index", 0) + 1),
            mentioned,
            rank_str,
            sentiment_str,
            status_str,
        )

    console.print(table)


def print_visibility_summary(summaries: list[dict]) -> None:
    """
    Print the per-provider roll-up (mention rate, average rank, top competitor).

    Json mode buffers the rows under "providers".
    """
    if output_mode.is_agent():
        output_mode.add_json("providers", summaries)
        return

    if output_mode.quiet or not summaries:
        return

    table = Table(title="Visibility by Provider", box=box.ROUNDED)
    table.add_column("Provider", style="cyan", no_wrap=True)
    table.add_column("Done", justify="right")
    table.add_column("Mention rate", justify="right", style="green")
    table.add_column("Avg rank", justify="right")
    table.add_column("Top competitor", style="magenta")

    for summary in summaries:
        counts = summary.get("competitor_mention_counts") or {}
        top = max(counts.items(), key=lambda item: item[1]) if counts else None
        average_rank = summary.get("average_rank")
        table.add_row(
            PROVIDER_DISPLAY_NAMES.get(summary["provider"], summary["provider"]),
            f"{summary['done']}/{summary['total_tasks']}",
            f"{summary['mention_rate'] * 100:.0f}%",
            f"{average_rank:.1f}" if average_rank is not None else "-",
            f"{top[0]} ({top[1]})" if top else "-",
        )

    console.print(table)


def print_final_summary(run_id: str, done: int, total: int) -> None:
    """
    Print the run totals and flush json output.

    Quiet mode prints "run_id<TAB>done<TAB>total".

    Example:
        >>> print_final_summary("2026-03-02T08-30-00Z", done=5, total=6)
    """
    if output_mode.is_agent():
        output_mode.add_json("run_id", run_id)
        output_mode.add_json("done_tasks", done)
        output_mode.add_json("total_tasks", total)
        output_mode.flush_json()
        return

    if output_mode.quiet:
        print(f"{run_id}\t{done}\t{total}")
        return

    rate = (done / total * 100) if total > 0 else 0.0
    summary_text = (
        f"[bold]Run ID:[/bold] {run_id}\n"
        f"[bold]Tasks:[/bold] {done}/{total} done ({rate:.1f}%)"
    )

    if total and done == total:
        border_style = "green"
        title = "[bold green]✓ Run completed[/bold green]"
    elif done > 0:
        border_style = "yellow"
        title = "[bold yellow]⚠ Run completed with failures[/bold yellow]"
    else:
        border_style = "red"
        title = "[bold red]✗ Run failed[/bold red]"

    console.print(Panel(summary_text, title=title, border_style=border_style, box=box.ROUNDED))
