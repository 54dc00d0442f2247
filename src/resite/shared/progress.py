"""Rich progress display and user interaction for the pipeline."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Callable

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn, TimeElapsedColumn
from rich.prompt import Prompt

console = Console()

# Module-level reference so prompts can pause/resume the active progress display.
_active_progress: PipelineProgress | None = None


class PipelineProgress:
    """Progress bars plus persistent log lines for the pipeline's stages.

    A stage started with ``total`` tracks a real percentage (analysis
    reports 0-100); without it the bar pulses until the stage ends.
    """

    def __init__(self) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=24),
            TimeElapsedColumn(),
            console=console,
        )
        self._stages: dict[str, TaskID] = {}

    def __enter__(self) -> "PipelineProgress":
        global _active_progress
        self._progress.__enter__()
        _active_progress = self
        return self

    def __exit__(self, *args: object) -> None:
        global _active_progress
        _active_progress = None
        self._progress.__exit__(*args)

    def pause(self) -> None:
        """Temporarily stop the live display (e.g. before prompting for input)."""
        self._progress.stop()

    def resume(self) -> None:
        self._progress.start()

    def start_stage(self, stage: str, *, total: float | None = None) -> None:
        self._stages[stage] = self._progress.add_task(f"[cyan]{stage}[/]", total=total)

    def update_stage(self, stage: str, status: str, *, completed: float | None = None) -> None:
        """Show the stage's current status line and, for tracked stages, its percentage."""
        tid = self._stages.get(stage)
        if tid is None:
            return
        self._progress.update(tid, description=f"[cyan]{stage}[/] {status}", completed=completed)

    def finish_stage(self, stage: str) -> None:
        tid = self._stages.get(stage)
        if tid is None:
            return
        self._progress.update(tid, description=f"[green]✓ {stage}[/]", total=100, completed=100)
        self._progress.stop_task(tid)

    def fail_stage(self, stage: str, error: str) -> None:
        tid = self._stages.get(stage)
        if tid is None:
            return
        self._progress.update(tid, description=f"[red]✗ {stage}: {error}[/]")
        self._progress.stop_task(tid)

    def stage_log(self, stage: str) -> Callable[[str], None]:
        """Return a callback that prints each pipeline log line above the bars."""

        def write(message: str) -> None:
            self._progress.console.print(f"  [dim]{stage}:[/] {message}")

        return write

    def print_phase(self, label: str) -> None:
        """Print a phase header outside the progress display."""
        self._progress.console.print(Panel(f"[bold]{label}[/bold]", style="blue"))


def is_interactive() -> bool:
    return sys.stdin.isatty()


async def ask_user(question: str, *, choices: list[str] | None = None, default: str | None = None) -> str:
    """Prompt the user for input (runs in executor to avoid blocking the event loop).

    Pauses the Rich progress display while waiting so the prompt is visible
    and stdin is not contended. Returns ``default`` (or "") when stdin is
    not a terminal or closes.
    """
    if not is_interactive():
        console.print(f"[yellow]{question} (non-interactive, using default)[/]")
        return default or ""

    if _active_progress is not None:
        _active_progress.pause()

    # Temporarily raise the root log level to suppress httpx / agent chatter
    root_logger = logging.getLogger()
    prev_level = root_logger.level
    root_logger.setLevel(logging.CRITICAL)

    kwargs: dict = {"choices": choices}
    if default is not None:
        kwargs["default"] = default

    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(
            None, lambda: Prompt.ask(f"\n[yellow]{question}[/]", **kwargs),
        )
    except EOFError:
        return default or ""
    finally:
        root_logger.setLevel(prev_level)
        if _active_progress is not None:
            _active_progress.resume()
