"""Terminal rendering for the run command."""

import asyncio
from typing import Awaitable, Callable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from i18n_pipeline.context import TaskResult

console = Console()

BANNER = r"""
 _ _  ___
(_) |( _ ) _ __
| | |/ _ \| '_ \
| | | (_) | | | |
|_|_|\___/|_| |_|
"""

Confirm = Callable[[], Awaitable[object]]


async def render_clear() -> None:
    console.clear()


async def render_spacer() -> None:
    console.print()


async def render_banner() -> None:
    console.print(Text(BANNER.strip("\n"), style="bold cyan"))


async def render_hero() -> None:
    console.print(
        Panel.fit(
            "[bold]i18n-pipeline[/bold] localizes your app's strings with an LLM.\n"
            "[dim]Configure buckets and locales in i18n.yaml, then run this command again "
            "whenever source strings change.[/dim]",
            border_style="cyan",
        )
    )


async def _wait_for_enter() -> None:
    await asyncio.to_thread(console.input, "[yellow]Debug mode: press Enter to continue...[/yellow]")


async def pause_if_debug(debug: bool, confirm: Confirm | None = None) -> None:
    """Block until the user confirms, when ``debug`` is set.

    Args:
        debug: Whether the debug pause is active.
        confirm: Async callable that returns once confirmation arrives.
            Defaults to waiting for Enter on the terminal.
    """
    if not debug:
        return
    await (confirm or _wait_for_enter)()


async def render_summary(results: dict[str, TaskResult]) -> None:
    """Print a table of task outcomes followed by totals.

    Args:
        results: Task results keyed by task id.
    """
    if not results:
        console.print("[yellow]No localization tasks were run.[/yellow]")
        return

    styles = {"success": "green", "skipped": "dim", "error": "red"}

    table = Table(title="Localization Summary")
    table.add_column("Task", style="cyan")
    table.add_column("Status")
    table.add_column("Translated", justify="right")
    table.add_column("Details", style="dim")

    counts: dict[str, int] = {}
    translated_total = 0
    for task_id in sorted(results):
        result = results[task_id]
        counts[result.status] = counts.get(result.status, 0) + 1
        translated_total += result.translated
        style = styles.get(result.status, "white")
        table.add_row(
            task_id,
            f"[{style}]{result.status}[/{style}]",
            str(result.translated),
            result.error or "",
        )

    table.add_section()
    table.add_row("[bold]Total[/bold]", "", f"[bold]{translated_total}[/bold]", "")

    console.print(table)
    console.print(
        f"[green]{counts.get('success', 0)} succeeded[/green], "
        f"[dim]{counts.get('skipped', 0)} up to date[/dim], "
        f"[red]{counts.get('error', 0)} failed[/red]"
    )
