"""Watch mode: re-run plan and execute when source files change."""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable

from i18n_pipeline.buckets import expand_pattern
from i18n_pipeline.context import RunContext
from i18n_pipeline.phases import execute, plan
from i18n_pipeline.ui import console, render_spacer, render_summary

logger = logging.getLogger(__name__)

Rerun = Callable[[RunContext], Awaitable[None]]

Snapshot = dict[Path, tuple[int, int]]


def snapshot_sources(ctx: RunContext) -> Snapshot:
    """Record (mtime_ns, size) of every source-locale file the buckets match."""
    config = ctx.config
    if config is None:
        return {}

    state: Snapshot = {}
    for bucket_type, bucket_config in config.buckets.items():
        if ctx.flags.bucket and bucket_type not in ctx.flags.bucket:
            continue
        for pattern in bucket_config.include:
            for path in expand_pattern(config.root, pattern, config.locale.source):
                try:
                    stat = (config.root / path).stat()
                except FileNotFoundError:
                    continue
                state[path] = (stat.st_mtime_ns, stat.st_size)
    return state


async def _rerun(ctx: RunContext) -> None:
    await plan(ctx)
    await render_spacer()
    await execute(ctx)
    await render_spacer()
    await render_summary(ctx.results)


async def watch(
    ctx: RunContext,
    rerun: Rerun | None = None,
    poll_interval: float = 0.5,
) -> None:
    """Poll source files and re-localize after changes settle.

    A re-run starts once files have changed and then stayed unchanged for
    ``ctx.flags.debounce`` milliseconds. Errors in a re-run are logged and
    watching continues. Runs until cancelled.

    Args:
        ctx: The run context from the initial pass.
        rerun: Coroutine function performing one re-run; defaults to
            plan, execute and summary.
        poll_interval: Seconds between file system polls.
    """
    rerun = rerun or _rerun
    loop = asyncio.get_running_loop()
    debounce = ctx.flags.debounce / 1000

    snapshot = snapshot_sources(ctx)
    last_change: float | None = None

    console.print(
        f"[bold cyan]Watching {len(snapshot)} source file(s) for changes[/bold cyan] "
        f"[dim](debounce {ctx.flags.debounce}ms, Ctrl+C to stop)[/dim]"
    )

    while True:
        await asyncio.sleep(poll_interval)

        current = snapshot_sources(ctx)
        if current != snapshot:
            changed = sorted(
                p.as_posix() for p in set(current) | set(snapshot) if current.get(p) != snapshot.get(p)
            )
            logger.info("Detected changes in: %s", ", ".join(changed))
            snapshot = current
            last_change = loop.time()
            continue

        if last_change is None or loop.time() - last_change < debounce:
            continue

        last_change = None
        console.print("[cyan]Source files changed, localizing...[/cyan]")
        try:
            await rerun(ctx)
        except Exception as e:
            logger.error("Watch re-run failed: %s", e)

        # Re-runs may rewrite catalogs that also hold the source locale
        snapshot = snapshot_sources(ctx)
        console.print("[dim]Waiting for further changes...[/dim]")
