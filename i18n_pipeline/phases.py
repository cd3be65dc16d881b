"""Setup, plan and execute phases of the run command.

Each phase takes the shared ``RunContext`` and fills in its part of it.
"""

import asyncio
import logging
from fnmatch import fnmatch
from pathlib import Path

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from i18n_pipeline.buckets import expand_pattern, get_bucket, localized_path
from i18n_pipeline.config import ProjectConfig, load_config, validate_config
from i18n_pipeline.context import LocalizationTask, RunContext, TaskResult
from i18n_pipeline.errors import ConfigError, PipelineError
from i18n_pipeline.lockfile import Lockfile
from i18n_pipeline.translator import Localizer, is_translatable
from i18n_pipeline.ui import console

logger = logging.getLogger(__name__)


def _require_config(ctx: RunContext) -> ProjectConfig:
    if ctx.config is None:
        raise PipelineError("Project configuration is not loaded; run setup first.")
    return ctx.config


def _matches_any(value: str, patterns: tuple[str, ...]) -> bool:
    return any(fnmatch(value, pattern) for pattern in patterns)


async def setup(ctx: RunContext) -> None:
    """Load the project configuration and build the localizer.

    Command-line overrides (source/target locales, API key) are applied
    before validation.

    Raises:
        ConfigError: If the configuration is missing or invalid, or if a
            ``--bucket`` filter names a bucket the project does not configure.
    """
    flags = ctx.flags
    config = load_config(flags.config)

    if flags.source_locale:
        config.locale.source = flags.source_locale
    if flags.target_locale:
        config.locale.targets = list(flags.target_locale)
    if flags.api_key:
        config.llm.api_key = flags.api_key

    validate_config(config)

    unknown = [b for b in flags.bucket if b not in config.buckets]
    if unknown:
        raise ConfigError(f"Bucket(s) not configured in {flags.config}: {', '.join(unknown)}")

    ctx.config = config
    ctx.localizer = Localizer(config.llm, config.translation)

    logger.info("Configuration loaded from %s", flags.config)
    logger.info("Using model: %s", config.llm.model)


async def determine_auth_id(ctx: RunContext) -> str | None:
    """Resolve the telemetry correlation id, or None if it cannot be resolved."""
    if ctx.localizer is None:
        return None
    try:
        return await ctx.localizer.whoami()
    except Exception as e:
        logger.debug("Could not determine auth id: %s", e)
        return None


async def plan(ctx: RunContext) -> None:
    """Find localizable files and build one task per file and target locale."""
    config = _require_config(ctx)
    flags = ctx.flags
    source = config.locale.source
    targets = [t for t in config.locale.targets if t != source]

    tasks: list[LocalizationTask] = []
    seen: set[str] = set()

    for bucket_type, bucket_config in config.buckets.items():
        if flags.bucket and bucket_type not in flags.bucket:
            continue

        excluded: set[Path] = set()
        for pattern in bucket_config.exclude:
            excluded.update(expand_pattern(config.root, pattern, source))

        for pattern in bucket_config.include:
            source_paths = expand_pattern(config.root, pattern, source)
            if not source_paths:
                logger.warning("No %s files match %s for locale %s", bucket_type, pattern, source)

            for source_path in source_paths:
                if source_path in excluded:
                    continue
                if flags.file and not _matches_any(source_path.as_posix(), flags.file):
                    continue

                for target in targets:
                    task = LocalizationTask(
                        bucket_type=bucket_type,
                        path_pattern=pattern,
                        source_path=source_path,
                        target_path=localized_path(pattern, source_path, source, target),
                        source_locale=source,
                        target_locale=target,
                    )
                    if task.id not in seen:
                        seen.add(task.id)
                        tasks.append(task)

    ctx.tasks = tasks

    source_files = {t.source_path for t in tasks}
    console.print(
        f"[bold]Planned {len(tasks)} task(s)[/bold] across {len(source_files)} source file(s) "
        f"into {', '.join(targets)}"
    )


def _pending_keys(
    ctx: RunContext,
    task: LocalizationTask,
    source_entries: dict[str, str],
    target_entries: dict[str, str],
    lockfile: Lockfile,
) -> set[str]:
    if ctx.flags.force:
        pending = set(source_entries)
    else:
        pending = {k for k in source_entries if k not in target_entries}
        lock_key = task.source_path.as_posix()
        # Without a lock entry there is no record of what was localized; trust existing targets
        if lock_key in lockfile.checksums:
            pending |= lockfile.changed_keys(lock_key, source_entries)

    if ctx.flags.key:
        pending = {k for k in pending if _matches_any(k, ctx.flags.key)}
    return pending


async def _localize_task(ctx: RunContext, task: LocalizationTask, lockfile: Lockfile) -> TaskResult:
    config = _require_config(ctx)
    if ctx.localizer is None:
        raise PipelineError("Localizer is not initialized; run setup first.")

    bucket = get_bucket(task.bucket_type)
    source_file = config.root / task.source_path
    target_file = config.root / task.target_path

    source_entries = bucket.read(source_file, task.source_locale)
    target_entries = bucket.read(target_file, task.target_locale)
    pending = _pending_keys(ctx, task, source_entries, target_entries, lockfile)

    # Keys no longer present in the source are dropped from the target
    merged = {k: target_entries[k] for k in source_entries if k in target_entries}

    to_translate = {k: source_entries[k] for k in pending if is_translatable(source_entries[k])}
    for key in pending - set(to_translate):
        merged[key] = source_entries[key]

    translations = await ctx.localizer.localize(
        task.source_locale, task.target_locale, to_translate
    )
    merged.update(translations)

    if merged == target_entries and not to_translate:
        return TaskResult(status="skipped")

    ordered = {k: merged[k] for k in source_entries if k in merged}
    bucket.write(target_file, task.target_locale, ordered)

    missing = set(to_translate) - set(translations)
    if missing:
        return TaskResult(
            status="error",
            translated=len(translations),
            error=f"{len(missing)} key(s) missing from the localizer response",
        )
    return TaskResult(status="success", translated=len(translations))


async def execute(ctx: RunContext) -> None:
    """Run every planned task with bounded concurrency.

    A failing task is recorded as an ``error`` result and does not stop the
    others. Lockfile checksums are refreshed for source files whose tasks
    all completed.
    """
    config = _require_config(ctx)
    lockfile = Lockfile.load(config.root / config.lockfile)
    semaphore = asyncio.Semaphore(ctx.flags.concurrency)

    if not ctx.tasks:
        console.print("[green]Nothing to localize.[/green]")
        return

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        progress_task = progress.add_task("Localizing...", total=len(ctx.tasks))

        async def run_task(task: LocalizationTask) -> None:
            async with semaphore:
                try:
                    result = await _localize_task(ctx, task, lockfile)
                except Exception as e:
                    logger.error("Task %s failed: %s", task.id, e)
                    result = TaskResult(status="error", error=str(e))
                ctx.results[task.id] = result
                progress.advance(progress_task)

        await asyncio.gather(*(run_task(task) for task in ctx.tasks))

    if ctx.flags.key:
        return

    by_source: dict[tuple[str, Path], list[LocalizationTask]] = {}
    for task in ctx.tasks:
        by_source.setdefault((task.bucket_type, task.source_path), []).append(task)

    updated = False
    for (bucket_type, source_path), tasks in by_source.items():
        if all(ctx.results[t.id].status != "error" for t in tasks):
            entries = get_bucket(bucket_type).read(config.root / source_path, tasks[0].source_locale)
            lockfile.update(source_path.as_posix(), entries)
            updated = True

    if updated:
        lockfile.save()
