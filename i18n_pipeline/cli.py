"""CLI entry for the run command: logging, the event loop and process exit."""

import asyncio
import logging
from typing import Any, Mapping, NoReturn

from rich.logging import RichHandler

from i18n_pipeline.orchestrator import Orchestrator
from i18n_pipeline.outcome import ExitOutcome
from i18n_pipeline.telemetry import Telemetry
from i18n_pipeline.ui import console


def setup_logging(debug: bool = False) -> None:
    """Configure logging with rich handler for colored, readable output."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    # Keep HTTP client chatter out of debug output
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def exit_gracefully(telemetry: Telemetry) -> NoReturn:
    """Flush telemetry and log handlers, then exit with status 0."""
    telemetry.close()
    for handler in logging.getLogger().handlers:
        handler.flush()
    raise SystemExit(ExitOutcome.SUCCESS)


def run(args: Mapping[str, Any]) -> NoReturn:
    """Main synchronous entry point for the run command.

    Runs the orchestrator and terminates the process with its outcome.
    Success exits through ``exit_gracefully``; failures exit immediately.

    Args:
        args: Parsed command-line options.
    """
    setup_logging(debug=args.get("debug") is True)
    logger = logging.getLogger(__name__)

    telemetry = Telemetry()
    orchestrator = Orchestrator(telemetry=telemetry)

    try:
        outcome = asyncio.run(orchestrator.run(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]Localization cancelled by user.[/yellow]")
        raise SystemExit(ExitOutcome.INTERRUPTED)
    except Exception as e:
        logger.exception("Unexpected error: %s", e)
        raise SystemExit(ExitOutcome.FAILURE)

    if outcome == ExitOutcome.SUCCESS:
        exit_gracefully(telemetry)
    raise SystemExit(outcome)
