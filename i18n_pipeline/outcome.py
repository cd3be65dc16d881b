"""Phase results and process exit outcomes."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Awaitable, Callable

from i18n_pipeline.errors import PhaseError


class ExitOutcome(IntEnum):
    """Process exit codes produced by a run."""

    SUCCESS = 0
    FAILURE = 1
    INTERRUPTED = 130


@dataclass(frozen=True)
class Ok:
    """A phase that completed."""

    value: Any = None


@dataclass(frozen=True)
class Err:
    """A phase that raised."""

    error: PhaseError


PhaseResult = Ok | Err


async def attempt(phase: str, call: Callable[[], Awaitable[Any]]) -> PhaseResult:
    """Await a phase call and capture its failure as an ``Err``.

    Args:
        phase: Name of the phase, used in the wrapped error.
        call: Zero-argument callable returning the phase coroutine.

    Returns:
        ``Ok`` with the phase's return value, or ``Err`` wrapping the exception.
    """
    try:
        return Ok(await call())
    except PhaseError as e:
        return Err(e)
    except Exception as e:
        return Err(PhaseError(phase, e))
