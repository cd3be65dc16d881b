"""Run orchestration: setup -> plan -> execute -> (watch).

The orchestrator owns the ``RunContext`` for one invocation and drives the
phases in a fixed order. Every phase outcome comes back as ``Ok``/``Err``;
any ``Err`` ends the run through ``_fail``, which is the only failure path.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from rich.markup import escape

from i18n_pipeline import phases, ui
from i18n_pipeline.context import RunContext
from i18n_pipeline.errors import FlagsValidationError, PhaseError
from i18n_pipeline.flags import parse_flags
from i18n_pipeline.notifier import notify
from i18n_pipeline.outcome import Err, ExitOutcome, Ok, PhaseResult, attempt
from i18n_pipeline.telemetry import Telemetry
from i18n_pipeline.watch import watch

logger = logging.getLogger(__name__)

UNKNOWN_AUTH_ID = "unknown"

Phase = Callable[[RunContext], Awaitable[None]]
AuthResolver = Callable[[RunContext], Awaitable[str | None]]
Notify = Callable[[str], Awaitable[None]]


@dataclass
class PhaseSet:
    """The phase implementations the orchestrator drives."""

    setup: Phase = phases.setup
    plan: Phase = phases.plan
    execute: Phase = phases.execute
    watch: Phase = watch
    resolve_auth_id: AuthResolver = phases.determine_auth_id


def _validate(args: Mapping[str, Any]) -> PhaseResult:
    try:
        return Ok(parse_flags(args))
    except FlagsValidationError as e:
        return Err(PhaseError("validation", e))


class Orchestrator:
    """Drives one invocation of the run command to an ``ExitOutcome``."""

    def __init__(
        self,
        phase_set: PhaseSet | None = None,
        telemetry: Telemetry | None = None,
        notifier: Notify = notify,
        confirm: ui.Confirm | None = None,
    ) -> None:
        self.phases = phase_set or PhaseSet()
        self.telemetry = telemetry or Telemetry()
        self.notify = notifier
        self.confirm = confirm
        self.auth_id: str | None = None

    async def run(self, args: Mapping[str, Any]) -> ExitOutcome:
        """Validate flags, run every phase and report the outcome.

        Args:
            args: Raw parsed command-line options.

        Returns:
            ``SUCCESS`` after a complete run (and any watch session),
            ``FAILURE`` if validation or any phase failed.
        """
        self.auth_id = None

        match _validate(args):
            case Err() as failure:
                return await self._fail(failure, sound=args.get("sound") is True)
            case Ok(value=flags):
                ctx = RunContext(flags=flags)

        match await self._run_phases(ctx):
            case Err() as failure:
                return await self._fail(failure, sound=ctx.flags.sound)
            case Ok():
                return await self._succeed(ctx)

    async def _run_phases(self, ctx: RunContext) -> PhaseResult:
        result = await attempt("debug pause", lambda: ui.pause_if_debug(ctx.flags.debug, self.confirm))
        if isinstance(result, Err):
            return result

        result = await attempt("render", self._render_intro)
        if isinstance(result, Err):
            return result

        result = await attempt("setup", lambda: self.phases.setup(ctx))
        if isinstance(result, Err):
            return result

        match await attempt("auth", lambda: self.phases.resolve_auth_id(ctx)):
            case Ok(value=auth_id):
                self.auth_id = auth_id
            case Err(error=error):
                logger.debug("Auth id unavailable: %s", error)

        self.telemetry.track(self._auth_id(), "run.start", self._payload(ctx))

        for name, phase in (("plan", self.phases.plan), ("execute", self.phases.execute)):
            result = await attempt(name, lambda: self._after_spacer(phase, ctx))
            if isinstance(result, Err):
                return result

        result = await attempt("summary", lambda: self._render_summary(ctx))
        if isinstance(result, Err):
            return result
        return Ok(ctx.results)

    @staticmethod
    async def _render_intro() -> None:
        await ui.render_clear()
        await ui.render_spacer()
        await ui.render_banner()
        await ui.render_hero()
        await ui.render_spacer()

    @staticmethod
    async def _after_spacer(phase: Phase, ctx: RunContext) -> None:
        await ui.render_spacer()
        await phase(ctx)

    @staticmethod
    async def _render_summary(ctx: RunContext) -> None:
        await ui.render_spacer()
        await ui.render_summary(ctx.results)
        await ui.render_spacer()

    async def _succeed(self, ctx: RunContext) -> ExitOutcome:
        if ctx.flags.sound:
            await self.notify("success")

        self.telemetry.track(self._auth_id(), "run.success", self._payload(ctx))

        if ctx.flags.watch:
            try:
                await self.phases.watch(ctx)
            except Exception as e:
                logger.error("Watch mode stopped: %s", e)
                return ExitOutcome.FAILURE

        return ExitOutcome.SUCCESS

    async def _fail(self, failure: Err, sound: bool) -> ExitOutcome:
        ui.console.print(f"[red bold]Error:[/red bold] {escape(str(failure.error.cause))}")
        logger.debug("Run failed during %s", failure.error.phase, exc_info=failure.error.cause)

        if sound:
            await self.notify("failure")

        self.telemetry.track(self._auth_id(), "run.error", {})
        return ExitOutcome.FAILURE

    def _auth_id(self) -> str:
        return self.auth_id or UNKNOWN_AUTH_ID

    @staticmethod
    def _payload(ctx: RunContext) -> dict[str, Any]:
        return {
            "config": ctx.config.snapshot() if ctx.config else None,
            "flags": ctx.flags.snapshot(),
        }
