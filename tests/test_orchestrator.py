"""Tests for run orchestration, notification and telemetry ordering."""

import asyncio
import io
from typing import Any

import pytest
from rich.console import Console

from i18n_pipeline import ui
from i18n_pipeline.context import RunContext, TaskResult
from i18n_pipeline.orchestrator import UNKNOWN_AUTH_ID, Orchestrator, PhaseSet
from i18n_pipeline.outcome import ExitOutcome


class RecordingTelemetry:
    """Telemetry double that records tracked events."""

    def __init__(self, journal: list[str]) -> None:
        self.journal = journal
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def track(self, auth_id: str, event: str, payload: dict[str, Any]) -> None:
        self.events.append((auth_id, event, payload))
        self.journal.append(event)


class Harness:
    """Fake phases, notifier and telemetry sharing one call journal."""

    def __init__(self, fail_in: str | None = None, auth_id: str | None = "key-test") -> None:
        self.journal: list[str] = []
        self.fail_in = fail_in
        self.auth_id = auth_id
        self.telemetry = RecordingTelemetry(self.journal)
        self.sounds: list[str] = []
        self.contexts: list[RunContext] = []
        self.error_message: str | None = None

    def _phase(self, name: str):
        async def phase(ctx: RunContext) -> None:
            self.contexts.append(ctx)
            self.journal.append(name)
            if self.fail_in == name:
                raise RuntimeError(self.error_message or f"{name} exploded")
            if name == "execute":
                ctx.results["json:locales/fr.json:fr"] = TaskResult(status="success", translated=2)

        return phase

    async def resolve_auth_id(self, ctx: RunContext) -> str | None:
        self.journal.append("auth")
        if self.fail_in == "auth":
            raise RuntimeError("whoami failed")
        return self.auth_id

    async def notify(self, kind: str) -> None:
        self.sounds.append(kind)
        self.journal.append(f"sound:{kind}")

    def orchestrator(self, confirm=None) -> Orchestrator:
        return Orchestrator(
            phase_set=PhaseSet(
                setup=self._phase("setup"),
                plan=self._phase("plan"),
                execute=self._phase("execute"),
                watch=self._phase("watch"),
                resolve_auth_id=self.resolve_auth_id,
            ),
            telemetry=self.telemetry,
            notifier=self.notify,
            confirm=confirm,
        )

    def event_names(self) -> list[str]:
        return [event for _, event, _ in self.telemetry.events]


@pytest.fixture(autouse=True)
def recorded_summary(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    """Replace summary rendering with a recorder.

    Returns:
        list[dict]: The results passed to each summary render.
    """
    rendered: list[dict] = []

    async def render_summary(results: dict) -> None:
        rendered.append(dict(results))

    monkeypatch.setattr(ui, "render_summary", render_summary)
    return rendered


@pytest.mark.anyio
async def test_successful_run_with_sound(recorded_summary: list[dict]) -> None:
    harness = Harness()

    outcome = await harness.orchestrator().run({"sound": True, "watch": False})

    assert outcome == ExitOutcome.SUCCESS
    assert harness.journal == [
        "setup",
        "auth",
        "run.start",
        "plan",
        "execute",
        "sound:success",
        "run.success",
    ]
    assert len(recorded_summary) == 1
    assert "json:locales/fr.json:fr" in recorded_summary[0]
    assert "watch" not in harness.journal
    assert all(auth == "key-test" for auth, _, _ in harness.telemetry.events)


@pytest.mark.anyio
async def test_phases_share_one_context() -> None:
    harness = Harness()

    await harness.orchestrator().run({})

    assert len({id(ctx) for ctx in harness.contexts}) == 1


@pytest.mark.anyio
async def test_start_payload_has_config_and_flags() -> None:
    harness = Harness()

    await harness.orchestrator().run({"target_locale": ["en", "fr"], "api_key": "sk-secret"})

    _, event, payload = harness.telemetry.events[0]
    assert event == "run.start"
    assert payload["config"] is None
    assert payload["flags"]["target_locale"] == ["en", "fr"]
    assert payload["flags"]["api_key"] == "***"


@pytest.mark.anyio
async def test_execute_failure_plays_failure_sound(recorded_summary: list[dict]) -> None:
    harness = Harness(fail_in="execute")

    outcome = await harness.orchestrator().run({"sound": True})

    assert outcome == ExitOutcome.FAILURE
    assert recorded_summary == []
    assert harness.sounds == ["failure"]
    assert harness.event_names() == ["run.start", "run.error"]
    assert harness.telemetry.events[-1] == ("key-test", "run.error", {})
    assert harness.journal[-2:] == ["sound:failure", "run.error"]


@pytest.mark.anyio
async def test_setup_failure_reports_unknown_auth_id() -> None:
    harness = Harness(fail_in="setup")

    outcome = await harness.orchestrator().run({"watch": True})

    assert outcome == ExitOutcome.FAILURE
    assert harness.journal == ["setup", "run.error"]
    assert harness.telemetry.events == [(UNKNOWN_AUTH_ID, "run.error", {})]
    assert harness.sounds == []


@pytest.mark.anyio
async def test_plan_failure_never_enters_watch() -> None:
    harness = Harness(fail_in="plan")

    outcome = await harness.orchestrator().run({"watch": True, "sound": False})

    assert outcome == ExitOutcome.FAILURE
    assert "execute" not in harness.journal
    assert "watch" not in harness.journal
    assert "run.success" not in harness.journal


@pytest.mark.anyio
@pytest.mark.parametrize(
    "args",
    [{"concurrency": "lots", "sound": True}, {"target_locale": ["??"], "sound": True}],
)
async def test_invalid_flags_run_no_phase(args: dict, recorded_summary: list[dict]) -> None:
    harness = Harness()

    outcome = await harness.orchestrator().run(args)

    assert outcome == ExitOutcome.FAILURE
    assert harness.journal == ["sound:failure", "run.error"]
    assert harness.telemetry.events == [(UNKNOWN_AUTH_ID, "run.error", {})]
    assert recorded_summary == []


@pytest.mark.anyio
async def test_auth_failure_does_not_abort() -> None:
    harness = Harness(fail_in="auth")

    outcome = await harness.orchestrator().run({})

    assert outcome == ExitOutcome.SUCCESS
    assert harness.event_names() == ["run.start", "run.success"]
    assert {auth for auth, _, _ in harness.telemetry.events} == {UNKNOWN_AUTH_ID}


@pytest.mark.anyio
async def test_unresolved_auth_id_is_unknown() -> None:
    harness = Harness(auth_id=None)

    await harness.orchestrator().run({})

    assert {auth for auth, _, _ in harness.telemetry.events} == {UNKNOWN_AUTH_ID}


@pytest.mark.anyio
async def test_watch_entered_after_success_event() -> None:
    harness = Harness()

    outcome = await harness.orchestrator().run({"watch": True, "sound": True})

    assert outcome == ExitOutcome.SUCCESS
    assert harness.journal[-3:] == ["sound:success", "run.success", "watch"]


@pytest.mark.anyio
async def test_watch_failure_exits_without_error_event() -> None:
    harness = Harness(fail_in="watch")

    outcome = await harness.orchestrator().run({"watch": True})

    assert outcome == ExitOutcome.FAILURE
    assert harness.event_names() == ["run.start", "run.success"]


@pytest.mark.anyio
async def test_no_sound_without_flag() -> None:
    harness = Harness()

    await harness.orchestrator().run({})

    assert harness.sounds == []


@pytest.mark.anyio
async def test_debug_gate_blocks_until_confirmed() -> None:
    harness = Harness()
    confirmed = asyncio.Event()

    async def confirm() -> None:
        harness.journal.append("waiting")
        await confirmed.wait()

    run = asyncio.ensure_future(harness.orchestrator(confirm=confirm).run({"debug": True}))
    await asyncio.sleep(0.1)

    assert not run.done()
    assert harness.journal == ["waiting"]

    confirmed.set()
    assert await asyncio.wait_for(run, timeout=2) == ExitOutcome.SUCCESS
    assert harness.journal[1] == "setup"


@pytest.mark.anyio
async def test_debug_gate_skipped_without_flag() -> None:
    harness = Harness()

    async def confirm() -> None:
        raise AssertionError("should not wait for confirmation")

    assert await harness.orchestrator(confirm=confirm).run({}) == ExitOutcome.SUCCESS


@pytest.mark.anyio
async def test_summary_render_failure_takes_failure_path(monkeypatch: pytest.MonkeyPatch) -> None:
    async def render_summary(results: dict) -> None:
        raise RuntimeError("terminal went away")

    monkeypatch.setattr(ui, "render_summary", render_summary)
    harness = Harness()

    outcome = await harness.orchestrator().run({"sound": True, "watch": True})

    assert outcome == ExitOutcome.FAILURE
    assert harness.journal[-2:] == ["sound:failure", "run.error"]
    assert harness.event_names() == ["run.start", "run.error"]
    assert "watch" not in harness.journal


@pytest.mark.anyio
async def test_intro_render_failure_runs_no_phase(monkeypatch: pytest.MonkeyPatch) -> None:
    async def render_banner() -> None:
        raise OSError("stdout closed")

    monkeypatch.setattr(ui, "render_banner", render_banner)
    harness = Harness()

    outcome = await harness.orchestrator().run({"sound": True})

    assert outcome == ExitOutcome.FAILURE
    assert harness.journal == ["sound:failure", "run.error"]
    assert harness.telemetry.events == [(UNKNOWN_AUTH_ID, "run.error", {})]


@pytest.mark.anyio
@pytest.mark.parametrize(
    "message",
    [
        "locales/en.json does not match pattern locales/[locale].json",
        "unexpected closing tag [/bold] in source text",
    ],
)
async def test_error_message_is_printed_verbatim(monkeypatch: pytest.MonkeyPatch, message: str) -> None:
    output = io.StringIO()
    monkeypatch.setattr(ui, "console", Console(file=output, width=200))
    harness = Harness(fail_in="setup")
    harness.error_message = message

    outcome = await harness.orchestrator().run({})

    assert outcome == ExitOutcome.FAILURE
    assert f"Error: {message}" in output.getvalue()
    assert harness.event_names() == ["run.error"]
