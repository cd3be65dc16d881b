"""Common pytest configuration."""

from pathlib import Path

import pytest
import yaml


@pytest.fixture
def anyio_backend() -> str:
    """Force asyncio backend for anyio-powered tests.

    Returns:
        str: The backend name.
    """
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from real credentials and the user's telemetry file."""
    monkeypatch.delenv("LLM_API_KEY", raising=False)
    monkeypatch.delenv("DO_NOT_TRACK", raising=False)
    monkeypatch.setenv("I18N_PIPELINE_TELEMETRY_FILE", str(tmp_path / "telemetry.jsonl"))


class FakeLocalizer:
    """Localizer double that prefixes source text with the target locale."""

    def __init__(self, auth_id: str | None = "key-test") -> None:
        self.auth_id = auth_id
        self.calls: list[tuple[str, str, dict[str, str]]] = []

    async def whoami(self) -> str | None:
        return self.auth_id

    async def localize(self, source_locale, target_locale, entries):
        self.calls.append((source_locale, target_locale, dict(entries)))
        return {key: f"[{target_locale}] {text}" for key, text in entries.items()}


@pytest.fixture
def fake_localizer() -> FakeLocalizer:
    """Localizer double recording its calls.

    Returns:
        FakeLocalizer: A fresh fake.
    """
    return FakeLocalizer()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Write a small project with an English JSON source file.

    Returns:
        Path: Path to the project's i18n.yaml.
    """
    root = tmp_path / "app"
    (root / "locales").mkdir(parents=True)
    (root / "locales" / "en.json").write_text(
        '{"greeting": "Hello", "nav": {"home": "Home", "count": "%d"}}\n',
        encoding="utf-8",
    )
    config = {
        "locale": {"source": "en", "targets": ["fr", "de"]},
        "buckets": {"json": {"include": ["locales/[locale].json"]}},
        "llm": {"api_key": "sk-test", "model": "gpt-4o-mini"},
    }
    config_path = root / "i18n.yaml"
    config_path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return config_path
