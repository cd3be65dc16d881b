"""Tests for the LLM localizer."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from i18n_pipeline.config import LLMConfig, TranslationConfig
from i18n_pipeline.errors import TranslationError
from i18n_pipeline.translator import (
    Localizer,
    _get_language_name,
    _parse_llm_response,
    is_translatable,
)


def _response(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def _localizer(create: AsyncMock, batch_size: int = 20, max_retries: int = 3) -> Localizer:
    client = MagicMock()
    client.chat.completions.create = create
    return Localizer(
        LLMConfig(api_key="sk-test"),
        TranslationConfig(batch_size=batch_size, max_retries=max_retries),
        client=client,
        retry_delay=0,
    )


def test_parse_response_strips_code_fences() -> None:
    text = '```json\n{"a": "Bonjour", "extra": "x"}\n```'

    assert _parse_llm_response(text, ["a", "b"]) == {"a": "Bonjour"}


def test_parse_response_rejects_non_object() -> None:
    with pytest.raises(ValueError):
        _parse_llm_response("[1, 2]", ["a"])


@pytest.mark.parametrize(
    ("text", "expected"),
    [("Hello", True), ("%d", False), ("  ", False), ("%@ / %lld", False), ("Save %@", True)],
)
def test_is_translatable(text: str, expected: bool) -> None:
    assert is_translatable(text) is expected


def test_language_name_falls_back_to_base_language() -> None:
    assert _get_language_name("fr-CA") == "French"
    assert _get_language_name("zh_Hans") == "Simplified Chinese"
    assert _get_language_name("tlh") == "tlh"


@pytest.mark.anyio
async def test_localize_batches_entries() -> None:
    create = AsyncMock(
        side_effect=[
            _response('{"a": "A-fr", "b": "B-fr"}'),
            _response('{"c": "C-fr"}'),
        ]
    )
    localizer = _localizer(create, batch_size=2)

    result = await localizer.localize("en", "fr", {"a": "A", "b": "B", "c": "C"})

    assert result == {"a": "A-fr", "b": "B-fr", "c": "C-fr"}
    assert create.await_count == 2
    first_batch = create.await_args_list[0].kwargs["messages"][-1]["content"]
    assert "\"c\"" not in first_batch


@pytest.mark.anyio
async def test_localize_retries_then_succeeds() -> None:
    create = AsyncMock(side_effect=[RuntimeError("rate limited"), _response('{"a": "A-fr"}')])

    result = await _localizer(create).localize("en", "fr", {"a": "A"})

    assert result == {"a": "A-fr"}
    assert create.await_count == 2


@pytest.mark.anyio
async def test_localize_gives_up_after_max_retries() -> None:
    create = AsyncMock(return_value=_response(None))

    with pytest.raises(TranslationError):
        await _localizer(create, max_retries=2).localize("en", "fr", {"a": "A"})
    assert create.await_count == 2


@pytest.mark.anyio
async def test_localize_empty_entries_skips_api() -> None:
    create = AsyncMock()

    assert await _localizer(create).localize("en", "fr", {}) == {}
    create.assert_not_awaited()


@pytest.mark.anyio
async def test_whoami_is_stable_and_opaque() -> None:
    localizer = _localizer(AsyncMock())

    auth_id = await localizer.whoami()

    assert auth_id == await localizer.whoami()
    assert auth_id.startswith("key-")
    assert "sk-test" not in auth_id
