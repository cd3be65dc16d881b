"""LLM-based localization engine with batching and retries."""

import asyncio
import hashlib
import json
import logging
import re
from typing import Any

from openai import AsyncOpenAI

from i18n_pipeline.config import LLMConfig, TranslationConfig
from i18n_pipeline.errors import TranslationError

logger = logging.getLogger(__name__)

# Language code to human-readable name mapping for better LLM prompts
LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "de": "German",
    "es": "Spanish",
    "fr": "French",
    "ja": "Japanese",
    "ko": "Korean",
    "zh-Hans": "Simplified Chinese",
    "zh-Hant": "Traditional Chinese",
    "zh-CN": "Simplified Chinese",
    "zh-TW": "Traditional Chinese",
    "pt-BR": "Brazilian Portuguese",
    "pt-PT": "European Portuguese",
    "it": "Italian",
    "nl": "Dutch",
    "ru": "Russian",
    "ar": "Arabic",
    "th": "Thai",
    "vi": "Vietnamese",
    "id": "Indonesian",
    "ms": "Malay",
    "tr": "Turkish",
    "pl": "Polish",
    "uk": "Ukrainian",
    "cs": "Czech",
    "sv": "Swedish",
    "da": "Danish",
    "fi": "Finnish",
    "nb": "Norwegian Bokmål",
    "el": "Greek",
    "he": "Hebrew",
    "hi": "Hindi",
    "hu": "Hungarian",
    "ro": "Romanian",
    "sk": "Slovak",
    "ca": "Catalan",
    "hr": "Croatian",
    "bg": "Bulgarian",
}

# Strings made only of format specifiers, punctuation, symbols or whitespace
# are copied as-is instead of being sent to the LLM.
_UNTRANSLATABLE_PATTERN = re.compile(
    r"^[\s%@lld.,·•∞⭐\-+/\d(){}[\]|:;!?\"'#&*=<>^~`\\]*$"
)


def is_translatable(text: str) -> bool:
    """Return False for empty or symbol-only strings."""
    if not text.strip():
        return False
    return not _UNTRANSLATABLE_PATTERN.match(text)


def _get_language_name(code: str) -> str:
    """Get human-readable language name from a locale code.

    Falls back to the base language for regional variants (``fr-CA`` ->
    French), then to the code itself.
    """
    normalized = code.replace("_", "-")
    if normalized in LANGUAGE_NAMES:
        return LANGUAGE_NAMES[normalized]
    return LANGUAGE_NAMES.get(normalized.split("-")[0], code)


def _build_system_prompt(source_locale: str, target_locale: str) -> str:
    """Build the system prompt for the localization LLM request.

    Args:
        source_locale: Source locale code.
        target_locale: Target locale code.

    Returns:
        System prompt string.
    """
    source_name = _get_language_name(source_locale)
    target_name = _get_language_name(target_locale)

    return (
        f"You are a professional software localizer. "
        f"Translate the following strings from {source_name} ({source_locale}) "
        f"to {target_name} ({target_locale}).\n\n"
        f"Rules:\n"
        f"1. Preserve ALL placeholders exactly as they appear: %@, %d, %s, %1$@, {{name}}, "
        f"{{{{count}}}}, <tag>, etc.\n"
        f"2. Preserve leading/trailing whitespace and newlines.\n"
        f"3. Keep technical terms, brand names, and proper nouns unchanged unless they have "
        f"a well-known localized form.\n"
        f"4. Use natural, idiomatic {target_name} appropriate for an application UI.\n"
        f"5. Be concise, UI strings should be short and clear.\n\n"
        f"You will receive a JSON object where keys are string identifiers and values are "
        f"the {source_name} texts to translate.\n"
        f"Respond with ONLY a JSON object using the same keys, with translated {target_name} "
        f"values. No markdown, no explanation, just the JSON object."
    )


def _parse_llm_response(response_text: str, expected_keys: list[str]) -> dict[str, str]:
    """Parse the LLM response and extract translated strings.

    Handles cases where the LLM wraps the response in markdown code fences.

    Args:
        response_text: Raw text from the LLM response.
        expected_keys: List of keys we expect in the response.

    Returns:
        Dictionary mapping string keys to translated text.

    Raises:
        ValueError: If the response cannot be parsed as a JSON object.
    """
    text = response_text.strip()

    # Strip markdown code fences if present
    if text.startswith("```"):
        lines = text.split("\n")
        if lines[-1].strip() == "```":
            lines = lines[1:-1]
        else:
            lines = lines[1:]
        text = "\n".join(lines).strip()

    try:
        result = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse LLM response as JSON: {e}\nResponse: {text[:500]}")

    if not isinstance(result, dict):
        raise ValueError(f"LLM response is not a JSON object: {type(result)}")

    for key in expected_keys:
        if key not in result:
            logger.warning("LLM response missing key: %s", key)

    return {k: str(v) for k, v in result.items() if k in expected_keys}


def _chunk_list(items: list[Any], chunk_size: int) -> list[list[Any]]:
    """Split a list into chunks of the given size."""
    return [items[i : i + chunk_size] for i in range(0, len(items), chunk_size)]


class Localizer:
    """Translates key/value entries between locales through an OpenAI-compatible API."""

    def __init__(
        self,
        llm_config: LLMConfig,
        translation_config: TranslationConfig | None = None,
        client: AsyncOpenAI | None = None,
        retry_delay: float = 1.0,
    ) -> None:
        self.llm_config = llm_config
        self.translation_config = translation_config or TranslationConfig()
        self.client = client or AsyncOpenAI(
            base_url=llm_config.base_url,
            api_key=llm_config.api_key,
        )
        self.retry_delay = retry_delay

    async def whoami(self) -> str | None:
        """Return an opaque identifier for the configured credentials."""
        if not self.llm_config.api_key:
            return None
        digest = hashlib.sha256(self.llm_config.api_key.encode("utf-8")).hexdigest()
        return f"key-{digest[:16]}"

    async def _translate_batch(
        self,
        source_locale: str,
        target_locale: str,
        batch: dict[str, str],
    ) -> dict[str, str]:
        """Translate one batch, retrying with exponential backoff.

        Raises:
            TranslationError: If all retry attempts are exhausted.
        """
        system_prompt = _build_system_prompt(source_locale, target_locale)
        user_prompt = json.dumps(batch, ensure_ascii=False, indent=2)
        expected_keys = list(batch.keys())
        max_retries = self.translation_config.max_retries

        last_error: Exception | None = None

        for attempt in range(max_retries):
            try:
                response = await self.client.chat.completions.create(
                    model=self.llm_config.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    temperature=0.3,
                )

                content = response.choices[0].message.content
                if not content:
                    raise ValueError("LLM returned empty response")

                return _parse_llm_response(content, expected_keys)

            except Exception as e:
                last_error = e
                wait_time = self.retry_delay * 2**attempt
                logger.warning(
                    "Localization attempt %d/%d failed for %s (batch size %d): %s",
                    attempt + 1,
                    max_retries,
                    target_locale,
                    len(batch),
                    str(e),
                )
                if attempt < max_retries - 1:
                    await asyncio.sleep(wait_time)

        raise TranslationError(
            f"Failed to translate batch after {max_retries} attempts. "
            f"Last error: {last_error}"
        )

    async def localize(
        self,
        source_locale: str,
        target_locale: str,
        entries: dict[str, str],
    ) -> dict[str, str]:
        """Translate entries from one locale to another.

        Args:
            source_locale: Locale of the given texts.
            target_locale: Locale to translate into.
            entries: Mapping of key to source text.

        Returns:
            Mapping of key to translated text. Keys the LLM dropped are absent.

        Raises:
            TranslationError: If a batch fails after all retries.
        """
        if not entries:
            return {}

        translated: dict[str, str] = {}
        batches = _chunk_list(list(entries.items()), self.translation_config.batch_size)

        for batch_items in batches:
            batch = dict(batch_items)
            result = await self._translate_batch(source_locale, target_locale, batch)
            translated.update(result)
            logger.debug("Translated batch of %d keys to %s", len(result), target_locale)

        return translated
