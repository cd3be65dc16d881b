"""Reader and writer for Apple .xcstrings string catalogs."""

import json
from pathlib import Path

from i18n_pipeline.errors import BucketError


def load(path: Path) -> dict:
    """Load and parse an .xcstrings JSON file.

    Args:
        path: File path to the .xcstrings file.

    Returns:
        Parsed catalog. A missing file yields an empty catalog.

    Raises:
        BucketError: If the file contains invalid JSON.
    """
    if not path.exists():
        return {"sourceLanguage": "", "strings": {}, "version": "1.0"}

    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise BucketError(f"Invalid xcstrings file {path}: {e}") from e


def read_locale(data: dict, locale: str) -> dict[str, str]:
    """Extract the string values of one locale.

    For the catalog's source language, keys without an explicit
    localization use the key itself as the text, as Xcode does.

    Args:
        data: Parsed xcstrings data.
        locale: Language code to extract.

    Returns:
        Mapping of string key to text.
    """
    entries: dict[str, str] = {}
    is_source = data.get("sourceLanguage") == locale

    for key, entry in data.get("strings", {}).items():
        if entry.get("shouldTranslate") is False:
            continue
        unit = entry.get("localizations", {}).get(locale, {}).get("stringUnit", {})
        value = unit.get("value")
        if value is None and is_source:
            value = key
        if value is not None:
            entries[key] = value

    return entries


def write_locale(data: dict, locale: str, entries: dict[str, str]) -> dict:
    """Replace one locale's values in the catalog.

    Updates or creates a ``stringUnit`` for each entry with state
    "translated" and removes the locale from keys not in ``entries``.

    Args:
        data: Parsed xcstrings data (modified in place).
        locale: Language code being written.
        entries: Complete mapping of key to text for that locale.

    Returns:
        The modified data dictionary.
    """
    strings = data.setdefault("strings", {})

    for key, entry in strings.items():
        if key not in entries:
            entry.get("localizations", {}).pop(locale, None)

    for key, text in entries.items():
        entry = strings.setdefault(key, {})
        entry.setdefault("localizations", {})[locale] = {
            "stringUnit": {
                "state": "translated",
                "value": text,
            }
        }

    return data


def save(path: Path, data: dict) -> None:
    """Save xcstrings data back to a JSON file.

    Uses Apple's formatting conventions: 2-space indentation,
    sorted keys, and a trailing newline.

    Args:
        path: File path to write to.
        data: The xcstrings data dictionary.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True, ensure_ascii=False)
        f.write("\n")
