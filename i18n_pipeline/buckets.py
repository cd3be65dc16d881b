"""Bucket formats and locale-aware path patterns.

A bucket is a family of localization files sharing one format. Path
patterns may contain the ``[locale]`` placeholder plus ``*``, ``?`` and
``**`` globs, e.g. ``locales/[locale]/*.json``.
"""

import json
import re
from pathlib import Path
from typing import Any

import yaml

from i18n_pipeline import xcstrings
from i18n_pipeline.errors import BucketError

LOCALE_PLACEHOLDER = "[locale]"


def flatten(data: dict[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten nested mappings into dotted keys, keeping string leaves only."""
    flat: dict[str, str] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten(value, full_key))
        elif isinstance(value, str):
            flat[full_key] = value
    return flat


def unflatten(entries: dict[str, str]) -> dict[str, Any]:
    """Rebuild nested mappings from dotted keys."""
    nested: dict[str, Any] = {}
    for key, value in entries.items():
        node = nested
        *parents, leaf = key.split(".")
        for part in parents:
            node = node.setdefault(part, {})
            if not isinstance(node, dict):
                raise BucketError(f"Key {key!r} conflicts with a value at {part!r}")
        node[leaf] = value
    return nested


class Bucket:
    """Reads and writes the entries of one locale in a bucket file."""

    def read(self, path: Path, locale: str) -> dict[str, str]:
        raise NotImplementedError

    def write(self, path: Path, locale: str, entries: dict[str, str]) -> None:
        raise NotImplementedError


class JsonBucket(Bucket):
    """One JSON file per locale, nested objects allowed."""

    def read(self, path: Path, locale: str) -> dict[str, str]:
        if not path.exists():
            return {}
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise BucketError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(data, dict):
            raise BucketError(f"Expected a JSON object at the top of {path}")
        return flatten(data)

    def write(self, path: Path, locale: str, entries: dict[str, str]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(unflatten(entries), f, indent=2, ensure_ascii=False)
            f.write("\n")


class YamlBucket(Bucket):
    """One YAML file per locale, nested mappings allowed."""

    def read(self, path: Path, locale: str) -> dict[str, str]:
        if not path.exists():
            return {}
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise BucketError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise BucketError(f"Expected a mapping at the top of {path}")
        return flatten(data)

    def write(self, path: Path, locale: str, entries: dict[str, str]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(unflatten(entries), f, allow_unicode=True, sort_keys=False)


class XcstringsBucket(Bucket):
    """A single Apple string catalog holding every locale."""

    def read(self, path: Path, locale: str) -> dict[str, str]:
        return xcstrings.read_locale(xcstrings.load(path), locale)

    def write(self, path: Path, locale: str, entries: dict[str, str]) -> None:
        # Re-read so concurrent tasks on the same catalog keep each other's locales
        data = xcstrings.load(path)
        xcstrings.write_locale(data, locale, entries)
        xcstrings.save(path, data)


BUCKET_TYPES: dict[str, Bucket] = {
    "json": JsonBucket(),
    "yaml": YamlBucket(),
    "xcstrings": XcstringsBucket(),
}


def get_bucket(bucket_type: str) -> Bucket:
    """Look up a bucket implementation by type name.

    Raises:
        BucketError: If the type is not supported.
    """
    try:
        return BUCKET_TYPES[bucket_type]
    except KeyError:
        raise BucketError(f"Unsupported bucket type: {bucket_type}") from None


def _glob_to_regex(pattern: str) -> str:
    out = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return "".join(out)


def expand_pattern(root: Path, pattern: str, locale: str) -> list[Path]:
    """Find the files a pattern matches for one locale.

    Args:
        root: Project root the pattern is relative to.
        pattern: Path pattern, possibly containing ``[locale]``.
        locale: Locale substituted for the placeholder.

    Returns:
        Sorted root-relative paths of the matching files.
    """
    resolved = pattern.replace(LOCALE_PLACEHOLDER, locale)
    if not any(ch in resolved for ch in "*?"):
        return [Path(resolved)] if (root / resolved).is_file() else []
    return sorted(p.relative_to(root) for p in root.glob(resolved) if p.is_file())


def localized_path(
    pattern: str,
    source_path: Path,
    source_locale: str,
    target_locale: str,
) -> Path:
    """Map a source file matched by ``pattern`` to its target-locale file.

    Only the segments that correspond to ``[locale]`` in the pattern are
    replaced, so a locale code appearing elsewhere in the path is left alone.

    Raises:
        BucketError: If ``source_path`` does not match ``pattern``.
    """
    if LOCALE_PLACEHOLDER not in pattern:
        return source_path

    parts = pattern.split(LOCALE_PLACEHOLDER)
    locale_group = f"({re.escape(source_locale)})"
    regex = locale_group.join(_glob_to_regex(part) for part in parts)

    text = source_path.as_posix()
    match = re.fullmatch(regex, text)
    if match is None:
        raise BucketError(f"{text} does not match pattern {pattern}")

    pieces = []
    cursor = 0
    for group in range(1, len(parts)):
        start, end = match.span(group)
        pieces.append(text[cursor:start])
        pieces.append(target_locale)
        cursor = end
    pieces.append(text[cursor:])
    return Path("".join(pieces))
