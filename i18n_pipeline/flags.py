"""Validation and normalization of `run` command flags."""

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from i18n_pipeline.buckets import BUCKET_TYPES
from i18n_pipeline.errors import FlagsValidationError

DEFAULT_CONCURRENCY = 10
DEFAULT_DEBOUNCE_MS = 5000

# Loose BCP 47 shape: language, then optional script/region/variant subtags
_LOCALE_PATTERN = re.compile(r"^[A-Za-z]{2,3}(?:[-_][A-Za-z0-9]{2,8})*$")


@dataclass(frozen=True)
class Flags:
    """Validated flags of one `run` invocation."""

    source_locale: str | None = None
    target_locale: tuple[str, ...] = ()
    bucket: tuple[str, ...] = ()
    file: tuple[str, ...] = ()
    key: tuple[str, ...] = ()
    force: bool = False
    api_key: str | None = field(default=None, repr=False)
    debug: bool = False
    concurrency: int = DEFAULT_CONCURRENCY
    watch: bool = False
    debounce: int = DEFAULT_DEBOUNCE_MS
    sound: bool = False
    config: str = "i18n.yaml"

    def snapshot(self) -> dict[str, Any]:
        """Return a telemetry-safe view of the flags (API key redacted)."""
        return {
            "source_locale": self.source_locale,
            "target_locale": list(self.target_locale),
            "bucket": list(self.bucket),
            "file": list(self.file),
            "key": list(self.key),
            "force": self.force,
            "api_key": "***" if self.api_key else None,
            "debug": self.debug,
            "concurrency": self.concurrency,
            "watch": self.watch,
            "debounce": self.debounce,
            "sound": self.sound,
        }


def _as_list(name: str, value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise FlagsValidationError(f"--{name} expects one or more values, got {value!r}")
    items = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise FlagsValidationError(f"--{name} values must be non-empty strings")
        items.append(item.strip())
    return tuple(items)


def _as_bool(name: str, value: Any) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise FlagsValidationError(f"--{name} is a switch and takes no value")
    return value


def _as_positive_int(name: str, value: Any, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise FlagsValidationError(f"--{name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise FlagsValidationError(f"--{name} must be an integer, got {value!r}") from None
    if number < 1:
        raise FlagsValidationError(f"--{name} must be a positive integer, got {number}")
    return number


def _check_locale(name: str, locale: str) -> str:
    if not _LOCALE_PATTERN.match(locale):
        raise FlagsValidationError(f"--{name}: {locale!r} is not a valid locale code")
    return locale


def parse_flags(args: Mapping[str, Any]) -> Flags:
    """Validate raw parsed arguments and build a ``Flags`` instance.

    Unknown keys (for example argparse bookkeeping) are ignored. Repeatable
    options keep the order in which they were given.

    Args:
        args: Mapping of option name (snake_case) to raw value.

    Returns:
        Validated, immutable flags.

    Raises:
        FlagsValidationError: If any value has the wrong shape.
    """
    source_locale = args.get("source_locale")
    if source_locale is not None:
        if not isinstance(source_locale, str):
            raise FlagsValidationError("--source-locale must be a string")
        source_locale = _check_locale("source-locale", source_locale.strip())

    target_locale = tuple(
        _check_locale("target-locale", loc)
        for loc in _as_list("target-locale", args.get("target_locale"))
    )

    bucket = _as_list("bucket", args.get("bucket"))
    for bucket_type in bucket:
        if bucket_type not in BUCKET_TYPES:
            raise FlagsValidationError(
                f"--bucket: unsupported bucket type {bucket_type!r} "
                f"(expected one of: {', '.join(sorted(BUCKET_TYPES))})"
            )

    api_key = args.get("api_key")
    if api_key is not None and (not isinstance(api_key, str) or not api_key.strip()):
        raise FlagsValidationError("--api-key must be a non-empty string")

    config = args.get("config") or Flags.config
    if not isinstance(config, str):
        raise FlagsValidationError("--config must be a path")

    return Flags(
        source_locale=source_locale,
        target_locale=target_locale,
        bucket=bucket,
        file=_as_list("file", args.get("file")),
        key=_as_list("key", args.get("key")),
        force=_as_bool("force", args.get("force")),
        api_key=api_key.strip() if api_key else None,
        debug=_as_bool("debug", args.get("debug")),
        concurrency=_as_positive_int("concurrency", args.get("concurrency"), DEFAULT_CONCURRENCY),
        watch=_as_bool("watch", args.get("watch")),
        debounce=_as_positive_int("debounce", args.get("debounce"), DEFAULT_DEBOUNCE_MS),
        sound=_as_bool("sound", args.get("sound")),
        config=config,
    )
