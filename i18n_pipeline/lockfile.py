"""Checksums of already-localized source values (i18n.lock)."""

import hashlib
import logging
from pathlib import Path

import yaml

from i18n_pipeline.errors import ConfigError

logger = logging.getLogger(__name__)


def checksum(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


class Lockfile:
    """Tracks which source values have been localized.

    Checksums are stored per source file, so a key is only re-sent to the
    localizer when its source text changes.
    """

    def __init__(self, path: Path, checksums: dict[str, dict[str, str]] | None = None) -> None:
        self.path = path
        self.checksums = checksums or {}

    @classmethod
    def load(cls, path: Path) -> "Lockfile":
        """Read a lockfile, returning an empty one if it does not exist."""
        if not path.exists():
            return cls(path)

        with open(path, "r", encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid lockfile {path}: {e}") from e

        checksums = raw.get("checksums") or {}
        if not isinstance(checksums, dict):
            raise ConfigError(f"Invalid lockfile {path}: 'checksums' must be a mapping")
        return cls(path, {str(k): dict(v or {}) for k, v in checksums.items()})

    def changed_keys(self, source_file: str, entries: dict[str, str]) -> set[str]:
        """Return keys whose source text differs from the locked checksum."""
        locked = self.checksums.get(source_file, {})
        return {key for key, value in entries.items() if locked.get(key) != checksum(value)}

    def update(self, source_file: str, entries: dict[str, str]) -> None:
        """Record the current source text of a file as localized."""
        self.checksums[source_file] = {key: checksum(value) for key, value in entries.items()}

    def save(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                {"version": 1, "checksums": self.checksums},
                f,
                allow_unicode=True,
                sort_keys=True,
            )
        logger.debug("Lockfile written to %s", self.path)
