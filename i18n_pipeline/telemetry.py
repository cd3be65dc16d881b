"""Usage telemetry written as JSON lines.

Tracking is best effort: ``track`` never raises, whatever goes wrong
with the sink. Set ``DO_NOT_TRACK=1`` or ``I18N_PIPELINE_TELEMETRY=0`` to
disable it.
"""

import dataclasses
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

logger = logging.getLogger(__name__)

DEFAULT_TELEMETRY_FILE = Path.home() / ".i18n-pipeline" / "telemetry.jsonl"


def telemetry_enabled() -> bool:
    if os.environ.get("DO_NOT_TRACK", "").lower() in {"1", "true"}:
        return False
    return os.environ.get("I18N_PIPELINE_TELEMETRY", "1").lower() not in {"0", "false"}


def _default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (set, tuple)):
        return list(value)
    return repr(value)


class Telemetry:
    """Appends tracked events to a JSONL file."""

    def __init__(self, path: Path | None = None, enabled: bool | None = None) -> None:
        env_path = os.environ.get("I18N_PIPELINE_TELEMETRY_FILE")
        self.path = path or (Path(env_path) if env_path else DEFAULT_TELEMETRY_FILE)
        self.enabled = telemetry_enabled() if enabled is None else enabled
        self._stream: TextIO | None = None

    def track(self, auth_id: str, event: str, payload: dict[str, Any]) -> None:
        """Record one event. Failures are logged at debug level and dropped."""
        if not self.enabled:
            return
        try:
            line = json.dumps(
                {
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "distinct_id": auth_id,
                    "event": event,
                    "properties": payload,
                },
                default=_default,
                ensure_ascii=False,
            )
            if self._stream is None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._stream = open(self.path, "a", encoding="utf-8")
            self._stream.write(line + "\n")
            self._stream.flush()
        except Exception as e:
            logger.debug("Telemetry event %s dropped: %s", event, e)

    def close(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.close()
        except OSError as e:
            logger.debug("Telemetry sink close failed: %s", e)
        self._stream = None
