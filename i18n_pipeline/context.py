"""Shared run state threaded through every pipeline phase."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from i18n_pipeline.flags import Flags

if TYPE_CHECKING:
    from i18n_pipeline.config import ProjectConfig
    from i18n_pipeline.translator import Localizer


@dataclass(frozen=True)
class LocalizationTask:
    """One source file to be localized into one target locale."""

    bucket_type: str
    path_pattern: str
    source_path: Path
    target_path: Path
    source_locale: str
    target_locale: str

    @property
    def id(self) -> str:
        return f"{self.bucket_type}:{self.target_path.as_posix()}:{self.target_locale}"


@dataclass
class TaskResult:
    """Outcome of a single localization task."""

    status: str
    translated: int = 0
    error: str | None = None


@dataclass
class RunContext:
    """Mutable state for one invocation, passed by reference into each phase.

    ``flags`` never changes after creation. Phases fill ``config`` and
    ``localizer`` (setup), ``tasks`` (plan) and ``results`` (execute).
    """

    flags: Flags
    config: "ProjectConfig | None" = None
    results: dict[str, TaskResult] = field(default_factory=dict)
    tasks: list[LocalizationTask] = field(default_factory=list)
    localizer: "Localizer | None" = None
