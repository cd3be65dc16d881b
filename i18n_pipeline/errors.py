"""Exception hierarchy for the localization pipeline."""


class PipelineError(Exception):
    """Base error for the localization pipeline."""


class FlagsValidationError(PipelineError, ValueError):
    """Raised when command-line flags fail validation."""


class ConfigError(PipelineError, ValueError):
    """Raised when the project configuration is missing or invalid."""


class BucketError(PipelineError):
    """Raised when a bucket file cannot be read, written or resolved."""


class TranslationError(PipelineError, RuntimeError):
    """Raised when the localizer gives up on a batch."""


class PhaseError(PipelineError):
    """Raised when a pipeline phase fails.

    Wraps whatever the phase raised so the orchestrator can treat every
    phase failure the same way.
    """

    def __init__(self, phase: str, cause: BaseException) -> None:
        super().__init__(f"{phase} failed: {cause}")
        self.phase = phase
        self.cause = cause
