"""Project configuration loading and validation (i18n.yaml)."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from i18n_pipeline.buckets import BUCKET_TYPES
from i18n_pipeline.errors import ConfigError


@dataclass
class LLMConfig:
    """LLM API configuration."""

    base_url: str = "https://api.openai.com/v1"
    api_key: str = field(default="", repr=False)
    model: str = "gpt-4o-mini"


@dataclass
class LocaleConfig:
    """Source and target locales of the project."""

    source: str = ""
    targets: list[str] = field(default_factory=list)


@dataclass
class BucketConfig:
    """File patterns for one bucket type."""

    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)


@dataclass
class TranslationConfig:
    """Translation batching configuration."""

    batch_size: int = 20
    max_retries: int = 3


@dataclass
class ProjectConfig:
    """Top-level project configuration."""

    root: Path = field(default_factory=Path.cwd)
    locale: LocaleConfig = field(default_factory=LocaleConfig)
    buckets: dict[str, BucketConfig] = field(default_factory=dict)
    llm: LLMConfig = field(default_factory=LLMConfig)
    translation: TranslationConfig = field(default_factory=TranslationConfig)
    lockfile: str = "i18n.lock"

    def snapshot(self) -> dict:
        """Return a telemetry-safe view of the configuration."""
        return {
            "locale": {"source": self.locale.source, "targets": list(self.locale.targets)},
            "buckets": sorted(self.buckets),
            "model": self.llm.model,
            "batch_size": self.translation.batch_size,
        }


def _string_list(raw: object, where: str) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw]
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise ConfigError(f"{where} must be a list of strings")
    return list(raw)


def load_config(config_path: str = "i18n.yaml") -> ProjectConfig:
    """Load configuration from a YAML file.

    Environment variable LLM_API_KEY overrides the api_key in the config file.
    Bucket patterns are resolved relative to the directory holding the file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        ProjectConfig instance (not yet validated, see ``validate_config``).

    Raises:
        ConfigError: If the file is missing or malformed.
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    # Parse locales
    locale_raw = raw.get("locale") or {}
    locale = LocaleConfig(
        source=str(locale_raw.get("source") or ""),
        targets=_string_list(locale_raw.get("targets"), "locale.targets"),
    )

    # Parse buckets
    buckets: dict[str, BucketConfig] = {}
    for bucket_type, bucket_raw in (raw.get("buckets") or {}).items():
        bucket_raw = bucket_raw or {}
        buckets[bucket_type] = BucketConfig(
            include=_string_list(bucket_raw.get("include"), f"buckets.{bucket_type}.include"),
            exclude=_string_list(bucket_raw.get("exclude"), f"buckets.{bucket_type}.exclude"),
        )

    # Parse LLM config
    llm_raw = raw.get("llm") or {}
    llm = LLMConfig(
        base_url=llm_raw.get("base_url", LLMConfig.base_url),
        api_key=llm_raw.get("api_key", LLMConfig.api_key),
        model=llm_raw.get("model", LLMConfig.model),
    )

    # Environment variable override for API key
    env_api_key = os.environ.get("LLM_API_KEY")
    if env_api_key:
        llm.api_key = env_api_key

    trans_raw = raw.get("translation") or {}
    translation = TranslationConfig(
        batch_size=trans_raw.get("batch_size", TranslationConfig.batch_size),
        max_retries=trans_raw.get("max_retries", TranslationConfig.max_retries),
    )

    return ProjectConfig(
        root=path.resolve().parent,
        locale=locale,
        buckets=buckets,
        llm=llm,
        translation=translation,
        lockfile=raw.get("lockfile", ProjectConfig.lockfile),
    )


def validate_config(config: ProjectConfig) -> None:
    """Validate that all required configuration values are present.

    Args:
        config: The configuration to validate.

    Raises:
        ConfigError: If validation fails.
    """
    if not config.locale.source:
        raise ConfigError("locale.source must not be empty.")

    targets = [t for t in config.locale.targets if t != config.locale.source]
    if not targets:
        raise ConfigError("locale.targets must name at least one locale besides the source.")

    if not config.buckets:
        raise ConfigError("At least one bucket must be configured.")

    for bucket_type, bucket in config.buckets.items():
        if bucket_type not in BUCKET_TYPES:
            raise ConfigError(f"Unsupported bucket type: {bucket_type}")
        if not bucket.include:
            raise ConfigError(f"buckets.{bucket_type}.include must not be empty.")

    if not config.llm.api_key or config.llm.api_key == "sk-...":
        raise ConfigError(
            "LLM API key is not configured. "
            "Set it in i18n.yaml, via the LLM_API_KEY environment variable, or with --api-key."
        )

    if not config.llm.base_url:
        raise ConfigError("LLM base_url must not be empty.")

    if not config.llm.model:
        raise ConfigError("LLM model must not be empty.")

    if config.translation.batch_size < 1:
        raise ConfigError("batch_size must be at least 1.")

    if config.translation.max_retries < 1:
        raise ConfigError("max_retries must be at least 1.")
