"""
Publish configuration and required-field validation.

Loads configuration from a .env file or environment variables and validates
that the bucket, credential key file and project are set before any
operation talks to Google Cloud Storage.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from dotenv import load_dotenv

from gcs_publish.errors import ConfigurationError
from gcs_publish.utils.logging import get_logger, log_function_call

logger = get_logger(__name__)

REQUIRED_OPTIONS = ["bucket", "key_filename", "project_id"]

# Retention thresholds in milliseconds
DAY = 86400000
WEEK = 7 * DAY

DEFAULT_MAX_WORKERS = 8


@dataclass
class PublishConfig:
    """
    Configuration shared by the publish and sync operations.

    Attributes:
        bucket: GCS bucket name (without gs:// prefix)
        key_filename: Path to the service-account JSON key file
        project_id: Google Cloud project ID
        verbose: Log hash comparisons and delete checks
        simulate: Dry run, no uploads or deletes are issued
        public: Make uploaded objects publicly readable
        metadata: Object metadata overrides (e.g. cacheControl)
        force: Upload even when the remote hash matches
        days: Retention threshold for sync deletes (default: 7 days)
        max_workers: Maximum number of concurrent GCS calls
        wait_for_uploads: Wait for each upload before emitting its file
    """

    bucket: str
    key_filename: str
    project_id: str
    verbose: bool = False
    simulate: bool = False
    public: bool = False
    metadata: Dict[str, str] = field(default_factory=dict)
    force: bool = False
    days: Optional[float] = None
    max_workers: int = DEFAULT_MAX_WORKERS
    wait_for_uploads: bool = True

    @property
    def retention_ms(self) -> int:
        """Retention threshold in milliseconds (one week unless days > 0)."""
        if isinstance(self.days, (int, float)) and not isinstance(self.days, bool) and self.days > 0:
            return int(self.days * DAY)
        return WEEK

    def with_overrides(self, **overrides: Any) -> "PublishConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_env(cls, require: bool = True) -> "PublishConfig":
        """
        Load configuration from environment variables.

        Attempts to load .env file if present, then reads from os.environ.

        Args:
            require: Validate required fields (default: True)

        Returns:
            PublishConfig instance with loaded values

        Raises:
            ConfigurationError: If a required variable is missing
            ValueError: If a numeric variable cannot be parsed
        """
        env_path = Path.cwd() / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        workers = _env_number("PUBLISH_MAX_WORKERS", int)

        config = cls(
            bucket=os.getenv("GCS_BUCKET", ""),
            key_filename=os.getenv("GOOGLE_APPLICATION_CREDENTIALS", ""),
            project_id=os.getenv("GCP_PROJECT_ID", ""),
            verbose=_env_bool("PUBLISH_VERBOSE"),
            simulate=_env_bool("PUBLISH_SIMULATE"),
            public=_env_bool("PUBLISH_PUBLIC"),
            force=_env_bool("PUBLISH_FORCE"),
            days=_env_number("PUBLISH_RETENTION_DAYS", float),
            max_workers=workers if workers is not None else DEFAULT_MAX_WORKERS,
            wait_for_uploads=_env_bool("PUBLISH_WAIT_FOR_UPLOADS", default=True),
        )
        if require:
            validate(config)
        return config


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, cast: Callable[[str], Any]) -> Any:
    """Parse a numeric variable; unset or blank gives None."""
    value = os.getenv(name, "").strip()
    if not value:
        return None
    try:
        return cast(value)
    except ValueError:
        kind = "an integer" if cast is int else "a number"
        raise ValueError(f"{name} must be {kind}, got {value!r}") from None


@log_function_call
def validate(config: Union[PublishConfig, Mapping, None]) -> None:
    """
    Check that every required option is set.

    Args:
        config: PublishConfig or plain mapping of options

    Raises:
        ConfigurationError: Naming the first missing or blank field
    """
    for key in REQUIRED_OPTIONS:
        value = _option(config, key)
        if not value or (isinstance(value, str) and not value.strip()):
            raise ConfigurationError(key)


def _option(config: Union[PublishConfig, Mapping, None], key: str) -> Any:
    if config is None:
        return None
    if isinstance(config, Mapping):
        return config.get(key)
    return getattr(config, key, None)

