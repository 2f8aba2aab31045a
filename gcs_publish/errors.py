"""
Exception types raised by the publish and sync operations.

ConfigurationError is fatal and raised before any backend call.
UnsupportedInputError is reported per file and never aborts a run.
BackendError wraps failures from the storage client; the operations absorb
it and record the outcome instead of propagating it.
"""

from typing import Optional

PLUGIN_NAME = "gcs-publish"


class PublishError(Exception):
    """Base class for all gcs-publish errors."""


class ConfigurationError(PublishError, ValueError):
    """
    A required configuration field is missing or blank.

    Attributes:
        field: Name of the missing configuration field
    """

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Missing required configuration: {field}")


class UnsupportedInputError(PublishError):
    """Input file shape the publisher cannot handle (streamed contents)."""

    def __init__(self, path: str, message: str = "Stream content is not supported") -> None:
        self.path = path
        super().__init__(f"{PLUGIN_NAME}: {message} ({path})")


class BackendError(PublishError):
    """
    Failure reported by the storage backend.

    Attributes:
        operation: Backend operation (metadata, upload, list, delete)
        key: Object key involved, if any
        cause: Original exception raised by the client library
    """

    def __init__(
        self,
        operation: str,
        key: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.operation = operation
        self.key = key
        self.cause = cause
        target = f" {key}" if key else ""
        reason = f": {cause}" if cause is not None else ""
        super().__init__(f"GCS {operation} failed{target}{reason}")

    @property
    def error_type(self) -> str:
        """Name of the underlying exception type, for metrics labels."""
        if self.cause is None:
            return type(self).__name__
        return type(self.cause).__name__
