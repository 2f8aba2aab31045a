"""
Storage backend contract used by the publish and sync operations.

Keys are bucket-relative object names. Metadata lookups return a tagged
MetadataLookup instead of raising, so callers decide what a failed lookup
means; upload, list and delete raise BackendError.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Mapping, Optional, Protocol

from gcs_publish.errors import BackendError


@dataclass(frozen=True)
class RemoteObject:
    """An object stored in the bucket."""

    key: str
    created_at: datetime
    md5_hash: Optional[str] = None


class LookupStatus(str, Enum):
    """Outcome of a remote metadata lookup."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class MetadataLookup:
    """
    Tagged result of StorageBackend.get_object_metadata.

    Attributes:
        status: FOUND, NOT_FOUND or ERROR
        md5_hash: Stored base64 MD5 hash (FOUND only)
        error: Failure cause (ERROR only)
    """

    status: LookupStatus
    md5_hash: Optional[str] = None
    error: Optional[BackendError] = None

    @classmethod
    def found(cls, md5_hash: Optional[str]) -> "MetadataLookup":
        return cls(LookupStatus.FOUND, md5_hash=md5_hash)

    @classmethod
    def not_found(cls) -> "MetadataLookup":
        return cls(LookupStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: BackendError) -> "MetadataLookup":
        return cls(LookupStatus.ERROR, error=error)

    @property
    def existing_hash(self) -> Optional[str]:
        """Stored hash, or None when the object is missing or the lookup failed."""
        return self.md5_hash if self.status is LookupStatus.FOUND else None


class StorageBackend(Protocol):
    """Minimal object storage interface needed by publish and sync."""

    def get_object_metadata(self, key: str) -> MetadataLookup: ...

    def upload(
        self,
        local_path: str,
        key: str,
        metadata: Mapping[str, Optional[str]],
        public: bool = False,
    ) -> None: ...

    def list_objects(self) -> List[RemoteObject]: ...

    def delete_object(self, key: str) -> None: ...
