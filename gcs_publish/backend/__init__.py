"""
Storage backends.

Defines the StorageBackend contract used by the publisher and syncer and
its Google Cloud Storage implementation.
"""

from .base import LookupStatus, MetadataLookup, RemoteObject, StorageBackend
from .gcs import GCSBackend

__all__ = [
    "GCSBackend",
    "LookupStatus",
    "MetadataLookup",
    "RemoteObject",
    "StorageBackend",
]
