"""
Google Cloud Storage backend.

Wraps a google-cloud-storage bucket handle behind the StorageBackend
contract. Client library failures are converted to BackendError and
counted in the gcs_api_errors_total metric.

Example usage:
    >>> backend = GCSBackend(
    ...     bucket_name="static-site-assets",
    ...     key_filename="/secrets/publisher.json",
    ...     project_id="my-project",
    ... )
    >>> lookup = backend.get_object_metadata("css/app.css")
    >>> lookup.status
    <LookupStatus.FOUND: 'found'>
"""

from typing import Dict, List, Mapping, Optional, Tuple

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage
from google.oauth2 import service_account

from gcs_publish.backend.base import MetadataLookup, RemoteObject
from gcs_publish.errors import BackendError
from gcs_publish.utils.logging import get_logger
from gcs_publish.utils.metrics import PrometheusMetrics, get_metrics

logger = get_logger(__name__)

# OSError covers transport failures from requests and unreadable local files
BACKEND_EXCEPTIONS = (GoogleAPIError, GoogleAuthError, OSError)

# Unreadable or malformed key files raise ValueError
CONNECT_EXCEPTIONS = BACKEND_EXCEPTIONS + (ValueError,)

# Metadata keys stored as blob properties; anything else is custom metadata
BLOB_PROPERTIES = {
    "contentType": "content_type",
    "contentEncoding": "content_encoding",
    "cacheControl": "cache_control",
    "contentDisposition": "content_disposition",
    "contentLanguage": "content_language",
}


def split_metadata(
    metadata: Mapping[str, Optional[str]],
) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    Split upload metadata into blob properties and custom metadata.

    None values are dropped so GCS falls back to its own defaults.

    Returns:
        (properties keyed by Blob attribute name, custom metadata)
    """
    properties: Dict[str, str] = {}
    custom: Dict[str, str] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if key in BLOB_PROPERTIES:
            properties[BLOB_PROPERTIES[key]] = value
        else:
            custom[key] = str(value)
    return properties, custom


class GCSBackend:
    """StorageBackend implementation for a single GCS bucket."""

    def __init__(
        self,
        bucket_name: str,
        key_filename: Optional[str] = None,
        project_id: Optional[str] = None,
        client: Optional[storage.Client] = None,
        metrics: Optional[PrometheusMetrics] = None,
    ) -> None:
        self.bucket_name = bucket_name
        self._metrics = metrics if metrics is not None else get_metrics()

        if client is None:
            client = self._connect(key_filename, project_id)
        self._bucket = client.bucket(bucket_name)

    def _connect(self, key_filename: Optional[str], project_id: Optional[str]) -> storage.Client:
        kwargs: dict = {}
        if project_id:
            kwargs["project"] = project_id

        try:
            if key_filename:
                kwargs["credentials"] = service_account.Credentials.from_service_account_file(
                    key_filename
                )
            return storage.Client(**kwargs)
        except CONNECT_EXCEPTIONS as e:
            raise self._failure("connect", None, e) from e

    @classmethod
    def from_config(cls, config) -> "GCSBackend":
        """Build a backend from a validated PublishConfig."""
        return cls(
            bucket_name=config.bucket,
            key_filename=config.key_filename,
            project_id=config.project_id,
        )

    def _failure(self, operation: str, key: Optional[str], error: Exception) -> BackendError:
        backend_error = BackendError(operation, key, error)
        self._metrics.record_gcs_error(operation, backend_error.error_type)
        logger.debug(f"{backend_error}", exc_info=True)
        return backend_error

    def get_object_metadata(self, key: str) -> MetadataLookup:
        """Look up the stored MD5 hash of an object."""
        try:
            with self._metrics.track_gcs_call("metadata"):
                blob = self._bucket.get_blob(key)
        except BACKEND_EXCEPTIONS as e:
            return MetadataLookup.failed(self._failure("metadata", key, e))

        if blob is None:
            return MetadataLookup.not_found()
        return MetadataLookup.found(blob.md5_hash)

    def upload(
        self,
        local_path: str,
        key: str,
        metadata: Mapping[str, Optional[str]],
        public: bool = False,
    ) -> None:
        """
        Upload a local file to the given object key.

        Raises:
            BackendError: If the upload or ACL change fails
        """
        blob = self._bucket.blob(key)
        properties, custom = split_metadata(metadata)
        for attribute, value in properties.items():
            setattr(blob, attribute, value)
        if custom:
            blob.metadata = custom

        try:
            with self._metrics.track_gcs_call("upload"):
                blob.upload_from_filename(
                    local_path,
                    content_type=properties.get("content_type"),
                )
                if public:
                    blob.make_public()
        except BACKEND_EXCEPTIONS as e:
            raise self._failure("upload", key, e) from e

    def list_objects(self) -> List[RemoteObject]:
        """
        List every object in the bucket.

        Raises:
            BackendError: If listing fails
        """
        try:
            with self._metrics.track_gcs_call("list"):
                return [
                    RemoteObject(
                        key=blob.name,
                        created_at=blob.time_created,
                        md5_hash=blob.md5_hash,
                    )
                    for blob in self._bucket.list_blobs()
                ]
        except BACKEND_EXCEPTIONS as e:
            raise self._failure("list", None, e) from e

    def delete_object(self, key: str) -> None:
        """
        Delete an object.

        Raises:
            BackendError: If the delete fails
        """
        try:
            with self._metrics.track_gcs_call("delete"):
                self._bucket.blob(key).delete()
        except BACKEND_EXCEPTIONS as e:
            raise self._failure("delete", key, e) from e
