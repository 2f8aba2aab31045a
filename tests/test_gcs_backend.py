"""
Unit tests for the GCS backend.

Tests the backend against a mocked google-cloud-storage client without
requiring GCS authentication.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from google.api_core.exceptions import Forbidden, ServiceUnavailable
from prometheus_client import CollectorRegistry

from gcs_publish.backend import GCSBackend, LookupStatus
from gcs_publish.backend.gcs import split_metadata
from gcs_publish.errors import BackendError
from gcs_publish.utils.config import PublishConfig
from gcs_publish.utils.metrics import PrometheusMetrics


@pytest.fixture
def metrics():
    return PrometheusMetrics(registry=CollectorRegistry())


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.bucket.return_value = MagicMock()
    return client


@pytest.fixture
def gcs(mock_client, metrics):
    return GCSBackend("test-bucket", client=mock_client, metrics=metrics)


def error_count(metrics, operation, error_type):
    value = metrics.registry.get_sample_value(
        "gcs_api_errors_total",
        {"operation": operation, "error_type": error_type},
    )
    return value or 0


class TestClientConstruction:
    @patch("gcs_publish.backend.gcs.service_account.Credentials.from_service_account_file")
    @patch("gcs_publish.backend.gcs.storage.Client")
    def test_uses_key_file_and_project(self, mock_client_class, mock_from_file):
        credentials = MagicMock()
        mock_from_file.return_value = credentials

        backend = GCSBackend(
            "assets",
            key_filename="/secrets/key.json",
            project_id="my-project",
        )

        mock_from_file.assert_called_once_with("/secrets/key.json")
        mock_client_class.assert_called_once_with(project="my-project", credentials=credentials)
        mock_client_class.return_value.bucket.assert_called_once_with("assets")
        assert backend.bucket_name == "assets"

    @patch("gcs_publish.backend.gcs.service_account.Credentials.from_service_account_file")
    @patch("gcs_publish.backend.gcs.storage.Client")
    def test_from_config(self, mock_client_class, mock_from_file):
        config = PublishConfig(bucket="b", key_filename="/k.json", project_id="p")

        GCSBackend.from_config(config)

        mock_from_file.assert_called_once_with("/k.json")
        mock_client_class.return_value.bucket.assert_called_once_with("b")

    @patch("gcs_publish.backend.gcs.service_account.Credentials.from_service_account_file")
    @patch("gcs_publish.backend.gcs.storage.Client")
    def test_unreadable_key_file(self, mock_client_class, mock_from_file, metrics):
        mock_from_file.side_effect = FileNotFoundError("no such file: /k.json")

        with pytest.raises(BackendError) as exc_info:
            GCSBackend("b", key_filename="/k.json", project_id="p", metrics=metrics)

        assert exc_info.value.operation == "connect"
        assert "/k.json" in str(exc_info.value)
        assert error_count(metrics, "connect", "FileNotFoundError") == 1
        mock_client_class.assert_not_called()


class TestGetObjectMetadata:
    def test_found(self, gcs, mock_client):
        blob = MagicMock(md5_hash="abc==")
        mock_client.bucket.return_value.get_blob.return_value = blob

        lookup = gcs.get_object_metadata("css/app.css")

        mock_client.bucket.return_value.get_blob.assert_called_once_with("css/app.css")
        assert lookup.status is LookupStatus.FOUND
        assert lookup.existing_hash == "abc=="

    def test_not_found(self, gcs, mock_client):
        mock_client.bucket.return_value.get_blob.return_value = None

        lookup = gcs.get_object_metadata("missing.txt")

        assert lookup.status is LookupStatus.NOT_FOUND
        assert lookup.existing_hash is None

    def test_error_is_tagged(self, gcs, mock_client, metrics):
        mock_client.bucket.return_value.get_blob.side_effect = Forbidden("denied")

        lookup = gcs.get_object_metadata("secret.txt")

        assert lookup.status is LookupStatus.ERROR
        assert lookup.existing_hash is None
        assert isinstance(lookup.error, BackendError)
        assert lookup.error.operation == "metadata"
        assert error_count(metrics, "metadata", "Forbidden") == 1


class TestUpload:
    def test_sets_properties_and_uploads(self, gcs, mock_client):
        blob = MagicMock()
        mock_client.bucket.return_value.blob.return_value = blob

        gcs.upload(
            "/build/dist/app.js.br",
            "app.js.br",
            {
                "contentType": "application/javascript",
                "contentEncoding": "br",
                "cacheControl": "no-cache",
                "build": "1234",
            },
        )

        mock_client.bucket.return_value.blob.assert_called_once_with("app.js.br")
        assert blob.content_encoding == "br"
        assert blob.cache_control == "no-cache"
        assert blob.metadata == {"build": "1234"}
        blob.upload_from_filename.assert_called_once_with(
            "/build/dist/app.js.br", content_type="application/javascript"
        )
        blob.make_public.assert_not_called()

    def test_public_upload(self, gcs, mock_client):
        blob = mock_client.bucket.return_value.blob.return_value

        gcs.upload("/build/dist/a.txt", "a.txt", {"contentType": "text/plain"}, public=True)

        blob.make_public.assert_called_once()

    def test_failure_raises_backend_error(self, gcs, mock_client, metrics):
        blob = mock_client.bucket.return_value.blob.return_value
        blob.upload_from_filename.side_effect = ServiceUnavailable("down")

        with pytest.raises(BackendError) as excinfo:
            gcs.upload("/build/dist/a.txt", "a.txt", {})

        assert excinfo.value.operation == "upload"
        assert excinfo.value.key == "a.txt"
        assert error_count(metrics, "upload", "ServiceUnavailable") == 1

    def test_missing_local_file_raises_backend_error(self, gcs, mock_client):
        blob = mock_client.bucket.return_value.blob.return_value
        blob.upload_from_filename.side_effect = FileNotFoundError("gone")

        with pytest.raises(BackendError):
            gcs.upload("/build/dist/gone.txt", "gone.txt", {})


class TestListAndDelete:
    def test_list_objects(self, gcs, mock_client):
        created = datetime(2026, 10, 1, tzinfo=timezone.utc)
        blob = MagicMock(time_created=created, md5_hash="h==")
        blob.name = "index.html"
        mock_client.bucket.return_value.list_blobs.return_value = iter([blob])

        objects = gcs.list_objects()

        assert len(objects) == 1
        assert objects[0].key == "index.html"
        assert objects[0].created_at == created
        assert objects[0].md5_hash == "h=="

    def test_list_failure(self, gcs, mock_client):
        mock_client.bucket.return_value.list_blobs.side_effect = Forbidden("denied")

        with pytest.raises(BackendError) as excinfo:
            gcs.list_objects()

        assert excinfo.value.operation == "list"

    def test_delete(self, gcs, mock_client):
        gcs.delete_object("old.txt")

        mock_client.bucket.return_value.blob.assert_called_once_with("old.txt")
        mock_client.bucket.return_value.blob.return_value.delete.assert_called_once()

    def test_delete_failure(self, gcs, mock_client):
        mock_client.bucket.return_value.blob.return_value.delete.side_effect = Forbidden("no")

        with pytest.raises(BackendError) as excinfo:
            gcs.delete_object("old.txt")

        assert excinfo.value.key == "old.txt"


class TestSplitMetadata:
    def test_drops_none_values(self):
        properties, custom = split_metadata({"contentType": None, "owner": "web"})

        assert properties == {}
        assert custom == {"owner": "web"}

    def test_maps_resource_names(self):
        properties, _ = split_metadata(
            {"contentDisposition": "inline", "contentLanguage": "en"}
        )

        assert properties == {"content_disposition": "inline", "content_language": "en"}
