"""Pytest configuration."""

import os
import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Keep the default Prometheus registry untouched during tests
os.environ.setdefault("METRICS_ENABLED", "false")

from gcs_publish.backend import MetadataLookup, RemoteObject  # noqa: E402
from gcs_publish.errors import BackendError  # noqa: E402
from gcs_publish.utils.config import PublishConfig  # noqa: E402
from gcs_publish.utils.files import InputFile, md5_hash  # noqa: E402

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeBackend:
    """In-memory StorageBackend recording every call."""

    def __init__(
        self,
        hashes: Optional[Dict[str, str]] = None,
        objects: Optional[List[RemoteObject]] = None,
    ) -> None:
        self.hashes = dict(hashes or {})
        self.objects = list(objects or [])
        self.lookups: List[str] = []
        self.uploads: List[dict] = []
        self.deletes: List[str] = []
        self.list_calls = 0
        self.fail_lookup = False
        self.fail_upload = False
        self.fail_list = False
        self.fail_delete = set()
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return len(self.lookups) + len(self.uploads) + len(self.deletes) + self.list_calls

    def get_object_metadata(self, key: str) -> MetadataLookup:
        with self._lock:
            self.lookups.append(key)
        if self.fail_lookup:
            return MetadataLookup.failed(BackendError("metadata", key, RuntimeError("boom")))
        if key not in self.hashes:
            return MetadataLookup.not_found()
        return MetadataLookup.found(self.hashes[key])

    def upload(
        self,
        local_path: str,
        key: str,
        metadata: Mapping[str, Optional[str]],
        public: bool = False,
    ) -> None:
        with self._lock:
            self.uploads.append(
                {"local_path": local_path, "key": key, "metadata": dict(metadata), "public": public}
            )
        if self.fail_upload:
            raise BackendError("upload", key, RuntimeError("upload refused"))

    def list_objects(self) -> List[RemoteObject]:
        self.list_calls += 1
        if self.fail_list:
            raise BackendError("list", None, RuntimeError("listing refused"))
        return list(self.objects)

    def delete_object(self, key: str) -> None:
        with self._lock:
            self.deletes.append(key)
        if key in self.fail_delete:
            raise BackendError("delete", key, RuntimeError("delete refused"))


def make_file(key: str, contents: Optional[bytes] = b"content", base: str = "/build/dist") -> InputFile:
    """InputFile under base whose normalized key is ``key``."""
    return InputFile(path=f"{base}/{key}", base=base, contents=contents)


def remote(key: str, age_days: float, contents: bytes = b"") -> RemoteObject:
    """RemoteObject created ``age_days`` before NOW."""
    return RemoteObject(
        key=key,
        created_at=NOW - timedelta(days=age_days),
        md5_hash=md5_hash(contents),
    )


@pytest.fixture
def config() -> PublishConfig:
    """Valid configuration with a single worker for deterministic ordering."""
    return PublishConfig(
        bucket="static-site-assets",
        key_filename="/secrets/publisher.json",
        project_id="test-project",
        max_workers=1,
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
