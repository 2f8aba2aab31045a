"""
Deletion of stale objects that are no longer part of the current build.

The whole input sequence is drained into a set of current object keys
before the bucket is listed. An object is deleted when its key is not in
that set and it is older than the retention threshold (7 days unless
``days`` is configured).

Example usage:
    >>> from gcs_publish.syncer import sync
    >>> report = sync(config, collect_files("dist/"))
    >>> print(report.deleted)
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Set

from gcs_publish.backend import GCSBackend, RemoteObject, StorageBackend
from gcs_publish.errors import BackendError
from gcs_publish.utils.config import PublishConfig, validate
from gcs_publish.utils.files import InputFile, normalized_path
from gcs_publish.utils.logging import get_logger, log_action
from gcs_publish.utils.metrics import PrometheusMetrics, get_metrics

# Module logger
logger = get_logger(__name__)

Clock = Callable[[], datetime]


@dataclass
class SyncReport:
    """
    Result of a sync run.

    Attributes:
        current_keys: Number of keys in the current build
        listed: Number of objects returned by the bucket listing
        deleted: Keys deleted (or that would be deleted when simulating)
        kept: Keys left in place
        failed: Keys whose delete call failed
        listing_failed: True when the bucket could not be listed
    """

    current_keys: int = 0
    listed: int = 0
    deleted: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    listing_failed: bool = False

    @property
    def success(self) -> bool:
        """True when no delete call failed."""
        return not self.failed


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_old(created_at: datetime, now: datetime, retention_ms: int) -> bool:
    """
    Whether an object is past the retention threshold.

    ``now - (created_at + retention) > 0``; an object exactly at the
    threshold is not old.
    """
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    diff = now - (created_at + timedelta(milliseconds=retention_ms))
    return diff > timedelta(0)


class Syncer:
    """Deletes objects missing from the current build once they age out."""

    def __init__(
        self,
        config: PublishConfig,
        backend: Optional[StorageBackend] = None,
        now: Optional[Clock] = None,
        metrics: Optional[PrometheusMetrics] = None,
    ) -> None:
        validate(config)

        self.config = config
        self.backend = backend if backend is not None else GCSBackend.from_config(config)
        self._now = now or _utcnow
        self._metrics = metrics if metrics is not None else get_metrics()
        self._lock = threading.Lock()

    def collect(self, files: Iterable[InputFile]) -> Set[str]:
        """Drain the input sequence into the set of current object keys."""
        return {normalized_path(file) for file in files}

    def _list_objects(self) -> Optional[List[RemoteObject]]:
        try:
            return self.backend.list_objects()
        except BackendError as e:
            logger.warning(f"Bucket listing failed, nothing will be deleted: {e}")
            return None

    def reconcile(self, current: Set[str]) -> SyncReport:
        """
        Delete stale objects given the complete set of current keys.

        Listing and delete failures are logged and recorded in the report,
        never raised.
        """
        report = SyncReport(current_keys=len(current))

        objects = self._list_objects()
        if objects is None:
            report.listing_failed = True
            return report

        report.listed = len(objects)
        now = self._now()
        retention_ms = self.config.retention_ms
        stale: List[str] = []

        for obj in objects:
            exists = obj.key in current
            old = is_old(obj.created_at, now, retention_ms)

            if self.config.verbose:
                log_action(
                    logger,
                    "[del check]",
                    f"{obj.key} Exists: {exists} Created: {obj.created_at.isoformat()} Old: {old}",
                    key=obj.key,
                )

            if not exists and old:
                log_action(logger, "[delete]", obj.key, key=obj.key, simulate=self.config.simulate)
                stale.append(obj.key)
            else:
                report.kept.append(obj.key)

        if self.config.simulate:
            for key in stale:
                report.deleted.append(key)
                self._metrics.record_delete("simulated")
            return report

        with ThreadPoolExecutor(
            max_workers=max(1, self.config.max_workers),
            thread_name_prefix="gcs-sync",
        ) as pool:
            for key in stale:
                pool.submit(self._delete, key, report)

        return report

    def _delete(self, key: str, report: SyncReport) -> None:
        try:
            self.backend.delete_object(key)
        except BackendError as e:
            logger.error(f"Delete failed for {key}: {e}")
            with self._lock:
                report.failed.append(key)
            self._metrics.record_delete("failed")
            return

        with self._lock:
            report.deleted.append(key)
        self._metrics.record_delete("deleted")

    def sync(self, files: Iterable[InputFile]) -> SyncReport:
        """Collect the current keys from files, then reconcile the bucket."""
        current = self.collect(files)
        report = self.reconcile(current)

        logger.info(
            f"Sync complete: {len(report.deleted)} deleted, "
            f"{len(report.kept)} kept, {len(report.failed)} failed "
            f"({report.listed} listed, {report.current_keys} current)"
        )
        return report


def sync(
    config: PublishConfig,
    files: Iterable[InputFile],
    backend: Optional[StorageBackend] = None,
    now: Optional[Clock] = None,
) -> SyncReport:
    """
    Delete stale objects from the configured bucket.

    Args:
        config: Publish configuration (uses days, simulate, verbose)
        files: InputFiles of the current build
        backend: Storage backend (default: GCSBackend built from config)
        now: Clock returning an aware datetime (default: UTC now)

    Returns:
        SyncReport describing what was deleted

    Raises:
        ConfigurationError: If bucket, key_filename or project_id is missing
    """
    return Syncer(config, backend=backend, now=now).sync(files)
