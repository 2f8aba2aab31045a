"""
Hash-checked publishing of build files to Google Cloud Storage.

Each file's base64 MD5 hash is compared with the hash GCS stores for the
object at the file's key; only changed files are uploaded. Files are passed
downstream whether or not they were uploaded.

Example usage:
    >>> from gcs_publish.publisher import publish
    >>> from gcs_publish.utils.config import PublishConfig
    >>> from gcs_publish.utils.files import collect_files
    >>> config = PublishConfig(
    ...     bucket="static-site-assets",
    ...     key_filename="/secrets/publisher.json",
    ...     project_id="my-project",
    ...     metadata={"cacheControl": "public, max-age=300"},
    ... )
    >>> for file in publish(config, collect_files("dist/")):
    ...     print(file.key)
"""

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set

from gcs_publish.backend import GCSBackend, LookupStatus, StorageBackend
from gcs_publish.errors import BackendError, UnsupportedInputError
from gcs_publish.utils.config import PublishConfig, validate
from gcs_publish.utils.files import InputFile, md5_hash, normalized_path
from gcs_publish.utils.logging import get_logger, log_action
from gcs_publish.utils.metadata import prepare_metadata
from gcs_publish.utils.metrics import PrometheusMetrics, get_metrics

# Module logger
logger = get_logger(__name__)

ErrorHandler = Callable[[UnsupportedInputError], None]


class PublishOutcome(str, Enum):
    """What the publisher did with a file."""

    UPLOADED = "uploaded"
    SKIPPED = "skipped"
    SIMULATED = "simulated"
    FAILED = "failed"
    REJECTED = "rejected"


@dataclass
class PublishReport:
    """
    Object keys grouped by publish outcome.

    Complete once the publish iterator is exhausted.
    """

    uploaded: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    simulated: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when no upload failed."""
        return not self.failed

    def keys(self, outcome: PublishOutcome) -> List[str]:
        return getattr(self, outcome.value)


class Publisher:
    """
    Publishes InputFiles to a bucket with a bounded pool of GCS calls.

    At most ``config.max_workers`` files are looked up and uploaded at once.
    Files are emitted in completion order. With ``wait_for_uploads=False``
    a file is emitted as soon as its upload is queued; queued uploads are
    drained before the publish iterator finishes.
    """

    def __init__(
        self,
        config: PublishConfig,
        backend: Optional[StorageBackend] = None,
        on_error: Optional[ErrorHandler] = None,
        metrics: Optional[PrometheusMetrics] = None,
    ) -> None:
        validate(config)

        self.config = config
        self.backend = backend if backend is not None else GCSBackend.from_config(config)
        self.report = PublishReport()
        self._on_error = on_error or _log_unsupported
        self._metrics = metrics if metrics is not None else get_metrics()
        self._lock = threading.Lock()
        self._upload_slots: Optional[threading.BoundedSemaphore] = None
        self._uploads: Dict[Future, str] = {}

    def publish(self, files: Iterable[InputFile]) -> Iterator[InputFile]:
        """
        Publish files, yielding each accepted file after its decision.

        Null files are dropped. Streamed files are reported through the
        error handler and dropped; processing continues.
        """
        max_workers = max(1, self.config.max_workers)
        upload_pool = None
        if not self.config.wait_for_uploads:
            upload_pool = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="gcs-upload"
            )
            # Queued plus running uploads never exceed max_workers
            self._upload_slots = threading.BoundedSemaphore(max_workers)

        try:
            with ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="gcs-publish"
            ) as pool:
                pending: Set[Future] = set()

                for file in files:
                    if file.is_null():
                        continue

                    if file.is_stream:
                        self._reject(file)
                        continue

                    pending.add(pool.submit(self._process, file, upload_pool))
                    if len(pending) >= max_workers:
                        done, pending = wait(pending, return_when=FIRST_COMPLETED)
                        yield from _results(done)

                while pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    yield from _results(done)
        finally:
            if upload_pool is not None:
                upload_pool.shutdown(wait=True)
                self._collect_uploads()

        logger.info(
            f"Publish complete: {len(self.report.uploaded)} uploaded, "
            f"{len(self.report.skipped)} skipped, "
            f"{len(self.report.simulated)} simulated, "
            f"{len(self.report.failed)} failed, "
            f"{len(self.report.rejected)} rejected"
        )

    def run(self, files: Iterable[InputFile]) -> PublishReport:
        """Publish every file and return the report."""
        for _ in self.publish(files):
            pass
        return self.report

    def _process(
        self,
        file: InputFile,
        upload_pool: Optional[ThreadPoolExecutor],
    ) -> InputFile:
        key = normalized_path(file)
        current = md5_hash(file.contents)

        lookup = self.backend.get_object_metadata(key)
        if lookup.status is LookupStatus.ERROR:
            logger.warning(f"Metadata lookup failed for {key}, uploading: {lookup.error}")

        existing = lookup.existing_hash
        unchanged = existing == current

        if self.config.verbose:
            log_action(
                logger,
                "[md5 check]",
                f"{key} Existing: {existing} Current: {current} Unchanged: {unchanged}",
                key=key,
            )

        if unchanged and not self.config.force:
            log_action(logger, "[skip]", key, key=key)
            self._record(PublishOutcome.SKIPPED, key)
            return file

        log_action(logger, "[upload]", key, key=key, simulate=self.config.simulate)

        if self.config.simulate:
            self._record(PublishOutcome.SIMULATED, key)
        elif upload_pool is None:
            self._upload(file, key)
        else:
            self._upload_slots.acquire()
            try:
                future = upload_pool.submit(self._queued_upload, file, key)
            except BaseException:
                self._upload_slots.release()
                raise
            with self._lock:
                self._uploads[future] = key

        return file

    def _upload(self, file: InputFile, key: str) -> None:
        try:
            self.backend.upload(
                file.path,
                key,
                prepare_metadata(file.path, self.config.metadata),
                public=bool(self.config.public),
            )
        except BackendError as e:
            logger.error(f"Upload failed for {key}: {e}")
            self._record(PublishOutcome.FAILED, key)
            return

        self._record(PublishOutcome.UPLOADED, key, len(file.contents or b""))

    def _queued_upload(self, file: InputFile, key: str) -> None:
        try:
            self._upload(file, key)
        finally:
            self._upload_slots.release()

    def _collect_uploads(self) -> None:
        """Record queued uploads that died with an unexpected exception."""
        with self._lock:
            uploads, self._uploads = self._uploads, {}

        for future, key in uploads.items():
            error = future.exception()
            if error is not None:
                logger.error(f"Upload crashed for {key}: {error!r}", exc_info=error)
                self._record(PublishOutcome.FAILED, key)

    def _reject(self, file: InputFile) -> None:
        self._record(PublishOutcome.REJECTED, file.path)
        self._on_error(UnsupportedInputError(file.path))

    def _record(self, outcome: PublishOutcome, key: str, size: int = 0) -> None:
        with self._lock:
            self.report.keys(outcome).append(key)
        self._metrics.record_publish(outcome.value, bytes_uploaded=size)


def _results(done: Iterable[Future]) -> Iterator[InputFile]:
    for future in done:
        yield future.result()


def _log_unsupported(error: UnsupportedInputError) -> None:
    logger.error(str(error))


def publish(
    config: PublishConfig,
    files: Iterable[InputFile],
    backend: Optional[StorageBackend] = None,
    on_error: Optional[ErrorHandler] = None,
) -> Iterator[InputFile]:
    """
    Publish files to the configured bucket.

    The configuration is validated immediately; the returned iterator does
    the work as it is consumed.

    Args:
        config: Publish configuration
        files: InputFiles from the upstream build step
        backend: Storage backend (default: GCSBackend built from config)
        on_error: Called with UnsupportedInputError for streamed files

    Returns:
        Iterator over the files passed downstream

    Raises:
        ConfigurationError: If bucket, key_filename or project_id is missing
    """
    publisher = Publisher(config, backend=backend, on_error=on_error)
    return publisher.publish(files)
