"""
Workflow runner: publish and/or sync a build directory in one pass.

Runs the steps named by a workflow type (see config_loader.WORKFLOW_STEPS)
against a single storage backend. Each step collects the build directory
afresh, so sync always sees the complete set of current keys.

Example usage:
    >>> from gcs_publish.workflow import run_workflow
    >>> result = run_workflow(config, "dist/", ["publish", "sync"])
    >>> result.success
    True
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from gcs_publish.backend import GCSBackend, StorageBackend
from gcs_publish.publisher import PublishReport, Publisher
from gcs_publish.syncer import SyncReport, Syncer
from gcs_publish.utils.config import PublishConfig, validate
from gcs_publish.utils.config_loader import WORKFLOW_STEPS
from gcs_publish.utils.files import collect_files
from gcs_publish.utils.logging import get_logger

logger = get_logger(__name__)

KNOWN_STEPS = ["publish", "sync"]


@dataclass
class WorkflowResult:
    """Reports of the steps that ran."""

    steps: List[str] = field(default_factory=list)
    publish: Optional[PublishReport] = None
    sync: Optional[SyncReport] = None
    sync_skipped: bool = False

    @property
    def success(self) -> bool:
        """True when every step that ran succeeded and none was skipped."""
        if self.sync_skipped:
            return False
        reports = [r for r in (self.publish, self.sync) if r is not None]
        return all(report.success for report in reports)


def run_workflow(
    config: PublishConfig,
    base_dir: str,
    steps: Sequence[str] = WORKFLOW_STEPS["publish_and_sync"],
    patterns: Optional[Sequence[str]] = None,
    backend: Optional[StorageBackend] = None,
    now: Optional[Callable] = None,
) -> WorkflowResult:
    """
    Run publish and/or sync against one bucket.

    Sync is skipped when the publish step recorded failed uploads, so a
    partially published build never prunes the objects it still relies on.

    Args:
        config: Publish configuration
        base_dir: Build directory
        steps: Steps to run, in order ("publish", "sync")
        patterns: Glob patterns relative to base_dir
        backend: Storage backend shared by all steps (default: GCSBackend)
        now: Clock for the sync step

    Returns:
        WorkflowResult with one report per step run

    Raises:
        ValueError: If a step name is unknown
        ConfigurationError: If bucket, key_filename or project_id is missing
    """
    unknown = [step for step in steps if step not in KNOWN_STEPS]
    if unknown:
        raise ValueError(f"Unknown workflow step(s): {', '.join(unknown)}")

    validate(config)
    if backend is None:
        backend = GCSBackend.from_config(config)

    result = WorkflowResult()
    for step in steps:
        if step == "sync" and result.publish is not None and not result.publish.success:
            logger.warning(
                f"Skipping sync: {len(result.publish.failed)} upload(s) failed during publish"
            )
            result.sync_skipped = True
            continue

        logger.info(f"Running {step} step for {base_dir}")
        files = collect_files(base_dir, patterns)

        if step == "publish":
            result.publish = Publisher(config, backend=backend).run(files)
        else:
            result.sync = Syncer(config, backend=backend, now=now).sync(files)
        result.steps.append(step)

    return result
