#!/usr/bin/env python3
"""
Run a publish workflow file end to end.

Runs the steps named by the workflow type: `publish`, `sync`, or
`publish_and_sync` (publish, then sync). Without a workflow file both steps
run. Sync is skipped when any upload failed.

Usage:
    python scripts/deploy.py --config deploy/publish.yaml
    python scripts/deploy.py dist/ --days 30 --simulate
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from gcs_publish.errors import BackendError, ConfigurationError  # noqa: E402
from gcs_publish.utils.config_loader import resolve_workflow, workflow_steps  # noqa: E402
from gcs_publish.utils.logging import get_logger, setup_logging  # noqa: E402
from gcs_publish.workflow import run_workflow  # noqa: E402

logger = get_logger(__name__)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Publish a build and prune stale objects in one run",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run whatever the workflow file describes
  %(prog)s --config deploy/publish.yaml

  # Publish then sync dist/ using settings from the environment
  %(prog)s dist/ --days 30

  # Preview both steps
  %(prog)s --config deploy/publish.yaml --simulate --verbose
        """,
    )

    parser.add_argument(
        "base_dir",
        nargs="?",
        help="Build directory (default: source.base_dir from --config)",
    )
    parser.add_argument("-c", "--config", help="YAML workflow file")
    parser.add_argument(
        "--pattern",
        action="append",
        help="Glob pattern relative to base_dir (can specify multiple times)",
    )
    parser.add_argument("-b", "--bucket", help="GCS bucket name (default: $GCS_BUCKET)")
    parser.add_argument(
        "-k",
        "--key-file",
        help="Service account key file (default: $GOOGLE_APPLICATION_CREDENTIALS)",
    )
    parser.add_argument("--project", help="Google Cloud project ID (default: $GCP_PROJECT_ID)")
    parser.add_argument("-d", "--days", type=float, help="Sync retention threshold in days")
    parser.add_argument(
        "-s",
        "--simulate",
        action="store_true",
        default=None,
        help="Dry run: log decisions without uploading or deleting",
    )
    parser.add_argument("-w", "--workers", type=int, help="Concurrent GCS calls (default: 8)")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Log MD5 comparisons and delete checks",
    )

    return parser.parse_args()


def main():
    """Main entry point for deploy CLI."""
    args = parse_args()

    if args.verbose:
        setup_logging(level="DEBUG")

    try:
        config, workflow = resolve_workflow(args.config)
    except (OSError, ValueError) as e:
        print(f"❌ Configuration error: {e}")
        return 1

    if args.days is not None and args.days <= 0:
        print("❌ Configuration error: days must be greater than 0")
        return 1

    config = config.with_overrides(
        bucket=args.bucket,
        key_filename=args.key_file,
        project_id=args.project,
        days=args.days,
        simulate=args.simulate,
        verbose=args.verbose,
        max_workers=args.workers,
    )

    source = workflow.get("source") or {}
    base_dir = args.base_dir or source.get("base_dir")
    if not base_dir:
        print("❌ No build directory given (pass base_dir or set source.base_dir)")
        return 1

    steps = workflow_steps(workflow)
    print(f"🚀 Deploying {base_dir} to gs://{config.bucket} ({' → '.join(steps)})")
    if config.simulate:
        print("   (simulate: nothing will be uploaded or deleted)")
    print()

    try:
        result = run_workflow(
            config,
            base_dir,
            steps,
            patterns=args.pattern or source.get("patterns"),
        )

    except ConfigurationError as e:
        print(f"❌ {e}")
        print("\nSet it with a flag, a workflow file, or the environment:")
        print("  - GCS_BUCKET")
        print("  - GOOGLE_APPLICATION_CREDENTIALS")
        print("  - GCP_PROJECT_ID")
        return 1

    except BackendError as e:
        print(f"❌ Could not connect to Google Cloud Storage: {e}")
        return 1

    except (FileNotFoundError, NotADirectoryError) as e:
        print(f"❌ {e}")
        return 1

    except KeyboardInterrupt:
        print("\n⚠️  Deploy cancelled by user")
        return 130

    print("\n📊 Deploy Summary:")
    if result.publish is not None:
        print(f"  ⬆️  Uploaded: {len(result.publish.uploaded)}")
        print(f"  ⏭️  Skipped: {len(result.publish.skipped)}")
        if result.publish.failed:
            print(f"  ❌ Failed uploads: {len(result.publish.failed)}")
    if result.sync is not None:
        print(f"  🗑️  Deleted: {len(result.sync.deleted)}")
        if result.sync.failed:
            print(f"  ❌ Failed deletes: {len(result.sync.failed)}")
    if result.sync_skipped:
        print("  ⚠️  Sync skipped because uploads failed")

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
