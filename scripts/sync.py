#!/usr/bin/env python3
"""
Delete stale objects from Google Cloud Storage.

CLI wrapper for the syncer module. Objects whose keys are not produced by
the given build directory and that are older than the retention threshold
are deleted.

Usage:
    python scripts/sync.py dist/
    python scripts/sync.py dist/ --days 30 --simulate --verbose
    python scripts/sync.py --config deploy/publish.yaml
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from gcs_publish.errors import BackendError, ConfigurationError  # noqa: E402
from gcs_publish.syncer import Syncer  # noqa: E402
from gcs_publish.utils.config import DAY  # noqa: E402
from gcs_publish.utils.config_loader import require_step, resolve_workflow  # noqa: E402
from gcs_publish.utils.files import collect_files  # noqa: E402
from gcs_publish.utils.logging import get_logger, setup_logging  # noqa: E402

logger = get_logger(__name__)


def positive_days(value: str) -> float:
    """argparse type for --days."""
    days = float(value)
    if days <= 0:
        raise argparse.ArgumentTypeError("days must be greater than 0")
    return days


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Delete stale objects missing from the current build",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Delete objects not in dist/ and older than 7 days
  %(prog)s dist/

  # Preview a 30-day retention
  %(prog)s dist/ --days 30 --simulate --verbose
        """,
    )

    parser.add_argument(
        "base_dir",
        nargs="?",
        help="Current build directory (default: source.base_dir from --config)",
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
    parser.add_argument(
        "-d",
        "--days",
        type=positive_days,
        help="Retention threshold in days (default: 7)",
    )
    parser.add_argument(
        "-s",
        "--simulate",
        action="store_true",
        default=None,
        help="Dry run: log decisions without deleting",
    )
    parser.add_argument("-w", "--workers", type=int, help="Concurrent GCS calls (default: 8)")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Log the check for every remote object",
    )

    return parser.parse_args()


def main():
    """Main entry point for sync CLI."""
    args = parse_args()

    if args.verbose:
        setup_logging(level="DEBUG")

    try:
        config, workflow = resolve_workflow(args.config)
        require_step(workflow, "sync")
    except (OSError, ValueError) as e:
        print(f"❌ Configuration error: {e}")
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

    try:
        syncer = Syncer(config)
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

    print(f"🧹 Syncing gs://{config.bucket} against {base_dir}")
    print(f"   Retention: {config.retention_ms / DAY:g} day(s)")
    if config.simulate:
        print("   (simulate: no objects will be deleted)")
    print()

    try:
        report = syncer.sync(collect_files(base_dir, args.pattern or source.get("patterns")))

    except (FileNotFoundError, NotADirectoryError) as e:
        print(f"❌ {e}")
        return 1

    except KeyboardInterrupt:
        print("\n⚠️  Sync cancelled by user")
        return 130

    print("\n📊 Sync Summary:")
    print(f"  Current keys: {report.current_keys}")
    print(f"  Listed objects: {report.listed}")
    print(f"  🗑️  Deleted: {len(report.deleted)}")
    print(f"  ✅ Kept: {len(report.kept)}")
    if report.listing_failed:
        print("  ⚠️  Bucket listing failed, nothing was deleted")
    if report.failed:
        print(f"  ❌ Failed: {len(report.failed)}")
        for key in report.failed:
            print(f"  • {key}")

    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(main())
