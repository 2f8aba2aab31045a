#!/usr/bin/env python3
"""
Publish a build directory to Google Cloud Storage.

CLI wrapper for the publisher module. Only files whose MD5 hash differs from
the stored object are uploaded. Settings come from the environment (.env),
an optional YAML workflow file, and command-line flags, in increasing order
of precedence.

Usage:
    python scripts/publish.py dist/
    python scripts/publish.py dist/ --pattern "**/*.br" --metadata cacheControl=no-cache
    python scripts/publish.py --config deploy/publish.yaml --simulate
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, List

# Add project root to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from gcs_publish.errors import BackendError, ConfigurationError  # noqa: E402
from gcs_publish.publisher import Publisher  # noqa: E402
from gcs_publish.utils.config_loader import require_step, resolve_workflow  # noqa: E402
from gcs_publish.utils.files import collect_files  # noqa: E402
from gcs_publish.utils.logging import get_logger, setup_logging  # noqa: E402

logger = get_logger(__name__)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Publish changed build files to Google Cloud Storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Publish everything under dist/
  %(prog)s dist/

  # Only brotli assets, with a cache header
  %(prog)s dist/ --pattern "**/*.br" --metadata cacheControl="public, max-age=300"

  # Dry run from a workflow file
  %(prog)s --config deploy/publish.yaml --simulate --verbose
        """,
    )

    parser.add_argument(
        "base_dir",
        nargs="?",
        help="Build directory to publish (default: source.base_dir from --config)",
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
        "-m",
        "--metadata",
        action="append",
        help="Metadata key=value pairs (can specify multiple times)",
    )
    parser.add_argument(
        "-p",
        "--public",
        action="store_true",
        default=None,
        help="Make uploaded files publicly accessible",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        default=None,
        help="Upload even when the remote MD5 hash matches",
    )
    parser.add_argument(
        "-s",
        "--simulate",
        action="store_true",
        default=None,
        help="Dry run: log decisions without uploading",
    )
    parser.add_argument("-w", "--workers", type=int, help="Concurrent GCS calls (default: 8)")
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Emit files without waiting for their uploads to finish",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Log MD5 comparisons",
    )

    return parser.parse_args()


def parse_metadata(metadata_args: List[str]) -> Dict[str, str]:
    """Parse metadata arguments into dictionary."""
    if not metadata_args:
        return {}

    metadata = {}
    for item in metadata_args:
        if "=" not in item:
            logger.warning(f"Invalid metadata format (use key=value): {item}")
            continue

        key, value = item.split("=", 1)
        metadata[key.strip()] = value.strip()

    return metadata


def main():
    """Main entry point for publish CLI."""
    args = parse_args()

    if args.verbose:
        setup_logging(level="DEBUG")

    try:
        config, workflow = resolve_workflow(args.config)
        require_step(workflow, "publish")
    except (OSError, ValueError) as e:
        print(f"❌ Configuration error: {e}")
        return 1

    metadata = {**config.metadata, **parse_metadata(args.metadata or [])}
    config = config.with_overrides(
        bucket=args.bucket,
        key_filename=args.key_file,
        project_id=args.project,
        metadata=metadata,
        public=args.public,
        force=args.force,
        simulate=args.simulate,
        verbose=args.verbose,
        max_workers=args.workers,
        wait_for_uploads=False if args.no_wait else None,
    )

    source = workflow.get("source") or {}
    base_dir = args.base_dir or source.get("base_dir")
    if not base_dir:
        print("❌ No build directory given (pass base_dir or set source.base_dir)")
        return 1

    try:
        publisher = Publisher(config)
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

    print(f"📤 Publishing {base_dir} to gs://{config.bucket}")
    if config.simulate:
        print("   (simulate: no files will be uploaded)")
    print()

    try:
        files = collect_files(base_dir, args.pattern or source.get("patterns"))
        report = publisher.run(files)

    except (FileNotFoundError, NotADirectoryError) as e:
        print(f"❌ {e}")
        return 1

    except KeyboardInterrupt:
        print("\n⚠️  Publish cancelled by user")
        return 130

    print("\n📊 Publish Summary:")
    print(f"  ⬆️  Uploaded: {len(report.uploaded)}")
    print(f"  ⏭️  Skipped: {len(report.skipped)}")
    if config.simulate:
        print(f"  🧪 Simulated: {len(report.simulated)}")
    if report.rejected:
        print(f"  ⚠️  Rejected: {len(report.rejected)}")
    if report.failed:
        print(f"  ❌ Failed: {len(report.failed)}")
        for key in report.failed:
            print(f"  • {key}")

    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(main())
