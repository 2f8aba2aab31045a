"""
GCS Publish

Publishes build artifacts into a Google Cloud Storage bucket and prunes stale
objects that are no longer part of the latest build.

This package provides modular components for each stage:
- publisher: hash-checked conditional upload of changed files
- syncer: age-based deletion of objects missing from the current build
- backend: Google Cloud Storage client wrapper
- workflow: runs publish and sync steps in order
- utils: Logging, configuration, metadata and path helpers

See DESIGN.md for module-level notes.
"""

__version__ = "0.1.0"
__author__ = "Ted Iro <ted@rydlrcloudservices.com>"

# Package-level imports
from gcs_publish.utils.logging import setup_logging

# Initialize default logging configuration
setup_logging()
