"""
Publish stage.

Uploads changed build files to a GCS bucket, skipping files whose MD5 hash
matches the stored object.
"""

from .publisher import (
    PublishOutcome,
    PublishReport,
    Publisher,
    publish,
)

__all__ = [
    "PublishOutcome",
    "PublishReport",
    "Publisher",
    "publish",
]
