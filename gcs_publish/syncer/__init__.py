"""
Sync stage.

Deletes bucket objects that are missing from the current build and older
than the retention threshold.
"""

from .syncer import SyncReport, Syncer, is_old, sync

__all__ = ["SyncReport", "Syncer", "is_old", "sync"]
