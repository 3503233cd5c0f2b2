"""Trash — removed bundles are moved aside, never deleted."""

from bundlesync.trash.archiver import MAX_TRASH_SLOTS, TrashArchiver

__all__ = ["MAX_TRASH_SLOTS", "TrashArchiver"]
