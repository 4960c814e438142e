"""
Sync -- restore from and back up to the mounted bucket.

Restore once per container boot. Back up as often as you like; it is
free when nothing changed.
"""

from .backup import SyncOrchestrator
from .engine import StorageEngine
from .restore import RestoreOrchestrator

__all__ = ["RestoreOrchestrator", "StorageEngine", "SyncOrchestrator"]
