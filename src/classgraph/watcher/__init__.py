"""
Watcher package: keep the class registry in sync with the class directory.
"""

from .config import MONITORING_CONFIG, SYNC_CONFIG
from .filesystem_monitor import CHANGE, RENAME, ClassDirectoryEventHandler, normalize_event
from .metadata import MetadataStore
from .synchronizer import DirectorySynchronizer, SyncListeners

__all__ = [
    "DirectorySynchronizer",
    "SyncListeners",
    "MetadataStore",
    "ClassDirectoryEventHandler",
    "normalize_event",
    "CHANGE",
    "RENAME",
    "SYNC_CONFIG",
    "MONITORING_CONFIG",
]
