"""
Services package for the Progress Engine
Contains the snapshot stores, sync and progression services
"""

from .redis_client import get_redis_client, LocalSnapshotStore, snapshot_store
from .snapshot_service import RemoteSnapshotService
from .sync_service import SyncRetryPolicy, SyncService
from .progression_service import ProgressionService, progression_service

__all__ = [
    "get_redis_client",
    "LocalSnapshotStore",
    "snapshot_store",
    "RemoteSnapshotService",
    "SyncRetryPolicy",
    "SyncService",
    "ProgressionService",
    "progression_service"
]
