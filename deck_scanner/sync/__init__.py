"""Background synchronisation with the remote pricing/history service."""

from .client import HttpSyncClient, SyncClient
from .processor import SyncQueueProcessor

__all__ = ["HttpSyncClient", "SyncClient", "SyncQueueProcessor"]
