"""Catalog synchronization services."""

from .catalog import CatalogStore, RequestSequencer
from .mutations import MutationCoordinator, PartialUpdateError
from .my_list import MyListManager, SnapshotStorage
from .repository import CatalogRepository, RecordNotFoundError, RepositoryError
from .watch_history import InvalidProfileError, WatchHistoryTracker

__all__ = [
    "CatalogRepository",
    "CatalogStore",
    "InvalidProfileError",
    "MutationCoordinator",
    "MyListManager",
    "PartialUpdateError",
    "RecordNotFoundError",
    "RepositoryError",
    "RequestSequencer",
    "SnapshotStorage",
    "WatchHistoryTracker",
]
