"""
Storage — persistence backends for snapshot documents.

A backend stores opaque JSON bodies under string keys. The tiered snapshot
store and the retention sweeper only talk to the SnapshotBackend interface,
so the primary store can be a hosted blob store or a local SQLite file.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import config
from seed_loader import ConfigurationMissing


class StoreUnavailable(Exception):
    """A persistence tier could not be read or written."""
    pass


@dataclass(frozen=True)
class StoredObject:
    """Listing entry for one stored document."""
    key: str
    uploaded_at: datetime
    url: Optional[str] = None           # only set by URL-addressed stores


class SnapshotBackend(ABC):
    """Abstract base for all primary snapshot stores."""

    name = "backend"

    @abstractmethod
    def put(self, key: str, body: str) -> StoredObject:
        """Create or overwrite the document at key."""
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the document body at key, or None if it does not exist."""
        ...

    @abstractmethod
    def list(self, prefix: str) -> List[StoredObject]:
        """List every document whose key starts with prefix."""
        ...

    @abstractmethod
    def delete(self, obj: StoredObject) -> None:
        """Delete one listed document."""
        ...


def create_backend(kind: str = None) -> SnapshotBackend:
    """Create the primary backend selected by STORE_BACKEND."""
    kind = (kind or config.STORE_BACKEND).lower()
    if kind == "blob":
        from storage.blob import BlobBackend
        return BlobBackend(token=config.get_blob_token())
    if kind == "sqlite":
        from storage.sqlite_backend import SqliteBackend
        return SqliteBackend()

    raise ConfigurationMissing(f"Unknown STORE_BACKEND '{kind}' (use 'blob' or 'sqlite')")
