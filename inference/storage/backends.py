"""
Collection Store Backends

Append-only, dict-record collections in memory or on disk.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import copy
import json
import logging
import os
import threading

from ..contracts.base import PersistenceError
from ..domain.serialization import dumps

logger = logging.getLogger(__name__)


SNAPSHOTS = "snapshots"
CLAIM_FEEDBACK = "claim_feedback"
AUDIT_LOG = "audit_log"


# =============================================================================
# STORAGE INTERFACES (Dependency Inversion)
# =============================================================================

class CollectionStore:
    """
    Abstract append-only collection store.

    Implementations can use different storage systems (memory, file,
    database) while maintaining the same append-only semantics. Records
    are JSON-compatible dicts; read() returns them in append order.
    """

    def read(self, collection: str) -> List[Dict[str, Any]]:
        """Return every record of a collection, oldest first."""
        raise NotImplementedError

    def append(self, collection: str, record: Dict[str, Any]) -> None:
        """Append one record. Raises PersistenceError on failure."""
        raise NotImplementedError


# =============================================================================
# IN-MEMORY STORE (Reference Implementation)
# =============================================================================

class InMemoryCollectionStore(CollectionStore):
    """
    In-memory implementation of the collection store.

    Records are deep-copied on the way in and out so callers can never
    reach stored state. Suitable for testing and single-process use.
    """

    def __init__(self):
        self._collections: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def read(self, collection: str) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._collections.get(collection, []))

    def append(self, collection: str, record: Dict[str, Any]) -> None:
        with self._lock:
            self._collections.setdefault(collection, []).append(copy.deepcopy(record))


# =============================================================================
# FILE STORE (JSON Lines)
# =============================================================================

class FileCollectionStore(CollectionStore):
    """
    File-based collection store, one JSON Lines file per collection.

    Each record is written as a single line and flushed to disk before
    append() returns. A trailing line without its newline is a torn
    write from a crashed writer and is skipped on read.
    """

    def __init__(self, storage_dir: str):
        self._storage_dir = storage_dir
        self._lock = threading.Lock()
        try:
            os.makedirs(storage_dir, exist_ok=True)
        except OSError as e:
            raise PersistenceError(
                f"Cannot create storage directory: {e}",
                ("storage_dir", storage_dir)
            ) from e

    @property
    def storage_dir(self) -> str:
        return self._storage_dir

    def _path(self, collection: str) -> str:
        return os.path.join(self._storage_dir, f"{collection}.jsonl")

    def read(self, collection: str) -> List[Dict[str, Any]]:
        path = self._path(collection)
        if not os.path.exists(path):
            return []

        records = []
        try:
            with open(path, 'r', encoding='utf-8') as f:
                for line_number, line in enumerate(f, start=1):
                    if not line.endswith('\n'):
                        logger.warning(
                            "Skipping partial record at %s:%d", path, line_number
                        )
                        continue
                    if not line.strip():
                        continue
                    try:
                        records.append(json.loads(line))
                    except json.JSONDecodeError:
                        logger.warning(
                            "Skipping unreadable record at %s:%d", path, line_number
                        )
        except OSError as e:
            raise PersistenceError(
                f"Failed to read {collection}: {e}", ("path", path)
            ) from e
        return records

    @staticmethod
    def _ends_mid_line(path: str) -> bool:
        if not os.path.exists(path) or os.path.getsize(path) == 0:
            return False
        with open(path, 'rb') as f:
            f.seek(-1, os.SEEK_END)
            return f.read(1) != b'\n'

    def append(self, collection: str, record: Dict[str, Any]) -> None:
        path = self._path(collection)
        line = dumps(record) + '\n'
        try:
            with self._lock:
                if self._ends_mid_line(path):
                    # close off a torn record so it cannot swallow this one
                    line = '\n' + line
                with open(path, 'a', encoding='utf-8') as f:
                    f.write(line)
                    f.flush()
                    os.fsync(f.fileno())
        except OSError as e:
            raise PersistenceError(
                f"Failed to append to {collection}: {e}", ("path", path)
            ) from e


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class StorageConfig:
    """Configuration for the collection store."""
    backend_type: str = "memory"  # "memory" or "file"
    storage_dir: Optional[str] = None


def create_collection_store(config: Optional[StorageConfig] = None) -> CollectionStore:
    """Create a collection store based on configuration."""
    config = config or StorageConfig()
    if config.backend_type == "file":
        if not config.storage_dir:
            raise ValueError("file backend requires storage_dir")
        return FileCollectionStore(config.storage_dir)
    if config.backend_type != "memory":
        raise ValueError(f"unknown storage backend: {config.backend_type!r}")
    return InMemoryCollectionStore()
