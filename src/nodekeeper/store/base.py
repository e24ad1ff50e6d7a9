"""
The storage contract consumed by the maintenance commands.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from nodekeeper.core.errors import StorageError, UnsupportedOperationError
from nodekeeper.core.settings import ROOT_NODE_ID
from nodekeeper.store.changelog import ChangeLog
from nodekeeper.store.schemas import NodeState


class NodeStore(ABC):
    """
    Abstract node store.

    Implementations load immutable NodeState snapshots and apply ChangeLogs
    atomically. The bulk id scan, the native consistency check and the optimizer
    are optional and raise UnsupportedOperationError by default.
    """

    root_id: uuid.UUID = ROOT_NODE_ID

    def init(self) -> None:
        """Prepare the store for use."""

    def close(self) -> None:
        """Release any resources held by the store."""

    @abstractmethod
    def load(self, node_id: uuid.UUID) -> NodeState:
        """
        Load a node.

        Raises:
            NoSuchNodeError: If the id is unknown
            StorageError: On lower-level failures
        """

    @abstractmethod
    def exists(self, node_id: uuid.UUID) -> bool:
        """Whether a record with this id is stored."""

    def store(self, change_log: ChangeLog) -> None:
        """
        Atomically apply all staged states of a change log.

        Raises:
            StorageError: If the change log is empty or conflicts with stored data.
                Nothing is applied in that case.
        """
        if not change_log.has_updates():
            raise StorageError("Refusing to store an empty change log")
        self._store(change_log)
        change_log.mark_committed()

    @abstractmethod
    def _store(self, change_log: ChangeLog) -> None:
        """Apply a non-empty change log in a single transaction."""

    def iter_all_ids(self, after: Optional[uuid.UUID] = None, max_count: int = 0) -> List[uuid.UUID]:
        """
        Ids of all stored records in ascending order.

        Args:
            after: Only return ids greater than this one
            max_count: Maximum number of ids, 0 or less for no limit
        """
        raise UnsupportedOperationError(f"{type(self).__name__} cannot iterate node ids")

    def check_consistency(self, uuids: Optional[Iterable[uuid.UUID]] = None,
                          recursive: bool = True, fix: bool = False) -> int:
        """Run the store's own consistency check; returns the number of problems found."""
        raise UnsupportedOperationError(f"{type(self).__name__} has no native consistency check")

    def optimize(self) -> None:
        """Compact the underlying storage."""
        raise UnsupportedOperationError(f"{type(self).__name__} cannot be optimized")

    def __enter__(self):
        self.init()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
