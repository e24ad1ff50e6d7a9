"""
Dictionary-backed node store.

Holds snapshots in memory. Useful for scripted fixes on small exported trees
and as a fast store for tests.
"""

import logging
import threading
import uuid
from typing import Dict, Iterable, List, Optional

from nodekeeper.core.errors import NoSuchNodeError, StorageError
from nodekeeper.core.settings import ROOT_NODE_ID
from nodekeeper.store.base import NodeStore
from nodekeeper.store.changelog import ChangeLog
from nodekeeper.store.schemas import NodeState

logger = logging.getLogger(__name__)


class InMemoryNodeStore(NodeStore):
    """Node store keeping every state in a dict. A root node is created on construction."""

    def __init__(self, root_id: uuid.UUID = ROOT_NODE_ID, states: Optional[Iterable[NodeState]] = None):
        self.root_id = root_id
        self._states: Dict[uuid.UUID, NodeState] = {root_id: NodeState(node_id=root_id)}
        for state in states or ():
            self._states[state.node_id] = state
        self._lock = threading.Lock()

    def load(self, node_id: uuid.UUID) -> NodeState:
        try:
            return self._states[node_id]
        except KeyError:
            raise NoSuchNodeError(node_id) from None

    def exists(self, node_id: uuid.UUID) -> bool:
        return node_id in self._states

    def _store(self, change_log: ChangeLog) -> None:
        with self._lock:
            # Validate everything first so a conflict leaves the store untouched
            for state in change_log.added_states():
                if state.node_id in self._states:
                    raise StorageError(f"Cannot add node {state.node_id}: it already exists")
            for state in change_log.modified_states() + change_log.deleted_states():
                if state.node_id not in self._states:
                    raise StorageError(f"Cannot update node {state.node_id}: it does not exist")

            for state in change_log.added_states() + change_log.modified_states():
                self._states[state.node_id] = state
            for state in change_log.deleted_states():
                del self._states[state.node_id]
        logger.debug(f"Stored {change_log}")

    def iter_all_ids(self, after: Optional[uuid.UUID] = None, max_count: int = 0) -> List[uuid.UUID]:
        ids = sorted(self._states)
        if after is not None:
            ids = [node_id for node_id in ids if node_id > after]
        if max_count > 0:
            ids = ids[:max_count]
        return ids

    def __len__(self) -> int:
        return len(self._states)
