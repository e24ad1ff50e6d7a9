"""
Batches of staged node mutations that a store applies atomically.
"""

import uuid
from typing import Dict, List

from nodekeeper.core.errors import ChangeLogStateError
from nodekeeper.store.schemas import NodeState


class ChangeLog:
    """
    Accumulates added, modified and deleted node states for one commit.

    States are keyed by node id, so staging the same node again replaces the
    earlier snapshot. Once a store has committed the change log it refuses
    further staging until ``reset`` is called.
    """

    def __init__(self):
        self._added: Dict[uuid.UUID, NodeState] = {}
        self._modified: Dict[uuid.UUID, NodeState] = {}
        self._deleted: Dict[uuid.UUID, NodeState] = {}
        self._committed = False

    def added(self, state: NodeState) -> None:
        self._check_open()
        if self._deleted.pop(state.node_id, None) is not None:
            # Deleted and re-created in the same batch: the record stays, with new content
            self._modified[state.node_id] = state
            return
        self._added[state.node_id] = state

    def modified(self, state: NodeState) -> None:
        self._check_open()
        if state.node_id in self._added:
            # Still new to the store, so it is stored as an addition
            self._added[state.node_id] = state
        else:
            self._modified[state.node_id] = state

    def deleted(self, state: NodeState) -> None:
        self._check_open()
        if self._added.pop(state.node_id, None) is not None:
            return
        self._modified.pop(state.node_id, None)
        self._deleted[state.node_id] = state

    def added_states(self) -> List[NodeState]:
        return list(self._added.values())

    def modified_states(self) -> List[NodeState]:
        return list(self._modified.values())

    def deleted_states(self) -> List[NodeState]:
        return list(self._deleted.values())

    def has_updates(self) -> bool:
        return bool(self._added or self._modified or self._deleted)

    @property
    def committed(self) -> bool:
        return self._committed

    def mark_committed(self) -> None:
        """Called by a store after it applied this change log."""
        self._committed = True

    def reset(self) -> None:
        """Discard all staged states and make the change log reusable."""
        self._added.clear()
        self._modified.clear()
        self._deleted.clear()
        self._committed = False

    def _check_open(self) -> None:
        if self._committed:
            raise ChangeLogStateError("ChangeLog was already committed; reset it before staging more changes")

    def __len__(self) -> int:
        return len(self._added) + len(self._modified) + len(self._deleted)

    def __repr__(self) -> str:
        return (
            f"ChangeLog(added={len(self._added)}, modified={len(self._modified)}, "
            f"deleted={len(self._deleted)})"
        )
