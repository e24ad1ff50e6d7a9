"""
Immutable snapshots of node records as returned by a node store.
"""

import uuid
from typing import AbstractSet, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ChildEntry(BaseModel):
    """A named reference from a parent node to one of its children."""
    model_config = ConfigDict(frozen=True)

    name: str
    node_id: uuid.UUID


class NodeState(BaseModel):
    """
    Snapshot of one node record.

    Snapshots never change after they are loaded. The ``remove_child_entry`` and
    ``add_child_entry`` helpers return new snapshots, which only take effect once
    they are staged in a ChangeLog and stored.
    """
    model_config = ConfigDict(frozen=True)

    node_id: uuid.UUID
    parent_id: Optional[uuid.UUID] = None  # None for the root
    child_entries: Tuple[ChildEntry, ...] = ()
    shares: FrozenSet[uuid.UUID] = Field(default_factory=frozenset)
    is_node: bool = True

    def contains_share(self, parent_id: uuid.UUID) -> bool:
        """True if ``parent_id`` is one of the additional parents of a shared node."""
        return parent_id in self.shares

    def has_child_entry(self, node_id: uuid.UUID) -> bool:
        return any(entry.node_id == node_id for entry in self.child_entries)

    def has_child_entry_named(self, name: str) -> bool:
        return any(entry.name == name for entry in self.child_entries)

    def get_child_entry(self, node_id: uuid.UUID) -> Optional[ChildEntry]:
        for entry in self.child_entries:
            if entry.node_id == node_id:
                return entry
        return None

    def get_child_entry_by_name(self, name: str) -> Optional[ChildEntry]:
        """First entry with the given name (same-name siblings resolve to index 1)."""
        for entry in self.child_entries:
            if entry.name == name:
                return entry
        return None

    def remove_child_entry(self, node_id: uuid.UUID) -> "NodeState":
        """Snapshot without the entry for ``node_id`` (self if there is none)."""
        if not self.has_child_entry(node_id):
            return self
        remaining = tuple(entry for entry in self.child_entries if entry.node_id != node_id)
        return self.model_copy(update={"child_entries": remaining})

    def remove_child_entries(self, node_ids: AbstractSet[uuid.UUID]) -> "NodeState":
        """Snapshot without the entries for any of ``node_ids``."""
        remaining = tuple(entry for entry in self.child_entries if entry.node_id not in node_ids)
        if len(remaining) == len(self.child_entries):
            return self
        return self.model_copy(update={"child_entries": remaining})

    def add_child_entry(self, name: str, node_id: uuid.UUID) -> "NodeState":
        entries = self.child_entries + (ChildEntry(name=name, node_id=node_id),)
        return self.model_copy(update={"child_entries": entries})
