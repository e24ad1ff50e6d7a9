"""
Path and traversal helpers shared by the commands.
"""

import logging
import uuid
from typing import Iterator, List, Optional, Tuple

from nodekeeper.core.errors import InvalidPathSpec, NoSuchNodeError, StorageError
from nodekeeper.core.settings import PATH_SEPARATOR
from nodekeeper.core.utils import split_path
from nodekeeper.store.base import NodeStore
from nodekeeper.store.changelog import ChangeLog
from nodekeeper.store.schemas import ChildEntry, NodeState

logger = logging.getLogger(__name__)


def get_root_state(store: NodeStore) -> NodeState:
    return store.load(store.root_id)


def persist(store: NodeStore, change_log: ChangeLog) -> bool:
    """
    Store the change log if it holds anything, then reset it.

    Returns:
        True if a commit happened
    """
    if not change_log.has_updates():
        return False
    store.store(change_log)
    change_log.reset()
    return True


def load_state(store: NodeStore, node_id: Optional[uuid.UUID]) -> Optional[NodeState]:
    """Load a node, logging and returning None when it cannot be loaded."""
    if node_id is None:
        return None
    try:
        return store.load(node_id)
    except StorageError as e:
        logger.warning(f"Error loading node ID {node_id}: {e}")
    return None


def get_path(store: NodeStore, state: NodeState) -> str:
    """
    Path of a node, built from the names its ancestors list it under.

    A node missing from its parent's child entries shows up as ``[<id>]``.

    Raises:
        StorageError: If an ancestor cannot be loaded or the parent links form a cycle
    """
    segments = []
    seen = {state.node_id}
    current = state
    while current.parent_id is not None:
        parent = store.load(current.parent_id)
        entry = parent.get_child_entry(current.node_id)
        segments.append(entry.name if entry is not None else f"[{current.node_id}]")
        if parent.node_id in seen:
            raise StorageError(f"Parent links of node {state.node_id} form a cycle at {parent.node_id}")
        seen.add(parent.node_id)
        current = parent
    return "".join(PATH_SEPARATOR + segment for segment in reversed(segments))


def describe(store: NodeStore, state: Optional[NodeState]) -> str:
    """Path for log messages; falls back to the node id."""
    if state is None:
        return "<none>"
    try:
        return get_path(store, state)
    except StorageError:
        return f"[{state.node_id}]"


def iter_children(store: NodeStore, state: NodeState) -> Iterator[Tuple[ChildEntry, NodeState]]:
    """Yield (entry, child state) pairs, skipping children that fail to load."""
    for entry in state.child_entries:
        child = load_state(store, entry.node_id)
        if child is None:
            continue
        yield entry, child


def get_child_states(store: NodeStore, state: NodeState) -> List[NodeState]:
    return [child for _, child in iter_children(store, state)]


def get_node_state(store: NodeStore, parent_state: NodeState, rel_path: str) -> Optional[NodeState]:
    """
    Resolve a path relative to ``parent_state``.

    Args:
        store: Store to load from
        parent_state: Node the path starts at
        rel_path: Path without a leading slash; "" resolves to ``parent_state``

    Returns:
        The node, or None if a segment does not exist

    Raises:
        InvalidPathSpec: If ``rel_path`` is absolute
    """
    if rel_path.startswith(PATH_SEPARATOR):
        raise InvalidPathSpec(f"Relative path expected: {rel_path}")

    current = parent_state
    for name in split_path(rel_path):
        entry = current.get_child_entry_by_name(name)
        if entry is None:
            return None
        try:
            current = store.load(entry.node_id)
        except NoSuchNodeError:
            logger.warning(
                f"Missing child entry detected: {describe(store, current)} ({current.node_id}) "
                f"lists {name} ({entry.node_id})"
            )
            return None
    return current
