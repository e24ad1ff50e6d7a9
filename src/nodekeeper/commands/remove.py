"""
Command to recursively remove content from a node store.

Path specs are either paths or paths whose last segment is a name filter with
a single ``*`` (``/content/dam/geo*``). Subtrees are deleted bottom-up and
committed in batches so neither memory nor commit size grows with the subtree.
"""

import logging
from typing import Iterator, List, Optional, Tuple

from nodekeeper.commands.base import Command
from nodekeeper.commands.traversal import (
    describe, get_node_state, get_root_state, iter_children, load_state
)
from nodekeeper.core.context import ExecutionContext
from nodekeeper.core.errors import InvalidPathSpec
from nodekeeper.core.settings import PATH_SEPARATOR
from nodekeeper.core.utils import AtomicCounter, NameFilter, get_name, get_relative_parent
from nodekeeper.store.base import NodeStore
from nodekeeper.store.changelog import ChangeLog
from nodekeeper.store.schemas import ChildEntry, NodeState

logger = logging.getLogger(__name__)


class _DeleteFrame:
    """A node on the delete stack with the nodes collected below it and not yet committed."""

    def __init__(self, state: NodeState, children: Iterator[Tuple[ChildEntry, NodeState]]):
        self.current = state
        self.children = children
        self.pending: List[NodeState] = []


class Remove(Command):
    """Recursively delete every node matched by a list of path specs."""

    def __init__(self, paths: List[str], threshold: Optional[int] = None):
        """
        Args:
            paths: Path specs to delete
            threshold: Pending deletions that trigger an intermediate commit, defaults to the settings
        """
        super().__init__()
        self.paths = list(paths)
        self.threshold = threshold
        self.deleted_count = AtomicCounter()
        self.commit_count = AtomicCounter()

    def _do_execute(self, context: ExecutionContext) -> int:
        if self.threshold is None:
            self.threshold = context.settings.save_threshold
        store = context.store
        for path in self.paths:
            for start_state in self.expand_path(store, path):
                logger.info(f"Recursively deleting {describe(store, start_state)} ({start_state.node_id})")
                self.recursive_delete(store, start_state)
        logger.info(
            f"Deleted {self.deleted_count.value} nodes in {self.commit_count.value} commit(s)"
        )
        return self.deleted_count.value

    def expand_path(self, store: NodeStore, path: str) -> List[NodeState]:
        """
        Resolve a path spec to the nodes it names.

        Returns:
            The node at the literal path if there is one, otherwise the children of
            the parent path whose names match the last segment used as a name filter.
            Empty if nothing matches.

        Raises:
            InvalidPathSpec: If the name filter has more than one wildcard
        """
        logger.info(f"Expanding path spec {path}")
        rel_path = path[1:] if path.startswith(PATH_SEPARATOR) else path
        root_state = get_root_state(store)

        node_state = get_node_state(store, root_state, rel_path)
        if node_state is not None:
            logger.info(f"Found single node at /{rel_path}")
            return [node_state]

        name = get_name(rel_path)
        name_filter = NameFilter.parse(name)
        if name_filter is None:
            logger.info(f"Node {path} does not exist; skipping")
            return []

        parent_path = get_relative_parent(rel_path, 1)
        parent_state = get_node_state(store, root_state, parent_path)
        if parent_state is None:
            logger.info(f"Parent /{parent_path} of {path} does not exist; skipping")
            return []

        matches = []
        for entry, child in iter_children(store, parent_state):
            if name_filter(entry.name):
                matches.append(child)
            else:
                logger.info(f"Node /{parent_path}/{entry.name} does not match the name pattern {name}")
        logger.info(f"Found {len(matches)} of {len(parent_state.child_entries)} nodes at /{parent_path}")
        return matches

    def recursive_delete(self, store: NodeStore, start_state: NodeState) -> None:
        if start_state.parent_id is None:
            raise InvalidPathSpec("Refusing to remove the root node")
        node_states_to_delete = self._internal_recursive_delete(store, start_state)
        parent_state = load_state(store, start_state.parent_id)
        self._persist(store, parent_state, node_states_to_delete)

    def _internal_recursive_delete(self, store: NodeStore, node_state: NodeState) -> List[NodeState]:
        """
        Collect ``node_state`` and its subtree, children first.

        Whenever a node has more than ``threshold`` nodes pending below it they
        are committed against that node, which is the closest ancestor of all
        of them. A node reached a second time through another entry is skipped.

        Returns:
            Nodes still to delete, ending with ``node_state`` itself
        """
        visited = {node_state.node_id}
        stack = [_DeleteFrame(node_state, iter_children(store, node_state))]
        while True:
            frame = stack[-1]
            next_child = next(frame.children, None)
            if next_child is not None:
                entry, child = next_child
                if child.node_id in visited:
                    logger.warning(
                        f"Node {child.node_id} is listed again as '{entry.name}' under "
                        f"{frame.current.node_id}; not descending"
                    )
                    continue
                visited.add(child.node_id)
                stack.append(_DeleteFrame(child, iter_children(store, child)))
                continue

            stack.pop()
            frame.pending.append(frame.current)
            if not stack:
                return frame.pending

            parent_frame = stack[-1]
            parent_frame.pending.extend(frame.pending)
            if len(parent_frame.pending) > self.threshold:
                parent_frame.current = self._persist(store, parent_frame.current, parent_frame.pending)
                parent_frame.pending = []

    def _persist(self, store: NodeStore, node_state: Optional[NodeState],
                 child_node_states_to_delete: List[NodeState]) -> Optional[NodeState]:
        """
        Commit one batch: unlink direct children from ``node_state`` and delete every pending node.

        Returns:
            The updated snapshot of ``node_state``
        """
        change_log = ChangeLog()
        updated = node_state
        if node_state is not None:
            updated = node_state.remove_child_entries({state.node_id for state in child_node_states_to_delete})
            if updated is not node_state:
                change_log.modified(updated)
        for to_delete in child_node_states_to_delete:
            change_log.deleted(to_delete)
        store.store(change_log)

        self.commit_count.increment()
        total = self.deleted_count.increment(len(child_node_states_to_delete))
        logger.info(
            f"Persisted {len(child_node_states_to_delete)} (total: {total}) deleted nodes under "
            f"{describe(store, updated)}"
        )
        return updated
