"""
Command to list all content paths. By default the paths are logged,
optionally they can be written to a specified file instead.
"""

import logging
from pathlib import Path
from typing import List, Optional, TextIO

from nodekeeper.commands.base import Command
from nodekeeper.commands.traversal import get_node_state, get_path, get_root_state, iter_children
from nodekeeper.core.context import ExecutionContext
from nodekeeper.core.errors import InvalidPathSpec
from nodekeeper.core.settings import PATH_SEPARATOR
from nodekeeper.store.base import NodeStore
from nodekeeper.store.schemas import NodeState

logger = logging.getLogger(__name__)


class PrintList(Command):

    def __init__(self, output: Optional[Path] = None, paths: Optional[List[str]] = None):
        super().__init__()
        self.output = Path(output) if output is not None else None
        self.paths = list(paths) if paths else [PATH_SEPARATOR]
        self.listed = 0

    def _do_execute(self, context: ExecutionContext) -> int:
        for path in self.paths:
            if not path.startswith(PATH_SEPARATOR):
                raise InvalidPathSpec(f"Path must start with a forward slash (/): {path}")

        store = context.get_caching_store()
        if self.output is None:
            self._list_paths(store, None)
        else:
            logger.info(f"Output is written to {self.output}")
            with open(self.output, "w", encoding="utf-8") as sink:
                self._list_paths(store, sink)
        logger.info(f"Listed {self.listed} paths")
        return self.listed

    def _list_paths(self, store: NodeStore, sink: Optional[TextIO]) -> None:
        root_state = get_root_state(store)
        for path in self.paths:
            node_state = get_node_state(store, root_state, path[1:])
            if node_state is None:
                logger.warning(f"No node found for path {path}")
            else:
                self._list_children(store, node_state, sink)

    def _list_children(self, store: NodeStore, start_state: NodeState, sink: Optional[TextIO]) -> None:
        """Write ``start_state`` and every node below it, depth first in entry order."""
        if not start_state.is_node:
            return

        start_path = get_path(store, start_state)
        self._write(start_path, sink)
        ancestors = {start_state.node_id}
        stack = [(start_state, start_path, iter_children(store, start_state))]
        while stack:
            parent_state, parent_path, children = stack[-1]
            next_child = next(children, None)
            if next_child is None:
                stack.pop()
                ancestors.discard(parent_state.node_id)
                continue

            entry, child = next_child
            if not child.is_node:
                continue
            if child.node_id in ancestors:
                logger.warning(
                    f"Cycle: {parent_path} ({parent_state.node_id}) lists its ancestor "
                    f"{child.node_id} as child '{entry.name}'; not descending"
                )
                continue

            path = self._child_path(store, parent_state, parent_path, child)
            self._write(path, sink)
            ancestors.add(child.node_id)
            stack.append((child, path, iter_children(store, child)))

    @staticmethod
    def _child_path(store: NodeStore, parent_state: NodeState, parent_path: str, child: NodeState) -> str:
        # Paths follow parent links; a child listed by a foreign parent gets its own path
        if child.parent_id != parent_state.node_id:
            return get_path(store, child)
        name = parent_state.get_child_entry(child.node_id).name
        return parent_path + PATH_SEPARATOR + name

    def _write(self, path: str, sink: Optional[TextIO]) -> None:
        if sink is not None:
            sink.write(path + "\n")
        else:
            logger.info(path)
        self.listed += 1
