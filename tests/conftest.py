# tests/conftest.py
"""Shared fixtures and tree builders for the nodekeeper tests."""

import uuid
from typing import Dict, List, Optional

import pytest

from nodekeeper.core.config import Settings
from nodekeeper.core.context import ExecutionContext
from nodekeeper.store import ChangeLog, InMemoryNodeStore, NodeState, SqlNodeStore


def add_child(store, parent_id: uuid.UUID, name: str, node_id: Optional[uuid.UUID] = None,
              is_node: bool = True) -> NodeState:
    """Create a node under ``parent_id`` in one commit."""
    parent = store.load(parent_id)
    child = NodeState(node_id=node_id or uuid.uuid4(), parent_id=parent_id, is_node=is_node)
    change_log = ChangeLog()
    change_log.added(child)
    change_log.modified(parent.add_child_entry(name, child.node_id))
    store.store(change_log)
    return child


def build_tree(store, tree: Dict[str, dict], parent_id: Optional[uuid.UUID] = None,
               parent_path: str = "") -> Dict[str, uuid.UUID]:
    """
    Create nested nodes from a dict like {"a": {"x": {}, "y": {"z": {}}}}.

    Returns:
        Mapping of created paths to node ids
    """
    parent_id = parent_id or store.root_id
    ids = {}
    for name, children in tree.items():
        child = add_child(store, parent_id, name)
        path = f"{parent_path}/{name}"
        ids[path] = child.node_id
        ids.update(build_tree(store, children, child.node_id, path))
    return ids


def build_chain(store, depth: int) -> List[uuid.UUID]:
    """Create /n0/n1/.../n<depth-1> without recursion; returns the ids top down."""
    ids = []
    parent_id = store.root_id
    for level in range(depth):
        parent_id = add_child(store, parent_id, f"n{level}").node_id
        ids.append(parent_id)
    return ids


def put(store, state: NodeState) -> None:
    """Overwrite a stored node with ``state`` (used to damage trees)."""
    change_log = ChangeLog()
    change_log.modified(state)
    store.store(change_log)


def assert_tree_consistent(store) -> None:
    """Every stored child entry points at an existing node that names the parent as its parent or share."""
    for node_id in store.iter_all_ids():
        state = store.load(node_id)
        for entry in state.child_entries:
            assert store.exists(entry.node_id), f"{node_id} lists missing child {entry.node_id}"
            child = store.load(entry.node_id)
            assert child.parent_id == node_id or child.contains_share(node_id)


@pytest.fixture
def test_settings():
    return Settings(log_file=None, cache_size=50, save_threshold=5000, progress_interval=10000)


@pytest.fixture
def memory_store():
    return InMemoryNodeStore()


@pytest.fixture
def sql_store():
    store = SqlNodeStore("sqlite://")
    store.init()
    yield store
    store.close()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Each test using this fixture runs against both bundled stores."""
    if request.param == "memory":
        yield InMemoryNodeStore()
    else:
        sql = SqlNodeStore("sqlite://")
        sql.init()
        yield sql
        sql.close()


@pytest.fixture
def make_context(test_settings):
    def _make(store):
        return ExecutionContext(store, test_settings)
    return _make


@pytest.fixture
def sample_tree(store):
    """/a with children x and y; y has z."""
    return build_tree(store, {"a": {"x": {}, "y": {"z": {}}}})
