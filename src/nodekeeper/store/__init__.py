"""
Node store contract, change logs and the bundled store implementations.
"""

from nodekeeper.store.schemas import ChildEntry, NodeState
from nodekeeper.store.changelog import ChangeLog
from nodekeeper.store.base import NodeStore
from nodekeeper.store.caching import CachingNodeStore, LRUCache
from nodekeeper.store.memory_store import InMemoryNodeStore
from nodekeeper.store.sql_store import SqlNodeStore

__all__ = [
    'ChildEntry',
    'NodeState',
    'ChangeLog',
    'NodeStore',
    'CachingNodeStore',
    'LRUCache',
    'InMemoryNodeStore',
    'SqlNodeStore',
]
