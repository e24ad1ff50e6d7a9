"""
Read-through LRU cache in front of a node store.

Tree walks that revisit parents (path computation, parent checks) load the
same nodes many times; the cache answers those loads from memory. Any commit
can change parent links or child lists anywhere in the tree, so the whole
cache is dropped after every store call.
"""

import logging
import uuid
from collections import OrderedDict
from typing import Any, Dict, Hashable, Iterable, List, Optional

from nodekeeper.core.settings import CACHE_REPORT_INTERVAL, DEFAULT_CACHE_SIZE
from nodekeeper.core.utils import AtomicCounter
from nodekeeper.store.base import NodeStore
from nodekeeper.store.changelog import ChangeLog
from nodekeeper.store.schemas import NodeState

logger = logging.getLogger(__name__)


class LRUCache:
    """Bounded mapping evicting the least recently used key. Lookups, membership tests and writes all count as use."""

    def __init__(self, max_entries: int):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()

    def __contains__(self, key: Hashable) -> bool:
        if key in self._entries:
            self._entries.move_to_end(key)
            return True
        return False

    def get(self, key: Hashable, default: Any = None) -> Any:
        if key not in self._entries:
            return default
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: Hashable, value: Any) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> List[Hashable]:
        """Keys from least to most recently used."""
        return list(self._entries.keys())

    def __len__(self) -> int:
        return len(self._entries)


class CachingNodeStore(NodeStore):
    """Wraps another NodeStore and caches loaded states by node id."""

    def __init__(self, store: NodeStore, cache_size: int = DEFAULT_CACHE_SIZE,
                 report_interval: int = CACHE_REPORT_INTERVAL):
        self.delegate = store
        self.cache = LRUCache(cache_size)
        self.report_interval = report_interval
        self.accesses = AtomicCounter()
        self.misses = AtomicCounter()

    @property
    def root_id(self) -> uuid.UUID:
        return self.delegate.root_id

    def init(self) -> None:
        self.delegate.init()

    def close(self) -> None:
        self.delegate.close()

    def load(self, node_id: uuid.UUID) -> NodeState:
        accesses = self.accesses.increment()
        if node_id not in self.cache:
            self.misses.increment()
            self.cache.put(node_id, self.delegate.load(node_id))
        if accesses % self.report_interval == 0:
            logger.info(self.get_hit_miss_ratio())
        return self.cache.get(node_id)

    def exists(self, node_id: uuid.UUID) -> bool:
        return node_id in self.cache or self.delegate.exists(node_id)

    def _store(self, change_log: ChangeLog) -> None:
        try:
            self.delegate.store(change_log)
        finally:
            self.cache.clear()

    def iter_all_ids(self, after: Optional[uuid.UUID] = None, max_count: int = 0) -> List[uuid.UUID]:
        return self.delegate.iter_all_ids(after, max_count)

    def check_consistency(self, uuids: Optional[Iterable[uuid.UUID]] = None,
                          recursive: bool = True, fix: bool = False) -> int:
        return self.delegate.check_consistency(uuids, recursive, fix)

    def optimize(self) -> None:
        self.delegate.optimize()

    def stats(self) -> Dict[str, int]:
        accesses = self.accesses.value
        misses = self.misses.value
        return {
            "accesses": accesses,
            "hits": accesses - misses,
            "misses": misses,
            "cached": len(self.cache),
        }

    def get_hit_miss_ratio(self) -> str:
        accesses = self.accesses.value
        misses = self.misses.value
        hits = accesses - misses

        percentage = hits / accesses * 100 if accesses else 0.0
        hm_ratio = hits / misses if misses else float("inf")

        return f"Total accesses {accesses}, (h={hits}/m={misses} => {hm_ratio:.2f}), cached {percentage:.2f}%"
