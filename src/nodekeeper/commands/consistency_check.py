"""
Custom consistency check.

Walks the whole tree from the root and cross-checks every child's parent link
against the node that lists it. Stray child entries are removed from the
traversing node when the child's own parent references it; children that
neither side can vouch for are reported as orphans. Records that the walk never
reaches are reported once the walk is done.
"""

import logging
import time
import uuid
from typing import Iterator, List, Optional, Set, Tuple

from nodekeeper.commands.base import Command
from nodekeeper.commands.schemas import CheckReport, OrphanRecord, RepairRecord
from nodekeeper.commands.traversal import (
    describe, get_root_state, iter_children, load_state, persist
)
from nodekeeper.core.context import ExecutionContext
from nodekeeper.core.errors import OrphanDetected, UnreachedNodesError, UnsupportedOperationError
from nodekeeper.core.utils import AtomicCounter
from nodekeeper.store.base import NodeStore
from nodekeeper.store.changelog import ChangeLog
from nodekeeper.store.schemas import ChildEntry, NodeState

logger = logging.getLogger(__name__)


class _WalkFrame:
    """A node on the walk stack: its loaded snapshot, the snapshot with repairs applied, and its pending children."""

    def __init__(self, state: NodeState, children: Iterator[Tuple[ChildEntry, NodeState]]):
        self.state = state
        self.current = state
        self.children = children


class ConsistencyCheck(Command):
    """Command to run the custom consistency check and repair on a node store."""

    def __init__(self, dry_run: bool = False, strict: bool = False, progress_interval: Optional[int] = None):
        """
        Args:
            dry_run: Stage repairs and report them without storing anything
            strict: Fail with UnreachedNodesError when records are not reachable from the root
            progress_interval: Processed nodes between progress lines, defaults to the settings
        """
        super().__init__()
        self.dry_run = dry_run
        self.strict = strict
        self.progress_interval = progress_interval
        self.processed_node_counter = AtomicCounter()
        self.start_time = 0.0
        self.report = CheckReport(dry_run=dry_run)

    def _do_execute(self, context: ExecutionContext) -> CheckReport:
        if self.progress_interval is None:
            self.progress_interval = context.settings.progress_interval
        self.start_time = time.monotonic()

        change_log = ChangeLog()
        store = context.get_caching_store()
        all_node_ids = self._get_all_node_ids(store)
        node_count = len(all_node_ids)
        logger.info(f"There are {node_count} node IDs in the index")

        self._check_tree(store, get_root_state(store), change_log, all_node_ids, node_count)
        self.report.nodes_processed = self.processed_node_counter.value

        if self.dry_run:
            if change_log.has_updates():
                logger.info(f"Dry run: not storing {change_log}")
        else:
            self.report.committed = persist(store, change_log)

        self._report_unreached(all_node_ids)
        logger.info(
            f"Consistency check done: {self.report.nodes_processed} nodes, "
            f"{len(self.report.repairs)} repaired, {len(self.report.orphans)} orphaned, "
            f"{len(self.report.unreached_ids)} unreached"
        )
        if self.strict and self.report.unreached_ids:
            raise UnreachedNodesError(self.report.unreached_ids)
        return self.report

    def _check_tree(self, store: NodeStore, root_state: NodeState, change_log: ChangeLog,
                    all_node_ids: Set[uuid.UUID], node_count: int) -> None:
        """
        Walk the tree depth first, children in entry order, checking every
        child's parent link before descending into it.
        """
        stack: List[_WalkFrame] = []
        ancestors: Set[uuid.UUID] = set()
        self._enter(store, root_state, all_node_ids, node_count, stack, ancestors)

        while stack:
            frame = stack[-1]
            next_child = next(frame.children, None)
            if next_child is None:
                stack.pop()
                ancestors.discard(frame.state.node_id)
                continue

            entry, child = next_child
            frame.current = self._assert_parent(store, frame.current, child, change_log)
            if child.node_id in ancestors:
                logger.error(
                    f"Cycle: {describe(store, frame.state)} ({frame.state.node_id}) lists its "
                    f"ancestor {child.node_id} as child '{entry.name}'; not descending"
                )
                continue
            self._enter(store, child, all_node_ids, node_count, stack, ancestors)

    def _enter(self, store: NodeStore, state: NodeState, all_node_ids: Set[uuid.UUID], node_count: int,
               stack: List[_WalkFrame], ancestors: Set[uuid.UUID]) -> None:
        # Marked reached before the is_node test: property records are reached, not unreached
        all_node_ids.discard(state.node_id)
        if not state.is_node:
            return

        nodes_processed = self.processed_node_counter.get_and_increment()
        if nodes_processed % self.progress_interval == 0 and nodes_processed != 0:
            self._log_progress(store, state, nodes_processed, node_count)

        stack.append(_WalkFrame(state, iter_children(store, state)))
        ancestors.add(state.node_id)

    def _assert_parent(self, store: NodeStore, parent: NodeState, child: NodeState,
                       change_log: ChangeLog) -> NodeState:
        """
        Check that ``child`` agrees that ``parent`` is its parent.

        Returns:
            The parent snapshot to keep using, with the stray entry removed if a repair was staged
        """
        if child.parent_id == parent.node_id or child.contains_share(parent.node_id):
            return parent

        parent_path = describe(store, parent)
        child_path = describe(store, child)
        logger.warning(
            f"Mismatching parent ids: {parent_path} ({parent.node_id}) claims to have child "
            f"{child_path} ({child.node_id}) whose parent is {child.parent_id}"
        )
        try:
            self._check_claimed_parent(store, child)
        except OrphanDetected as e:
            logger.warning(f"Orphaned child {child_path}: {e}; leaving it unrepaired")
            self.report.orphans.append(OrphanRecord(
                child_id=child.node_id,
                claimed_parent_id=child.parent_id,
                referenced_by=parent.node_id,
                child_path=child_path,
            ))
            return parent

        logger.info(f"Repairing {parent_path} ({parent.node_id}) by removing child {child.node_id}")
        repaired = parent.remove_child_entry(child.node_id)
        change_log.modified(repaired)
        self.report.repairs.append(RepairRecord(
            parent_id=parent.node_id,
            child_id=child.node_id,
            parent_path=parent_path,
            child_path=child_path,
        ))
        return repaired

    @staticmethod
    def _check_claimed_parent(store: NodeStore, child: NodeState) -> None:
        """Raise OrphanDetected unless the child's own parent lists it."""
        claimed_parent = load_state(store, child.parent_id)
        if claimed_parent is None:
            raise OrphanDetected(child.node_id, child.parent_id,
                                 f"parent {child.parent_id} of node {child.node_id} cannot be loaded")
        if not claimed_parent.has_child_entry(child.node_id):
            raise OrphanDetected(child.node_id, claimed_parent.node_id)

    def _get_all_node_ids(self, store: NodeStore) -> Set[uuid.UUID]:
        try:
            return set(store.iter_all_ids(None, 0))
        except UnsupportedOperationError as e:
            logger.warning(f"Cannot list all node ids ({e}); unreachable nodes will not be reported")
            self.report.id_scan_supported = False
            return set()

    def _report_unreached(self, all_node_ids: Set[uuid.UUID]) -> None:
        unreached = sorted(all_node_ids)
        self.report.unreached_ids = unreached
        if not unreached:
            return
        logger.warning(f"{len(unreached)} node(s) are not reachable from the root")
        for node_id in unreached:
            logger.info(f"Unreached node {node_id}")

    def _log_progress(self, store: NodeStore, state: NodeState, nodes_processed: int, node_count: int) -> None:
        time_taken = (time.monotonic() - self.start_time) * 1000
        per_node = time_taken / (nodes_processed / 1000)
        percentage = 100 * nodes_processed / node_count if node_count else 0
        logger.info(
            f"Processed {nodes_processed} nodes {describe(store, state)} ({state.node_id}) "
            f"({per_node:.0f}ms/1k nodes, {percentage:.0f}%)"
        )
