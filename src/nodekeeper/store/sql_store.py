"""
Node store persisted through SQLAlchemy.

Nodes live in a ``nodes`` table and their ordered child references in a
``child_entries`` table. Neither parent links nor child references are
enforced by the database, so a damaged tree can be loaded and repaired.
"""

import logging
import uuid
from pathlib import Path
from typing import Iterable, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from nodekeeper.core.errors import NoSuchNodeError, StorageError, UnsupportedOperationError
from nodekeeper.core.settings import ROOT_NODE_ID
from nodekeeper.database.engine import get_engine
from nodekeeper.database.models import Base, ChildEntryRecord, NodeRecord
from nodekeeper.database.session import get_session, make_session_factory
from nodekeeper.store.base import NodeStore
from nodekeeper.store.changelog import ChangeLog
from nodekeeper.store.schemas import ChildEntry, NodeState

logger = logging.getLogger(__name__)

VACUUM_DIALECTS = ("sqlite", "postgresql")


class SqlNodeStore(NodeStore):
    """NodeStore on top of any SQLAlchemy database (SQLite by default)."""

    def __init__(self, database_url: str, root_id: uuid.UUID = ROOT_NODE_ID, echo: bool = False):
        self.database_url = database_url
        self.root_id = root_id
        self.engine = get_engine(database_url, echo=echo)
        self._session_factory = make_session_factory(self.engine)

    def init(self) -> None:
        """Create the schema and the root node if they are missing."""
        self._ensure_sqlite_directory()
        try:
            Base.metadata.create_all(self.engine)
            with get_session(self._session_factory) as session, session.begin():
                if session.get(NodeRecord, self.root_id) is None:
                    logger.info(f"Creating root node {self.root_id}")
                    session.add(NodeRecord(id=self.root_id, parent_id=None, is_node=True))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to initialize node store at {self.database_url}: {e}") from e

    def close(self) -> None:
        self.engine.dispose()

    def load(self, node_id: uuid.UUID) -> NodeState:
        try:
            with get_session(self._session_factory) as session:
                record = session.get(NodeRecord, node_id)
                if record is None:
                    raise NoSuchNodeError(node_id)
                return self._to_state(record)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load node {node_id}: {e}") from e

    def exists(self, node_id: uuid.UUID) -> bool:
        try:
            with get_session(self._session_factory) as session:
                found = session.scalar(select(NodeRecord.id).where(NodeRecord.id == node_id))
                return found is not None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to check node {node_id}: {e}") from e

    def _store(self, change_log: ChangeLog) -> None:
        try:
            with get_session(self._session_factory) as session, session.begin():
                for state in change_log.added_states():
                    if session.get(NodeRecord, state.node_id) is not None:
                        raise StorageError(f"Cannot add node {state.node_id}: it already exists")
                    record = NodeRecord(id=state.node_id)
                    self._apply_state(record, state)
                    session.add(record)

                for state in change_log.modified_states():
                    record = session.get(NodeRecord, state.node_id)
                    if record is None:
                        raise StorageError(f"Cannot modify node {state.node_id}: it does not exist")
                    self._apply_state(record, state)

                for state in change_log.deleted_states():
                    record = session.get(NodeRecord, state.node_id)
                    if record is None:
                        raise StorageError(f"Cannot delete node {state.node_id}: it does not exist")
                    session.delete(record)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to store {change_log}: {e}") from e
        logger.debug(f"Stored {change_log}")

    def iter_all_ids(self, after: Optional[uuid.UUID] = None, max_count: int = 0) -> List[uuid.UUID]:
        query = select(NodeRecord.id).order_by(NodeRecord.id)
        if after is not None:
            query = query.where(NodeRecord.id > after)
        if max_count > 0:
            query = query.limit(max_count)
        try:
            with get_session(self._session_factory) as session:
                return list(session.scalars(query))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list node ids: {e}") from e

    def check_consistency(self, uuids: Optional[Iterable[uuid.UUID]] = None,
                          recursive: bool = True, fix: bool = False) -> int:
        """
        Look for child entries that point at missing records and for children
        whose parent link disagrees with the entry.

        Args:
            uuids: Ids of the nodes whose entries are checked, None for all nodes
            recursive: Also check every descendant of ``uuids``
            fix: Delete the dangling child entries

        Returns:
            Number of problems found
        """
        problems = 0
        try:
            with get_session(self._session_factory) as session, session.begin():
                scope = None
                if uuids is not None:
                    scope = self._collect_scope(session, uuids, recursive)

                dangling = (
                    select(ChildEntryRecord)
                    .outerjoin(NodeRecord, NodeRecord.id == ChildEntryRecord.child_id)
                    .where(NodeRecord.id.is_(None))
                )
                mismatched = (
                    select(ChildEntryRecord, NodeRecord)
                    .join(NodeRecord, NodeRecord.id == ChildEntryRecord.child_id)
                    .where(NodeRecord.parent_id.is_distinct_from(ChildEntryRecord.parent_id))
                )
                if scope is not None:
                    dangling = dangling.where(ChildEntryRecord.parent_id.in_(scope))
                    mismatched = mismatched.where(ChildEntryRecord.parent_id.in_(scope))

                for entry in session.scalars(dangling).all():
                    problems += 1
                    logger.warning(
                        f"Node {entry.parent_id} references missing child {entry.child_id} ('{entry.name}')"
                    )
                    if fix:
                        logger.info(f"Removing child entry '{entry.name}' ({entry.child_id}) from {entry.parent_id}")
                        session.delete(entry)

                for entry, child in session.execute(mismatched).all():
                    if str(entry.parent_id) in (child.shares or []):
                        continue
                    problems += 1
                    logger.warning(
                        f"Node {entry.parent_id} references child {child.id} ('{entry.name}') "
                        f"whose parent is {child.parent_id}"
                    )
        except SQLAlchemyError as e:
            raise StorageError(f"Consistency check failed: {e}") from e

        logger.info(f"Native consistency check found {problems} problem(s)")
        return problems

    def optimize(self) -> None:
        dialect = self.engine.dialect.name
        if dialect not in VACUUM_DIALECTS:
            raise UnsupportedOperationError(f"No optimizer available for {dialect} databases")
        logger.info(f"Running VACUUM on {self.database_url}")
        try:
            with self.engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
                conn.exec_driver_sql("VACUUM")
        except SQLAlchemyError as e:
            raise StorageError(f"Optimization failed: {e}") from e

    # ____ helpers ____

    def _ensure_sqlite_directory(self) -> None:
        url = self.engine.url
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _collect_scope(session, uuids: Iterable[uuid.UUID], recursive: bool) -> Set[uuid.UUID]:
        scope = set(uuids)
        frontier = set(scope)
        while recursive and frontier:
            children = set(session.scalars(
                select(ChildEntryRecord.child_id).where(ChildEntryRecord.parent_id.in_(frontier))
            ))
            frontier = children - scope
            scope |= frontier
        return scope

    @staticmethod
    def _to_state(record: NodeRecord) -> NodeState:
        return NodeState(
            node_id=record.id,
            parent_id=record.parent_id,
            child_entries=tuple(
                ChildEntry(name=entry.name, node_id=entry.child_id) for entry in record.child_entries
            ),
            shares=frozenset(uuid.UUID(share) for share in (record.shares or [])),
            is_node=record.is_node,
        )

    @staticmethod
    def _apply_state(record: NodeRecord, state: NodeState) -> None:
        record.parent_id = state.parent_id
        record.is_node = state.is_node
        record.shares = sorted(str(share) for share in state.shares) or None
        record.child_entries = [
            ChildEntryRecord(position=position, name=entry.name, child_id=entry.node_id)
            for position, entry in enumerate(state.child_entries)
        ]
