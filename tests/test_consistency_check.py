# tests/test_consistency_check.py
"""Tests for the custom consistency check and repair walker."""

import logging
import uuid

import pytest

from nodekeeper.commands import CommandState, ConsistencyCheck
from nodekeeper.core.errors import AlreadyExecuted, UnreachedNodesError, UnsupportedOperationError
from nodekeeper.store import ChangeLog, InMemoryNodeStore, NodeState
from conftest import add_child, assert_tree_consistent, build_chain, build_tree, put


def add_stray_entry(store, parent_id, name, child_id):
    """List ``child_id`` under ``parent_id`` without touching the child's parent link."""
    put(store, store.load(parent_id).add_child_entry(name, child_id))


def test_clean_tree_needs_no_repair(store, sample_tree, make_context):
    report = ConsistencyCheck().execute(make_context(store))

    assert report.nodes_processed == 5
    assert report.repairs == []
    assert report.orphans == []
    assert report.unreached_ids == []
    assert not report.committed


def test_stray_entry_is_removed_from_traversing_parent(store, sample_tree, make_context):
    a_id, y_id, z_id = sample_tree["/a"], sample_tree["/a/y"], sample_tree["/a/y/z"]
    add_stray_entry(store, a_id, "stray", z_id)

    report = ConsistencyCheck().execute(make_context(store))

    assert report.committed
    assert [(r.parent_id, r.child_id) for r in report.repairs] == [(a_id, z_id)]
    assert report.repairs[0].parent_path == "/a"
    assert not store.load(a_id).has_child_entry(z_id)
    # The claimed parent keeps its entry
    assert store.load(y_id).has_child_entry(z_id)
    assert store.load(z_id).parent_id == y_id
    assert_tree_consistent(store)


def test_second_run_stages_nothing(store, sample_tree, make_context):
    add_stray_entry(store, sample_tree["/a/x"], "stray", sample_tree["/a/y"])

    first = ConsistencyCheck().execute(make_context(store))
    second = ConsistencyCheck().execute(make_context(store))

    assert len(first.repairs) == 1
    assert second.repairs == []
    assert not second.committed


def test_orphan_on_both_sides_is_left_alone(store, sample_tree, make_context):
    a_id, y_id = sample_tree["/a"], sample_tree["/a/y"]
    orphan = add_child(store, a_id, "o")
    # o now claims y as its parent, but y does not list it
    put(store, orphan.model_copy(update={"parent_id": y_id}))

    report = ConsistencyCheck().execute(make_context(store))

    assert report.repairs == []
    assert len(report.orphans) == 1
    assert report.orphans[0].child_id == orphan.node_id
    assert report.orphans[0].claimed_parent_id == y_id
    assert report.orphans[0].referenced_by == a_id
    assert store.load(a_id).has_child_entry(orphan.node_id)
    assert not report.committed


def test_orphan_with_missing_claimed_parent(store, sample_tree, make_context):
    a_id = sample_tree["/a"]
    orphan = add_child(store, a_id, "o")
    put(store, orphan.model_copy(update={"parent_id": uuid.uuid4()}))

    report = ConsistencyCheck().execute(make_context(store))

    assert [o.child_id for o in report.orphans] == [orphan.node_id]
    assert store.load(a_id).has_child_entry(orphan.node_id)


def test_subtree_below_mismatch_is_still_walked(store, sample_tree, make_context):
    x_id, y_id, z_id = sample_tree["/a/x"], sample_tree["/a/y"], sample_tree["/a/y/z"]
    add_stray_entry(store, x_id, "y-again", y_id)

    report = ConsistencyCheck().execute(make_context(store))

    # y and z are visited below x as well as below a
    assert report.nodes_processed == 7
    assert [r.child_id for r in report.repairs] == [y_id]
    assert store.load(y_id).has_child_entry(z_id)


def test_shared_node_is_not_a_mismatch(store, sample_tree, make_context):
    x_id, z_id = sample_tree["/a/x"], sample_tree["/a/y/z"]
    z = store.load(z_id)
    put(store, z.model_copy(update={"shares": frozenset({x_id})}))
    add_stray_entry(store, x_id, "z-shared", z_id)

    report = ConsistencyCheck().execute(make_context(store))

    assert report.repairs == []
    assert store.load(x_id).has_child_entry(z_id)


def test_unreached_nodes_are_reported(store, sample_tree, make_context, caplog):
    unreached = NodeState(node_id=uuid.uuid4(), parent_id=sample_tree["/a"])
    change_log = ChangeLog()
    change_log.added(unreached)
    store.store(change_log)

    with caplog.at_level(logging.INFO, logger="nodekeeper.commands.consistency_check"):
        report = ConsistencyCheck().execute(make_context(store))

    assert report.unreached_ids == [unreached.node_id]
    assert "1 node(s) are not reachable from the root" in caplog.text
    assert str(unreached.node_id) in caplog.text


def test_strict_mode_fails_on_unreached_nodes(store, sample_tree, make_context):
    a_id, z_id = sample_tree["/a"], sample_tree["/a/y/z"]
    add_stray_entry(store, a_id, "stray", z_id)
    change_log = ChangeLog()
    change_log.added(NodeState(node_id=uuid.uuid4(), parent_id=a_id))
    store.store(change_log)

    with pytest.raises(UnreachedNodesError) as excinfo:
        ConsistencyCheck(strict=True).execute(make_context(store))

    assert len(excinfo.value.node_ids) == 1
    # Repairs are stored before the strict failure
    assert not store.load(a_id).has_child_entry(z_id)


def test_non_structural_records_are_not_descended(store, sample_tree, make_context):
    a_id = sample_tree["/a"]
    props = add_child(store, a_id, "props", is_node=False)
    below = add_child(store, props.node_id, "below")

    report = ConsistencyCheck().execute(make_context(store))

    assert report.nodes_processed == 5
    assert report.unreached_ids == [below.node_id]


def test_dry_run_does_not_store(store, sample_tree, make_context):
    a_id, z_id = sample_tree["/a"], sample_tree["/a/y/z"]
    add_stray_entry(store, a_id, "stray", z_id)

    report = ConsistencyCheck(dry_run=True).execute(make_context(store))

    assert len(report.repairs) == 1
    assert report.dry_run
    assert not report.committed
    assert store.load(a_id).has_child_entry(z_id)


def test_missing_child_is_skipped(store, sample_tree, make_context):
    a_id = sample_tree["/a"]
    add_stray_entry(store, a_id, "ghost", uuid.uuid4())

    report = ConsistencyCheck().execute(make_context(store))

    assert report.nodes_processed == 5
    assert report.repairs == []


def test_entry_pointing_at_ancestor_is_repaired_not_descended(store, sample_tree, make_context):
    a_id, z_id = sample_tree["/a"], sample_tree["/a/y/z"]
    add_stray_entry(store, z_id, "loop", a_id)

    report = ConsistencyCheck().execute(make_context(store))

    assert report.nodes_processed == 5
    assert [(r.parent_id, r.child_id) for r in report.repairs] == [(z_id, a_id)]
    assert report.committed
    assert not store.load(z_id).has_child_entry(a_id)
    assert store.load(store.root_id).has_child_entry(a_id)
    assert_tree_consistent(store)


def test_self_listing_entry_is_repaired(store, sample_tree, make_context):
    z_id = sample_tree["/a/y/z"]
    add_stray_entry(store, z_id, "self", z_id)

    report = ConsistencyCheck().execute(make_context(store))

    assert [(r.parent_id, r.child_id) for r in report.repairs] == [(z_id, z_id)]
    assert store.load(z_id).child_entries == ()


def test_deep_tree_is_walked(memory_store, make_context):
    chain = build_chain(memory_store, 1500)
    add_stray_entry(memory_store, chain[-1], "stray", chain[0])

    report = ConsistencyCheck().execute(make_context(memory_store))

    assert report.nodes_processed == 1501
    assert [r.child_id for r in report.repairs] == [chain[0]]


def test_store_without_id_scan(make_context):
    class NoScanStore(InMemoryNodeStore):
        def iter_all_ids(self, after=None, max_count=0):
            raise UnsupportedOperationError("no scan")

    no_scan = NoScanStore()
    build_tree(no_scan, {"a": {"b": {}}})

    report = ConsistencyCheck().execute(make_context(no_scan))

    assert not report.id_scan_supported
    assert report.unreached_ids == []
    assert report.nodes_processed == 3


def test_progress_is_logged(memory_store, make_context, caplog):
    build_tree(memory_store, {"a": {"b": {}, "c": {}}, "d": {}})
    context = make_context(memory_store)

    with caplog.at_level(logging.INFO, logger="nodekeeper.commands.consistency_check"):
        ConsistencyCheck(progress_interval=2).execute(context)

    assert "Processed 2 nodes" in caplog.text
    assert "Processed 4 nodes" in caplog.text


def test_command_runs_only_once(memory_store, make_context):
    command = ConsistencyCheck()
    command.execute(make_context(memory_store))

    assert command.state is CommandState.EXECUTED
    with pytest.raises(AlreadyExecuted):
        command.execute(make_context(memory_store))
