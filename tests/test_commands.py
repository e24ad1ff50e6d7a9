# tests/test_commands.py
"""Tests for the pass-through commands and the command lifecycle."""

import uuid

import pytest

from nodekeeper.commands import CommandState, NativeConsistencyCheck, Noop, Optimize
from nodekeeper.core.errors import AlreadyExecuted, UnsupportedOperationError
from conftest import build_tree, put


def test_noop_runs_once(memory_store, make_context):
    command = Noop()
    assert command.state is CommandState.READY

    assert command.execute(make_context(memory_store)) is None
    assert command.state is CommandState.EXECUTED
    with pytest.raises(AlreadyExecuted):
        command.execute(make_context(memory_store))


def test_native_check_delegates_to_store(sql_store, make_context):
    ids = build_tree(sql_store, {"a": {"x": {}}})
    put(sql_store, sql_store.load(ids["/a"]).add_child_entry("ghost", uuid.uuid4()))

    assert NativeConsistencyCheck(fix=False).execute(make_context(sql_store)) == 1
    assert NativeConsistencyCheck().execute(make_context(sql_store)) == 1
    assert NativeConsistencyCheck().execute(make_context(sql_store)) == 0


def test_native_check_unsupported(memory_store, make_context):
    with pytest.raises(UnsupportedOperationError):
        NativeConsistencyCheck().execute(make_context(memory_store))


def test_optimize_unsupported(memory_store, make_context):
    with pytest.raises(UnsupportedOperationError):
        Optimize().execute(make_context(memory_store))


def test_command_name():
    assert Optimize().name == "Optimize"
