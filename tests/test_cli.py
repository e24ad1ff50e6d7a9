# tests/test_cli.py
"""End-to-end tests of the typer CLI against a SQLite file store."""

import logging

import pytest
from typer.testing import CliRunner

from nodekeeper.cli.main_cli import main_app, split_paths
from nodekeeper.store import SqlNodeStore
from conftest import build_tree, put

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def database_url(tmp_path):
    url = f"sqlite:///{tmp_path / 'nodes.db'}"
    store = SqlNodeStore(url)
    store.init()
    ids = build_tree(store, {"a": {"x": {}, "y": {"z": {}}}})
    put(store, store.load(ids["/a/x"]).add_child_entry("stray", ids["/a/y/z"]))
    store.close()
    return url


def invoke(database_url, *args):
    return runner.invoke(main_app, ["--database-url", database_url, "--log-file", "", *args])


def test_noop(database_url):
    result = invoke(database_url, "noop")

    assert result.exit_code == 0


def test_check_repairs_and_reports(database_url):
    result = invoke(database_url, "check")

    assert result.exit_code == 0
    assert "Consistency check" in result.output
    assert "Repairs" in result.output

    second = invoke(database_url, "check", "--strict")
    assert second.exit_code == 0
    assert "Repairs" not in second.output


def test_list_to_file(database_url, tmp_path):
    output = tmp_path / "paths.txt"

    result = invoke(database_url, "list", "/a/y,/a/x", "--output-file", str(output))

    assert result.exit_code == 0
    assert "Wrote 4 paths" in result.output
    # z is listed under x by a stray entry but its path follows its own parent link
    assert output.read_text(encoding="utf-8").splitlines() == ["/a/y", "/a/y/z", "/a/x", "/a/y/z"]


def test_list_rejects_relative_path(database_url):
    result = invoke(database_url, "list", "a")

    assert result.exit_code == 1


def test_remove(database_url, tmp_path):
    result = invoke(database_url, "remove", "/a/y", "--threshold", "1")

    assert result.exit_code == 0
    assert "Deleted 2 nodes" in result.output

    output = tmp_path / "left.txt"
    invoke(database_url, "list", "--output-file", str(output))
    assert output.read_text(encoding="utf-8").splitlines() == ["", "/a", "/a/x"]


def test_native_check(database_url):
    result = invoke(database_url, "jr-check", "--no-fix")

    assert result.exit_code == 0
    assert "found 1 problem(s)" in result.output


def test_optimize(database_url):
    result = invoke(database_url, "optimize")

    assert result.exit_code == 0
    assert "Optimization finished" in result.output


def test_invalid_log_level(database_url):
    result = runner.invoke(main_app, ["--database-url", database_url, "--log", "loud", "noop"])

    assert result.exit_code == 2


def test_split_paths():
    assert split_paths(["/a, /b", "/c"]) == ["/a", "/b", "/c"]
    assert split_paths(None) == []
