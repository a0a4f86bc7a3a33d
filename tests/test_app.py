"""Tests for the pst browser."""

import pytest
from textual.widgets import Tree

from conftest import make_snapshot, record
from pst.app import PstApp, describe
from pst.config import Column, Options
from pst.models import ProcessRecord
from pst.render import TreeRenderer

OPTIONS = Options(columns=frozenset({Column.PID, Column.COMMAND}))


def _snapshot():
    return make_snapshot(
        record(1, 0, "init"),
        record(10, 1, "sshd -D"),
        record(20, 10, "bash [login]"),
        record(11, 1, "cron"),
    )


def _renderer(options=OPTIONS, **kwargs):
    return TreeRenderer(_snapshot(), options, user_name=str, **kwargs)


def test_app_creation():
    """Test PstApp can be instantiated."""
    app = PstApp(_renderer())
    assert app.title == "pst"
    assert app.sub_title == "Process tree snapshot"
    assert app.node_count == 0


@pytest.mark.asyncio
async def test_app_compose():
    """Test PstApp composes correctly."""
    app = PstApp(_renderer())
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#header") is not None
        assert pilot.app.query_one("#process-tree") is not None


@pytest.mark.asyncio
async def test_app_builds_tree():
    """Test processes are nested under their parents."""
    app = PstApp(_renderer())
    async with app.run_test() as pilot:
        tree = pilot.app.query_one("#process-tree", Tree)

        assert pilot.app.node_count == 4
        (init,) = tree.root.children
        assert init.data.pid == 1
        assert [node.data.pid for node in init.children] == [10, 11]
        (bash,) = init.children[0].children
        # Labels are plain text, brackets included
        assert bash.label.plain == "      20  bash [login]"


@pytest.mark.asyncio
async def test_app_targets():
    """Test the browser can start from matched processes."""
    app = PstApp(_renderer(), targets={10})
    async with app.run_test() as pilot:
        tree = pilot.app.query_one("#process-tree", Tree)

        assert pilot.app.node_count == 2
        assert [node.data.pid for node in tree.root.children] == [10]


@pytest.mark.asyncio
async def test_app_threads_are_leaves():
    """Test thread lines become leaves of their process."""
    options = Options(columns=OPTIONS.columns, show_threads=True)
    threads = [ProcessRecord(pid=11, tid=11, command="cron"), ProcessRecord(pid=11, tid=12, command="worker")]
    renderer = _renderer(options, thread_source=lambda pid: threads if pid == 11 else [])
    app = PstApp(renderer)
    async with app.run_test() as pilot:
        tree = pilot.app.query_one("#process-tree", Tree)

        cron = tree.root.children[0].children[1]
        assert [node.data.tid for node in cron.children] == [11, 12]
        assert not cron.children[0].allow_expand


@pytest.mark.asyncio
async def test_app_collapse_and_expand():
    """Test the collapse and expand bindings."""
    app = PstApp(_renderer())
    async with app.run_test() as pilot:
        init = pilot.app.query_one("#process-tree", Tree).root.children[0]

        await pilot.press("c")
        assert not init.is_expanded

        await pilot.press("e")
        assert init.is_expanded


@pytest.mark.asyncio
async def test_app_quit_binding():
    """Test that 'q' binding triggers quit."""
    app = PstApp(_renderer())
    async with app.run_test() as pilot:
        await pilot.press("q")
        # App should be exiting
        assert pilot.app._exit



@pytest.mark.asyncio
async def test_app_describes_highlighted_process():
    """Test moving the cursor shows the selected process below the tree."""
    app = PstApp(_renderer())
    async with app.run_test() as pilot:
        tree = pilot.app.query_one("#process-tree", Tree)

        tree.cursor_line = 1
        await pilot.pause()

        assert pilot.app.selected_record().pid == 10
        assert pilot.app.selection_text == "pid 10, parent 1: sshd -D"


def test_describe():
    """Test process, thread and empty selections."""
    assert describe(None) == ""
    assert describe(record(20, 10, "bash")) == "pid 20, parent 10: bash"
    assert describe(ProcessRecord(pid=11, tid=12, command="worker")) == "tid 12 of pid 11: worker"
