"""pst - Textual browser for a process tree snapshot."""

from collections.abc import Iterable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import Footer, Static, Tree
from textual.widgets.tree import TreeNode

from pst.models import ProcessRecord
from pst.render import TreeLine, TreeRenderer


def populate_tree(tree: Tree, lines: Iterable[TreeLine], renderer: TreeRenderer) -> int:
    """
    Add tree lines to a Tree widget, nesting them by depth.

    Threads become leaves of their process. Returns the number of nodes added.
    """
    parents: list[TreeNode] = [tree.root]
    count = 0
    for line in lines:
        # Text() so that brackets in commands are not read as markup
        label = Text(renderer.format_row(line.record))
        depth = min(line.depth, len(parents) - 1)
        if line.record.is_thread:
            parents[depth].add_leaf(label, data=line.record)
        else:
            del parents[depth + 1 :]
            node = parents[depth].add(label, data=line.record, expand=True)
            parents.append(node)
        count += 1
    return count


def describe(record: ProcessRecord | None) -> str:
    """One line summary of the highlighted process or thread."""
    if record is None:
        return ""
    if record.is_thread:
        return f"tid {record.tid} of pid {record.pid}: {record.command}"
    return f"pid {record.pid}, parent {record.ppid}: {record.command}"


class PstApp(App):
    """Read-only view of one process tree snapshot."""

    TITLE = "pst"
    SUB_TITLE = "Process tree snapshot"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header {
        height: 1;
        background: $surface;
        text-style: bold;
    }

    #process-tree {
        height: 1fr;
        border: solid $primary;
    }

    #selection {
        height: 1;
        padding-left: 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("e", "expand_all", "Expand all"),
        ("c", "collapse_all", "Collapse all"),
    ]

    def __init__(self, renderer: TreeRenderer, targets: Iterable[int] | None = None) -> None:
        """
        Initialize the PstApp.

        Args:
            renderer: Renderer over the collected snapshot.
            targets: Pids to start from, or None for the whole tree.
        """
        super().__init__()
        self._renderer = renderer
        self._targets = None if targets is None else sorted(targets)
        self.node_count = 0
        self.selection_text = ""

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Static(Text(self._renderer.header()), id="header")
        yield Tree(Text("processes"), id="process-tree")
        yield Static(id="selection")
        yield Footer()

    def on_mount(self) -> None:
        """Fill the tree once; the snapshot does not change."""
        tree = self.query_one("#process-tree", Tree)
        tree.show_root = False
        tree.root.expand()
        self.node_count = populate_tree(tree, self._renderer.walk(self._targets), self._renderer)
        tree.focus()

    def selected_record(self) -> ProcessRecord | None:
        """The record under the cursor, if any."""
        node = self.query_one("#process-tree", Tree).cursor_node
        return None if node is None else node.data

    def on_tree_node_highlighted(self, event: Tree.NodeHighlighted) -> None:
        """Describe the highlighted process below the tree."""
        self.selection_text = describe(self.selected_record())
        self.query_one("#selection", Static).update(Text(self.selection_text))

    def action_expand_all(self) -> None:
        self.query_one("#process-tree", Tree).root.expand_all()

    def action_collapse_all(self) -> None:
        tree = self.query_one("#process-tree", Tree)
        for node in tree.root.children:
            node.collapse_all()
