"""Tree rendering for pst."""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from functools import partial

from pst import users
from pst.config import Column, Options
from pst.formatting import format_duration, format_percent, format_size, truncate
from pst.models import ProcessRecord
from pst.tree import Snapshot

COLUMN_WIDTHS = {
    Column.PPID: 8,
    Column.PID: 8,
    Column.TTY: 8,
    Column.UID: 10,
    Column.RAM: 10,
    Column.SWAP: 10,
    Column.CPU: 8,
    Column.AGE: 8,
    Column.READ_IO: 10,
    Column.WRITE_IO: 10,
}
TID = "tid"  # Thread id slot, shown between PID and TTY with --threads
TID_WIDTH = 8

COLUMN_TITLES = {
    Column.PPID: "PPID",
    Column.PID: "PID",
    Column.TTY: "TTY",
    Column.UID: "UID",
    Column.RAM: "RAM",
    Column.SWAP: "SWAP",
    Column.CPU: "CPU",
    Column.AGE: "AGE",
    Column.READ_IO: "IO-R",
    Column.WRITE_IO: "IO-W",
    Column.COMMAND: "COMMAND",
}


@dataclass(slots=True, frozen=True)
class TreeArt:
    """Glyphs used to draw the tree. Each must be one cell wide."""

    up_right: str
    vert_right: str
    horiz: str
    down_horiz: str
    horiz_left: str
    vert: str


UNICODE_ART = TreeArt("╰", "├", "─", "┬", "╴", "│")
ASCII_ART = TreeArt("`", "|", "-", "-", "-", "|")


@dataclass(slots=True)
class Branch:
    """One ancestor level of the node being drawn."""

    siblings: int
    position: int = 1

    @property
    def last(self) -> bool:
        return self.position == self.siblings


@dataclass(slots=True, frozen=True)
class TreeLine:
    """A record placed in the tree, with the tree-art drawn before its command."""

    record: ProcessRecord
    prefix: str
    depth: int


ThreadSource = Callable[[int], list[ProcessRecord]]


class TreeRenderer:
    """
    Walks a Snapshot and formats one line per process.

    Each process is emitted at most once per walk even when it is reachable
    from several starting points (an explicit target that is also a
    descendant of another target, for example). The snapshot itself is not
    modified; visited pids are tracked per walk.
    """

    def __init__(
        self,
        snapshot: Snapshot,
        options: Options,
        *,
        art: TreeArt = UNICODE_ART,
        thread_source: ThreadSource | None = None,
        user_name: Callable[[int], str] | None = None,
    ) -> None:
        """
        Initialize the TreeRenderer.

        Args:
            snapshot: The assembled process tree.
            options: Run options: columns, tree mode and units.
            art: Glyph set for the tree connectors.
            thread_source: Returns the thread records of a pid. Required
                to show threads.
            user_name: Maps a uid to the text of the UID column.
        """
        self._snapshot = snapshot
        self._options = options
        self._art = art
        self._thread_source = thread_source
        self._user_name = user_name or partial(
            users.user_name, width=COLUMN_WIDTHS[Column.UID], numeric=options.numeric_uid
        )
        self._printed: set[int] = set()
        self._expanded: set[int] = set()

    @property
    def _show_threads(self) -> bool:
        return self._options.show_threads and self._thread_source is not None

    def walk(self, targets: Iterable[int] | None = None) -> Iterator[TreeLine]:
        """
        Yield tree lines in display order.

        Args:
            targets: Pids to start from. Without targets every top-level
                process is walked.
        """
        self._printed = set()
        self._expanded = set()

        if targets is None:
            for root in self._snapshot.roots():
                yield from self._walk(root, [])
            # Anything not reachable from a root, e.g. a parent cycle in a
            # malformed snapshot.
            for pid in sorted(self._snapshot.by_parent):
                yield from self._walk(pid, [])
        else:
            for pid in sorted(set(targets)):
                yield from self._walk(pid, [])

    def _walk(self, pid: int, branches: list[Branch]) -> Iterator[TreeLine]:
        record = self._snapshot.by_id.get(pid)
        printable = record is not None and pid not in self._printed
        has_children = (
            not self._options.no_tree and pid in self._snapshot.by_parent and pid not in self._expanded
        )

        if printable:
            self._printed.add(pid)
            yield TreeLine(record, self._prefix(branches, has_children), len(branches))
            if self._show_threads and not record.is_kernel:
                yield from self._threads(record, branches, has_children)

        if not has_children:
            return

        self._expanded.add(pid)
        children = self._snapshot.by_parent[pid]

        branch = None
        if printable:
            branch = Branch(siblings=len(children))
            branches = [*branches, branch]

        for child in children:
            yield from self._walk(child.pid, branches)
            if branch is not None:
                branch.position += 1

    def _threads(self, record: ProcessRecord, branches: list[Branch], has_children: bool) -> Iterator[TreeLine]:
        threads = self._thread_source(record.pid)
        if not threads:
            return

        art = self._art
        base = self._ancestor_prefix(branches)
        if branches:
            last = branches[-1].last
            base += (" " if last else art.vert) + " " + (art.vert if has_children else " ") + " "

        for index, thread in enumerate(threads, start=1):
            if index < len(threads) or (has_children and not branches):
                glyph = art.vert_right
            else:
                glyph = art.up_right
            yield TreeLine(thread, base + glyph + art.horiz_left, len(branches) + 1)

    def _ancestor_prefix(self, branches: list[Branch]) -> str:
        return "".join((" " if branch.last else self._art.vert) + " " for branch in branches[:-1])

    def _prefix(self, branches: list[Branch], has_children: bool) -> str:
        if not branches:
            return ""

        art = self._art
        return (
            self._ancestor_prefix(branches)
            + (art.up_right if branches[-1].last else art.vert_right)
            + art.horiz
            + (art.down_horiz if has_children else art.horiz)
            + art.horiz_left
        )

    def header(self) -> str:
        """Column titles aligned like the rows."""
        parts = []
        for slot in self._slots():
            if slot == TID:
                parts.append(f"{'TID':>{TID_WIDTH}}")
            elif slot is Column.UID:
                parts.append(f"  {COLUMN_TITLES[slot]:<{COLUMN_WIDTHS[slot]}}")
            elif slot is Column.COMMAND:
                parts.append(f"  {COLUMN_TITLES[slot]}")
            else:
                parts.append(f"{COLUMN_TITLES[slot]:>{COLUMN_WIDTHS[slot]}}")
        return "".join(parts)

    def _slots(self) -> list[Column | str]:
        slots: list[Column | str] = []
        for column in Column:
            if column is Column.TTY and self._options.show_threads:
                slots.append(TID)
            if self._options.shows(column):
                slots.append(column)
        return slots

    def format_row(self, record: ProcessRecord, prefix: str = "") -> str:
        """Format one process or thread line."""
        return "".join(self._cell(slot, record, prefix) for slot in self._slots())

    def _cell(self, slot: Column | str, record: ProcessRecord, prefix: str) -> str:
        if slot == TID:
            return f"{record.tid or '-':>{TID_WIDTH}}"
        if slot is Column.COMMAND:
            return f"  {prefix}{record.command}"
        if slot is Column.UID:
            return f"  {self._user_name(record.uid):<{COLUMN_WIDTHS[slot]}}"

        if slot is Column.PPID:
            value = str(record.ppid)
        elif slot is Column.PID:
            value = str(record.pid)
        elif slot is Column.TTY:
            value = "-" if record.is_thread else record.tty
        elif slot is Column.RAM:
            value = self._memory(record, record.memory)
        elif slot is Column.SWAP:
            value = self._memory(record, record.swap)
        elif slot is Column.CPU:
            if self._options.cpu_time:
                value = format_duration(record.cpu_time // 1000)
            else:
                value = format_percent(record.cpu_time, record.age)
        elif slot is Column.AGE:
            value = format_duration(record.age // 1000)
        elif slot is Column.READ_IO:
            value = format_size(record.read_io)
        else:
            value = format_size(record.write_io)
        return f"{value:>{COLUMN_WIDTHS[slot]}}"

    @staticmethod
    def _memory(record: ProcessRecord, value: int) -> str:
        if record.is_thread or record.is_kernel:
            return "-"
        return format_size(value)

    def render(self, targets: Iterable[int] | None = None, width: int | None = None) -> Iterator[str]:
        """
        Yield the header and one formatted line per tree line.

        Args:
            targets: Pids to start from, or None for the whole tree.
            width: Terminal width in cells to clip lines to, or None.
        """
        lines = self._lines(targets)
        if width is None:
            yield from lines
        else:
            for line in lines:
                yield truncate(line, width)

    def _lines(self, targets: Iterable[int] | None) -> Iterator[str]:
        if not self._options.no_header:
            yield self.header()
        for tree_line in self.walk(targets):
            yield self.format_row(tree_line.record, tree_line.prefix)
