"""Process tree assembled from one collection pass."""

from dataclasses import dataclass, field

from pst.errors import DuplicateProcessError
from pst.models import ProcessRecord


@dataclass(slots=True)
class Snapshot:
    """
    The state shared between collection and rendering.

    ``by_id`` and ``by_parent`` are written once while collecting and only
    read afterwards. ``errors`` maps pids to read failures worth reporting,
    ``kernel_skipped`` remembers kernel threads left out on purpose so a
    pid argument naming one can be told apart from a missing pid.
    """

    by_id: dict[int, ProcessRecord] = field(default_factory=dict)
    by_parent: dict[int, list[ProcessRecord]] = field(default_factory=dict)
    errors: dict[int, str] = field(default_factory=dict)
    kernel_skipped: set[int] = field(default_factory=set)

    def add(self, record: ProcessRecord) -> None:
        """
        Insert a collected process into both indices.

        Raises:
            DuplicateProcessError: If the pid is already present.
            ValueError: For thread records, which are never part of the tree.
        """
        if record.is_thread:
            raise ValueError(f"thread {record.tid} cannot be added to the process tree")
        if record.pid in self.by_id:
            raise DuplicateProcessError(record.pid)

        self.by_id[record.pid] = record
        self.by_parent.setdefault(record.ppid, []).append(record)

    def __len__(self) -> int:
        return len(self.by_id)

    def __contains__(self, pid: object) -> bool:
        return pid in self.by_id

    def children(self, pid: int) -> list[ProcessRecord]:
        return self.by_parent.get(pid, [])

    def roots(self) -> list[int]:
        """
        Parent ids that are not themselves in the tree, ascending.

        These are pid 0 and processes that were never collected (failed,
        or skipped kernel threads); their children are top-level rows.
        """
        return sorted(ppid for ppid in self.by_parent if ppid not in self.by_id)
