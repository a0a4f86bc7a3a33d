"""Access to the process filesystem."""

import errno
import os
from collections.abc import Callable
from pathlib import Path

from pst.errors import ScanError

DEFAULT_PROC_ROOT = "/proc"
DEFAULT_DEV_ROOT = "/sys/dev/char"

# Read errors that only mean the process or thread exited after it was listed.
GONE_ERRNOS = frozenset({errno.ENOENT, errno.ESRCH})


def is_gone(error: OSError) -> bool:
    """True if a read failed only because the process no longer exists."""
    return error.errno in GONE_ERRNOS


def scan(
    path: str | os.PathLike,
    on_entry: Callable[[int], object],
    *,
    strict: bool = True,
    on_error: Callable[[OSError], object] | None = None,
) -> bool:
    """
    Call ``on_entry(id)`` for every numeric directory entry of ``path``.

    Entries that are not purely numeric, or not positive, are skipped.
    Ids are delivered in ascending order.

    Args:
        path: Directory to list, e.g. /proc or /proc/<pid>/task.
        on_entry: Callback invoked once per id.
        strict: Raise ScanError if the directory cannot be listed.
            Otherwise pass the error to ``on_error`` and return False.
        on_error: Receives the listing error in best-effort mode.

    Returns:
        True if the directory was listed.
    """
    ids: list[int] = []
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                name = entry.name
                if not (name.isascii() and name.isdigit()):
                    continue
                if not entry.is_dir(follow_symlinks=False):
                    continue
                pid = int(name)
                if pid > 0:
                    ids.append(pid)
    except OSError as exc:
        if strict:
            raise ScanError(str(path), exc) from exc
        if on_error is not None:
            on_error(exc)
        return False

    for pid in sorted(ids):
        on_entry(pid)
    return True


class ProcFS:
    """Path builder for one procfs mount."""

    def __init__(self, root: str | os.PathLike = DEFAULT_PROC_ROOT) -> None:
        self.root = Path(root)

    def entry(self, pid: int, tid: int = 0) -> Path:
        """Directory of a process, or of one of its threads."""
        path = self.root / str(pid)
        if tid:
            path = path / "task" / str(tid)
        return path

    def path(self, pid: int, name: str, tid: int = 0) -> Path:
        return self.entry(pid, tid) / name

    def task_dir(self, pid: int) -> Path:
        return self.root / str(pid) / "task"

    def smaps(self, pid: int) -> Path:
        """The rollup record when the kernel provides one, else full smaps."""
        rollup = self.path(pid, "smaps_rollup")
        if rollup.exists():
            return rollup
        return self.path(pid, "smaps")
