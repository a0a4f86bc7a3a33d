"""Shared fixtures: a fake process filesystem built under tmp_path."""

import logging
from pathlib import Path

import pytest

from pst.collector import SnapshotCollector
from pst.config import Options
from pst.models import ProcessRecord
from pst.tree import Snapshot

CLOCK_TICKS = 100
UPTIME = 1000.0


def stat_line(pid: int, comm: str, ppid: int, tty_nr: int = 0, utime: int = 0, stime: int = 0, start: int = 0) -> str:
    return (
        f"{pid} ({comm}) S {ppid} {pid} {pid} {tty_nr} -1 4194560 0 0 0 0 "
        f"{utime} {stime} 0 0 20 0 1 0 {start} 1000 100\n"
    )


class FakeProc:
    """Writes /proc style records for synthetic processes."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def add(
        self,
        pid: int,
        ppid: int,
        *,
        comm: str = "proc",
        cmdline: bytes | None = None,
        uid: int = 1000,
        tty_nr: int = 0,
        utime: int = 0,
        stime: int = 0,
        start: int = 0,
        pss_kb: int = 0,
        swap_kb: int = 0,
        rollup: bool = True,
        io: tuple[int, int] = (0, 0),
        threads: dict[int, tuple[int, int]] | None = None,
    ) -> Path:
        """
        Add a process.

        ``io`` is the process-level counter; ``threads`` maps live tids to
        their own counters and defaults to a single main thread carrying
        ``io``.
        """
        entry = self.root / str(pid)
        entry.mkdir()
        self._write_common(entry, pid, comm, ppid, uid, tty_nr, utime, stime, start, io)
        (entry / "cmdline").write_bytes(comm.encode() + b"\0" if cmdline is None else cmdline)

        smaps = f"Rss: {pss_kb * 2} kB\nPss: {pss_kb} kB\nPss_Anon: 999 kB\nSwap: {swap_kb * 2} kB\nSwapPss: {swap_kb} kB\n"
        (entry / ("smaps_rollup" if rollup else "smaps")).write_text(smaps)

        if threads is None:
            threads = {pid: io}
        for tid, thread_io in threads.items():
            task = entry / "task" / str(tid)
            task.mkdir(parents=True)
            self._write_common(task, tid, comm, ppid, uid, tty_nr, utime, stime, start, thread_io)
        return entry

    @staticmethod
    def _write_common(entry, pid, comm, ppid, uid, tty_nr, utime, stime, start, io) -> None:
        (entry / "stat").write_text(stat_line(pid, comm, ppid, tty_nr, utime, stime, start))
        (entry / "status").write_text(f"Name:\t{comm}\nUid:\t{uid}\t{uid + 1}\t{uid}\t{uid}\nGid:\t0\t0\t0\t0\n")
        (entry / "comm").write_text(comm + "\n")
        (entry / "io").write_text(
            f"rchar: 1\nwchar: 2\nread_bytes: {io[0]}\nwrite_bytes: {io[1]}\ncancelled_write_bytes: 0\n"
        )


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    return FakeProc(tmp_path / "proc")


@pytest.fixture
def dev_root(tmp_path: Path) -> Path:
    root = tmp_path / "dev-char"
    root.mkdir()
    return root


@pytest.fixture
def make_collector(fake_proc: FakeProc, dev_root: Path):
    def factory(options: Options | None = None) -> SnapshotCollector:
        return SnapshotCollector(
            options or Options(),
            fake_proc.root,
            dev_root,
            clock_ticks=CLOCK_TICKS,
            uptime=UPTIME,
        )

    return factory


def make_snapshot(*records: ProcessRecord) -> Snapshot:
    snapshot = Snapshot()
    for item in records:
        snapshot.add(item)
    return snapshot


def record(pid: int, ppid: int, command: str = "", **fields) -> ProcessRecord:
    return ProcessRecord(pid=pid, ppid=ppid, command=command or f"cmd{pid}", **fields)


@pytest.fixture(autouse=True)
def reset_pst_logger():
    """Undo the CLI's logging setup so caplog sees pst records in every test."""
    logger = logging.getLogger("pst")
    yield
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
