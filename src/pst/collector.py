"""Snapshot collection engine for pst."""

import logging
import os
import time
from pathlib import Path

import psutil

from pst.config import Column, Options
from pst.errors import FatalSetupError
from pst.models import KERNEL_THREAD_ANCHOR, ProcessRecord
from pst.parsers import (
    clean_command,
    device_metadata_resolver,
    known_major_name,
    parse_stat,
    parse_uid,
    resolve_tty,
    sum_fields,
)
from pst.procfs import DEFAULT_DEV_ROOT, DEFAULT_PROC_ROOT, ProcFS, is_gone, scan
from pst.tree import Snapshot

logger = logging.getLogger(__name__)

IO_KEYS = ("read_bytes:", "write_bytes:")
PSS_KEYS = ("Pss:", "SwapPss:")
RSS_KEYS = ("Rss:", "Swap:")


def clock_ticks_per_second() -> int:
    """Kernel clock ticks per second (USER_HZ)."""
    try:
        ticks = os.sysconf("SC_CLK_TCK")
    except (ValueError, OSError) as exc:
        raise FatalSetupError(f"Failed to get SC_CLK_TCK: {exc}") from exc
    if ticks <= 0:
        raise FatalSetupError("Failed to get SC_CLK_TCK")
    return ticks


def system_uptime() -> float:
    """Seconds since boot."""
    try:
        return time.time() - psutil.boot_time()
    except (psutil.Error, OSError, RuntimeError) as exc:
        raise FatalSetupError(f"Failed to get uptime: {exc}") from exc


class SnapshotCollector:
    """
    Collects one snapshot of the process filesystem.

    Every process under the proc root is parsed into a ProcessRecord and
    assembled into a Snapshot. A process that exits while it is being read
    only loses its own record; other read errors are kept in the
    snapshot's error index (or logged right away when reporting errors).
    """

    def __init__(
        self,
        options: Options,
        proc_root: str | os.PathLike = DEFAULT_PROC_ROOT,
        dev_root: str | os.PathLike = DEFAULT_DEV_ROOT,
        *,
        clock_ticks: int | None = None,
        uptime: float | None = None,
    ) -> None:
        """
        Initialize the SnapshotCollector.

        Args:
            options: Run options, deciding which attributes are read.
            proc_root: Mount point of the process filesystem.
            dev_root: Directory of character device metadata.
            clock_ticks: Clock ticks per second. Queried from the system if None.
            uptime: Seconds since boot. Queried from the system if None and
                the cpu or age column is shown.
        """
        self._options = options
        self._procfs = ProcFS(proc_root)
        self._tty_resolvers = (known_major_name, device_metadata_resolver(dev_root))
        self._clock_ticks = clock_ticks
        self._uptime = uptime
        self._errors: dict[int, str] | None = None
        self.report_errors = options.verbose

        columns = set(options.columns)
        if options.has_targets:
            # Commands are needed to match arguments even if not shown.
            columns.add(Column.COMMAND)
        self._columns = frozenset(columns)
        self._smaps_keys = RSS_KEYS if options.rss else PSS_KEYS

    @property
    def procfs(self) -> ProcFS:
        return self._procfs

    def _wants(self, *columns: Column) -> bool:
        return any(column in self._columns for column in columns)

    def _prepare_clock(self) -> None:
        if self._clock_ticks is None:
            self._clock_ticks = clock_ticks_per_second()
        if self._uptime is None and self._wants(Column.CPU, Column.AGE):
            self._uptime = system_uptime()

    def collect(self) -> Snapshot:
        """
        Collect all processes into a new Snapshot.

        Raises:
            FatalSetupError: If the proc root cannot be listed or the
                system clock cannot be queried.
        """
        self._prepare_clock()
        snapshot = Snapshot()
        self._errors = snapshot.errors

        # With match arguments only problems with the arguments are reported.
        self.report_errors = self._options.verbose and not self._options.has_targets
        try:
            scan(self._procfs.root, lambda pid: self._collect_process(snapshot, pid))
        finally:
            self.report_errors = self._options.verbose
            self._errors = None

        logger.debug(
            "Collected %d processes, %d unreadable, %d kernel threads skipped",
            len(snapshot),
            len(snapshot.errors),
            len(snapshot.kernel_skipped),
        )
        return snapshot

    def _collect_process(self, snapshot: Snapshot, pid: int) -> None:
        if not self._options.show_kernel and pid == KERNEL_THREAD_ANCHOR:
            snapshot.kernel_skipped.add(pid)
            return

        record = self.build_record(pid)
        if record is None:
            snapshot.kernel_skipped.add(pid)
        elif not record.failed:
            snapshot.add(record)

    def collect_threads(self, pid: int) -> list[ProcessRecord]:
        """Parse the live threads of a process, skipping unreadable ones."""
        threads: list[ProcessRecord] = []

        def on_thread(tid: int) -> None:
            record = self.build_record(pid, tid)
            if record is not None and not record.failed:
                threads.append(record)

        task_dir = self._procfs.task_dir(pid)
        scan(task_dir, on_thread, strict=False, on_error=lambda exc: self._log_scan_error(task_dir, exc))
        return threads

    def _log_scan_error(self, path: Path, error: OSError) -> None:
        if self.report_errors and not is_gone(error):
            logger.error("Failed to read %s: %s", path, error.strerror or error)

    def build_record(self, pid: int, tid: int = 0) -> ProcessRecord | None:
        """
        Read and parse one process or thread.

        Returns:
            The record, possibly marked failed, or None for a kernel thread
            that is hidden.
        """
        self._prepare_clock()
        record = ProcessRecord(pid=pid, tid=tid)

        self._read_stat(record)
        if not record.failed and not self._options.show_kernel and record.ppid == KERNEL_THREAD_ANCHOR:
            return None

        self._read_status(record)
        self._read_command(record)
        if not record.is_thread:
            self._read_memory(record)
        self._read_io(record)
        return record

    def _fail(self, record: ProcessRecord, path: Path, reason: OSError | str) -> None:
        record.failed = True
        if isinstance(reason, OSError):
            if is_gone(reason):
                return
            reason = reason.strerror or str(reason)

        message = f"Failed to read {path}: {reason}"
        if self.report_errors:
            logger.error(message)
        elif not record.is_thread and self._errors is not None:
            self._errors.setdefault(record.pid, message)

    def _read_text(self, record: ProcessRecord, path: Path) -> str | None:
        try:
            return path.read_text(errors="replace")
        except OSError as exc:
            self._fail(record, path, exc)
            return None

    def _read_stat(self, record: ProcessRecord) -> None:
        path = self._procfs.path(record.pid, "stat", record.tid)
        text = self._read_text(record, path)
        if text is None:
            return

        try:
            stat = parse_stat(text)
        except ValueError as exc:
            self._fail(record, path, f"malformed record ({exc})")
            return

        record.ppid = stat.ppid
        if not self._options.show_kernel and stat.ppid == KERNEL_THREAD_ANCHOR:
            return

        if self._wants(Column.TTY):
            record.tty = resolve_tty(stat.tty_nr, self._tty_resolvers)
        if self._wants(Column.CPU):
            record.cpu_time = stat.cpu_time_ms(self._clock_ticks)
        if self._wants(Column.CPU, Column.AGE):
            record.age = stat.age_ms(self._uptime, self._clock_ticks)

    def _read_status(self, record: ProcessRecord) -> None:
        if record.failed or not self._wants(Column.UID):
            return

        text = self._read_text(record, self._procfs.path(record.pid, "status", record.tid))
        if text is None:
            return

        uid = parse_uid(text.splitlines())
        if uid is not None:
            record.uid = uid

    def _read_command(self, record: ProcessRecord) -> None:
        if record.failed or not self._wants(Column.COMMAND):
            return

        # cmdline is always empty for kernel threads
        name = "comm" if record.is_thread or record.is_kernel else "cmdline"
        path = self._procfs.path(record.pid, name, record.tid)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            self._fail(record, path, exc)
            return

        record.command = clean_command(raw)

    def _read_memory(self, record: ProcessRecord) -> None:
        if record.failed or record.is_kernel or not self._wants(Column.RAM, Column.SWAP):
            return

        text = self._read_text(record, self._procfs.smaps(record.pid))
        if text is None:
            return

        memory, swap = sum_fields(text.splitlines(), self._smaps_keys)
        record.memory = memory * 1024
        record.swap = swap * 1024

    def _read_io(self, record: ProcessRecord) -> None:
        """
        Read the I/O counters of a process or thread.

        By default a process's counters are the sum over its live threads,
        which leaves out I/O done by threads and children that already
        exited. With total_io the process-level record is read instead,
        and that one includes them.
        """
        if record.failed or not self._wants(Column.READ_IO, Column.WRITE_IO):
            return

        if self._options.total_io or record.is_thread:
            text = self._read_text(record, self._procfs.path(record.pid, "io", record.tid))
            if text is None:
                return
            record.read_io, record.write_io = sum_fields(text.splitlines(), IO_KEYS)
            return

        totals = [0, 0]
        complete = True

        def on_thread(tid: int) -> None:
            nonlocal complete
            text = self._read_text(record, self._procfs.path(record.pid, "io", tid))
            if text is None:
                complete = False
                return
            for index, value in enumerate(sum_fields(text.splitlines(), IO_KEYS)):
                totals[index] += value

        task_dir = self._procfs.task_dir(record.pid)
        listed = scan(task_dir, on_thread, strict=False, on_error=lambda exc: self._fail(record, task_dir, exc))
        if listed and complete:
            record.read_io, record.write_io = totals
