"""Data models for pst."""

from dataclasses import dataclass

KERNEL_THREAD_ANCHOR = 2  # kthreadd
UNKNOWN = -1


@dataclass(slots=True)
class ProcessRecord:
    """
    Attributes of one process (or one thread, when ``tid`` is set).

    A record starts empty and is filled field by field while the procfs
    records are parsed. Numeric fields that were not collected stay at -1.
    """

    pid: int
    tid: int = 0  # 0 for a real process
    ppid: int = UNKNOWN
    tty: str = "?"
    cpu_time: int = UNKNOWN  # Milliseconds
    age: int = UNKNOWN  # Milliseconds
    uid: int = UNKNOWN
    memory: int = UNKNOWN  # Bytes, PSS or RSS
    swap: int = UNKNOWN  # Bytes, SwapPss or Swap
    read_io: int = UNKNOWN  # Bytes
    write_io: int = UNKNOWN  # Bytes
    command: str = "-"
    failed: bool = False

    @property
    def is_thread(self) -> bool:
        return self.tid != 0

    @property
    def is_kernel(self) -> bool:
        """True for kthreadd and the kernel threads it parents."""
        return KERNEL_THREAD_ANCHOR in (self.pid, self.ppid)
