"""
Parsers for the per-process records found under /proc.

Everything here is a pure function of the record contents so it can be
tested without a live procfs. Reading files, and deciding what a failed
read means, is the collector's job.
"""

import os
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

_SPACES = re.compile(" {2,}")

TTY_MAJOR = 4
PTS_MAJOR = 136


@dataclass(slots=True, frozen=True)
class StatFields:
    """Fields of /proc/<pid>/stat used by pst, in clock ticks where timed."""

    ppid: int
    tty_nr: int
    utime: int
    stime: int
    start_time: int

    def cpu_time_ms(self, clock_ticks: int) -> int:
        """Accumulated user and system CPU time in milliseconds."""
        return 1000 * (self.utime + self.stime) // clock_ticks

    def age_ms(self, uptime: float, clock_ticks: int) -> int:
        """Milliseconds elapsed since the process started."""
        return int(1000 * uptime) - 1000 * self.start_time // clock_ticks


def parse_stat(text: str) -> StatFields:
    """
    Parse a /proc/<pid>/stat line.

    The second field (comm) is wrapped in parentheses and may itself
    contain spaces and parentheses, so positional splitting starts after
    the last closing parenthesis.

    Raises:
        ValueError: If the record is truncated or a field is not numeric.
    """
    end = text.rfind(")")
    if end < 0:
        raise ValueError("no command field in stat record")

    # fields[0] is field 3 (state)
    fields = text[end + 1 :].split()
    if len(fields) < 20:
        raise ValueError(f"stat record has {len(fields) + 2} fields")

    return StatFields(
        ppid=int(fields[1]),
        tty_nr=int(fields[4]),
        utime=int(fields[11]),
        stime=int(fields[12]),
        start_time=int(fields[19]),
    )


def parse_uid(lines: Iterable[str]) -> int | None:
    """Return the real uid from /proc/<pid>/status lines, if present."""
    for line in lines:
        if line.startswith("Uid:"):
            values = line.split()
            if len(values) > 1 and values[1].isdigit():
                return int(values[1])
            return None
    return None


def clean_command(raw: bytes | str) -> str:
    """
    Turn a cmdline or comm record into a single display line.

    NUL and TAB separators become spaces, runs of spaces collapse to one
    and the ends are trimmed. Only the first line is kept.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    line = raw.split("\n", 1)[0]
    line = line.replace("\0", " ").replace("\t", " ")
    return _SPACES.sub(" ", line).strip(" ")


def sum_fields(lines: Iterable[str], keys: tuple[str, ...]) -> list[int]:
    """
    Sum the first number following each key across all lines.

    Used for smaps (``Pss:``, ``SwapPss:``) and io (``read_bytes:``,
    ``write_bytes:``) records. Keys must match the first word exactly, so
    ``Pss:`` does not pick up ``Pss_Anon:``.
    """
    totals = [0] * len(keys)
    for line in lines:
        words = line.split(None, 2)
        if len(words) < 2:
            continue
        try:
            index = keys.index(words[0])
        except ValueError:
            continue
        try:
            totals[index] += int(words[1])
        except ValueError:
            continue
    return totals


# Terminal device resolution. Each resolver returns a name or None; the
# first answer wins.

TtyResolver = Callable[[int, int], str | None]


def known_major_name(major: int, minor: int) -> str | None:
    """Names for the console and pseudo-terminal majors."""
    if major == TTY_MAJOR:
        return f"tty{minor}"
    if major == PTS_MAJOR:
        return f"pts/{minor}"
    return None


def device_metadata_resolver(dev_root: str | os.PathLike) -> TtyResolver:
    """Build a resolver that reads DEVNAME from <dev_root>/MAJ:MIN/uevent."""
    root = Path(dev_root)

    def resolve(major: int, minor: int) -> str | None:
        try:
            text = (root / f"{major}:{minor}" / "uevent").read_text(errors="replace")
        except OSError:
            return None
        return parse_devname(text)

    return resolve


def parse_devname(text: str) -> str | None:
    """Return the DEVNAME value of a uevent record."""
    for line in text.splitlines():
        if line.startswith("DEVNAME="):
            return line[len("DEVNAME=") :] or None
    return None


def numeric_device_name(major: int, minor: int) -> str:
    return f"{major}.{minor}"


def resolve_tty(tty_nr: int, resolvers: Iterable[TtyResolver]) -> str:
    """
    Resolve a stat tty_nr to a display name.

    Returns ``?`` for processes without a controlling terminal and
    ``MAJ.MIN`` when no resolver knows the device.
    """
    if tty_nr == 0:
        return "?"

    major, minor = os.major(tty_nr), os.minor(tty_nr)
    for resolver in resolvers:
        name = resolver(major, minor)
        if name:
            return name
    return numeric_device_name(major, minor)
