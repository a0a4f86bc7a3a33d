"""Run options for pst."""

from dataclasses import dataclass
from enum import Enum


class Column(Enum):
    """Output columns, in display order."""

    PPID = "ppid"
    PID = "pid"
    TTY = "tty"
    UID = "uid"
    RAM = "ram"
    SWAP = "swap"
    CPU = "cpu"
    AGE = "age"
    READ_IO = "io-r"
    WRITE_IO = "io-w"
    COMMAND = "cmd"


DEFAULT_COLUMNS = frozenset({Column.PPID, Column.PID, Column.UID, Column.COMMAND})

# Names accepted by --opt. "io" selects both I/O columns.
COLUMN_NAMES: dict[str, frozenset[Column]] = {
    "all": frozenset(Column),
    "ppid": frozenset({Column.PPID}),
    "pid": frozenset({Column.PID}),
    "tty": frozenset({Column.TTY}),
    "uid": frozenset({Column.UID}),
    "ram": frozenset({Column.RAM}),
    "swap": frozenset({Column.SWAP}),
    "cpu": frozenset({Column.CPU}),
    "age": frozenset({Column.AGE}),
    "io": frozenset({Column.READ_IO, Column.WRITE_IO}),
    "cmd": frozenset({Column.COMMAND}),
}


class OptionsError(ValueError):
    """Invalid or inconsistent command line options."""


def parse_columns(value: str) -> frozenset[Column]:
    """
    Parse a comma separated --opt value into a column set.

    Raises:
        OptionsError: On an unknown name or when nothing is selected.
    """
    columns: set[Column] = set()
    for token in value.split(","):
        if not token:
            continue
        try:
            columns |= COLUMN_NAMES[token]
        except KeyError:
            raise OptionsError(f"Bad argument with --opt: {token}") from None

    if not columns:
        raise OptionsError("No column selected")
    return frozenset(columns)


@dataclass(slots=True, frozen=True)
class Options:
    """Immutable settings for one pst run."""

    columns: frozenset[Column] = DEFAULT_COLUMNS
    targets: tuple[str, ...] = ()
    show_kernel: bool = False
    show_threads: bool = False
    rss: bool = False  # RSS and Swap instead of PSS and SwapPss
    cpu_time: bool = False
    total_io: bool = False
    no_tree: bool = False
    exe_only: bool = False
    no_pid: bool = False
    numeric_uid: bool = False
    no_header: bool = False
    no_trunc: bool = False
    ascii: bool = False
    verbose: bool = False
    browse: bool = False

    @property
    def has_targets(self) -> bool:
        return bool(self.targets)

    def shows(self, column: Column) -> bool:
        return column in self.columns

    def validate(self) -> None:
        """
        Check flags that only make sense together.

        Raises:
            OptionsError: With the first inconsistency found.
        """
        if not self.has_targets:
            for flag, enabled in (
                ("--no-tree", self.no_tree),
                ("--no-full", self.exe_only),
                ("--no-pid", self.no_pid),
            ):
                if enabled:
                    raise OptionsError(f"{flag} requires pid or cmd argument to match")

        if self.rss and not (self.shows(Column.RAM) or self.shows(Column.SWAP)):
            raise OptionsError("--rss requires 'ram' or 'swap' column")
        if self.cpu_time and not self.shows(Column.CPU):
            raise OptionsError("--cpu-time requires 'cpu' column")
        if self.total_io and not (self.shows(Column.READ_IO) or self.shows(Column.WRITE_IO)):
            raise OptionsError("--total-io requires 'io' column")
        if self.numeric_uid and not self.shows(Column.UID):
            raise OptionsError("--no-name requires 'uid' column")
        if self.browse and self.no_tree:
            raise OptionsError("--browse cannot be combined with --no-tree")
