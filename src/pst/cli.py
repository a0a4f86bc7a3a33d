"""pst - command line entry point."""

import argparse
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import NoReturn, TextIO

from pst.collector import SnapshotCollector
from pst.config import DEFAULT_COLUMNS, Options, OptionsError, parse_columns
from pst.errors import NothingMatchedError, PstError
from pst.matcher import match_targets
from pst.render import ASCII_ART, UNICODE_ART, TreeRenderer
from pst.tree import Snapshot

logger = logging.getLogger("pst")

DESCRIPTION = "Parses Linux procfs and prints process tree of all or matched processes."
EPILOG = "* Required capabilities: CAP_SYS_PTRACE and CAP_DAC_READ_SEARCH"


def package_version() -> str:
    try:
        return version("pst")
    except PackageNotFoundError:
        return "unknown"


class ArgumentParser(argparse.ArgumentParser):
    """argparse with the same exit status for usage errors as for any other failure."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"ERR: {message}\n")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="pst", description=DESCRIPTION, epilog=EPILOG)
    parser.add_argument("targets", nargs="*", metavar="pid|cmd", help="pids or command substrings to match")
    parser.add_argument(
        "-o",
        "--opt",
        metavar="OPT,...",
        help="print only given columns: all, ppid, pid, tty, uid, ram*, swap*, cpu, age, io*, cmd",
    )
    parser.add_argument("--kernel", action="store_true", help="show kernel threads")
    parser.add_argument("--threads", action="store_true", help="show process threads")
    parser.add_argument("--rss", action="store_true", help="show RSS RAM and SWAP instead of PSS")
    parser.add_argument("--cpu-time", action="store_true", help="show CPU time instead of percentage")
    parser.add_argument(
        "--total-io", action="store_true", help="include I/O of dead threads and dead child processes"
    )
    parser.add_argument(
        "--no-tree", action="store_true", help="print only given processes, not their child tree"
    )
    parser.add_argument(
        "--no-full",
        action="store_true",
        help="match only the executable (cmd part before first space, or its trailing path), not the whole cmdline",
    )
    parser.add_argument("--no-pid", action="store_true", help="treat the numerical argument(s) as cmd, not pid")
    parser.add_argument("--no-name", action="store_true", help="do not try to resolve uid to user name")
    parser.add_argument("--no-header", action="store_true", help="do not print header")
    parser.add_argument("--no-trunc", action="store_true", help="do not fit lines to terminal width")
    parser.add_argument("--ascii", action="store_true", help="use ASCII characters for tree art")
    parser.add_argument("--browse", action="store_true", help="browse the snapshot interactively")
    parser.add_argument("-v", "--verbose", action="store_true", help="print all errors")
    parser.add_argument("-V", "--version", action="version", version=f"pst {package_version()}")
    return parser


def options_from_args(args: argparse.Namespace) -> Options:
    """
    Build validated Options from parsed arguments.

    Raises:
        OptionsError: On a bad --opt value or inconsistent flags.
    """
    options = Options(
        columns=DEFAULT_COLUMNS if args.opt is None else parse_columns(args.opt),
        targets=tuple(args.targets),
        show_kernel=args.kernel,
        show_threads=args.threads,
        rss=args.rss,
        cpu_time=args.cpu_time,
        total_io=args.total_io,
        no_tree=args.no_tree,
        exe_only=args.no_full,
        no_pid=args.no_pid,
        numeric_uid=args.no_name,
        no_header=args.no_header,
        no_trunc=args.no_trunc,
        ascii=args.ascii,
        verbose=args.verbose,
        browse=args.browse,
    )
    options.validate()
    return options


def configure_logging(stream: TextIO | None = None) -> None:
    """Send pst diagnostics to stderr as ``ERR: message`` lines."""
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter("ERR: %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.INFO)
    logger.propagate = False


def terminal_width(stream: TextIO) -> int | None:
    """Columns of the terminal behind ``stream``, or None if it is not one."""
    try:
        return os.get_terminal_size(stream.fileno()).columns
    except (OSError, ValueError):
        return None


def is_terminal(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except ValueError:
        return False


def resolve_targets(snapshot: Snapshot, options: Options) -> set[int] | None:
    """
    Targets to render, or None to render the whole tree.

    Raises:
        NothingMatchedError: If arguments were given and none matched.
    """
    if not options.has_targets:
        return None

    result = match_targets(
        snapshot,
        options.targets,
        match_pids=not options.no_pid,
        exe_only=options.exe_only,
    )
    if options.verbose:
        for problem in result.problems:
            logger.error(problem)
    if not result.targets:
        raise NothingMatchedError()
    return result.targets


def run(
    options: Options,
    collector: SnapshotCollector,
    out: TextIO,
    *,
    ascii_art: bool = False,
    width: int | None = None,
) -> int:
    """
    Collect, match and print one snapshot.

    Returns:
        The process exit status.
    """
    try:
        snapshot = collector.collect()
        targets = resolve_targets(snapshot, options)
    except NothingMatchedError as exc:
        if not options.verbose:
            logger.error("%s", exc)
        return 1
    except PstError as exc:
        logger.error("%s", exc)
        return 1

    # E.g. permission denied on every process
    if not snapshot.by_parent:
        logger.error("Failed to get any pid")
        return 1

    renderer = TreeRenderer(
        snapshot,
        options,
        art=ASCII_ART if ascii_art else UNICODE_ART,
        thread_source=collector.collect_threads,
    )

    if options.browse:
        from pst.app import PstApp

        PstApp(renderer, targets).run()
    else:
        for line in renderer.render(targets, width=width):
            out.write(line + "\n")
        out.flush()

    if snapshot.errors:
        if not options.verbose:
            logger.error("Failed to get %d pids", len(snapshot.errors))
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the pst command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        options = options_from_args(args)
    except OptionsError as exc:
        parser.error(str(exc))

    configure_logging()

    out = sys.stdout
    terminal = is_terminal(out)
    width = None if options.no_trunc or not terminal else terminal_width(out)
    return run(
        options,
        SnapshotCollector(options),
        out,
        ascii_art=options.ascii or not terminal,
        width=width,
    )


if __name__ == "__main__":
    sys.exit(main())
