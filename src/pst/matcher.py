"""Resolve pid and command arguments to the processes to show."""

import os
from collections.abc import Iterable
from dataclasses import dataclass, field

from pst.tree import Snapshot


def is_pid_token(token: str) -> bool:
    return token.isascii() and token.isdigit()


@dataclass(slots=True)
class MatchResult:
    """Target pids plus a diagnostic for each argument that resolved to nothing."""

    targets: set[int] = field(default_factory=set)
    problems: list[str] = field(default_factory=list)


def command_matches(command: str, token: str, exe_only: bool = False) -> bool:
    """
    Case sensitive test of ``token`` against a display command.

    The token matches anywhere in the command. With ``exe_only`` only the
    text before the first space is considered, and the token has to name
    it: either the whole word or its trailing path components, so ``foo``
    matches ``foo --x`` and ``/usr/bin/foo`` but not ``foobar --x``.
    """
    if not exe_only:
        return token in command

    exe = command.split(" ", 1)[0]
    return exe == token or exe.endswith("/" + token.lstrip("/"))


def match_targets(
    snapshot: Snapshot,
    tokens: Iterable[str],
    *,
    match_pids: bool = True,
    exe_only: bool = False,
    own_pid: int | None = None,
) -> MatchResult:
    """
    Resolve arguments against a snapshot.

    Numeric tokens are looked up as pids unless ``match_pids`` is off;
    everything else is matched against process commands. Our own process
    never matches a command token. The snapshot is not modified.
    """
    if own_pid is None:
        own_pid = os.getpid()

    result = MatchResult()
    for token in tokens:
        if match_pids and is_pid_token(token):
            _match_pid(snapshot, token, result)
        else:
            _match_command(snapshot, token, exe_only, own_pid, result)
    return result


def _match_pid(snapshot: Snapshot, token: str, result: MatchResult) -> None:
    pid = int(token)
    if pid in snapshot.by_id:
        result.targets.add(pid)
    elif pid in snapshot.kernel_skipped:
        result.problems.append(f"Ignoring pid {token}")
    elif pid in snapshot.errors:
        result.problems.append(f"Pid {token}: {snapshot.errors[pid]}")
    else:
        result.problems.append(f"Pid {token} not found")


def _match_command(snapshot: Snapshot, token: str, exe_only: bool, own_pid: int, result: MatchResult) -> None:
    matched = False
    for pid, record in snapshot.by_id.items():
        if pid != own_pid and command_matches(record.command, token, exe_only):
            result.targets.add(pid)
            matched = True

    if not matched:
        result.problems.append(f"No match for process name: {token}")
