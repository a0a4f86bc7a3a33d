"""Exceptions raised by pst."""


class PstError(Exception):
    """Base class for errors that end a pst run."""


class FatalSetupError(PstError):
    """A system resource needed before collection is unavailable."""


class ScanError(FatalSetupError):
    """A directory that must be listed could not be opened."""

    def __init__(self, path: str, error: OSError) -> None:
        self.path = path
        self.error = error
        super().__init__(f"Failed to read {path}: {error.strerror or error}")


class DuplicateProcessError(PstError):
    """The same pid was assembled into the tree twice."""

    def __init__(self, pid: int) -> None:
        self.pid = pid
        super().__init__(f"Failed to build proc map: duplicate pid {pid}")


class NothingMatchedError(PstError):
    """No process matched the pid or command arguments."""

    def __init__(self) -> None:
        super().__init__("Nothing matched")
