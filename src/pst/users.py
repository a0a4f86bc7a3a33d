"""Owner uid to user name lookup."""

import pwd
from functools import lru_cache

from pst.models import UNKNOWN


@lru_cache(maxsize=None)
def _lookup(uid: int) -> str | None:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return None


def user_name(uid: int, width: int = 10, numeric: bool = False) -> str:
    """
    Display name for a uid.

    Names that would not leave two spaces of padding in a column of
    ``width`` are cut short and marked with ``+``. Unknown users, and
    every user in numeric mode, show the uid itself.
    """
    if uid == UNKNOWN:
        return "?"
    if numeric:
        return str(uid)

    name = _lookup(uid)
    if name is None:
        return str(uid)
    if len(name) > width - 2:
        name = name[: width - 3] + "+"
    return name
