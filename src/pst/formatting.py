"""Human readable units and display-width handling."""

from rich.cells import cell_len, get_character_cell_size

KB = 1000
MB = 1000**2
GB = 1000**3

_DURATION_UNITS = (("d", 86400), ("h", 3600), ("m", 60))


def format_size(size: int) -> str:
    """Format bytes in decimal units: KB below 1 MB, then MB and GB."""
    if size < MB:
        return f"{int(size / KB)} KB"
    if size < GB:
        return f"{size / MB:.1f} MB"
    return f"{size / GB:.1f} GB"


def format_duration(seconds: int) -> str:
    """
    Format a duration with its two most significant units.

    The second unit is left out when it is zero, e.g. ``1h1m``, ``2d``,
    ``45s``.
    """
    seconds = max(int(seconds), 0)
    parts: list[tuple[int, str]] = []
    for suffix, length in _DURATION_UNITS:
        value, seconds = divmod(seconds, length)
        parts.append((value, suffix))
    parts.append((seconds, "s"))

    for index, (value, suffix) in enumerate(parts[:-1]):
        if value > 0:
            rest, rest_suffix = parts[index + 1]
            return f"{value}{suffix}" + (f"{rest}{rest_suffix}" if rest > 0 else "")
    return f"{seconds}s"


def format_percent(part: int, whole: int) -> str:
    """Format ``part`` as a percentage of ``whole`` with two decimals."""
    if whole <= 0:
        return "-"
    return f"{100 * part / whole:.2f}%"


def truncate(line: str, width: int) -> str:
    """Clip a line to at most ``width`` terminal cells."""
    if cell_len(line) <= width:
        return line

    used = 0
    for index, char in enumerate(line):
        used += get_character_cell_size(char)
        if used > width:
            return line[:index]
    return line
